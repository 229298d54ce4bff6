"""notion_sync: keep a Notion database and a Markdown directory in sync."""

__version__ = "0.4.0"
