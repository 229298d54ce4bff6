"""Format conversion between Notion pages and Markdown files."""

from .blocks_to_markdown import blocks_to_markdown
from .markdown_to_blocks import markdown_to_blocks
from .properties import (
    FrontmatterResult,
    frontmatter_to_properties,
    frontmatter_to_yaml,
    is_published,
    page_file_slug,
    page_slug,
    page_title,
    parse_frontmatter,
    properties_to_frontmatter,
)
from .rich_text import rich_text_to_markdown, rich_text_to_plain_text

__all__ = [
    "FrontmatterResult",
    "blocks_to_markdown",
    "frontmatter_to_properties",
    "frontmatter_to_yaml",
    "is_published",
    "page_file_slug",
    "markdown_to_blocks",
    "page_slug",
    "page_title",
    "parse_frontmatter",
    "properties_to_frontmatter",
    "rich_text_to_markdown",
    "rich_text_to_plain_text",
]
