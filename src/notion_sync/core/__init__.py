"""Notion API access shared by the sync pipelines and the CLI."""

from .blocks import Block
from .client import NotionClient
from .retry import with_retry

__all__ = ["Block", "NotionClient", "with_retry"]
