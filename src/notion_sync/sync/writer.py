"""Page writes for the local to Notion direction.

Notion accepts at most 100 children per request, so content is sent in
chunks: the first chunk with ``pages`` creation, the rest through
``blocks/{id}/children`` appends.  Replacing content deletes every
top-level child (nested children go with their parent) and appends the new
blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import TypeVar

from ..core.client import MAX_CHILDREN_PER_REQUEST, NotionClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunk(items: Sequence[T], size: int = MAX_CHILDREN_PER_REQUEST) -> Iterator[list[T]]:
    """Yield consecutive slices of *items* holding at most *size* elements."""
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class PageWriter:
    """Create, update, and archive pages of one database.

    Args:
        client: Notion API client.
        database_id: Parent database for new pages.
    """

    def __init__(self, client: NotionClient, database_id: str) -> None:
        self.client = client
        self.database_id = database_id

    def create_page(self, properties: dict, blocks: list[dict]) -> dict:
        """Create a page holding *blocks* and return the final page object.

        When blocks had to be appended after creation the page is fetched
        again so ``last_edited_time`` reflects the appends.
        """
        first, rest = blocks[:MAX_CHILDREN_PER_REQUEST], blocks[MAX_CHILDREN_PER_REQUEST:]
        page = self.client.create_page(self.database_id, properties, first or None)
        if rest:
            self._append(page["id"], rest)
            page = self.client.retrieve_page(page["id"])
        logger.debug(
            "Created page %s with %d blocks", page["id"], len(blocks)
        )
        return page

    def replace_content(self, page_id: str, blocks: list[dict]) -> None:
        existing = self.client.list_block_children(page_id)
        for block in existing:
            self.client.delete_block(block["id"])
        if blocks:
            self._append(page_id, blocks)
        logger.debug(
            "Replaced %d blocks on %s with %d",
            len(existing),
            page_id,
            len(blocks),
        )

    def update_properties(self, page_id: str, properties: dict) -> dict:
        return self.client.update_page_properties(page_id, properties)

    def archive(self, page_id: str) -> dict:
        return self.client.archive_page(page_id)

    def _append(self, page_id: str, blocks: list[dict]) -> None:
        for batch in chunk(blocks):
            self.client.append_children(page_id, batch)
