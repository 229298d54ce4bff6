"""Notion to local Markdown pipeline.

For every changed, eligible page the block tree is fetched, converted to
Markdown, prefixed with YAML front matter built from the page properties,
and written to ``{output_dir}/{slug}.md``.  Ledger records whose page left
the eligible set have their file deleted.

Failures are isolated per page: the error is recorded and the loop moves on.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import Config
from ..converters import (
    blocks_to_markdown,
    frontmatter_to_yaml,
    is_published,
    page_file_slug,
    page_slug,
    page_title,
    properties_to_frontmatter,
)
from ..core.client import NotionClient
from ..errors import ItemTransferError
from ..file_handler import (
    delete_file,
    is_safe_slug,
    write_file_atomic,
)
from .detector import detect_remote_changes
from .models import ItemAction, ItemResult, SyncDirection, SyncError, SyncResult
from .state import SyncState

logger = logging.getLogger(__name__)


class PullPipeline:
    """Write eligible Notion pages of one data source to Markdown files.

    Args:
        client: Notion API client.
        config: Runtime configuration (output dir, status property).
    """

    def __init__(self, client: NotionClient, config: Config) -> None:
        self.client = client
        self.config = config
        self.output_dir = Path(config.output_dir)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, data_source_id: str) -> list[dict]:
        """Query the data source and keep the pages eligible for sync."""
        pages = self.client.query_pages(data_source_id)
        eligible = [
            page
            for page in pages
            if is_published(
                page, self.config.status_property, self.config.published_status
            )
        ]
        logger.info(
            "Found %d pages, %d with %s '%s'",
            len(pages),
            len(eligible),
            self.config.status_property,
            self.config.published_status,
        )
        return eligible

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def run(
        self,
        state: dict,
        pages: list[dict],
        full: bool = False,
        dry_run: bool = False,
        exclude: frozenset[str] = frozenset(),
    ) -> SyncResult:
        """Run one pull pass over *pages*, mutating *state* in place.

        Args:
            state: Ledger dict; left untouched when *dry_run* is set.
            pages: Eligible pages from ``snapshot()``.
            full: Re-write every page regardless of its edit time.
            dry_run: Report actions without writing anything.
            exclude: Page ids whose local version must not be overwritten.
        """
        detection = detect_remote_changes(state, pages, full=full)
        titles = {page["id"]: page_title(page) for page in pages}
        results: list[ItemResult] = []
        errors: list[SyncError] = []

        for page in detection.changed:
            if page["id"] in exclude:
                entry = SyncState.get_entry(state, page["id"]) or {}
                logger.info(
                    "Keeping local version of %s", entry.get("slug")
                )
                results.append(
                    self._result(
                        page["id"],
                        entry.get("slug", ""),
                        ItemAction.SKIPPED,
                        titles[page["id"]],
                    )
                )
                continue
            try:
                results.append(self._pull_page(page, state, dry_run))
            except Exception as exc:
                errors.append(self._error(page, exc))

        for page_id in detection.unchanged:
            entry = SyncState.get_entry(state, page_id) or {}
            results.append(
                self._result(
                    page_id,
                    entry.get("slug", ""),
                    ItemAction.SKIPPED,
                    titles.get(page_id, ""),
                )
            )

        for page_id in detection.deleted:
            try:
                results.append(self._delete(page_id, state, dry_run))
            except OSError as exc:
                entry = SyncState.get_entry(state, page_id) or {}
                logger.error(
                    "Failed to delete file for page %s: %s", page_id, exc
                )
                errors.append(
                    SyncError(
                        message=f"Failed to delete file for page {page_id}: {exc}",
                        id=page_id,
                        slug=entry.get("slug"),
                        kind=type(exc).__name__,
                    )
                )

        return SyncResult(pulled=results, errors=errors, dry_run=dry_run)

    # ------------------------------------------------------------------
    # Per page
    # ------------------------------------------------------------------

    def _pull_page(self, page: dict, state: dict, dry_run: bool) -> ItemResult:
        page_id = page["id"]
        title = page_title(page)
        mapped = properties_to_frontmatter(
            page.get("properties") or {},
            status_property=self.config.status_property,
            published_status=self.config.published_status,
        )
        if not mapped.should_publish:
            logger.info("Skipping %s: not published", title)
            return self._result(page_id, "", ItemAction.SKIPPED, title)

        slug = page_file_slug(page)
        if not is_safe_slug(slug):
            raise ItemTransferError(
                f"Slug '{slug}' is not a plain file name",
                record_id=page_id,
                slug=slug,
            )
        owner = SyncState.find_by_slug(state, slug)
        if owner is not None and owner[0] != page_id:
            raise ItemTransferError(
                f"Slug '{slug}' is already used by page {owner[0]}",
                record_id=page_id,
                slug=slug,
            )

        entry = SyncState.get_entry(state, page_id)
        action = ItemAction.UPDATED if entry else ItemAction.CREATED
        if dry_run:
            return self._result(page_id, slug, action, title)

        body = blocks_to_markdown(self.client.fetch_block_tree(page_id))
        content = frontmatter_to_yaml(mapped.frontmatter) + "\n" + body
        file_path = f"{slug}.md"
        write_file_atomic(self.output_dir / file_path, content)

        # Renamed page: drop the file under the previous slug.
        if entry and entry.get("slug") and entry["slug"] != slug:
            delete_file(self._resolve(entry))

        SyncState.update_entry(
            state,
            page_id,
            {
                "remoteLastEdited": page.get("last_edited_time", ""),
                "localContentHash": SyncState.content_hash(content),
                "slug": slug,
                "filePath": file_path,
            },
        )
        logger.info("%s %s", action.value.capitalize(), file_path)
        return self._result(page_id, slug, action, title)

    def _delete(self, page_id: str, state: dict, dry_run: bool) -> ItemResult:
        entry = SyncState.get_entry(state, page_id) or {}
        slug = entry.get("slug", "")
        if not dry_run:
            if entry.get("filePath"):
                delete_file(self._resolve(entry))
            SyncState.remove_entry(state, page_id)
            logger.info("Deleted %s", entry.get("filePath") or slug)
        return self._result(page_id, slug, ItemAction.DELETED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, entry: dict) -> Path:
        """Ledger paths are relative to the output dir; old ones may be absolute."""
        path = Path(entry.get("filePath") or f"{entry['slug']}.md")
        return path if path.is_absolute() else self.output_dir / path

    @staticmethod
    def _result(
        page_id: str, slug: str, action: ItemAction, title: str = ""
    ) -> ItemResult:
        return ItemResult(
            id=page_id,
            slug=slug,
            title=title,
            direction=SyncDirection.PULL,
            action=action,
        )

    def _error(self, page: dict, exc: Exception) -> SyncError:
        title = page_title(page)
        slug = getattr(exc, "slug", None) or page_slug(page)
        logger.error("Error syncing '%s': %s", title, exc)
        return SyncError(
            message=f'Failed to sync page "{title}": {exc}',
            id=page["id"],
            slug=slug,
            kind=type(exc).__name__,
        )
