"""Local Markdown to Notion pipeline.

Each changed file is split into front matter and body.  The front matter
becomes page properties, the body becomes block payloads.  Files already in
the ledger update their page (content replaced wholesale); new files create
a page.  Ledger records whose file is gone have their page archived.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import Config
from ..converters import (
    frontmatter_to_properties,
    markdown_to_blocks,
    parse_frontmatter,
)
from ..converters.rich_text import text_item
from ..core.client import NotionClient
from .detector import detect_local_changes
from .local import scan_markdown_files
from .models import (
    ItemAction,
    ItemResult,
    LocalFile,
    SyncDirection,
    SyncError,
    SyncResult,
)
from .state import SyncState
from .writer import PageWriter

logger = logging.getLogger(__name__)


class PushPipeline:
    """Send changed Markdown files of the output directory to Notion.

    Args:
        client: Notion API client.
        config: Runtime configuration (database id, output dir).
    """

    def __init__(self, client: NotionClient, config: Config) -> None:
        self.client = client
        self.config = config
        self.output_dir = Path(config.output_dir)
        self.writer = PageWriter(client, config.database_id)
        self.status_type = "select"

    def load_schema(self, data_source_id: str) -> None:
        """Learn whether the status property is a ``select`` or a ``status``."""
        source = self.client.retrieve_data_source(data_source_id)
        prop = (source.get("properties") or {}).get(self.config.status_property)
        kind = (prop or {}).get("type")
        self.status_type = "status" if kind == "status" else "select"
        logger.debug(
            "Status property %s is a %s property",
            self.config.status_property,
            self.status_type,
        )

    def snapshot(self) -> list[LocalFile]:
        files = scan_markdown_files(self.output_dir)
        logger.info("Found %d Markdown files in %s", len(files), self.output_dir)
        return files

    def run(
        self,
        state: dict,
        files: list[LocalFile],
        full: bool = False,
        dry_run: bool = False,
        exclude: frozenset[str] = frozenset(),
    ) -> SyncResult:
        """Run one push pass over *files*, mutating *state* in place.

        *exclude* holds slugs whose Notion version must not be overwritten.
        """
        detection = detect_local_changes(state, files, full=full)
        results: list[ItemResult] = []
        errors: list[SyncError] = []

        for local in detection.changed:
            if local.slug in exclude:
                logger.info("Keeping Notion version of %s (conflict)", local.slug)
                match = SyncState.find_by_slug(state, local.slug)
                results.append(
                    self._result(
                        match[0] if match else "", local.slug, ItemAction.SKIPPED
                    )
                )
                continue
            try:
                results.append(self._push_file(local, state, dry_run))
            except Exception as exc:
                match = SyncState.find_by_slug(state, local.slug)
                logger.error("Error pushing %s: %s", local.file_path, exc)
                errors.append(
                    SyncError(
                        message=f"Failed to push {local.file_path}: {exc}",
                        id=match[0] if match else None,
                        slug=local.slug,
                        kind=type(exc).__name__,
                    )
                )

        for slug in detection.unchanged:
            match = SyncState.find_by_slug(state, slug)
            results.append(
                self._result(match[0] if match else "", slug, ItemAction.SKIPPED)
            )

        for page_id in detection.deleted:
            entry = SyncState.get_entry(state, page_id) or {}
            slug = entry.get("slug", "")
            try:
                if not dry_run:
                    self.writer.archive(page_id)
                    SyncState.remove_entry(state, page_id)
                    logger.info("Archived page %s (%s)", page_id, slug)
                results.append(self._result(page_id, slug, ItemAction.DELETED))
            except Exception as exc:
                logger.error("Error archiving page %s: %s", page_id, exc)
                errors.append(
                    SyncError(
                        message=f"Failed to archive page {page_id}: {exc}",
                        id=page_id,
                        slug=slug,
                        kind=type(exc).__name__,
                    )
                )

        return SyncResult(pushed=results, errors=errors, dry_run=dry_run)

    # ------------------------------------------------------------------
    # Per file
    # ------------------------------------------------------------------

    def _properties(self, frontmatter: dict, slug: str, new: bool) -> dict:
        properties = frontmatter_to_properties(
            frontmatter,
            status_property=self.config.status_property,
            status_type=self.status_type,
        )
        properties.setdefault("Slug", {"rich_text": text_item(slug)})
        if new:
            properties.setdefault("Name", {"title": text_item(slug)})
            # New pages must stay eligible for the next pull.
            properties.setdefault(
                self.config.status_property,
                {self.status_type: {"name": self.config.published_status}},
            )
        return properties

    def _push_file(
        self, local: LocalFile, state: dict, dry_run: bool
    ) -> ItemResult:
        frontmatter, body = parse_frontmatter(local.content)
        title = str(frontmatter.get("title") or local.slug)
        match = SyncState.find_by_slug(state, local.slug)
        properties = self._properties(frontmatter, local.slug, new=match is None)
        blocks = markdown_to_blocks(body)

        if match is None:
            action = ItemAction.CREATED
            if dry_run:
                return self._result("", local.slug, action, title)
            page = self.writer.create_page(properties, blocks)
        else:
            action = ItemAction.UPDATED
            if dry_run:
                return self._result(match[0], local.slug, action, title)
            self.writer.replace_content(match[0], blocks)
            page = self.writer.update_properties(match[0], properties)

        SyncState.update_entry(
            state,
            page["id"],
            {
                "remoteLastEdited": page.get("last_edited_time", ""),
                "localContentHash": local.content_hash,
                "slug": local.slug,
                "filePath": local.file_path,
                "localLastModified": local.last_modified,
                "remoteId": page["id"],
            },
        )
        logger.info(
            "%s page %s from %s",
            action.value.capitalize(),
            page["id"],
            local.file_path,
        )
        return self._result(page["id"], local.slug, action, title)

    @staticmethod
    def _result(
        page_id: str, slug: str, action: ItemAction, title: str = ""
    ) -> ItemResult:
        return ItemResult(
            id=page_id,
            slug=slug,
            title=title,
            direction=SyncDirection.PUSH,
            action=action,
        )
