"""Sync engine that sequences the pull and push pipelines.

Every pass follows the same steps:

1. Resolve the database's data source id (cached by the client).
2. Load the ledger.
3. Snapshot the side(s) involved.
4. Detect changes and, in bidirectional mode, conflicts.
5. Transfer items one at a time, updating the ledger in place.
6. Handle deletions.
7. Persist the ledger (skipped for dry runs).

A failure in steps 1-3 aborts the direction with a single ``SyncError``
and touches nothing.  Failures in step 5 or 6 are recorded per item.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import Config
from ..core.client import NotionClient
from .detector import detect_local_changes, detect_remote_changes
from .models import (
    ChangeDetectionResult,
    ConflictWinner,
    SyncError,
    SyncResult,
)
from .pull import PullPipeline
from .push import PushPipeline
from .resolver import ConflictResolution, detect_conflicts
from .state import SyncState

logger = logging.getLogger(__name__)


class SyncEngine:
    """Run pull, push, or bidirectional passes for one database.

    Args:
        client: Notion API client.
        config: Runtime configuration.
    """

    def __init__(self, client: NotionClient, config: Config) -> None:
        self.client = client
        self.config = config
        self.state_store = SyncState(Path(config.state_file))
        self.puller = PullPipeline(client, config)
        self.pusher = PushPipeline(client, config)

    # ------------------------------------------------------------------
    # Directions
    # ------------------------------------------------------------------

    def pull(self, full: bool = False, dry_run: bool = False) -> SyncResult:
        """Bring Notion changes into the output directory."""
        try:
            state, data_source_id = self._prepare()
            pages = self.puller.snapshot(data_source_id)
        except Exception as exc:
            return self._aborted("pull", exc, dry_run)

        result = self.puller.run(state, pages, full=full, dry_run=dry_run)
        result = self._finish(state, result, dry_run)
        self._log_summary("Pull", result)
        return result

    def push(self, full: bool = False, dry_run: bool = False) -> SyncResult:
        """Send local changes to Notion."""
        try:
            state, data_source_id = self._prepare()
            self.pusher.load_schema(data_source_id)
            files = self.pusher.snapshot()
        except Exception as exc:
            return self._aborted("push", exc, dry_run)

        result = self.pusher.run(state, files, full=full, dry_run=dry_run)
        result = self._finish(state, result, dry_run)
        self._log_summary("Push", result)
        return result

    def bidirectional(
        self, full: bool = False, dry_run: bool = False
    ) -> SyncResult:
        """Pull then push, settling records changed on both sides.

        Conflicts are detected on the pre-pass snapshots.  The pull leaves
        pages whose local version won untouched; the push then runs against
        the ledger produced by the pull and leaves pages whose Notion
        version won untouched.

        With *full*, every page is pulled again except those edited or
        deleted locally; the push still sends only files whose content
        differs from the ledger.
        """
        try:
            state, data_source_id = self._prepare()
            pages = self.puller.snapshot(data_source_id)
            self.pusher.load_schema(data_source_id)
            files = self.pusher.snapshot()
        except Exception as exc:
            return self._aborted("bidirectional sync", exc, dry_run)

        remote = detect_remote_changes(state, pages)
        local = detect_local_changes(state, files)
        resolution = detect_conflicts(
            remote.changed, local.changed, state, self.config.conflict_strategy
        )
        self._adopt_pages(state, resolution)

        keep_local = set(resolution.exclude_from_pull)
        if full:
            keep_local |= self._local_only_changes(state, remote, local)

        pulled = self.puller.run(
            state,
            pages,
            full=full,
            dry_run=dry_run,
            exclude=frozenset(keep_local),
        )
        if not dry_run:
            # Pick up the files the pull just wrote or removed.
            files = self.pusher.snapshot()
        pushed = self.pusher.run(
            state,
            files,
            dry_run=dry_run,
            exclude=resolution.exclude_from_push,
        )

        result = pulled.merge(pushed).merge(
            SyncResult(conflicts=resolution.conflicts, dry_run=dry_run)
        )
        result = self._finish(state, result, dry_run)
        self._log_summary("Bidirectional sync", result)
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _prepare(self) -> tuple[dict, str]:
        data_source_id = self.client.resolve_data_source_id(
            self.config.database_id
        )
        state = self.state_store.load()
        if not state.get("containerId"):
            state["containerId"] = self.config.database_id
        state["queryIndirectionId"] = data_source_id
        return state, data_source_id

    @staticmethod
    def _adopt_pages(state: dict, resolution: ConflictResolution) -> None:
        """Record unpushed local files that won against a new page.

        The push then updates that page instead of creating a second one
        with the same slug.
        """
        for conflict in resolution.conflicts:
            if conflict.winner is not ConflictWinner.LOCAL:
                continue
            if SyncState.get_entry(state, conflict.id) is not None:
                continue
            SyncState.update_entry(
                state,
                conflict.id,
                {
                    "remoteLastEdited": conflict.remote_edited_at,
                    "localContentHash": "",
                    "slug": conflict.slug,
                    "filePath": f"{conflict.slug}.md",
                },
            )

    @staticmethod
    def _local_only_changes(
        state: dict,
        remote: ChangeDetectionResult,
        local: ChangeDetectionResult,
    ) -> set[str]:
        """Page ids edited or deleted locally while unchanged in Notion."""
        remote_changed = {page["id"] for page in remote.changed}
        ids = set(local.deleted)
        for file in local.changed:
            match = SyncState.find_by_slug(state, file.slug)
            if match is not None:
                ids.add(match[0])
        return ids - remote_changed

    def _finish(
        self, state: dict, result: SyncResult, dry_run: bool
    ) -> SyncResult:
        if dry_run:
            return result
        try:
            self.state_store.save(state)
        except OSError as exc:
            logger.error(
                "Failed to save state file %s: %s", self.state_store.path, exc
            )
            return result.merge(
                SyncResult(
                    errors=[
                        SyncError(
                            message=f"Failed to save state file: {exc}",
                            kind=type(exc).__name__,
                        )
                    ]
                )
            )
        return result

    @staticmethod
    def _aborted(label: str, exc: Exception, dry_run: bool) -> SyncResult:
        logger.error("%s aborted: %s", label.capitalize(), exc)
        return SyncResult(
            errors=[SyncError(message=str(exc), kind=type(exc).__name__)],
            dry_run=dry_run,
        )

    @staticmethod
    def _log_summary(label: str, result: SyncResult) -> None:
        logger.info(
            "%s complete: %d created, %d updated, %d deleted, %d skipped",
            label,
            len(result.created),
            len(result.updated),
            len(result.deleted),
            len(result.skipped),
        )
        if result.conflicts:
            logger.info("%d conflicts resolved", len(result.conflicts))
        if result.errors:
            logger.warning("%d errors occurred", len(result.errors))
