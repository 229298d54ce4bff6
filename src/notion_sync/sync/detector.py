"""Incremental change detection against the sync ledger.

Remote pages are compared by ``last_edited_time``; local files by content
digest.  Both functions also report ledger records that no longer have a
counterpart on the inspected side.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .models import ChangeDetectionResult, LocalFile
from .state import SyncState

logger = logging.getLogger(__name__)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC ``datetime``.

    Accepts the ``Z`` suffix Notion uses.  Naive values are taken as UTC.
    Returns ``None`` for empty or unparseable input.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_newer(candidate: str | None, stored: str | None) -> bool:
    """Return ``True`` if *candidate* is strictly later than *stored*.

    A missing or unparseable stored value counts as older than anything.
    """
    stored_at = parse_timestamp(stored)
    if stored_at is None:
        return True
    candidate_at = parse_timestamp(candidate)
    if candidate_at is None:
        return False
    return candidate_at > stored_at


def detect_remote_changes(
    state: dict, pages: list[dict], full: bool = False
) -> ChangeDetectionResult[dict]:
    """Classify a Notion query snapshot against the ledger.

    Args:
        state: Ledger dict.
        pages: Page objects from the query, in query order.
        full: Treat every page as changed.  Deletions are still computed.
    """
    changed: list[dict] = []
    unchanged: list[str] = []
    seen: set[str] = set()

    for page in pages:
        page_id = page["id"]
        seen.add(page_id)
        entry = SyncState.get_entry(state, page_id)
        if (
            full
            or entry is None
            or is_newer(
                page.get("last_edited_time"), entry.get("remoteLastEdited")
            )
        ):
            changed.append(page)
        else:
            unchanged.append(page_id)

    deleted = [rid for rid in state.get("records", {}) if rid not in seen]
    logger.debug(
        "Remote changes: %d changed, %d unchanged, %d deleted",
        len(changed),
        len(unchanged),
        len(deleted),
    )
    return ChangeDetectionResult[dict](
        changed=changed, unchanged=unchanged, deleted=deleted
    )


def detect_local_changes(
    state: dict, files: list[LocalFile], full: bool = False
) -> ChangeDetectionResult[LocalFile]:
    """Classify the local Markdown files against the ledger, keyed by slug.

    ``deleted`` lists ledger page ids whose slug has no file any more.
    """
    changed: list[LocalFile] = []
    unchanged: list[str] = []
    seen_slugs: set[str] = set()

    for local in files:
        seen_slugs.add(local.slug)
        match = SyncState.find_by_slug(state, local.slug)
        if (
            full
            or match is None
            or match[1].get("localContentHash") != local.content_hash
        ):
            changed.append(local)
        else:
            unchanged.append(local.slug)

    deleted = [
        rid
        for rid, entry in state.get("records", {}).items()
        if entry.get("slug") not in seen_slugs
    ]
    logger.debug(
        "Local changes: %d changed, %d unchanged, %d deleted",
        len(changed),
        len(unchanged),
        len(deleted),
    )
    return ChangeDetectionResult[LocalFile](
        changed=changed, unchanged=unchanged, deleted=deleted
    )
