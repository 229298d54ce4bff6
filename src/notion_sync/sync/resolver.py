"""Conflict detection and resolution for bidirectional sync.

A conflict is a page that changed in Notion since the last sync while the
local file recorded for it (matched by slug) changed as well, or a new
page whose slug is taken by a local file that was never pushed.
Conflicts are settled per whole record:

- ``RemoteWinsResolver``: Notion always wins.
- ``LocalWinsResolver``: the local file always wins.
- ``LatestWinsResolver``: the newer edit wins; ties go to Notion.

``detect_conflicts()`` turns the winners into exclusion sets so that each
direction leaves the winning side untouched.  The ``create_resolver()``
factory maps config strategy strings to resolver instances.
"""

from __future__ import annotations

import logging
from typing import Protocol

from pydantic import BaseModel, Field

from ..converters.properties import page_file_slug
from .detector import parse_timestamp
from .models import ConflictRecord, ConflictWinner, LocalFile
from .state import SyncState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ConflictResolver(Protocol):
    """Protocol that all conflict resolvers must satisfy."""

    name: str

    def pick_winner(
        self, remote_edited_at: str, local_edited_at: str
    ) -> ConflictWinner:
        """Decide which side of a conflicting record is kept."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


class RemoteWinsResolver:
    """Always resolve conflicts in favour of Notion."""

    name = "remote-wins"

    def pick_winner(
        self, remote_edited_at: str, local_edited_at: str
    ) -> ConflictWinner:
        return ConflictWinner.REMOTE


class LocalWinsResolver:
    """Always resolve conflicts in favour of the local file."""

    name = "local-wins"

    def pick_winner(
        self, remote_edited_at: str, local_edited_at: str
    ) -> ConflictWinner:
        return ConflictWinner.LOCAL


class LatestWinsResolver:
    """Keep whichever side was edited last.

    Timestamps are compared as instants, so offsets and precision do not
    matter.  Equal instants go to Notion.  An unparseable local time loses;
    an unparseable remote time loses to any valid local time.
    """

    name = "latest-wins"

    def pick_winner(
        self, remote_edited_at: str, local_edited_at: str
    ) -> ConflictWinner:
        remote_at = parse_timestamp(remote_edited_at)
        local_at = parse_timestamp(local_edited_at)
        if local_at is None:
            return ConflictWinner.REMOTE
        if remote_at is None:
            return ConflictWinner.LOCAL
        if remote_at >= local_at:
            return ConflictWinner.REMOTE
        return ConflictWinner.LOCAL


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class ConflictResolution(BaseModel):
    """Conflicts of one bidirectional pass and the resulting exclusions.

    Attributes:
        conflicts: One record per conflicting page.
        exclude_from_pull: Page ids whose local version won.
        exclude_from_push: Slugs whose Notion version won.
    """

    conflicts: list[ConflictRecord] = Field(default_factory=list)
    exclude_from_pull: frozenset[str] = frozenset()
    exclude_from_push: frozenset[str] = frozenset()

    model_config = {"frozen": True}


def detect_conflicts(
    remote_changed: list[dict],
    local_changed: list[LocalFile],
    state: dict,
    strategy: str | ConflictResolver,
) -> ConflictResolution:
    """Find records changed on both sides and settle each with *strategy*.

    *strategy* is a strategy name or a resolver instance.  A page new to
    the ledger conflicts with a local file under the slug it would be
    written to when no ledger record owns that slug yet.
    """
    resolver = (
        create_resolver(strategy) if isinstance(strategy, str) else strategy
    )
    local_by_slug = {f.slug: f for f in local_changed}
    conflicts: list[ConflictRecord] = []
    exclude_from_pull: set[str] = set()
    exclude_from_push: set[str] = set()

    for page in remote_changed:
        entry = SyncState.get_entry(state, page["id"])
        if entry is not None:
            slug = entry.get("slug", "")
        else:
            slug = page_file_slug(page)
            if SyncState.find_by_slug(state, slug) is not None:
                continue
        local = local_by_slug.get(slug)
        if local is None:
            continue

        remote_edited_at = page.get("last_edited_time", "")
        winner = resolver.pick_winner(remote_edited_at, local.last_modified)
        conflicts.append(
            ConflictRecord(
                id=page["id"],
                slug=slug,
                remote_edited_at=remote_edited_at,
                local_edited_at=local.last_modified,
                strategy=resolver.name,
                winner=winner,
            )
        )
        if winner is ConflictWinner.LOCAL:
            exclude_from_pull.add(page["id"])
        else:
            exclude_from_push.add(slug)
        logger.info(
            "Conflict on %s (%s): %s wins under %s",
            slug,
            page["id"],
            winner.value,
            resolver.name,
        )

    return ConflictResolution(
        conflicts=conflicts,
        exclude_from_pull=frozenset(exclude_from_pull),
        exclude_from_push=frozenset(exclude_from_push),
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[str, type] = {
    "remote-wins": RemoteWinsResolver,
    "local-wins": LocalWinsResolver,
    "latest-wins": LatestWinsResolver,
}


def create_resolver(strategy: str) -> ConflictResolver:
    """Create a conflict resolver for the given strategy string.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    cls = _STRATEGY_MAP.get(strategy)
    if cls is None:
        raise ValueError(
            f"Unknown conflict strategy: '{strategy}'. Valid strategies: {sorted(_STRATEGY_MAP.keys())}"
        )
    return cls()  # type: ignore[return-value]
