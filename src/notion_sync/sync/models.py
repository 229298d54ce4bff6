"""Pydantic models for the sync pipelines.

Defines the data contracts passed between the sync modules:

- ``SyncDirection``, ``ItemAction``, ``ConflictWinner``: enums.
- ``LocalFile``: one Markdown file found in the output directory.
- ``ChangeDetectionResult``: changed / unchanged / deleted classification.
- ``ItemResult``: outcome of transferring one record.
- ``ConflictRecord``: a record edited on both sides and who won.
- ``SyncError``: a failure attached to a record or to a whole direction.
- ``SyncResult``: aggregate outcome of a pull, push, or bidirectional run.

All models are frozen (immutable).  Notion page objects are passed around
as the plain dicts returned by the API.
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SyncDirection(str, Enum):
    PULL = "pull"
    PUSH = "push"


class ItemAction(str, Enum):
    """What happened to a single record during a pass."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED = "skipped"


class ConflictWinner(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class LocalFile(BaseModel):
    """A Markdown file in the output directory.

    Attributes:
        file_path: Path relative to the output directory.
        slug: File name without the ``.md`` suffix.
        content: Full file content, front matter included.
        content_hash: ``sha256:<hex>`` digest of *content*.
        last_modified: File mtime as an ISO 8601 UTC timestamp.
    """

    file_path: str
    slug: str
    content: str
    content_hash: str
    last_modified: str

    model_config = {"frozen": True}


class ChangeDetectionResult(BaseModel, Generic[T]):
    """Classification of one side's snapshot against the ledger.

    ``changed`` holds the snapshot items themselves (page dicts or
    ``LocalFile`` values); ``unchanged`` holds their keys (page ids or
    slugs); ``deleted`` holds ledger page ids with nothing left on that
    side.
    """

    changed: list[T] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ItemResult(BaseModel):
    id: str
    slug: str
    title: str = ""
    direction: SyncDirection
    action: ItemAction

    model_config = {"frozen": True}


class ConflictRecord(BaseModel):
    """A record changed on both sides since the last sync.

    Attributes:
        id: Notion page id.
        slug: Slug of the page and of the local file it collides with.
        remote_edited_at: Page ``last_edited_time``.
        local_edited_at: File modification time.
        strategy: Name of the strategy that settled it.
        winner: Side whose version is kept.
    """

    id: str
    slug: str
    remote_edited_at: str
    local_edited_at: str
    strategy: str
    winner: ConflictWinner

    model_config = {"frozen": True}


class SyncError(BaseModel):
    """A failure recorded during a pass.

    ``id`` and ``slug`` are empty for failures that aborted a whole
    direction before any record was touched.  ``kind`` is the exception
    class name.
    """

    message: str
    id: str | None = None
    slug: str | None = None
    kind: str | None = None

    model_config = {"frozen": True}


class SyncResult(BaseModel):
    """Aggregate outcome of a sync run.

    Attributes:
        pulled: Per-record results of the Notion to local direction.
        pushed: Per-record results of the local to Notion direction.
        conflicts: Conflicts detected in bidirectional mode.
        errors: Per-record and per-direction failures.
        dry_run: Whether the run only computed actions.
    """

    pulled: list[ItemResult] = Field(default_factory=list)
    pushed: list[ItemResult] = Field(default_factory=list)
    conflicts: list[ConflictRecord] = Field(default_factory=list)
    errors: list[SyncError] = Field(default_factory=list)
    dry_run: bool = False

    model_config = {"frozen": True}

    @property
    def items(self) -> list[ItemResult]:
        return [*self.pulled, *self.pushed]

    def _with_action(self, action: ItemAction) -> list[ItemResult]:
        return [r for r in self.items if r.action == action]

    @property
    def created(self) -> list[ItemResult]:
        return self._with_action(ItemAction.CREATED)

    @property
    def updated(self) -> list[ItemResult]:
        return self._with_action(ItemAction.UPDATED)

    @property
    def deleted(self) -> list[ItemResult]:
        return self._with_action(ItemAction.DELETED)

    @property
    def skipped(self) -> list[ItemResult]:
        return self._with_action(ItemAction.SKIPPED)

    @property
    def ok(self) -> bool:
        """``True`` when no error was recorded."""
        return not self.errors

    def merge(self, other: SyncResult) -> SyncResult:
        """Return a new result combining this one with *other*."""
        return SyncResult(
            pulled=[*self.pulled, *other.pulled],
            pushed=[*self.pushed, *other.pushed],
            conflicts=[*self.conflicts, *other.conflicts],
            errors=[*self.errors, *other.errors],
            dry_run=self.dry_run or other.dry_run,
        )
