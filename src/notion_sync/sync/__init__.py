"""Notion database <-> Markdown directory sync engine.

Architecture
------------
Change detection is **ledger based**: a JSON state file records, per
Notion page, the ``last_edited_time`` and the digest of the Markdown file
last transferred.  Remote pages are compared by edit time, local files by
digest, so only what changed since the previous pass is transferred.

Modules:

- ``engine``    -- ``SyncEngine``: pull, push, and bidirectional passes.
- ``pull``      -- ``PullPipeline``: Notion pages to Markdown files.
- ``push``      -- ``PushPipeline``: Markdown files to Notion pages.
- ``writer``    -- ``PageWriter``: batched page creation and replacement.
- ``state``     -- ``SyncState``: load/save/query the ledger.
- ``detector``  -- change classification for both sides.
- ``resolver``  -- conflict detection and strategies (remote-wins,
  local-wins, latest-wins).
- ``local``     -- snapshot of the Markdown directory.
- ``models``    -- ``ItemResult``, ``ConflictRecord``, ``SyncError``,
  ``SyncResult`` and friends.
- ``reporter``  -- human-readable and JSON report formatting.

Usage example
-------------
::

    from notion_sync.config import load_config
    from notion_sync.core import NotionClient
    from notion_sync.sync import SyncEngine, format_sync_report

    config = load_config()
    engine = SyncEngine(NotionClient(config), config)

    # Dry-run first to preview changes
    print(format_sync_report(engine.bidirectional(dry_run=True)))

    result = engine.bidirectional()
    print(format_sync_report(result))
"""

from .engine import SyncEngine
from .models import (
    ConflictRecord,
    ItemAction,
    ItemResult,
    LocalFile,
    SyncDirection,
    SyncError,
    SyncResult,
)
from .reporter import (
    format_dry_run_preview,
    format_status,
    format_sync_report,
    report_to_json,
)
from .state import SyncState

__all__ = [
    "ConflictRecord",
    "ItemAction",
    "ItemResult",
    "LocalFile",
    "SyncDirection",
    "SyncEngine",
    "SyncError",
    "SyncResult",
    "SyncState",
    "format_dry_run_preview",
    "format_status",
    "format_sync_report",
    "report_to_json",
]
