"""Sync ledger persistence layer.

Manages the JSON file that records, per Notion page, what was last
transferred and when.  The file looks like::

    {
      "version": 1,
      "containerId": "<database id>",
      "queryIndirectionId": "<data source id>",
      "lastSyncTime": "2026-01-01T00:00:00+00:00",
      "records": {
        "<page id>": {
          "remoteLastEdited": "...",
          "localContentHash": "sha256:...",
          "slug": "getting-started",
          "filePath": "getting-started.md"
        }
      }
    }

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Forgiving loads** -- an unreadable or malformed file is logged and
  replaced by an empty ledger, which makes the next pass a full sync.
* **Dict-based state** -- the ledger is a plain ``dict`` rather than a
  Pydantic model so callers can mutate it freely during a pass and persist
  once at the end.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_FILE_VERSION = 1


def empty_state() -> dict:
    """Return a fresh ledger with no records."""
    return {
        "version": STATE_FILE_VERSION,
        "containerId": "",
        "queryIndirectionId": "",
        "lastSyncTime": "",
        "records": {},
    }


class SyncState:
    """Load, save, and query the sync ledger stored at *path*."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load the ledger from disk.

        Returns:
            The ledger dict.  A missing file yields an empty ledger
            silently; a corrupt or structurally invalid one yields an empty
            ledger and a warning.
        """
        if not self._path.exists():
            return empty_state()
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning(
                "Failed to load state file %s (%s), starting fresh sync",
                self._path,
                exc,
            )
            return empty_state()

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("version"), int)
            or isinstance(data.get("version"), bool)
            or not isinstance(data.get("records"), dict)
        ):
            logger.warning(
                "State file %s has invalid structure, starting fresh sync",
                self._path,
            )
            return empty_state()
        return data

    def save(self, state: dict) -> None:
        """Persist the ledger atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates the parent directory if needed.
        ``lastSyncTime`` is set to the current UTC ISO 8601 timestamp
        before writing.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        state["lastSyncTime"] = datetime.now(timezone.utc).isoformat()

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug(
            "Saved %d records to %s",
            len(state.get("records", {})),
            self._path,
        )

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    @staticmethod
    def get_entry(state: dict, record_id: str) -> dict | None:
        """Return the entry for *record_id*, or ``None`` if absent."""
        return state.get("records", {}).get(record_id)

    @staticmethod
    def update_entry(state: dict, record_id: str, entry: dict) -> None:
        """Upsert *entry* under *record_id*.  Mutates *state* in place."""
        state.setdefault("records", {})[record_id] = entry

    @staticmethod
    def remove_entry(state: dict, record_id: str) -> None:
        """Remove *record_id* from the ledger.  No-op if not present."""
        state.get("records", {}).pop(record_id, None)

    @staticmethod
    def find_by_slug(state: dict, slug: str) -> tuple[str, dict] | None:
        """Return ``(record_id, entry)`` for the first entry with *slug*."""
        for record_id, entry in state.get("records", {}).items():
            if entry.get("slug") == slug:
                return record_id, entry
        return None

    # ------------------------------------------------------------------
    # Content hashing
    # ------------------------------------------------------------------

    @staticmethod
    def content_hash(content: str) -> str:
        """Return ``"sha256:<hex>"`` over the exact UTF-8 bytes of *content*.

        No normalisation is applied: the digest must match what was
        written to disk byte for byte.
        """
        digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
        return f"sha256:{digest}"
