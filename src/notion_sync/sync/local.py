"""Snapshot of the local Markdown collection."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from ..file_handler import list_markdown_files, read_file_with_encoding
from .models import LocalFile
from .state import SyncState

logger = logging.getLogger(__name__)


def read_local_file(output_dir: Path, path: Path) -> LocalFile:
    """Read one Markdown file into a ``LocalFile``.

    Raises:
        OSError: If the file cannot be read or stat'ed.
    """
    content, _encoding = read_file_with_encoding(path)
    mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    return LocalFile(
        file_path=str(path.relative_to(output_dir)),
        slug=path.stem,
        content=content,
        content_hash=SyncState.content_hash(content),
        last_modified=mtime.isoformat(),
    )


def scan_markdown_files(output_dir: Path) -> list[LocalFile]:
    """Return every ``*.md`` file directly inside *output_dir*.

    Unreadable files are logged and left out of the snapshot.  A missing
    directory yields an empty list.
    """
    output_dir = Path(output_dir)
    files: list[LocalFile] = []
    for path in list_markdown_files(output_dir):
        try:
            files.append(read_local_file(output_dir, path))
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
    logger.debug("Found %d Markdown files in %s", len(files), output_dir)
    return files
