"""File handler module: encoding-aware read, atomic write, slugs.

Provides the file I/O used by both sync directions.  Every function is
synchronous; the sync pipelines process one record at a time.
"""

import logging
import os
import re
import tempfile
import unicodedata
from pathlib import Path

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    # Fast path: plain UTF-8.
    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        logger.warning(
            "Could not detect encoding of %s, decoding as utf-8", path
        )
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    return (str(result), result.encoding)


def write_file_atomic(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write *content* to *path* through a temp file and ``os.replace()``.

    Parent directories are created as needed.  Readers never observe a
    partially written file; the temp file is removed on failure.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)


def delete_file(path: Path) -> bool:
    """Delete *path* if it exists.

    Returns:
        ``True`` if a file was removed, ``False`` if it was already gone.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def list_markdown_files(directory: Path) -> list[Path]:
    """Return the ``*.md`` files directly inside *directory*, sorted by name.

    The scan is not recursive and skips dotfiles.  A missing directory
    yields an empty list.
    """
    if not directory.is_dir():
        return []
    return sorted(
        p
        for p in directory.iterdir()
        if p.is_file() and p.suffix == ".md" and not p.name.startswith(".")
    )


# =============================================================================
# Slugs
# =============================================================================


_APOSTROPHES = re.compile(r"['‘’]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slug_from_title(title: str | None) -> str:
    """Convert a page title to a kebab-case slug.

    >>> slug_from_title("What's New?")
    'whats-new'
    >>> slug_from_title("Über Cool Feature")
    'uber-cool-feature'
    """
    if not title or not isinstance(title, str):
        return "untitled"
    text = unicodedata.normalize("NFD", title)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _APOSTROPHES.sub("", text.lower())
    text = _NON_ALNUM.sub("-", text).strip("-")
    return text or "untitled"


_UNSAFE_SLUG = re.compile(r"[/\\\x00]")


def is_safe_slug(slug: str | None) -> bool:
    """Whether ``{slug}.md`` names a plain file directly in the output dir.

    >>> is_safe_slug("getting-started")
    True
    >>> is_safe_slug("../escaped")
    False
    """
    if not slug or slug.startswith("."):
        return False
    return _UNSAFE_SLUG.search(slug) is None
