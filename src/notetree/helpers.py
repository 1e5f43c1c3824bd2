"""Path helpers: identity hashes, file-name sanitizing, extension checks, trash."""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path

from send2trash import send2trash

logger = logging.getLogger("notetree.helpers")

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".markdown", ".txt")

_MAX_NAME_BYTES = 255

# Characters no filesystem we support accepts inside a single name
_ILLEGAL_RE = re.compile(r'[/\\?<>:*|"]')
_CONTROL_RE = re.compile(r"[\x00-\x1f\x80-\x9f]")
_RESERVED_RE = re.compile(r"^\.+$")
_WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)
_WINDOWS_TRAILING_RE = re.compile(r"[\. ]+$")


def path_hash(path: Path | str) -> int:
    """Stable identity hash for a path: sha256[:12] as an integer."""
    return int(hashlib.sha256(str(path).encode("utf-8", errors="surrogateescape")).hexdigest()[:12], 16)


def sanitize_name(name: str | None) -> str:
    """Return name stripped of characters that cannot appear in a file name.

    A name containing a path separator is a path, not a name, and yields "".
    """
    if not name:
        return ""
    if "/" in name or "\\" in name:
        return ""
    name = _ILLEGAL_RE.sub("", name)
    name = _CONTROL_RE.sub("", name)
    if _RESERVED_RE.match(name) or _WINDOWS_RESERVED_RE.match(name):
        return ""
    name = _WINDOWS_TRAILING_RE.sub("", name).strip()
    return _truncate_utf8(name, _MAX_NAME_BYTES)


def _truncate_utf8(text: str, limit: int) -> str:
    data = text.encode("utf-8")
    if len(data) <= limit:
        return text
    return data[:limit].decode("utf-8", errors="ignore")


def has_no_recognized_extension(name: str, extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS) -> bool:
    """True when name does not end in one of the known document extensions."""
    suffix = Path(name).suffix.lower()
    return suffix not in {ext.lower() for ext in extensions}


def move_to_trash(path: Path) -> bool:
    """Send path to the platform trash. Returns False when nothing was trashed."""
    if not path.exists():
        logger.debug("trash skipped, already gone: %s", path)
        return False
    try:
        send2trash(str(path))
    except OSError:
        logger.warning("could not move %s to trash", path, exc_info=True)
        return False
    return True
