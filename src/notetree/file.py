"""NoteFile: model of a single text file on disk.

The model keeps metadata (path, hash, modtime, snippet) but never holds the
file content outside of an active edit:

    f = NoteFile(directory, "/notes/a.md")
    text = f.read()          # returns content, refreshes snippet + modtime
    f.set_content("new")     # pending edit lives in f.buffer
    f.save()                 # writes buffer, clears it, re-reads metadata

The parent (a NoteDirectory, or the Workspace for root files) is held as a
weak reference. The directory owns its children list; the file only points
back to delegate sort/notify/remove.
"""

from __future__ import annotations

import logging
import shutil
import weakref
from pathlib import Path
from typing import TYPE_CHECKING, Any

from notetree.errors import InvalidNameError
from notetree.helpers import (
    DEFAULT_EXTENSIONS,
    has_no_recognized_extension,
    move_to_trash,
    path_hash,
    sanitize_name,
)
from notetree.models import ByPath, FileSnapshot, SearchTerm, parse_file_query

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from notetree.directory import NoteDirectory
    from notetree.models import FileQuery
    from notetree.watcher import WatchService
    from notetree.workspace import Workspace

logger = logging.getLogger("notetree.file")

SNIPPET_LENGTH = 50
_ELLIPSIS = "…"


def make_snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    """First length characters of text, with an ellipsis if anything was cut."""
    return text[:length] + _ELLIPSIS if len(text) > length else text


def count_matches(haystack: str, terms: list[SearchTerm]) -> int:
    """Count terms found in haystack. An OR term counts once, on its first hit."""
    matches = 0
    for term in terms:
        if term.is_and:
            if term.word in haystack:
                matches += 1
        else:
            for word in term.candidates:
                if word in haystack:
                    matches += 1
                    break
    return matches


def as_terms(terms: Iterable[SearchTerm | Mapping[str, Any]]) -> list[SearchTerm]:
    return [t if isinstance(t, SearchTerm) else SearchTerm.from_dict(t) for t in terms]


class NoteFile:
    """Model for accessing one text file on the filesystem."""

    def __init__(
        self,
        parent: NoteDirectory | Workspace,
        path: Path | str,
        *,
        default_extension: str = ".md",
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        snippet_length: int = SNIPPET_LENGTH,
    ) -> None:
        self._parent_ref: weakref.ref[Any] | None = weakref.ref(parent)
        self.path = Path(path)
        self.name = self.path.name
        self.hash = path_hash(self.path)
        self.ext = self.path.suffix
        self.dir = parent.name          # containing dir, display only
        self.modtime = 0                # epoch millis
        self.snippet = ""
        self.buffer = ""                # only non-empty while an edit is pending
        self.modified = False

        self.default_extension = default_extension
        self.extensions = tuple(extensions)
        self.snippet_length = snippet_length

        try:
            self.path.lstat()
        except FileNotFoundError:
            self.path.write_text("", encoding="utf-8")
            logger.info("created empty file: %s", self.path)

        self.read()

        if self.is_root():
            parent.get_watch_service().add_path(self.path)

    def __repr__(self) -> str:
        state = " modified" if self.modified else ""
        return f"<NoteFile {self.path}{state}>"

    # ------------------------------------------------------------------
    # Parent link
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Any:
        """The owning directory model, or None once detached."""
        return self._parent_ref() if self._parent_ref is not None else None

    @parent.setter
    def parent(self, value: Any) -> None:
        self._parent_ref = weakref.ref(value) if value is not None else None

    def _notify(self, message: str) -> None:
        parent = self.parent
        if parent is not None:
            parent.notify_change(message)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _load(self) -> str:
        """Read the file as UTF-8 without touching any model state."""
        with self.path.open(encoding="utf-8", newline="") as f:
            return f.read()

    def read(self) -> str:
        """Read the file, refresh snippet + modtime and return the content.

        Disk is authoritative afterwards: any pending buffer is dropped.
        The content itself is not kept on the model.
        """
        stat = self.path.lstat()
        self.modtime = stat.st_mtime_ns // 1_000_000

        text = self._load()
        self.snippet = make_snippet(text, self.snippet_length)
        self.buffer = ""
        self.modified = False
        return text

    def update(self) -> NoteFile:
        """Re-read metadata after the file changed on disk."""
        if self.modified:
            logger.warning("discarding unsaved changes to %s after remote change", self.path)
        self.read()
        return self

    def set_content(self, text: str) -> None:
        """Hold text as a pending edit. The file on disk is not touched."""
        self.buffer = text
        self.snippet = make_snippet(text, self.snippet_length)
        self.modified = True

    def get_by_identity(self, hash: int) -> str | None:
        """Return the file content if hash is ours, else None."""
        if self.hash == hash:
            return self._load()
        return None

    def with_content_snapshot(self) -> FileSnapshot:
        """A detached copy of this model with the content loaded from disk.

        The live model keeps no reference to the content.
        """
        return FileSnapshot(
            path=self.path,
            name=self.name,
            dir=self.dir,
            hash=self.hash,
            ext=self.ext,
            modtime=self.modtime,
            snippet=self.snippet,
            modified=self.modified,
            content=self._load(),
        )

    def save(self) -> NoteFile:
        """Write the buffer to disk (even if empty) and clear it."""
        with self.path.open("w", encoding="utf-8", newline="") as f:
            f.write(self.buffer)
        logger.debug("saved %s (%d chars)", self.path, len(self.buffer))
        self.buffer = ""
        self.modified = False

        # Pick up the new modtime
        self.read()
        return self

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def find_by_identity(self, query: FileQuery | Mapping[str, Any]) -> NoteFile | None:
        """Return self if query names this file, else None."""
        q = parse_file_query(query)
        if isinstance(q, ByPath):
            return self if q.path == self.path else None
        return self if q.hash == self.hash else None

    def is_scope(self, path: Path | str) -> NoteFile | None:
        """Return self if path is this file's path."""
        if Path(path) == self.path:
            return self
        return None

    # ------------------------------------------------------------------
    # Rename / move / remove
    # ------------------------------------------------------------------

    def rename(self, name: str, watch: WatchService | None = None) -> NoteFile:
        """Rename the file inside its directory.

        With a watch service given, the unlink/add pair caused by the rename
        is suppressed so the tree does not treat it as an external change.
        """
        name = sanitize_name(name)
        if not name:
            msg = "The new name did not contain any allowed characters."
            raise InvalidNameError(msg)

        if has_no_recognized_extension(name, self.extensions):
            name += self.default_extension

        old_path = self.path
        new_path = old_path.parent / name
        if new_path == old_path:
            return self
        if new_path.exists() and not new_path.samefile(old_path):
            msg = f"Cannot rename {old_path.name}: {name} already exists"
            raise FileExistsError(msg)

        if watch is not None:
            watch.ignore_next("unlink", old_path)
            watch.ignore_next("add", new_path)
        try:
            old_path.rename(new_path)
        except OSError:
            if watch is not None:
                watch.cancel_ignore("unlink", old_path)
                watch.cancel_ignore("add", new_path)
            raise

        self.path = new_path
        self.name = name
        self.ext = new_path.suffix
        self.hash = path_hash(new_path)
        logger.info("renamed %s -> %s", old_path, new_path)

        parent = self.parent
        if parent is not None:
            if self.is_root():
                service = parent.get_watch_service()
                service.remove_path(old_path)
                service.add_path(new_path)
            # Order may depend on the name
            parent.sort()
        return self

    def move(self, directory: Path | str) -> NoteFile:
        """Move the file into directory. The caller attaches it to its new parent."""
        old_path = self.path
        directory = Path(directory)
        if not directory.exists():
            msg = f"Cannot move {old_path.name}: {directory} does not exist"
            raise FileNotFoundError(msg)
        if not directory.is_dir():
            msg = f"Cannot move {old_path.name}: {directory} is not a directory"
            raise NotADirectoryError(msg)

        new_path = directory / self.name
        if new_path.exists():
            msg = f"Cannot move {old_path.name}: {new_path} already exists"
            raise FileExistsError(msg)

        self.detach()
        shutil.move(str(old_path), str(new_path))

        self.path = new_path
        self.hash = path_hash(new_path)
        logger.info("moved %s -> %s", old_path, new_path)
        return self

    def remove(self) -> bool:
        """Move the file to the trash and drop it from its directory."""
        move_to_trash(self.path)
        parent = self.parent
        if parent is None:
            return False
        result = parent.remove(self)
        self.parent = None
        return result

    def detach(self) -> NoteFile:
        """Drop this file from its directory without touching the disk."""
        parent = self.parent
        if parent is not None:
            parent.remove(self)
        self.parent = None
        return self

    # ------------------------------------------------------------------
    # Watch events
    # ------------------------------------------------------------------

    def handle_event(self, path: Path | str, event: str) -> None:
        if self.is_scope(path) is not self:
            return
        logger.info("file %s is handling the event %s", self.name, event)
        if event == "change":
            self.update()
            self._notify(f"File {self.name} has changed remotely.")
        elif event == "unlink":
            self._notify(f"File {self.name} has been removed.")
            self.remove()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, terms: Iterable[SearchTerm | Mapping[str, Any]]) -> bool:
        """True if every term matches the file name or its content.

        Title is checked first so files matching by name never get read.
        The content pass adds to the title count rather than replacing it.
        """
        terms = as_terms(terms)
        matches = count_matches(self.name, terms)
        if matches == len(terms):
            return True

        content = self._load().lower()
        matches += count_matches(content, terms)
        return matches == len(terms)

    # ------------------------------------------------------------------
    # Tree predicates
    # ------------------------------------------------------------------

    def is_root(self) -> bool:
        """True when the parent is not a directory (the file was opened on its own)."""
        parent = self.parent
        return parent is not None and not parent.is_directory()

    def is_directory(self) -> bool:
        return False

    def is_file(self) -> bool:
        return True

    def is_modified(self) -> bool:
        return self.modified

    def contains(self, obj: object) -> bool:
        return False

    def find_directory(self, query: object) -> None:
        return None

    def shutdown(self) -> None:
        """Called when the application closes."""
