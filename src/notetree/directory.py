"""NoteDirectory: model of a directory of notes.

Owns its children (NoteFile and NoteDirectory instances) and implements the
parent side of the file model: remove, sort, notify_change and access to the
watch service. Root directories (parent is the Workspace) register their
path with the watch service; nested ones are covered recursively.
"""

from __future__ import annotations

import logging
import weakref
from pathlib import Path
from typing import TYPE_CHECKING, Any

from notetree.config import FilesConfig
from notetree.errors import InvalidNameError
from notetree.file import NoteFile, as_terms
from notetree.helpers import has_no_recognized_extension, path_hash, sanitize_name
from notetree.models import ByHash, ByPath, parse_file_query

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from notetree.models import FileQuery, SearchTerm
    from notetree.watcher import WatchService
    from notetree.workspace import Workspace

logger = logging.getLogger("notetree.directory")


class NoteDirectory:
    """A directory on disk and the note files below it."""

    def __init__(
        self,
        parent: NoteDirectory | Workspace,
        path: Path | str,
        *,
        files: FilesConfig | None = None,
    ) -> None:
        self._parent_ref: weakref.ref[Any] | None = weakref.ref(parent)
        self.path = Path(path)
        self.name = self.path.name
        self.hash = path_hash(self.path)
        self.files = files or FilesConfig()
        self.children: list[NoteFile | NoteDirectory] = []

        self.path.mkdir(parents=True, exist_ok=True)
        self.scan()

        if self.is_root():
            parent.get_watch_service().add_path(self.path)

    def __repr__(self) -> str:
        return f"<NoteDirectory {self.path} ({len(self.children)} children)>"

    @property
    def parent(self) -> Any:
        return self._parent_ref() if self._parent_ref is not None else None

    @parent.setter
    def parent(self, value: Any) -> None:
        self._parent_ref = weakref.ref(value) if value is not None else None

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    def _is_note(self, path: Path) -> bool:
        return not has_no_recognized_extension(path.name, self.files.extensions)

    def _make_file(self, path: Path) -> NoteFile:
        return NoteFile(
            self,
            path,
            default_extension=self.files.default_extension,
            extensions=self.files.extensions,
            snippet_length=self.files.snippet_length,
        )

    def _make_child(self, path: Path) -> NoteFile | NoteDirectory | None:
        if path.name.startswith("."):
            return None
        if path.is_dir():
            return NoteDirectory(self, path, files=self.files)
        if path.is_file() and self._is_note(path):
            return self._make_file(path)
        return None

    def scan(self) -> None:
        """(Re)build children from the directory listing."""
        self.children = []
        for entry in self.path.iterdir():
            child = self._make_child(entry)
            if child is not None:
                self.children.append(child)
        self.sort()

    def new_file(self, name: str, watch: WatchService | None = None) -> NoteFile:
        """Create an empty note in this directory and return its model."""
        name = sanitize_name(name)
        if not name:
            msg = "The file name did not contain any allowed characters."
            raise InvalidNameError(msg)
        if has_no_recognized_extension(name, self.files.extensions):
            name += self.files.default_extension

        path = self.path / name
        if path.exists():
            msg = f"{path} already exists"
            raise FileExistsError(msg)
        if watch is not None:
            watch.ignore_next("add", path)
        try:
            note = self._make_file(path)
        except OSError:
            if watch is not None:
                watch.cancel_ignore("add", path)
            raise
        self.children.append(note)
        self.sort()
        return note

    def attach(self, obj: NoteFile | NoteDirectory) -> NoteDirectory:
        """Adopt a detached model (e.g. after NoteFile.move)."""
        obj.parent = self
        if isinstance(obj, NoteFile):
            obj.dir = self.name
        self.children.append(obj)
        self.sort()
        return self

    def remove(self, obj: NoteFile | NoteDirectory) -> bool:
        """Drop obj from the children list. Returns False if it was not a child."""
        if obj not in self.children:
            return False
        self.children.remove(obj)
        return True

    def detach(self) -> NoteDirectory:
        parent = self.parent
        if parent is not None:
            parent.remove(self)
        self.parent = None
        return self

    def sort(self) -> None:
        """Directories first, then case-insensitive name."""
        self.children.sort(key=lambda c: (c.is_file(), c.name.lower(), c.name))

    def iter_files(self) -> Iterator[NoteFile]:
        for child in self.children:
            if isinstance(child, NoteFile):
                yield child
            else:
                yield from child.iter_files()

    # ------------------------------------------------------------------
    # Parent contract
    # ------------------------------------------------------------------

    def notify_change(self, message: str) -> None:
        parent = self.parent
        if parent is not None:
            parent.notify_change(message)
        else:
            logger.info(message)

    def get_watch_service(self) -> WatchService:
        return self.parent.get_watch_service()

    # ------------------------------------------------------------------
    # Watch events
    # ------------------------------------------------------------------

    def handle_event(self, path: Path | str, event: str) -> None:
        path = Path(path)
        if path == self.path:
            if event == "unlink":
                self.notify_change(f"Directory {self.name} has been removed.")
                self.detach()
            return

        if event == "add" and path.parent == self.path:
            if any(c.path == path for c in self.children):
                return
            child = self._make_child(path)
            if child is not None:
                logger.info("directory %s picked up %s", self.name, path.name)
                self.children.append(child)
                self.sort()
                self.notify_change(f"File {path.name} has been added.")
            return

        for child in list(self.children):
            if child.is_scope(path) is not None:
                child.handle_event(path, event)
                return

        # Polling reports files only: a file inside a new subdirectory
        # brings the whole subdirectory in.
        if event == "add" and path.is_relative_to(self.path):
            self.handle_event(self.path / path.relative_to(self.path).parts[0], "add")

    def is_scope(self, path: Path | str) -> NoteDirectory | None:
        """Return self if path is this directory or anything below it."""
        path = Path(path)
        if path == self.path or path.is_relative_to(self.path):
            return self
        return None

    # ------------------------------------------------------------------
    # Lookup / search
    # ------------------------------------------------------------------

    def find_by_identity(self, query: FileQuery | Mapping[str, Any]) -> NoteFile | None:
        q = parse_file_query(query)
        for child in self.children:
            found = child.find_by_identity(q)
            if found is not None:
                return found
        return None

    def find_directory(self, query: FileQuery | Mapping[str, Any]) -> NoteDirectory | None:
        q = parse_file_query(query)
        if (isinstance(q, ByPath) and q.path == self.path) or (
            isinstance(q, ByHash) and q.hash == self.hash
        ):
            return self
        for child in self.children:
            found = child.find_directory(q)
            if found is not None:
                return found
        return None

    def contains(self, obj: NoteFile | NoteDirectory) -> bool:
        return any(child is obj or child.contains(obj) for child in self.children)

    def search(self, terms: Iterable[SearchTerm | Mapping[str, Any]]) -> list[NoteFile]:
        """All files below this directory matching every term."""
        terms = as_terms(terms)
        return [f for f in self.iter_files() if f.search(terms)]

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_root(self) -> bool:
        parent = self.parent
        return parent is not None and not parent.is_directory()

    def is_directory(self) -> bool:
        return True

    def is_file(self) -> bool:
        return False

    def is_modified(self) -> bool:
        return any(child.is_modified() for child in self.children)

    def shutdown(self) -> None:
        for child in self.children:
            child.shutdown()
