"""Workspace: pseudo-root owning the opened directories and files.

The workspace is not a directory (is_directory() is False), so a NoteFile
opened directly in it counts as a root file and registers its own path with
the watch service. It also owns the WatchService, subscribes to its events
and routes them down to the model in scope.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from notetree.directory import NoteDirectory
from notetree.file import NoteFile, as_terms
from notetree.models import ByPath, parse_file_query
from notetree.watcher import WatchService

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping

    from notetree.config import NoteTreeConfig
    from notetree.models import FileQuery, SearchTerm

logger = logging.getLogger("notetree.workspace")


class Workspace:
    """Top of the model tree."""

    def __init__(self, config: NoteTreeConfig, watch: WatchService | None = None) -> None:
        self.config = config
        self.name = config.name
        self.roots: list[NoteDirectory | NoteFile] = []
        self._watch = watch if watch is not None else WatchService.from_config(config)
        self._watch.subscribe(self.handle_event)
        self._listeners: list[Callable[[str], None]] = []

    def __repr__(self) -> str:
        return f"<Workspace {self.name} ({len(self.roots)} roots)>"

    # ------------------------------------------------------------------
    # Roots
    # ------------------------------------------------------------------

    def open(self, path: Path | str) -> NoteDirectory | NoteFile:
        """Open a directory or a single file as a root. Idempotent."""
        path = Path(path).resolve()
        for root in self.roots:
            if root.path == path:
                return root

        files = self.config.files
        model: NoteDirectory | NoteFile
        # A missing path without a suffix is a directory to be created
        if path.is_dir() or (not path.exists() and not path.suffix):
            model = NoteDirectory(self, path, files=files)
        else:
            model = NoteFile(
                self,
                path,
                default_extension=files.default_extension,
                extensions=files.extensions,
                snippet_length=files.snippet_length,
            )
        self.roots.append(model)
        self.sort()
        logger.info("opened %s", path)
        return model

    def open_configured(self) -> list[NoteDirectory | NoteFile]:
        """Open every root listed in notetree.toml."""
        return [self.open(p) for p in self.config.roots]

    def remove(self, obj: NoteDirectory | NoteFile) -> bool:
        if obj not in self.roots:
            return False
        self.roots.remove(obj)
        self._watch.remove_path(obj.path)
        return True

    def sort(self) -> None:
        self.roots.sort(key=lambda r: (r.is_file(), r.name.lower(), r.name))

    def iter_files(self) -> Iterator[NoteFile]:
        for root in self.roots:
            if isinstance(root, NoteFile):
                yield root
            else:
                yield from root.iter_files()

    # ------------------------------------------------------------------
    # Parent contract
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """callback receives every change message from the tree."""
        self._listeners.append(callback)

    def notify_change(self, message: str) -> None:
        logger.info(message)
        for callback in list(self._listeners):
            callback(message)

    def get_watch_service(self) -> WatchService:
        return self._watch

    @property
    def watch(self) -> WatchService:
        return self._watch

    def is_directory(self) -> bool:
        return False

    def handle_event(self, path: Path | str, event: str) -> None:
        for root in list(self.roots):
            if root.is_scope(path) is not None:
                root.handle_event(path, event)

    # ------------------------------------------------------------------
    # Lookup / search
    # ------------------------------------------------------------------

    def find_by_identity(self, query: FileQuery | Mapping[str, Any]) -> NoteFile | None:
        q = parse_file_query(query)
        for root in self.roots:
            found = root.find_by_identity(q)
            if found is not None:
                return found
        return None

    def find_directory(self, query: FileQuery | Mapping[str, Any]) -> NoteDirectory | None:
        q = parse_file_query(query)
        for root in self.roots:
            found = root.find_directory(q)
            if found is not None:
                return found
        return None

    def get(self, path: Path | str) -> NoteFile | None:
        """The file model for path, or None if it is not part of the tree."""
        return self.find_by_identity(ByPath(Path(path).resolve()))

    def search(self, terms: Iterable[SearchTerm | Mapping[str, Any]]) -> list[NoteFile]:
        terms = as_terms(terms)
        return [f for f in self.iter_files() if f.search(terms)]

    def is_modified(self) -> bool:
        return any(root.is_modified() for root in self.roots)

    def shutdown(self) -> None:
        for root in self.roots:
            root.shutdown()
        self._watch.unsubscribe(self.handle_event)
