"""Shared fixtures: fake parent/watch collaborators and a sample notes tree."""

from __future__ import annotations

from pathlib import Path

import pytest

from notetree.config import NoteTreeConfig
from notetree.watcher import WatchService
from notetree.workspace import Workspace


class FakeWatch:
    """Records the calls a file model makes on its watch service."""

    def __init__(self) -> None:
        self.added: list[Path] = []
        self.removed: list[Path] = []
        self.ignored: list[tuple[str, Path]] = []

    def add_path(self, path: Path) -> None:
        self.added.append(Path(path))

    def remove_path(self, path: Path) -> None:
        self.removed.append(Path(path))

    def ignore_next(self, event: str, path: Path) -> None:
        self.ignored.append((event, Path(path)))

    def cancel_ignore(self, event: str, path: Path) -> None:
        self.ignored.remove((event, Path(path)))


class FakeParent:
    """Minimal directory model: records notify/sort/remove calls."""

    def __init__(self, name: str = "notes", directory: bool = True) -> None:
        self.name = name
        self.directory = directory
        self.watch = FakeWatch()
        self.messages: list[str] = []
        self.removed: list[object] = []
        self.sorted = 0

    def is_directory(self) -> bool:
        return self.directory

    def get_watch_service(self) -> FakeWatch:
        return self.watch

    def notify_change(self, message: str) -> None:
        self.messages.append(message)

    def sort(self) -> None:
        self.sorted += 1

    def remove(self, obj: object) -> bool:
        self.removed.append(obj)
        return True


@pytest.fixture(autouse=True)
def fake_trash(monkeypatch):
    """Replace send2trash so tests never touch the real trash."""
    trashed: list[Path] = []

    def _send2trash(path: str) -> None:
        trashed.append(Path(path))
        Path(path).unlink()

    monkeypatch.setattr("notetree.helpers.send2trash", _send2trash)
    return trashed


@pytest.fixture
def parent():
    return FakeParent()


@pytest.fixture
def root_parent():
    """A pseudo-root parent: files opened in it register with the watch service."""
    return FakeParent(name="workspace", directory=False)


@pytest.fixture
def notes_dir(tmp_path):
    """notes/ with two notes, a subdirectory and files that are not notes."""
    notes = tmp_path.resolve() / "notes"
    (notes / "sub").mkdir(parents=True)
    (notes / "a.md").write_text("hello world", encoding="utf-8")
    (notes / "B.md").write_text("Second note about Python", encoding="utf-8")
    (notes / "sub" / "c.md").write_text("nested text", encoding="utf-8")
    (notes / "image.png").write_bytes(b"\x89PNG")
    (notes / ".hidden.md").write_text("secret", encoding="utf-8")
    return notes


@pytest.fixture
def config(tmp_path, notes_dir):
    return NoteTreeConfig(root=tmp_path, name="test", roots=[notes_dir])


@pytest.fixture
def workspace(config):
    ws = Workspace(config, watch=WatchService(backend="poll"))
    ws.open_configured()
    messages: list[str] = []
    ws.add_listener(messages.append)
    ws.messages = messages  # type: ignore[attr-defined]
    return ws
