"""Tests for NoteFile: content handling, identity, rename/move, events, search."""

from __future__ import annotations

import pytest

from notetree.errors import InvalidNameError, InvalidQueryError
from notetree.file import NoteFile
from notetree.helpers import path_hash
from notetree.models import ByHash, ByPath, FileSnapshot, SearchTerm


@pytest.fixture
def note_path(tmp_path):
    path = tmp_path / "a.md"
    path.write_text("hello world", encoding="utf-8")
    return path


@pytest.fixture
def note(parent, note_path):
    return NoteFile(parent, note_path)


class TestConstruction:
    def test_derived_fields(self, note, note_path):
        assert note.path == note_path
        assert note.name == "a.md"
        assert note.ext == ".md"
        assert note.dir == "notes"
        assert note.hash == path_hash(note_path)

    def test_initial_read(self, note, note_path):
        assert note.snippet == "hello world"
        assert note.modtime == note_path.lstat().st_mtime_ns // 1_000_000
        assert note.is_modified() is False
        assert note.buffer == ""

    def test_creates_missing_file(self, parent, tmp_path):
        path = tmp_path / "new.md"
        note = NoteFile(parent, path)
        assert path.is_file()
        assert path.read_bytes() == b""
        assert note.snippet == ""

    def test_existing_file_untouched(self, parent, note_path):
        NoteFile(parent, note_path)
        assert note_path.read_text(encoding="utf-8") == "hello world"

    def test_same_path_same_hash(self, parent, note_path):
        other_parent = type(parent)()
        assert NoteFile(parent, note_path).hash == NoteFile(other_parent, note_path).hash

    def test_root_file_registers_watch(self, root_parent, note_path):
        note = NoteFile(root_parent, note_path)
        assert note.is_root() is True
        assert root_parent.watch.added == [note_path]

    def test_nested_file_does_not_register(self, parent, note):
        assert note.is_root() is False
        assert parent.watch.added == []


class TestContent:
    def test_set_content_marks_modified(self, note, note_path):
        note.set_content("draft")
        assert note.is_modified() is True
        assert note.buffer == "draft"
        assert note.snippet == "draft"
        assert note_path.read_text(encoding="utf-8") == "hello world"

    def test_long_snippet_truncated(self, note):
        text = "x" * 60
        note.set_content(text)
        assert note.snippet == "x" * 50 + "…"

    def test_exactly_fifty_chars_not_truncated(self, note):
        note.set_content("y" * 50)
        assert note.snippet == "y" * 50

    def test_save_then_read_round_trip(self, note):
        text = "line one\r\nline two\n\tünïcödé"
        note.set_content(text)
        note.save()
        assert note.read() == text

    def test_save_clears_buffer(self, note):
        note.set_content("draft")
        note.save()
        assert note.is_modified() is False
        assert note.buffer == ""
        assert note.snippet == "draft"

    def test_save_empty_buffer_truncates(self, note, note_path):
        note.set_content("")
        note.save()
        assert note_path.read_text(encoding="utf-8") == ""

    def test_read_does_not_keep_content(self, note):
        assert note.read() == "hello world"
        assert note.buffer == ""

    def test_read_drops_pending_edit(self, note):
        note.set_content("draft")
        note.read()
        assert note.is_modified() is False
        assert note.buffer == ""

    def test_update_returns_self(self, note, note_path):
        note_path.write_text("changed", encoding="utf-8")
        assert note.update() is note
        assert note.snippet == "changed"

    def test_get_by_identity(self, note):
        assert note.get_by_identity(note.hash) == "hello world"
        assert note.get_by_identity(note.hash + 1) is None

    def test_get_by_identity_keeps_edit(self, note):
        note.set_content("draft")
        note.get_by_identity(note.hash)
        assert note.is_modified() is True

    def test_snapshot_is_detached_copy(self, note):
        snap = note.with_content_snapshot()
        assert isinstance(snap, FileSnapshot)
        assert snap.content == "hello world"
        assert snap.hash == note.hash
        assert note.buffer == ""
        assert not hasattr(note, "content")

    def test_snapshot_to_dict(self, note, note_path):
        d = note.with_content_snapshot().to_dict()
        assert d["path"] == str(note_path)
        assert d["content"] == "hello world"
        assert d["snippet"] == "hello world"


class TestFindByIdentity:
    def test_by_path(self, note, note_path, tmp_path):
        assert note.find_by_identity(ByPath(note_path)) is note
        assert note.find_by_identity({"path": str(note_path)}) is note
        assert note.find_by_identity({"path": tmp_path / "other.md"}) is None

    def test_by_hash(self, note):
        assert note.find_by_identity(ByHash(note.hash)) is note
        assert note.find_by_identity({"hash": note.hash}) is note
        assert note.find_by_identity({"hash": 1}) is None

    def test_path_takes_precedence(self, note, tmp_path):
        assert note.find_by_identity({"path": tmp_path / "other.md", "hash": note.hash}) is None

    def test_null_path_falls_back_to_hash(self, note):
        assert note.find_by_identity({"path": None, "hash": note.hash}) is note

    @pytest.mark.parametrize("query", [{}, {"path": None, "hash": None}, "a.md", {"hash": "abc"}])
    def test_invalid_query(self, note, query):
        with pytest.raises(InvalidQueryError):
            note.find_by_identity(query)

    def test_is_scope(self, note, note_path, tmp_path):
        assert note.is_scope(note_path) is note
        assert note.is_scope(str(note_path)) is note
        assert note.is_scope(tmp_path / "b.md") is None


class TestRename:
    def test_appends_default_extension(self, note, tmp_path):
        note.rename("notes")
        assert note.name == "notes.md"
        assert note.path == tmp_path / "notes.md"
        assert (tmp_path / "notes.md").read_text(encoding="utf-8") == "hello world"

    def test_keeps_known_extension(self, note, tmp_path):
        note.rename("todo.txt")
        assert note.path == tmp_path / "todo.txt"
        assert note.ext == ".txt"

    def test_updates_hash(self, note, tmp_path):
        old_hash = note.hash
        note.rename("b")
        assert note.hash == path_hash(tmp_path / "b.md")
        assert note.hash != old_hash

    def test_parent_resorted(self, note, parent):
        note.rename("b")
        assert parent.sorted == 1

    def test_returns_self(self, note):
        assert note.rename("b") is note

    def test_strips_illegal_characters(self, note, tmp_path):
        note.rename('what?*"')
        assert note.path == tmp_path / "what.md"

    @pytest.mark.parametrize("name", ["../../etc/passwd", "", "..", "???", "sub/name"])
    def test_invalid_name(self, note, note_path, name):
        with pytest.raises(InvalidNameError):
            note.rename(name)
        assert note.path == note_path
        assert note_path.exists()

    def test_existing_target_refused(self, note, note_path, tmp_path):
        (tmp_path / "b.md").write_text("other", encoding="utf-8")
        with pytest.raises(FileExistsError):
            note.rename("b")
        assert note.path == note_path
        assert (tmp_path / "b.md").read_text(encoding="utf-8") == "other"

    def test_suppresses_own_events_before_rename(self, note, note_path, tmp_path):
        seen_on_disk = []

        class Watch:
            def ignore_next(self, event, path):
                seen_on_disk.append((event, path, note_path.exists()))

        note.rename("b", Watch())
        assert seen_on_disk == [
            ("unlink", note_path, True),
            ("add", tmp_path / "b.md", True),
        ]

    def test_same_name_is_noop(self, note, parent, note_path):
        assert note.rename("a", parent.watch) is note
        assert parent.watch.ignored == []
        assert parent.sorted == 0
        assert note.path == note_path

    def test_failed_rename_withdraws_suppression(self, note, parent, note_path, monkeypatch):
        def refuse(self, target):
            raise PermissionError("read-only")

        monkeypatch.setattr(type(note_path), "rename", refuse)
        with pytest.raises(PermissionError):
            note.rename("b", parent.watch)
        assert parent.watch.ignored == []
        assert note.path == note_path
        assert note.name == "a.md"

    def test_root_file_moves_watch_registration(self, root_parent, note_path, tmp_path):
        note = NoteFile(root_parent, note_path)
        note.rename("b")
        assert root_parent.watch.removed == [note_path]
        assert root_parent.watch.added[-1] == tmp_path / "b.md"


class TestMoveRemoveDetach:
    def test_move(self, note, parent, note_path, tmp_path):
        target = tmp_path / "archive"
        target.mkdir()
        assert note.move(target) is note
        assert not note_path.exists()
        assert (target / "a.md").read_text(encoding="utf-8") == "hello world"
        assert note.path == target / "a.md"
        assert note.hash == path_hash(target / "a.md")
        assert parent.removed == [note]
        assert note.parent is None

    def test_move_onto_existing_refused(self, note, parent, note_path, tmp_path):
        target = tmp_path / "archive"
        target.mkdir()
        (target / "a.md").write_text("other", encoding="utf-8")
        with pytest.raises(FileExistsError):
            note.move(target)
        assert note.parent is parent
        assert note_path.exists()

    def test_move_to_missing_directory_keeps_file_attached(self, note, parent, note_path, tmp_path):
        with pytest.raises(FileNotFoundError):
            note.move(tmp_path / "no-such-dir")
        assert note.parent is parent
        assert parent.removed == []
        assert note.path == note_path
        assert note_path.exists()

    def test_move_onto_plain_file_refused(self, note, parent, note_path, tmp_path):
        target = tmp_path / "plain.txt"
        target.write_text("x", encoding="utf-8")
        with pytest.raises(NotADirectoryError):
            note.move(target)
        assert note.parent is parent
        assert note_path.exists()

    def test_detach(self, note, parent, note_path):
        assert note.detach() is note
        assert parent.removed == [note]
        assert note.parent is None
        assert note_path.exists()

    def test_detach_twice(self, note, parent):
        note.detach()
        note.detach()
        assert parent.removed == [note]

    def test_remove_trashes_and_detaches(self, note, parent, note_path, fake_trash):
        assert note.remove() is True
        assert fake_trash == [note_path]
        assert not note_path.exists()
        assert parent.removed == [note]
        assert note.parent is None


class TestHandleEvent:
    def test_unlink_other_path_is_noop(self, note, parent, note_path, tmp_path):
        note.handle_event(tmp_path / "other.md", "unlink")
        assert parent.messages == []
        assert parent.removed == []
        assert note_path.exists()

    def test_unlink_own_path(self, note, parent, note_path, fake_trash):
        note_path.unlink()
        note.handle_event(note_path, "unlink")
        assert parent.messages == ["File a.md has been removed."]
        assert parent.removed == [note]
        assert fake_trash == []

    def test_unlink_notifies_before_removal(self, note, parent, note_path):
        order = []
        parent.notify_change = lambda msg: order.append("notify")
        parent.remove = lambda obj: order.append("remove") or True
        note.handle_event(note_path, "unlink")
        assert order == ["notify", "remove"]

    def test_change_rereads(self, note, parent, note_path):
        note_path.write_text("edited elsewhere", encoding="utf-8")
        note.handle_event(str(note_path), "change")
        assert note.snippet == "edited elsewhere"
        assert parent.messages == ["File a.md has changed remotely."]

    def test_unknown_event_ignored(self, note, parent, note_path):
        note.handle_event(note_path, "add")
        assert parent.messages == []


class TestSearch:
    def test_and_matches_name(self, parent, tmp_path):
        note = NoteFile(parent, tmp_path / "foo.md")
        assert note.search([{"operator": "AND", "word": "foo"}]) is True

    def test_and_matches_content(self, note):
        assert note.search([{"operator": "AND", "word": "world"}]) is True

    def test_and_no_match(self, note):
        assert note.search([SearchTerm("AND", "absent")]) is False

    def test_or_matches_any(self, note):
        assert note.search([{"operator": "OR", "word": ["nope", "hello"]}]) is True
        assert note.search([{"operator": "OR", "word": ["nope", "nada"]}]) is False

    def test_content_is_lowercased(self, parent, tmp_path):
        path = tmp_path / "x.md"
        path.write_text("Python", encoding="utf-8")
        note = NoteFile(parent, path)
        assert note.search([SearchTerm("AND", "python")]) is True

    def test_name_is_case_sensitive(self, parent, tmp_path):
        note = NoteFile(parent, tmp_path / "Foo.md")
        assert note.search([SearchTerm("AND", "foo")]) is False

    def test_all_terms_required(self, note):
        terms = [SearchTerm("AND", "hello"), SearchTerm("AND", "absent")]
        assert note.search(terms) is False

    def test_title_and_content_counts_accumulate(self, parent, tmp_path):
        path = tmp_path / "alpha.md"
        path.write_text("alpha only", encoding="utf-8")
        note = NoteFile(parent, path)
        terms = [SearchTerm("AND", "alpha"), SearchTerm("AND", "beta")]
        assert note.search(terms) is True

    def test_title_match_skips_content(self, parent, tmp_path, monkeypatch):
        note = NoteFile(parent, tmp_path / "foo.md")

        def boom():
            raise AssertionError("content should not be read")

        monkeypatch.setattr(note, "_load", boom)
        assert note.search([SearchTerm("AND", "foo")]) is True

    def test_search_keeps_pending_edit(self, note):
        note.set_content("draft")
        note.search([SearchTerm("AND", "absent")])
        assert note.is_modified() is True
        assert note.buffer == "draft"


class TestPredicates:
    def test_leaf_answers(self, note):
        assert note.is_directory() is False
        assert note.is_file() is True
        assert note.contains(object()) is False
        assert note.find_directory(object()) is None
