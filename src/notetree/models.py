"""Value types shared by the file and directory models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from notetree.errors import InvalidQueryError


@dataclass(frozen=True)
class ByPath:
    """Identity query matching a model by its absolute path."""

    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True)
class ByHash:
    """Identity query matching a model by its path hash."""

    hash: int


FileQuery = ByPath | ByHash


def parse_file_query(obj: FileQuery | Mapping[str, Any]) -> FileQuery:
    """Turn a {"path": ...} / {"hash": ...} mapping into a typed query.

    path wins over hash; a None value counts as missing.
    """
    if isinstance(obj, (ByPath, ByHash)):
        return obj
    if isinstance(obj, Mapping):
        if obj.get("path") is not None:
            return ByPath(obj["path"])
        if obj.get("hash") is not None:
            try:
                return ByHash(int(obj["hash"]))
            except (TypeError, ValueError) as exc:
                msg = f"Cannot find file: hash must be an integer ({obj['hash']!r})"
                raise InvalidQueryError(msg) from exc
    msg = f"Cannot find file: query has neither path nor hash ({obj!r})"
    raise InvalidQueryError(msg)


@dataclass(frozen=True)
class SearchTerm:
    """One search term. AND terms carry one word, OR terms a tuple of candidates."""

    operator: str
    word: str | tuple[str, ...]

    @property
    def is_and(self) -> bool:
        return self.operator == "AND"

    @property
    def candidates(self) -> tuple[str, ...]:
        if isinstance(self.word, str):
            return (self.word,)
        return tuple(self.word)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> SearchTerm:
        word = d.get("word", "")
        if not isinstance(word, str):
            word = tuple(word)
        return cls(operator=d.get("operator", "AND"), word=word)


@dataclass
class FileSnapshot:
    """Detached copy of a file model's fields with the content filled in."""

    path: Path
    name: str
    dir: str
    hash: int
    ext: str
    modtime: int
    snippet: str
    modified: bool
    content: str

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["path"] = str(self.path)
        return d
