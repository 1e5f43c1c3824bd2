"""Turn a user query string into search terms and run it over files.

Query syntax:
    foo bar          both words (AND)
    foo|bar          either word (OR)
    "two words"      a phrase, matched as one substring

Words are lower-cased: file content is lower-cased before matching, the file
name is matched as-is.
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from notetree.models import SearchTerm

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notetree.file import NoteFile


def parse_query(text: str) -> list[SearchTerm]:
    try:
        tokens = shlex.split(text)
    except ValueError:
        # Unbalanced quote: fall back to plain whitespace splitting
        tokens = text.split()

    terms: list[SearchTerm] = []
    for token in tokens:
        token = token.lower()
        if "|" in token:
            words = tuple(w for w in token.split("|") if w)
            if len(words) > 1:
                terms.append(SearchTerm(operator="OR", word=words))
            elif words:
                terms.append(SearchTerm(operator="AND", word=words[0]))
        elif token:
            terms.append(SearchTerm(operator="AND", word=token))
    return terms


def search_files(files: Iterable[NoteFile], terms: list[SearchTerm]) -> list[NoteFile]:
    """Files matching every term, in input order."""
    return [f for f in files if f.search(terms)]
