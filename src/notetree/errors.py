"""Exceptions raised by the note tree models."""

from __future__ import annotations


class NoteTreeError(Exception):
    """Base class for all notetree errors."""


class InvalidQueryError(NoteTreeError, ValueError):
    """An identity lookup carried neither a path nor a hash."""


class InvalidNameError(NoteTreeError, ValueError):
    """A rename target contained no usable characters."""


class ConfigError(NoteTreeError):
    """notetree.toml holds a value of the wrong shape."""
