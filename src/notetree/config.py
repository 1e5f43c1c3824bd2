"""NoteTreeConfig: project-local config for a notes workspace.

Default layout (all relative to the project root):

    notetree.toml         # project config
    *.md                  # notes, in any subdirectory of the configured roots

notetree.toml example:

    [notetree]
    name = "my-notes"
    roots = ["."]          # directories (or single files) opened on startup

    [files]
    default_extension = ".md"
    extensions = [".md", ".markdown", ".txt"]
    snippet_length = 50

    [watch]
    backend = "auto"       # auto | inotify | poll
    poll_interval = 1.0

    [logging]
    level = "INFO"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from notetree.errors import ConfigError
from notetree.helpers import DEFAULT_EXTENSIONS

_CONFIG_FILENAME = "notetree.toml"
_WATCH_BACKENDS = ("auto", "inotify", "poll")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class FilesConfig:
    default_extension: str = ".md"
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    snippet_length: int = 50


@dataclass
class WatchConfig:
    backend: str = "auto"
    poll_interval: float = 1.0   # seconds between mtime scans (poll backend)


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class NoteTreeConfig:
    """Resolved configuration for a notes workspace."""

    root: Path                      # directory that contains notetree.toml
    name: str = ""
    roots: list[Path] = field(default_factory=list)
    files: FilesConfig = field(default_factory=FilesConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def load_config(root: Path | str | None = None) -> NoteTreeConfig:
    """Load notetree.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd()).resolve()
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid {config_path}: {exc}"
            raise ConfigError(msg) from exc

    main_section = raw.get("notetree", {})
    files_section = raw.get("files", {})
    watch_section = raw.get("watch", {})
    log_section = raw.get("logging", {})

    roots_raw = main_section.get("roots", ["."])
    if not isinstance(roots_raw, list):
        msg = f"[notetree] roots must be a list, got {roots_raw!r}"
        raise ConfigError(msg)

    extensions = files_section.get("extensions", list(DEFAULT_EXTENSIONS))
    if not isinstance(extensions, list) or not extensions:
        msg = f"[files] extensions must be a non-empty list, got {extensions!r}"
        raise ConfigError(msg)

    default_ext = _dotted(str(files_section.get("default_extension", ".md")))

    backend = str(watch_section.get("backend", "auto"))
    if backend not in _WATCH_BACKENDS:
        msg = f"[watch] backend must be one of {', '.join(_WATCH_BACKENDS)}, got {backend!r}"
        raise ConfigError(msg)

    level = str(log_section.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        msg = f"[logging] level must be one of {', '.join(_LOG_LEVELS)}, got {level!r}"
        raise ConfigError(msg)

    try:
        snippet_length = int(files_section.get("snippet_length", 50))
        poll_interval = float(watch_section.get("poll_interval", 1.0))
    except (TypeError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc

    return NoteTreeConfig(
        root=root_path,
        name=main_section.get("name", root_path.name),
        roots=[(root_path / r).resolve() for r in roots_raw],
        files=FilesConfig(
            default_extension=default_ext,
            extensions=tuple(_dotted(str(e)) for e in extensions),
            snippet_length=snippet_length,
        ),
        watch=WatchConfig(
            backend=backend,
            poll_interval=poll_interval,
        ),
        logging=LoggingConfig(level=level),
    )


def _dotted(ext: str) -> str:
    return ext if ext.startswith(".") else f".{ext}"


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for notetree.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default notetree.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"notetree.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[notetree]
name = "{project_name}"
roots = ["."]

# [files]
# default_extension = ".md"   # appended when a rename target has no known extension
# extensions = [".md", ".markdown", ".txt"]
# snippet_length = 50

# [watch]
# backend = "auto"            # auto | inotify | poll
# poll_interval = 1.0

# [logging]
# level = "INFO"
"""
    config_path.write_text(content)
    return config_path
