"""notetree CLI — notes on disk as a model tree.

Commands:
    notetree init [NAME]             create notetree.toml
    notetree ls                      list notes with snippets
    notetree show PATH               print a note
    notetree search QUERY...         find notes by name or content
    notetree rename PATH NEW_NAME    rename a note in place
    notetree mv PATH DIRECTORY       move a note to another directory
    notetree rm PATH                 move a note to the trash
    notetree watch                   log changes made to the notes on disk
"""

from __future__ import annotations

import contextlib
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click

from notetree.config import NoteTreeConfig, init_config, load_config
from notetree.errors import NoteTreeError
from notetree.models import ByPath
from notetree.search import parse_query
from notetree.workspace import Workspace

if TYPE_CHECKING:
    from collections.abc import Iterator

    from notetree.file import NoteFile

_LOG_FORMAT = "%(asctime)s %(name)s %(message)s"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> NoteTreeConfig:
    try:
        cfg = load_config()
    except NoteTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx and ctx.find_root().params.get("verbose"))
    logging.basicConfig(level=logging.DEBUG if verbose else cfg.logging.level, format=_LOG_FORMAT)
    return cfg


def _open_workspace(cfg: NoteTreeConfig) -> Workspace:
    ws = Workspace(cfg)
    ws.open_configured()
    return ws


@contextlib.contextmanager
def _errors() -> Iterator[None]:
    """Report model and filesystem errors as CLI errors."""
    try:
        yield
    except (NoteTreeError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc


def _get_file(ws: Workspace, path: str) -> NoteFile:
    """The tree's model for path; files outside the roots are opened on their own."""
    resolved = Path(path).resolve()
    note = ws.get(resolved)
    if note is not None:
        return note
    if not resolved.is_file():
        raise click.ClickException(f"No such note: {path}")
    opened = ws.open(resolved)
    if opened.is_directory():
        raise click.ClickException(f"{path} is a directory")
    return opened  # type: ignore[return-value]


def _format_modtime(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d %H:%M")


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="notetree")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """notetree — notes on disk as a live model tree."""


# ---------------------------------------------------------------------------
# notetree init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(name: str | None, root: str) -> None:
    """Create notetree.toml in the current project."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("notetree.toml already exists — skipping init")


# ---------------------------------------------------------------------------
# notetree ls / show / search
# ---------------------------------------------------------------------------


@cli.command(name="ls")
def list_notes() -> None:
    """List every note with its last modification time and snippet."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    cfg = _load_cfg()
    with _errors():
        ws = _open_workspace(cfg)

    table = Table(title=f"notetree — {cfg.name}", show_header=True, header_style="bold")
    table.add_column("Name", no_wrap=True)
    table.add_column("Directory", style="dim")
    table.add_column("Modified", justify="right")
    table.add_column("Snippet")
    for note in ws.iter_files():
        table.add_row(
            escape(note.name),
            escape(note.dir),
            _format_modtime(note.modtime),
            escape(note.snippet.replace("\n", " ")),
        )
    Console().print(table)


@cli.command()
@click.argument("path")
def show(path: str) -> None:
    """Print a note's content."""
    cfg = _load_cfg()
    with _errors():
        ws = _open_workspace(cfg)
        click.echo(_get_file(ws, path).read(), nl=False)


@cli.command()
@click.argument("query", nargs=-1, required=True)
def search(query: tuple[str, ...]) -> None:
    """Find notes whose name or content contains every word.

    Use a|b for either word and quotes for phrases.
    """
    cfg = _load_cfg()
    terms = parse_query(" ".join(query))
    with _errors():
        ws = _open_workspace(cfg)
        found = ws.search(terms)
    for note in found:
        click.echo(str(note.path))
    if not found:
        click.echo("No matching notes", err=True)


# ---------------------------------------------------------------------------
# notetree rename / mv / rm
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path")
@click.argument("new_name")
def rename(path: str, new_name: str) -> None:
    """Rename a note. A missing extension gets the default one."""
    cfg = _load_cfg()
    with _errors():
        ws = _open_workspace(cfg)
        note = _get_file(ws, path)
        note.rename(new_name, ws.watch)
    click.echo(str(note.path))


@cli.command(name="mv")
@click.argument("path")
@click.argument("directory", type=click.Path(file_okay=False, exists=True))
def move(path: str, directory: str) -> None:
    """Move a note into another directory."""
    cfg = _load_cfg()
    target_dir = Path(directory).resolve()
    with _errors():
        ws = _open_workspace(cfg)
        note = _get_file(ws, path)
        note.move(target_dir)
        target = ws.find_directory(ByPath(target_dir))
        if target is not None:
            target.attach(note)
    click.echo(str(note.path))


@cli.command(name="rm")
@click.argument("path")
def remove(path: str) -> None:
    """Move a note to the trash."""
    cfg = _load_cfg()
    with _errors():
        ws = _open_workspace(cfg)
        note = _get_file(ws, path)
        note.remove()
    click.echo(f"Trashed {note.path}")


# ---------------------------------------------------------------------------
# notetree watch
# ---------------------------------------------------------------------------


@cli.command()
def watch() -> None:
    """Watch the configured roots and print every change until Ctrl-C."""
    cfg = _load_cfg()
    with _errors():
        ws = _open_workspace(cfg)
    ws.add_listener(click.echo)
    click.echo(f"Watching {len(ws.roots)} root(s) — Ctrl-C to stop")

    stop = threading.Event()
    try:
        ws.watch.run(stop)
    except KeyboardInterrupt:
        stop.set()
    finally:
        ws.shutdown()
