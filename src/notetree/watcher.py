"""Watch service: reports add/change/unlink events for registered paths.

Backends:
    inotify   inotify_simple (Linux), watches each registered directory tree
    poll      mtime scan of registered paths every `poll_interval` seconds;
              subdirectories are reported on add/unlink only

"auto" tries inotify first and falls back to polling if it is unavailable
(macOS, some containers).

Models that cause a filesystem change themselves (e.g. a rename) call
ignore_next(event, path) *before* touching the disk; the next matching event
is then dropped instead of being delivered to subscribers.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from notetree.config import NoteTreeConfig

logger = logging.getLogger("notetree.watcher")

_INOTIFY_TIMEOUT_MS = 500


class WatchService:
    """Path registry, event suppression list and event loop."""

    def __init__(self, poll_interval: float = 1.0, backend: str = "auto") -> None:
        self.poll_interval = poll_interval
        self.backend = backend
        self._paths: set[Path] = set()
        self._ignored: list[tuple[str, Path]] = []
        self._subscribers: list[Callable[[Path, str], None]] = []
        # file -> st_mtime_ns at last scan, directories map to None
        self._seen: dict[Path, int | None] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, cfg: NoteTreeConfig) -> WatchService:
        return cls(poll_interval=cfg.watch.poll_interval, backend=cfg.watch.backend)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def paths(self) -> set[Path]:
        return set(self._paths)

    def add_path(self, path: Path | str) -> None:
        """Watch a file, or a directory and everything below it."""
        path = Path(path)
        with self._lock:
            if path in self._paths:
                return
            self._paths.add(path)
            self._seen.update(_scan_path(path))
            self._drop_ignored(path)
        logger.debug("watching %s", path)

    def remove_path(self, path: Path | str) -> None:
        path = Path(path)
        with self._lock:
            self._paths.discard(path)
            self._drop_ignored(path)
            for seen in [p for p in self._seen if p == path or p.is_relative_to(path)]:
                if not self._covered(seen):
                    del self._seen[seen]

    def is_watched(self, path: Path | str) -> bool:
        with self._lock:
            return self._covered(Path(path))

    def _covered(self, path: Path) -> bool:
        return any(path == p or path.is_relative_to(p) for p in self._paths)

    def subscribe(self, callback: Callable[[Path, str], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Path, str], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # ------------------------------------------------------------------
    # Suppression + dispatch
    # ------------------------------------------------------------------

    def ignore_next(self, event: str, path: Path | str) -> None:
        """Drop the next `event` reported for `path` (exactly one)."""
        with self._lock:
            self._ignored.append((event, Path(path)))

    def cancel_ignore(self, event: str, path: Path | str) -> None:
        """Withdraw one ignore_next entry whose change never reached the disk."""
        with self._lock:
            key = (event, Path(path))
            if key in self._ignored:
                self._ignored.remove(key)

    def _drop_ignored(self, path: Path) -> None:
        # Registration changes reset what the backends report for path,
        # so pending entries for it would never be consumed.
        self._ignored = [
            (event, p) for event, p in self._ignored
            if not (p == path or p.is_relative_to(path))
        ]

    def dispatch(self, path: Path | str, event: str) -> bool:
        """Deliver one event to subscribers unless it was suppressed.

        Returns True if the event was delivered.
        """
        path = Path(path)
        with self._lock:
            key = (event, path)
            if key in self._ignored:
                self._ignored.remove(key)
                logger.debug("suppressed %s %s", event, path)
                return False

        for callback in list(self._subscribers):
            try:
                callback(path, event)
            except Exception:
                logger.exception("handler failed for %s %s", event, path)
        return True

    # ------------------------------------------------------------------
    # Polling backend
    # ------------------------------------------------------------------

    def poll_once(self) -> list[tuple[Path, str]]:
        """Compare mtimes against the previous scan and dispatch the differences."""
        with self._lock:
            current: dict[Path, int | None] = {}
            for path in self._paths:
                current.update(_scan_path(path))
            previous = self._seen
            self._seen = current

        events: list[tuple[Path, str]] = []
        events.extend((p, "unlink") for p in sorted(previous.keys() - current.keys()))
        events.extend((p, "add") for p in sorted(current.keys() - previous.keys()))
        events.extend(
            (p, "change")
            for p in sorted(current.keys() & previous.keys())
            if current[p] != previous[p]
        )
        for path, event in events:
            self.dispatch(path, event)
        return events

    def _run_poll(self, stop: threading.Event | None) -> None:
        logger.info("polling %d path(s) interval=%.1fs", len(self._paths), self.poll_interval)
        while stop is None or not stop.is_set():
            self.poll_once()
            if stop is not None:
                stop.wait(self.poll_interval)
            else:
                time.sleep(self.poll_interval)

    # ------------------------------------------------------------------
    # inotify backend
    # ------------------------------------------------------------------

    def _run_inotify(self, stop: threading.Event | None) -> None:
        import inotify_simple  # type: ignore[import]

        inotify = inotify_simple.INotify()
        flags = inotify_simple.flags  # type: ignore[attr-defined]
        mask = (
            flags.CLOSE_WRITE | flags.CREATE | flags.DELETE
            | flags.MOVED_FROM | flags.MOVED_TO | flags.DELETE_SELF
        )

        # wd -> watched directory
        watched: dict[int, Path] = {}

        def watch_dir(directory: Path) -> None:
            if directory in watched.values():
                return
            try:
                wd = inotify.add_watch(str(directory), mask)
            except OSError:
                logger.warning("cannot watch %s", directory)
                return
            watched[wd] = directory

        synced: set[Path] = set()

        def sync_watches() -> None:
            for path in self.paths - synced:
                synced.add(path)
                if path.is_dir():
                    watch_dir(path)
                    for sub in path.rglob("*"):
                        if sub.is_dir():
                            watch_dir(sub)
                elif path.parent.is_dir():
                    # Single files are watched through their directory
                    watch_dir(path.parent)

        sync_watches()
        logger.info("inotify watching %d path(s)", len(self._paths))

        while stop is None or not stop.is_set():
            for event in inotify.read(timeout=_INOTIFY_TIMEOUT_MS):
                directory = watched.get(event.wd)
                if directory is None or not event.name:
                    continue
                changed = directory / event.name
                if not self.is_watched(changed):
                    continue

                if event.mask & (flags.CREATE | flags.MOVED_TO):
                    if changed.is_dir():
                        watch_dir(changed)
                    self.dispatch(changed, "add")
                elif event.mask & flags.CLOSE_WRITE:
                    self.dispatch(changed, "change")
                elif event.mask & (flags.DELETE | flags.MOVED_FROM):
                    self.dispatch(changed, "unlink")

            # Pick up paths registered while the loop was running
            sync_watches()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, stop: threading.Event | None = None) -> None:
        """Block and deliver events until stop is set (forever if None)."""
        if self.backend in ("auto", "inotify"):
            try:
                self._run_inotify(stop)
                return
            except (ImportError, OSError):
                if self.backend == "inotify":
                    raise
                logger.warning("inotify_simple not available, falling back to polling")
        self._run_poll(stop)


def _scan_path(path: Path) -> dict[Path, int | None]:
    """Map every file at or below path to its st_mtime_ns.

    Subdirectories are included with None so that they get add/unlink
    events but never change events.
    """
    result: dict[Path, int | None] = {}
    try:
        if path.is_dir():
            for f in path.rglob("*"):
                try:
                    if f.is_dir():
                        result[f] = None
                    elif f.is_file():
                        result[f] = f.stat().st_mtime_ns
                except OSError:
                    continue
        elif path.is_file():
            result[path] = path.stat().st_mtime_ns
    except OSError:
        pass
    return result
