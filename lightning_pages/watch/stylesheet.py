"""
In-memory stylesheet cache with mtime-based invalidation.

Intent:
    Request handlers inline the global stylesheet on every page render, so the
    content must come from memory. The cache re-reads a file only when its
    modification time moved forward:

        get()      -> cached text, never touches disk
        refresh()  -> stat; read only if newer; return current text

    StylesheetWatcher wires a watchdog observer on the stylesheet's directory
    to a Debouncer that calls refresh(), so an editor's save burst costs one
    read.

Concurrency:
    refresh() may be called from the HTTP cache-bust route and the debounce
    timer at the same time. Each entry is an immutable object swapped in one
    assignment, so readers see either the old or the new content. The mtime
    stored with the content is the one observed before that read: a write
    racing the read shows up as a newer mtime on the next refresh.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .debounce import DEFAULT_DELAY_SECONDS, Debouncer

LOG = logging.getLogger("lightning.watch")

PathArg = Union[str, os.PathLike, None]


@dataclass(frozen=True)
class StylesheetEntry:
    content: str = ""
    last_modified_ns: Optional[int] = None


class StylesheetCache:
    """Cache of stylesheet contents keyed by path; one default path."""

    def __init__(self, default_path: Union[str, os.PathLike]):
        self.default_path = Path(default_path)
        self._entries: Dict[Path, StylesheetEntry] = {self.default_path: StylesheetEntry()}

    def _resolve(self, path: PathArg) -> Path:
        return self.default_path if path is None else Path(path)

    def entry(self, path: PathArg = None) -> StylesheetEntry:
        return self._entries.get(self._resolve(path), StylesheetEntry())

    def get(self, path: PathArg = None) -> str:
        """Return the cached content ("" before the first successful read)."""
        return self.entry(path).content

    def last_modified(self, path: PathArg = None) -> Optional[int]:
        return self.entry(path).last_modified_ns

    def refresh(self, path: PathArg = None) -> str:
        """Re-read the stylesheet if its mtime is newer than the cached one.

        Missing or unreadable files keep the stale content (stale-but-available).
        """
        target = self._resolve(path)
        current = self._entries.get(target, StylesheetEntry())
        try:
            mtime_ns = target.stat().st_mtime_ns
        except FileNotFoundError:
            LOG.debug("stylesheet missing, serving cached content: %s", target)
            return current.content
        except OSError as exc:
            LOG.warning("stylesheet stat failed %s: %s", target, exc)
            return current.content

        if current.last_modified_ns is not None and mtime_ns <= current.last_modified_ns:
            return current.content

        try:
            content = self._read_file(target)
        except (OSError, UnicodeDecodeError) as exc:
            LOG.warning("stylesheet read failed %s: %s", target, exc)
            return current.content

        self._entries[target] = StylesheetEntry(content=content, last_modified_ns=mtime_ns)
        LOG.info("[cache] stylesheet updated %s (%d chars)", target, len(content))
        return content

    def _read_file(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")


def _event_paths(event: FileSystemEvent) -> list[Path]:
    paths = [Path(os.path.abspath(os.fsdecode(event.src_path)))]
    dest = getattr(event, "dest_path", "")
    if dest:
        paths.append(Path(os.path.abspath(os.fsdecode(dest))))
    return paths


class _StylesheetEventHandler(FileSystemEventHandler):
    def __init__(self, target: Path, cache_path: Path, debouncer: Debouncer):
        super().__init__()
        self._target = target
        self._cache_path = cache_path
        self._debouncer = debouncer

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("created", "modified", "moved"):
            return
        if self._target in _event_paths(event):
            self._debouncer.trigger(self._cache_path)


class StylesheetWatcher:
    """Debounced watchdog subscription that refreshes a StylesheetCache."""

    def __init__(
        self,
        cache: StylesheetCache,
        path: PathArg = None,
        *,
        delay: float = DEFAULT_DELAY_SECONDS,
    ):
        self.cache = cache
        self.path = cache.default_path if path is None else Path(path)
        self.debouncer = Debouncer(cache.refresh, delay, name="stylesheet")
        self._observer: Optional[Observer] = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> bool:
        """Subscribe to changes; returns False when the directory is missing.

        Any previous subscription is released first so events are not delivered
        twice.
        """
        if self._observer is not None:
            self.stop()
            LOG.info("previous stylesheet watcher closed")
        target = Path(os.path.abspath(self.path))
        directory = target.parent
        if not directory.is_dir():
            LOG.warning("stylesheet directory missing, not watching: %s", directory)
            return False
        observer = Observer()
        observer.schedule(_StylesheetEventHandler(target, self.path, self.debouncer), str(directory), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        LOG.info("watching stylesheet %s", self.path)
        return True

    def stop(self) -> None:
        self.debouncer.cancel_pending()
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)


__all__ = ["StylesheetEntry", "StylesheetCache", "StylesheetWatcher"]
