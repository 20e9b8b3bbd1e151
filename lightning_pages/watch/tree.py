"""
Recursive image tree watcher feeding the asset publisher.

Intent:
    Keep `public/images/**` mirrored while the server runs:
      1. A watchdog observer reports created/modified/deleted/moved files.
      2. Events become WatchEvents on a bounded queue.
      3. Worker thread(s) hand each event to the publisher:
         ADDED/MODIFIED -> publish(), REMOVED -> retract().
    On start, one reconciliation sweep is queued so files added while the
    server was down are published too.

Design:
    - The queue is bounded; a full queue blocks the observer thread instead
      of spawning unbounded transcode/upload work.
    - One worker by default, so the startup sweep and live events are
      processed sequentially. More workers only parallelize across paths.
    - Dot-prefixed files and directories are ignored everywhere.
    - Handler errors are logged; the worker keeps consuming.
"""
from __future__ import annotations

import enum
import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from lightning_pages.images.publisher import AssetPublisher

LOG = logging.getLogger("lightning.watch")

DEFAULT_MAX_PENDING = 1024


class WatchEventKind(enum.Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class WatchEvent:
    kind: WatchEventKind
    path: Path


@dataclass(frozen=True)
class _Reconcile:
    root: Path


_STOP = object()


def _is_hidden(path: Path, root: Path) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        parts = path.parts
    return any(part.startswith(".") for part in parts)


class _TreeEventHandler(FileSystemEventHandler):
    """Translate watchdog events into WatchEvents for the owning watcher."""

    def __init__(self, watcher: "ImageTreeWatcher"):
        super().__init__()
        self._watcher = watcher

    def _emit(self, kind: WatchEventKind, raw_path) -> None:
        self._watcher.dispatch(WatchEvent(kind, Path(os.fsdecode(raw_path))))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(WatchEventKind.ADDED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(WatchEventKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(WatchEventKind.REMOVED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._emit(WatchEventKind.REMOVED, event.src_path)
        self._emit(WatchEventKind.ADDED, event.dest_path)


class ImageTreeWatcher:
    """Own the observer subscription and the publish worker(s) for one root."""

    def __init__(
        self,
        root: Union[str, os.PathLike],
        publisher: AssetPublisher,
        *,
        workers: int = 1,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        self.root = Path(os.path.abspath(root))
        self.publisher = publisher
        self.workers = max(1, int(workers))
        self.max_pending = max(1, int(max_pending))
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=self.max_pending)
        self._threads: List[threading.Thread] = []
        self._observer: Optional[Observer] = None

    @property
    def running(self) -> bool:
        return bool(self._threads)

    @property
    def watching(self) -> bool:
        return self._observer is not None

    # --- Lifecycle ----------------------------------------------------------------

    def start(self, *, reconcile: bool = True) -> bool:
        """Start workers, subscribe to the tree and queue the startup sweep.

        Returns False (after logging) when the root directory does not exist.
        A previous subscription is released first.
        """
        if self.running:
            self.stop()
            LOG.info("previous image watcher closed")
        if not self.root.is_dir():
            LOG.warning("image folder missing, not watching: %s", self.root)
            return False

        self._queue = work_queue = queue.Queue(maxsize=self.max_pending)
        for idx in range(self.workers):
            thread = threading.Thread(
                target=self._work, args=(work_queue,), name=f"image-publisher-{idx}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

        observer = Observer()
        observer.schedule(_TreeEventHandler(self), str(self.root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer

        if reconcile:
            self._queue.put(_Reconcile(self.root))
        LOG.info("watching image folder %s", self.root)
        return True

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the observer, let workers finish queued work, and join them.

        A worker still busy after `timeout` keeps running in the background
        until its current item is done, then exits on its own queue's stop
        marker. A later start() never shares that queue.
        """
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=timeout)
        threads, self._threads = self._threads, []
        for _ in threads:
            self._queue.put(_STOP)
        for thread in threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                LOG.warning("%s still busy after %.1fs; detached", thread.name, timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued item was handled. Returns False on timeout."""
        work_queue = self._queue
        deadline = None if timeout is None else time.monotonic() + timeout
        with work_queue.all_tasks_done:
            while work_queue.unfinished_tasks:
                if deadline is None:
                    work_queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                work_queue.all_tasks_done.wait(remaining)
        return True

    # --- Events -------------------------------------------------------------------

    def dispatch(self, event: WatchEvent) -> bool:
        """Queue `event` for the workers; hidden paths are dropped.

        Blocks while the queue is full. Returns True when the event was queued.
        """
        if not self.running:
            return False
        path = Path(os.path.abspath(event.path))
        if _is_hidden(path, self.root):
            return False
        self._queue.put(WatchEvent(event.kind, path))
        return True

    def handle(self, item: object) -> None:
        """Apply one queued item to the publisher (runs on a worker thread)."""
        if isinstance(item, _Reconcile):
            self.publisher.reconcile_tree(item.root)
        elif isinstance(item, WatchEvent):
            if item.kind is WatchEventKind.REMOVED:
                self.publisher.retract(item.path)
            else:
                self.publisher.publish(item.path)

    def _work(self, work_queue: "queue.Queue[object]") -> None:
        while True:
            item = work_queue.get()
            try:
                if item is _STOP:
                    return
                self.handle(item)
            except Exception:
                LOG.exception("image watcher failed to handle %r", item)
            finally:
                work_queue.task_done()


__all__ = ["WatchEventKind", "WatchEvent", "ImageTreeWatcher"]
