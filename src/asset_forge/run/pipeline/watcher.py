"""
File watcher built on watchdog.

Turns filesystem notifications into ChangeEvents. Starting (or restarting)
the observer is retried with exponential backoff; giving up is fatal.
"""
import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from asset_forge.build.config.exceptions import ConfigurationError
from .fs import is_ignored, normalize
from .models import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)


class _ChangeHandler(FileSystemEventHandler):
    """Forwards file (not directory) events to the watcher's queue."""

    def __init__(self, emit: Callable[[Path, ChangeKind], None]):
        super().__init__()
        self.emit = emit

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.emit(event.src_path, ChangeKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.emit(event.src_path, ChangeKind.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.emit(event.src_path, ChangeKind.REMOVED)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.emit(event.src_path, ChangeKind.REMOVED)
            self.emit(event.dest_path, ChangeKind.CREATED)


class FileWatcher:
    """Watches directory trees and yields ChangeEvents until stopped.

    A watcher is single use: once ``watch()`` has been called it cannot be
    started again.
    """

    def __init__(self, polling: bool = False, retries: int = 5, backoff: float = 0.5,
                 ignored: Iterable[Path] = (), observer_factory: Optional[Callable] = None,
                 sleep: Callable[[float], None] = time.sleep, poll_interval: float = 0.2):
        self.retries = retries
        self.backoff = backoff
        self.ignored = [normalize(p) for p in ignored]
        self.observer_factory = observer_factory or (PollingObserver if polling else Observer)
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._queue: "queue.Queue[ChangeEvent]" = queue.Queue()
        self._stopped = threading.Event()
        self._started = False
        self._observer = None
        self._roots: List[Path] = []

    def _emit(self, src_path, kind: ChangeKind) -> None:
        path = normalize(src_path)
        if is_ignored(path, self.ignored, self._roots):
            return
        self._queue.put(ChangeEvent(path=path, kind=kind))

    def _start_observer(self):
        """Start an observer on all roots, retrying transient OS errors with backoff."""
        handler = _ChangeHandler(self._emit)
        last_error = None
        for attempt in range(self.retries + 1):
            observer = self.observer_factory()
            try:
                for root in self._roots:
                    observer.schedule(handler, str(root), recursive=True)
                observer.start()
                logger.debug(f"Watching {', '.join(map(str, self._roots))}")
                return observer
            except OSError as e:
                last_error = e
                if attempt == self.retries:
                    break
                delay = self.backoff * (2 ** attempt)
                logger.warning(f"Watcher failed to start ({e}); retrying in {delay:.1f}s")
                self._sleep(delay)
        raise ConfigurationError(
            f"Could not watch {', '.join(map(str, self._roots))} after {self.retries + 1} attempts: {last_error}"
        )

    def watch(self, paths: Iterable[Path]) -> Iterator[ChangeEvent]:
        """
        Yield ChangeEvents for the given directories until ``stop()`` is called.

        Raises:
            ConfigurationError: If a path does not exist (raised before any
                event is produced) or the observer cannot be (re)started
        """
        if self._started:
            raise RuntimeError("FileWatcher cannot be restarted; create a new one")
        self._roots = [normalize(p) for p in paths]
        for root in self._roots:
            if not root.is_dir():
                raise ConfigurationError(f"Watched path does not exist: {root}", path=str(root))
        self._started = True
        self._observer = self._start_observer()
        return self._events()

    def _events(self) -> Iterator[ChangeEvent]:
        try:
            while not self._stopped.is_set():
                try:
                    yield self._queue.get(timeout=self._poll_interval)
                    continue
                except queue.Empty:
                    pass
                observer = self._observer
                if observer is not None and not self._stopped.is_set() and not observer.is_alive():
                    logger.warning("Watcher observer died; restarting")
                    self._observer = self._start_observer()
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Stop watching. The event iterator finishes shortly after."""
        self._stopped.set()
        self._shutdown()

    def _shutdown(self) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            if observer.is_alive() and observer is not threading.current_thread():
                observer.join(timeout=2)
