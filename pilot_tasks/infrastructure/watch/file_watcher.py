"""File change detection and debounced callbacks.

The watcher polls the file's ``(mtime_ns, size)`` signature on a daemon
thread and reports any change. The path does not have to exist: creation,
modification and removal all count as changes. Writes made by this process
can be acknowledged so they are not reported back as external edits,
unless the file was also changed by someone else before the write.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

Signature = tuple[int, int] | None


def file_signature(path: Path) -> Signature:
    """``(mtime_ns, size)`` of ``path``, or None if it cannot be stat'ed."""
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_mtime_ns, stat.st_size)


class FileWatcher(Protocol):
    """What the board manager needs from a watcher."""

    def start(self) -> None: ...

    def acknowledge(self, before: Signature) -> None: ...

    def stop(self) -> None: ...


WatcherFactory = Callable[[Path, Callable[[], None]], FileWatcher]


class PollingFileWatcher:
    """Poll a file and call ``on_change`` when its signature moves.

    Example:
        watcher = PollingFileWatcher(path, on_change=reload, interval=0.25)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        path: Path,
        on_change: Callable[[], None],
        interval: float = 0.25,
    ) -> None:
        self.path = Path(path)
        self._on_change = on_change
        self._interval = interval
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last: Signature = file_signature(self.path)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            name=f"task-log-watch:{self.path}",
            daemon=True,
        )
        self._thread.start()

    def acknowledge(self, before: Signature) -> None:
        """Accept our own write, made when the file looked like ``before``.

        If the file had already moved past the last seen signature before
        the write, someone else changed it too; the next poll still reports it.
        """
        with self._lock:
            if self._last == before:
                self._last = file_signature(self.path)

    def poll(self) -> bool:
        """Check once; return True (and notify) if the file changed."""
        current = file_signature(self.path)
        with self._lock:
            if current == self._last:
                return False
            self._last = current
        try:
            self._on_change()
        except Exception:
            logger.exception(f"File change handler failed for {self.path}")
        return True

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.poll()

    def stop(self) -> None:
        """Stop polling. Safe to call more than once."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval * 4)


def polling_watcher_factory(interval: float) -> WatcherFactory:
    """Build a factory producing polling watchers with a fixed interval."""

    def factory(path: Path, on_change: Callable[[], None]) -> FileWatcher:
        return PollingFileWatcher(path, on_change, interval=interval)

    return factory


class Debouncer:
    """Single-slot delayed call.

    Each ``trigger`` replaces the pending call, so a burst of triggers
    results in one call ``delay`` seconds after the last of them.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = threading.Timer(self._delay, self._fire, args=(generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a newer trigger replaced this one after the timer started
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._callback()

    def flush(self) -> bool:
        """Run the pending call now instead of waiting. Returns True if one ran."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._generation += 1
        self._callback()
        return True

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
