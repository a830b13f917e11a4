"""
Configuration file watching.

Each watched file gets a daemon thread that polls its modification time,
change time and size, and invokes the registered callback with the file's
absolute path when the file is created or rewritten. Notifications are
hints: one logical save may produce zero, one or several callbacks, so
callbacks should re-read the file and be idempotent. ``debounce`` collapses
bursts into a single trailing call.
"""

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from strata.infrastructure.observability.factory import get_framework_logger


WatchCallback = Callable[[str], None]

_Snapshot = Optional[Tuple[int, int, int]]


class FileWatcher:
    """Polls one file and reports creation and content changes."""

    def __init__(self, path: Union[str, Path], callback: WatchCallback, poll_interval: float = 1.0):
        self.path = Path(path).resolve()
        self.callback = callback
        self.poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._logger = get_framework_logger("watcher")
        # Baseline is taken now so that changes made right after registration are seen
        self._last_snapshot = self._snapshot()

    def _snapshot(self) -> _Snapshot:
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_ctime_ns, st.st_size)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._watch_loop,
            daemon=True,
            name=f"strata-watch:{self.path.name}"
        )
        self._thread.start()

    def _watch_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            self.poll()

    def poll(self) -> bool:
        """Check the file once; returns True if the callback was invoked."""
        current = self._snapshot()
        if current == self._last_snapshot:
            return False
        self._last_snapshot = current

        # Deletions are not reported
        if current is None or self._stop_event.is_set():
            return False

        try:
            self.callback(str(self.path))
        except Exception as e:
            self._logger.error("Watch callback failed", extra={"path": str(self.path)}, exc_info=e)
        return True

    def signal_stop(self) -> None:
        """Stop delivering notifications without waiting for the thread."""
        self._stop_event.set()

    def join(self, timeout: float = 5.0) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def stop(self, timeout: float = 5.0) -> None:
        self.signal_stop()
        self.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()


@dataclass
class WatchRegistration:
    """One watched path and its listener."""
    path: Path
    callback: WatchCallback
    watcher: FileWatcher = field(repr=False)
    active: bool = True

    def dispose(self, wait: bool = True) -> None:
        self.active = False
        self.watcher.signal_stop()
        if wait:
            self.watcher.join()


class WatchRegistry:
    """
    Table of active watchers keyed by resolved absolute path.

    At most one registration exists per path; registering again disposes
    the previous watcher before the new one starts. All table access is
    serialized by one lock.
    """

    def __init__(self, poll_interval: float = 1.0):
        self.poll_interval = poll_interval
        self._registrations: Dict[str, WatchRegistration] = {}
        self._lock = threading.Lock()
        self._logger = get_framework_logger("watcher")

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return str(Path(path).resolve())

    def register(self, path: Union[str, Path], callback: WatchCallback) -> WatchRegistration:
        key = self._key(path)
        with self._lock:
            previous = self._registrations.pop(key, None)
            if previous is not None:
                previous.dispose(wait=False)

            watcher = FileWatcher(key, callback, self.poll_interval)
            registration = WatchRegistration(path=Path(key), callback=callback, watcher=watcher)
            watcher.start()
            self._registrations[key] = registration

        if previous is not None:
            previous.watcher.join()
            self._logger.debug("Replaced watcher", extra={"path": key})
        self._logger.info("Watching configuration file", extra={"path": key})
        return registration

    def unregister(self, path: Union[str, Path]) -> bool:
        key = self._key(path)
        with self._lock:
            registration = self._registrations.pop(key, None)
            if registration is not None:
                registration.dispose(wait=False)
        if registration is None:
            return False
        registration.watcher.join()
        self._logger.info("Stopped watching configuration file", extra={"path": key})
        return True

    def get(self, path: Union[str, Path]) -> Optional[WatchRegistration]:
        with self._lock:
            return self._registrations.get(self._key(path))

    def paths(self) -> List[str]:
        with self._lock:
            return list(self._registrations.keys())

    def close(self) -> None:
        """Dispose every registration."""
        with self._lock:
            registrations = list(self._registrations.values())
            self._registrations.clear()
            for registration in registrations:
                registration.dispose(wait=False)
        for registration in registrations:
            registration.watcher.join()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return self._key(path) in self._registrations

    def __len__(self) -> int:
        with self._lock:
            return len(self._registrations)


class Debouncer:
    """
    Wraps a callback so that a burst of calls results in one trailing call
    ``wait`` seconds after the last one, with the last call's arguments.
    """

    def __init__(self, callback: Callable[..., Any], wait: float = 0.5):
        self.callback = callback
        self.wait = wait
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.wait, self.callback, args, kwargs)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


def debounce(callback: Callable[..., Any], wait: float = 0.5) -> Debouncer:
    return Debouncer(callback, wait)
