"""
Polling watcher for the synced snapshot file.

Another device's sync client replaces the file in place; we notice the new
(mtime, size) signature, wait until it has been stable for the debounce
window, then load it and hand the snapshot to a callback.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Callable, List, Optional, Tuple

from jobtracker.models import Job

logger = logging.getLogger(__name__)

Signature = Optional[Tuple[int, int]]
SnapshotCallback = Callable[[List[Job]], None]
SnapshotLoader = Callable[[str], Optional[List[Job]]]


class ChangeWatcher:
    """
    Watch a snapshot file and deliver debounced change notifications.

    A missing path, a missing file or an unreadable snapshot never raises;
    the watcher simply has nothing to deliver.
    """

    def __init__(
        self,
        path: Optional[str],
        load_fn: SnapshotLoader,
        callback: Optional[SnapshotCallback] = None,
        debounce_s: float = 0.5,
        poll_interval_s: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = path
        self.load_fn = load_fn
        self.debounce_s = debounce_s
        self.poll_interval_s = poll_interval_s
        self._clock = clock
        self._callback = callback
        # Held while a callback runs so stop() can wait for it.
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self._signature: Signature = self._stat()
        self._pending_since: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, callback: Optional[SnapshotCallback] = None) -> bool:
        """
        Begin watching in a background thread.

        Returns False if there is no location to watch.
        """
        if not self.path:
            logger.debug("No synced location configured; not watching")
            return False
        with self._lock:
            if callback is not None:
                self._callback = callback
            self._stopped = False
        if self.is_running:
            return True

        self._stop_event.clear()
        self._signature = self._stat()
        self._pending_since = None
        self._thread = threading.Thread(target=self._run, name="jobtracker-watcher", daemon=True)
        self._thread.start()
        logger.debug("Watching %s", self.path)
        return True

    def stop(self) -> None:
        """Stop watching. Safe to call more than once, or from the callback."""
        self._stop_event.set()
        with self._lock:
            self._stopped = True
            self._callback = None
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(self.poll_interval_s * 4, 1.0))
        self._thread = None

    def poll_once(self, now: Optional[float] = None) -> bool:
        """
        Run one detection step.

        Returns True if a snapshot was delivered to the callback.
        """
        now = self._clock() if now is None else now
        signature = self._stat()

        if signature != self._signature:
            self._signature = signature
            # A vanished file has nothing to deliver.
            self._pending_since = now if signature is not None else None
            return False

        if self._pending_since is None or now - self._pending_since < self.debounce_s:
            return False

        snapshot = self.load_fn(self.path)
        if snapshot is None:
            # Possibly a partial write; retried on the next poll
            logger.debug("Changed snapshot at %s could not be loaded", self.path)
            return False

        self._pending_since = None
        return self._deliver(snapshot)

    def _run(self) -> None:
        while not self._stop_event.wait(self.poll_interval_s):
            try:
                self.poll_once()
            except Exception:
                logger.exception("Watcher poll failed for %s", self.path)

    def _stat(self) -> Signature:
        if not self.path:
            return None
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _deliver(self, snapshot: List[Job]) -> bool:
        with self._lock:
            callback = self._callback
            if self._stopped or callback is None:
                return False
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Remote change handler failed")
                return False
        return True
