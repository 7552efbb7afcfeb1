"""
ClickDispatcher: hands click events from the redirect path to the aggregator.

The redirect path only ever calls `submit`, which never blocks and never
raises: a full queue drops the event (logged), and aggregator failures are
logged on the worker thread. Counting is best-effort, redirects are not.

A single daemon worker drains a bounded `queue.Queue`; between events it runs
the aggregator's retention prune every `prune_interval` seconds.

With `background=False` events are recorded inline on the caller's thread,
still with failures isolated; useful for scripts and deterministic tests.
"""

import logging
import queue
import threading
import time
from typing import Optional

from ..config import settings
from ..models import ClickEvent
from .aggregator import ClickAggregator

log = logging.getLogger("shortlink.analytics.dispatcher")

_STOP = object()


class ClickDispatcher:
    def __init__(
        self,
        aggregator: ClickAggregator,
        maxsize: Optional[int] = None,
        background: bool = True,
        prune_interval: Optional[float] = None,
    ):
        self.aggregator = aggregator
        self.background = background
        self.prune_interval = settings.CLICK_PRUNE_INTERVAL if prune_interval is None else prune_interval
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize or settings.CLICK_QUEUE_SIZE)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.recorded = 0
        self.dropped = 0
        self.failed = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if not self.background:
            return
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._worker, name="click-dispatcher", daemon=True)
            self._thread.start()
        log.info("Click dispatcher started (queue size %d)", self._queue.maxsize)

    def stop(self, timeout: float = 5.0) -> None:
        """Drain what is queued, then stop the worker."""
        thread = self._thread
        if thread is None:
            return
        self.flush(timeout)
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            log.warning("Click queue still full at shutdown; worker left running")
            return
        thread.join(timeout)
        self._thread = None
        log.info(
            "Click dispatcher stopped (recorded=%d dropped=%d failed=%d)",
            self.recorded, self.dropped, self.failed,
        )

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------
    def submit(self, event: ClickEvent) -> bool:
        """
        Queue `event` for recording. Returns False if it was dropped.
        """
        if not self.background:
            return self._record(event)
        if not self.running:
            self.start()
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            log.warning("Click queue full; dropped click for %s", event.code)
            return False
        return True

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until every queued event is processed. False on timeout."""
        deadline = time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------
    def _record(self, event: ClickEvent) -> bool:
        try:
            self.aggregator.record_click(event)
        except Exception:
            self.failed += 1
            log.exception("Failed to record click for %s", event.code)
            return False
        self.recorded += 1
        return True

    def _prune(self) -> None:
        try:
            self.aggregator.prune()
        except Exception:
            log.exception("Click retention prune failed")

    def _worker(self) -> None:
        next_prune = time.monotonic() + self.prune_interval if self.prune_interval > 0 else None
        while True:
            wait = None if next_prune is None else max(0.0, next_prune - time.monotonic())
            try:
                item = self._queue.get(timeout=wait)
            except queue.Empty:
                item = None
            if item is _STOP:
                self._queue.task_done()
                return
            if item is not None:
                try:
                    self._record(item)
                finally:
                    self._queue.task_done()
            if next_prune is not None and time.monotonic() >= next_prune:
                self._prune()
                next_prune = time.monotonic() + self.prune_interval
