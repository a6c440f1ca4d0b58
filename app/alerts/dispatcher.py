from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

from app.alerts.events import PayoutFailedEvent

logger = logging.getLogger("payouts.alerts.dispatcher")

_STOP = object()


class AlertDispatcher:
    """
    Background consumer for PayoutFailedEvent. publish() only enqueues, so
    alert latency and alert failures stay off the payout path.
    """

    def __init__(self, handler: Callable[[PayoutFailedEvent], object], *, maxsize: int = 1000):
        self.handler = handler
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="payout-alerts", daemon=True)
        self._thread.start()

    def publish(self, event: PayoutFailedEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.error("alert queue full; dropping alert payout=%s reason=%s", event.payout_id, event.reason)

    def stop(self, timeout: float = 10.0) -> None:
        """Drain queued alerts, then stop the worker thread."""
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.handler(item)  # type: ignore[arg-type]
            except Exception:
                logger.exception("alert handler crashed")
            finally:
                self._queue.task_done()


class SyncAlertSink:
    """Delivers inline. For scripts that exit right after a run."""

    def __init__(self, handler: Callable[[PayoutFailedEvent], object]):
        self.handler = handler

    def publish(self, event: PayoutFailedEvent) -> None:
        try:
            self.handler(event)
        except Exception:
            logger.exception("alert handler crashed payout=%s", event.payout_id)
