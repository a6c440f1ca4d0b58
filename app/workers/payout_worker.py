# app/workers/payout_worker.py
from __future__ import annotations

import logging
import signal
import threading
from datetime import date, datetime, timezone
from typing import Optional

from app.payouts.model import BatchRunSummary
from app.runtime import PayoutRuntime

logger = logging.getLogger("payouts.worker")


def _today() -> date:
    return datetime.now(timezone.utc).date()


def process_once(
    runtime: PayoutRuntime,
    *,
    cutoff: Optional[date] = None,
    stop_event: Optional[threading.Event] = None,
) -> BatchRunSummary:
    summary = runtime.scheduler.run_batch_payouts(cutoff or _today(), stop_event=stop_event)
    logger.info(
        "worker cycle cutoff=%s processed=%s successful=%s failed=%s skipped=%s",
        summary.cutoff,
        summary.processed,
        summary.successful,
        summary.failed,
        summary.skipped,
    )
    return summary


def install_signal_handlers(stop_event: threading.Event) -> None:
    def _stop(signum, _frame):
        logger.info("worker received signal %s; finishing current payout", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)


def run_forever(
    runtime: PayoutRuntime,
    *,
    poll_seconds: int,
    stop_event: Optional[threading.Event] = None,
) -> int:
    """Runs a batch every poll_seconds until stop_event is set. Returns cycles run."""
    stop_event = stop_event or threading.Event()
    cycles = 0
    runtime.start()
    try:
        while not stop_event.is_set():
            try:
                process_once(runtime, stop_event=stop_event)
            except Exception:
                # one bad cycle must not kill the worker
                logger.exception("worker cycle failed")
            cycles += 1
            stop_event.wait(poll_seconds)
    finally:
        runtime.stop()
    logger.info("worker stopped after %s cycles", cycles)
    return cycles
