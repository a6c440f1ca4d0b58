# app/payouts/scheduler.py
from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Optional, Union

from app.payouts.model import FAILED, PAID, BatchRunSummary, PayoutRunResult
from app.payouts.runner import PayoutRunner
from app.payouts.store import PayoutStore
from services.metrics import increment_batch_run

logger = logging.getLogger("payouts.batch")


def parse_cutoff(value: Union[str, date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


class BatchScheduler:
    """Sweeps every pending payout whose order was delivered on or before a cutoff."""

    def __init__(self, store: PayoutStore, runner: PayoutRunner):
        self.store = store
        self.runner = runner

    def run_batch_payouts(
        self,
        cutoff: Union[str, date, datetime],
        *,
        stop_event: Optional[threading.Event] = None,
    ) -> BatchRunSummary:
        """
        Never raises for a single payout: an unexpected exception is recorded as
        a failed result and the loop continues. When stop_event is set, the
        batch stops between payouts, so no payout is abandoned mid-transition.
        """
        cutoff_date = parse_cutoff(cutoff)
        summary = BatchRunSummary(cutoff=cutoff_date.isoformat())
        increment_batch_run()

        try:
            payouts = self.store.list_pending_for_cutoff(cutoff_date)
        except Exception as exc:
            logger.exception("batch selection failed cutoff=%s", cutoff_date)
            summary.error = f"selection failed: {exc}"
            return summary

        logger.info("batch cutoff=%s found %s pending payouts", cutoff_date, len(payouts))

        for payout in payouts:
            if stop_event is not None and stop_event.is_set():
                logger.info("batch cutoff=%s cancelled after %s payouts", cutoff_date, summary.processed)
                summary.cancelled = True
                break

            try:
                result = self.runner.run_payout(payout.id)
            except Exception as exc:
                logger.error("batch payout %s raised: %s", payout.id, exc)
                result = PayoutRunResult(
                    success=False,
                    payout_id=payout.id,
                    status=FAILED,
                    failure_reason=str(exc) or type(exc).__name__,
                )

            summary.processed += 1
            summary.results.append(result)
            if result.success and result.status == PAID:
                summary.successful += 1
            elif result.status == FAILED:
                summary.failed += 1
            else:
                summary.skipped += 1

        logger.info(
            "batch cutoff=%s done processed=%s successful=%s failed=%s skipped=%s",
            cutoff_date,
            summary.processed,
            summary.successful,
            summary.failed,
            summary.skipped,
        )
        return summary
