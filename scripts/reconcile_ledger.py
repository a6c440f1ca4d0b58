# scripts/reconcile_ledger.py
from __future__ import annotations

import argparse
import logging
import threading
from typing import Optional

from app.ledger.service import LedgerService
from app.payouts.repository import PostgresPayoutStore
from app.workers.payout_worker import install_signal_handlers
from services.observability import configure_logging
from settings import settings

logger = logging.getLogger("reconcile_ledger")


def run_cycle(ledger: LedgerService, *, repair: bool) -> dict:
    result = ledger.reconcile_missing_entries(repair=repair)
    logger.info(
        "Ledger reconcile | checked=%s repaired=%s missing=%s",
        result["checked"],
        len(result["repaired"]),
        ",".join(result["missing"]) or "-",
    )
    return result


def run_daemon(
    ledger: LedgerService,
    *,
    repair: bool,
    interval: int,
    stop_event: Optional[threading.Event] = None,
) -> int:
    """Reconciles every interval seconds until stop_event is set. Returns cycles run."""
    stop_event = stop_event or threading.Event()
    cycles = 0
    logger.info("Reconcile daemon starting; interval=%ss repair=%s", interval, repair)
    while not stop_event.is_set():
        try:
            run_cycle(ledger, repair=repair)
        except Exception:
            logger.exception("Reconcile cycle failed; retrying in %ss", interval)
        cycles += 1
        stop_event.wait(interval)
    logger.info("Reconcile daemon exiting after %s cycles", cycles)
    return cycles


def main() -> None:
    parser = argparse.ArgumentParser(description="Find (and optionally repair) paid payouts with no ledger entry.")
    parser.add_argument("--repair", action="store_true")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    args = parser.parse_args()

    configure_logging()
    ledger = LedgerService(PostgresPayoutStore())

    if args.once:
        run_cycle(ledger, repair=args.repair)
        return

    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    run_daemon(ledger, repair=args.repair, interval=settings.RECONCILE_INTERVAL_SECONDS, stop_event=stop_event)


if __name__ == "__main__":
    main()
