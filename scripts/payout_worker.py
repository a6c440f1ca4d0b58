# scripts/payout_worker.py
from __future__ import annotations

import logging
import threading

from app.runtime import build_runtime
from app.workers.payout_worker import install_signal_handlers, run_forever
from services.observability import configure_logging
from settings import settings, validate_env_settings

logger = logging.getLogger("payout_worker")


def main() -> None:
    configure_logging()
    validate_env_settings(settings)
    logger.info("Payout worker starting; interval=%ss", settings.WORKER_POLL_SECONDS)

    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    run_forever(build_runtime(settings), poll_seconds=settings.WORKER_POLL_SECONDS, stop_event=stop_event)


if __name__ == "__main__":
    main()
