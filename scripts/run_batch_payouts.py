from __future__ import annotations

import argparse
import json
import sys
import threading
from datetime import date, datetime, timezone

from app.runtime import build_runtime
from app.workers.payout_worker import install_signal_handlers, process_once
from services.observability import configure_logging
from settings import settings, validate_env_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Run every pending payout delivered on or before a cutoff date.")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="cutoff date YYYY-MM-DD (default: today, UTC)")
    args = parser.parse_args()

    configure_logging()
    validate_env_settings(settings)

    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    runtime = build_runtime(settings, background_alerts=False)
    cutoff = args.date or datetime.now(timezone.utc).date()
    summary = process_once(runtime, cutoff=cutoff, stop_event=stop_event)

    print(json.dumps(summary.as_dict(), indent=2))
    return 1 if summary.error else 0


if __name__ == "__main__":
    sys.exit(main())
