from __future__ import annotations

import argparse
import json
import logging
import sys

from app.payouts.errors import PayoutError
from app.runtime import build_runtime
from services.observability import configure_logging
from settings import settings, validate_env_settings

logger = logging.getLogger("run_payout")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a single payout.")
    parser.add_argument("payout_id")
    args = parser.parse_args()

    configure_logging()
    validate_env_settings(settings)

    runtime = build_runtime(settings, background_alerts=False)
    try:
        result = runtime.runner.run_payout(args.payout_id)
    except PayoutError as exc:
        logger.error("%s: %s", exc.code, exc)
        return 2

    print(json.dumps(result.as_dict(), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
