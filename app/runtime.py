# app/runtime.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from app.alerts.dispatcher import AlertDispatcher, SyncAlertSink
from app.alerts.email import build_email_sender
from app.alerts.notifier import FailureAlertNotifier
from app.ledger.service import LedgerService
from app.payouts.repository import PostgresPayoutStore
from app.payouts.runner import PayoutRunner
from app.payouts.scheduler import BatchScheduler
from app.payouts.store import PayoutStore
from app.providers.base import PayoutProvider
from app.providers.factory import build_provider
from services.retry import RetryPolicy
from settings import Settings, admin_emails

logger = logging.getLogger("payouts.runtime")


@dataclass
class PayoutRuntime:
    store: PayoutStore
    provider: PayoutProvider
    runner: PayoutRunner
    scheduler: BatchScheduler
    ledger: LedgerService
    dispatcher: Optional[AlertDispatcher] = None

    def start(self) -> None:
        if self.dispatcher is not None:
            self.dispatcher.start()

    def stop(self) -> None:
        if self.dispatcher is not None:
            self.dispatcher.stop()


def retry_policy_from(s: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=s.PAYOUT_RETRY_MAX_ATTEMPTS,
        base_delay_ms=s.PAYOUT_RETRY_BASE_DELAY_MS,
        max_delay_ms=s.PAYOUT_RETRY_MAX_DELAY_MS,
        backoff_multiplier=s.PAYOUT_RETRY_BACKOFF_MULTIPLIER,
    )


def build_runtime(
    s: Settings,
    *,
    store: Optional[PayoutStore] = None,
    provider: Optional[PayoutProvider] = None,
    background_alerts: bool = True,
) -> PayoutRuntime:
    """
    Wire the engine once per process. The HTTP app and the long-running
    worker use the background alert dispatcher; one-shot scripts deliver
    alerts inline so nothing is lost on exit.
    """
    if store is None:
        store = PostgresPayoutStore()
    if provider is None:
        provider = build_provider(s)

    notifier = FailureAlertNotifier(build_email_sender(s), admin_emails(s.ADMIN_EMAILS))
    dispatcher: Optional[AlertDispatcher] = None
    if background_alerts:
        dispatcher = AlertDispatcher(notifier.handle)
        alerts = dispatcher
    else:
        alerts = SyncAlertSink(notifier.handle)

    runner = PayoutRunner(store, provider, alerts=alerts, retry_policy=retry_policy_from(s))
    logger.info("payout runtime ready provider=%s", runner.provider_name)
    return PayoutRuntime(
        store=store,
        provider=provider,
        runner=runner,
        scheduler=BatchScheduler(store, runner),
        ledger=LedgerService(store, stuck_after=timedelta(minutes=s.PAYOUT_STUCK_AFTER_MINUTES)),
        dispatcher=dispatcher,
    )
