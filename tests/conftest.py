# tests/conftest.py

import os

os.environ.setdefault("ENV", "dev")
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("PAYOUT_PROVIDER", "simulated")
os.environ.setdefault("EMAIL_PROVIDER", "log")

import pytest

from app.ledger.service import LedgerService
from app.payouts.runner import PayoutRunner
from app.payouts.scheduler import BatchScheduler
from app.runtime import PayoutRuntime
from services import metrics
from services.retry import RetryPolicy
from tests.fakes import FIXED_NOW, InMemoryPayoutStore, RecordingAlertSink, no_sleep


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def store() -> InMemoryPayoutStore:
    return InMemoryPayoutStore()


@pytest.fixture
def alerts() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def make_runner(store, alerts):
    def _make(provider, **kwargs) -> PayoutRunner:
        kwargs.setdefault("alerts", alerts)
        kwargs.setdefault("retry_policy", RetryPolicy())
        kwargs.setdefault("sleep", no_sleep)
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return PayoutRunner(store, provider, **kwargs)

    return _make


@pytest.fixture
def make_runtime(store, make_runner):
    def _make(provider) -> PayoutRuntime:
        runner = make_runner(provider)
        return PayoutRuntime(
            store=store,
            provider=provider,
            runner=runner,
            scheduler=BatchScheduler(store, runner),
            ledger=LedgerService(store),
        )

    return _make
