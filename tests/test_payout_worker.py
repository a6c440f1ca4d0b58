from __future__ import annotations

import threading
from datetime import date

from app.alerts.dispatcher import AlertDispatcher
from app.providers.base import ProviderResult
from app.runtime import build_runtime
from app.workers.payout_worker import process_once, run_forever
from settings import Settings
from tests.fakes import ScriptedProvider


def test_process_once_runs_a_batch(store, make_runtime):
    store.add_payout("p-1")
    runtime = make_runtime(ScriptedProvider(ProviderResult.ok("REF")))

    summary = process_once(runtime, cutoff=date(2025, 3, 10))

    assert summary.successful == 1
    assert store.get_payout("p-1").status == "paid"


def test_run_forever_stops_when_event_is_set(store, make_runtime):
    store.add_payout("p-1")
    runtime = make_runtime(ScriptedProvider(ProviderResult.ok("REF")))
    stop = threading.Event()
    calls = []

    original = runtime.scheduler.run_batch_payouts

    def run_and_stop(cutoff, *, stop_event=None):
        calls.append(cutoff)
        stop.set()
        return original(date(2025, 3, 10), stop_event=None)

    runtime.scheduler.run_batch_payouts = run_and_stop

    cycles = run_forever(runtime, poll_seconds=60, stop_event=stop)

    assert cycles == 1
    assert len(calls) == 1
    assert store.get_payout("p-1").status == "paid"


def test_run_forever_survives_a_failing_cycle(store, make_runtime):
    runtime = make_runtime(ScriptedProvider(ProviderResult.ok("REF")))
    stop = threading.Event()
    attempts = []

    def broken(cutoff, *, stop_event=None):
        attempts.append(cutoff)
        if len(attempts) == 2:
            stop.set()
        raise RuntimeError("db down")

    runtime.scheduler.run_batch_payouts = broken

    assert run_forever(runtime, poll_seconds=0, stop_event=stop) == 2


def test_build_runtime_wires_engine(store):
    provider = ScriptedProvider(ProviderResult.ok("REF"))
    s = Settings(_env_file=None, PAYOUT_RETRY_MAX_ATTEMPTS=5, EMAIL_PROVIDER="log")

    runtime = build_runtime(s, store=store, provider=provider)

    assert runtime.runner.provider is provider
    assert runtime.runner.retry_policy.max_attempts == 5
    assert runtime.scheduler.runner is runtime.runner
    assert isinstance(runtime.dispatcher, AlertDispatcher)
    assert runtime.runner.alerts is runtime.dispatcher


def test_build_runtime_inline_alerts_for_scripts(store):
    runtime = build_runtime(
        Settings(_env_file=None, EMAIL_PROVIDER="log"),
        store=store,
        provider=ScriptedProvider(ProviderResult.ok("REF")),
        background_alerts=False,
    )
    assert runtime.dispatcher is None
