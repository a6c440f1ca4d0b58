from __future__ import annotations

import threading
from datetime import date, datetime, timezone

from app.payouts.scheduler import BatchScheduler, parse_cutoff
from app.providers.base import ProviderResult, TransientProviderError
from tests.fakes import ScriptedProvider


def _seed(store):
    store.add_order("ORD-1", delivered_at=datetime(2025, 3, 9, 23, 59, tzinfo=timezone.utc))
    store.add_order("ORD-2", delivered_at=datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc))
    store.add_order("ORD-3", delivered_at=datetime(2025, 3, 11, 0, 0, tzinfo=timezone.utc))
    store.add_order("ORD-4", status="shipped", delivered_at=None)
    store.add_payout("p-1", order_id="ORD-1")
    store.add_payout("p-2", order_id="ORD-2")
    store.add_payout("p-3", order_id="ORD-3")
    store.add_payout("p-4", order_id="ORD-4")


def test_parse_cutoff_accepts_common_forms():
    assert parse_cutoff("2025-03-10") == date(2025, 3, 10)
    assert parse_cutoff("2025-03-10T18:30:00Z") == date(2025, 3, 10)
    assert parse_cutoff(datetime(2025, 3, 10, 5, tzinfo=timezone.utc)) == date(2025, 3, 10)
    assert parse_cutoff(date(2025, 3, 10)) == date(2025, 3, 10)


def test_batch_selects_orders_delivered_by_end_of_cutoff_day(store, make_runner):
    _seed(store)
    provider = ScriptedProvider(ProviderResult.ok("REF"))
    scheduler = BatchScheduler(store, make_runner(provider))

    summary = scheduler.run_batch_payouts("2025-03-10")

    assert [r.payout_id for r in summary.results] == ["p-1", "p-2"]
    assert summary.processed == 2
    assert summary.successful == 2
    assert summary.failed == 0
    assert store.get_payout("p-3").status == "pending"
    assert store.get_payout("p-4").status == "pending"


def test_second_batch_processes_nothing(store, make_runner):
    _seed(store)
    provider = ScriptedProvider(ProviderResult.ok("REF"))
    scheduler = BatchScheduler(store, make_runner(provider))

    scheduler.run_batch_payouts("2025-03-10")
    second = scheduler.run_batch_payouts("2025-03-10")

    assert second.processed == 0
    assert len(provider.calls) == 2
    assert len(store.ledger) == 2


def test_one_failure_does_not_stop_the_batch(store, make_runner):
    _seed(store)
    provider = ScriptedProvider(
        ProviderResult.rejected("Netopia API error: 400 - Invalid IBAN"),
        ProviderResult.ok("REF-2"),
    )
    scheduler = BatchScheduler(store, make_runner(provider))

    summary = scheduler.run_batch_payouts(date(2025, 3, 10))

    assert summary.processed == 2
    assert summary.failed == 1
    assert summary.successful == 1
    assert store.get_payout("p-1").status == "failed"
    assert store.get_payout("p-2").status == "paid"


def test_unexpected_runner_error_is_recorded_and_batch_continues(store, make_runner, monkeypatch):
    _seed(store)
    runner = make_runner(ScriptedProvider(ProviderResult.ok("REF")))
    original = runner.run_payout

    def flaky_run(payout_id):
        if payout_id == "p-1":
            raise RuntimeError("db connection reset")
        return original(payout_id)

    monkeypatch.setattr(runner, "run_payout", flaky_run)

    summary = BatchScheduler(store, runner).run_batch_payouts("2025-03-10")

    assert summary.processed == 2
    assert summary.failed == 1
    assert summary.successful == 1
    assert summary.results[0].failure_reason == "db connection reset"


def test_transient_exhaustion_counts_as_failed(store, make_runner):
    store.add_order("ORD-1", delivered_at=datetime(2025, 3, 1, tzinfo=timezone.utc))
    store.add_payout("p-1", order_id="ORD-1")
    provider = ScriptedProvider(TransientProviderError("timeout"))

    summary = BatchScheduler(store, make_runner(provider)).run_batch_payouts("2025-03-10")

    assert summary.failed == 1
    assert len(provider.calls) == 3


def test_stop_event_cancels_between_payouts(store, make_runner):
    _seed(store)
    stop = threading.Event()

    class StopAfterFirst(ScriptedProvider):
        def send(self, instruction):
            stop.set()
            return super().send(instruction)

    provider = StopAfterFirst(ProviderResult.ok("REF"))
    summary = BatchScheduler(store, make_runner(provider)).run_batch_payouts("2025-03-10", stop_event=stop)

    assert summary.cancelled is True
    assert summary.processed == 1
    assert store.get_payout("p-1").status == "paid"
    assert store.get_payout("p-2").status == "pending"


def test_selection_failure_is_reported(store, make_runner, monkeypatch):
    def broken(cutoff):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(store, "list_pending_for_cutoff", broken)

    summary = BatchScheduler(store, make_runner(ScriptedProvider(ProviderResult.ok("REF")))).run_batch_payouts(
        "2025-03-10"
    )

    assert summary.processed == 0
    assert summary.error == "selection failed: connection refused"
