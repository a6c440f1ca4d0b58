from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

from app.payouts.model import LedgerEntry, to_money
from app.payouts.store import PayoutStore
from services.metrics import increment_ledger_repair

logger = logging.getLogger("payouts.ledger")

ZERO = Decimal("0.00")

DEFAULT_STUCK_AFTER = timedelta(minutes=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _summarize(rows: list[dict[str, Any]], currency: str) -> dict[str, Any]:
    total_in = ZERO
    total_out = ZERO
    for row in rows:
        amount = to_money(row["total"])
        if amount > 0:
            total_in += amount
        else:
            total_out += abs(amount)
    return {
        "total_in": total_in,
        "total_out": total_out,
        "balance": total_in - total_out,
        "currency": currency,
    }


class LedgerService:
    """
    Read side of the append-only ledger plus the reconciliation sweep for paid
    payouts that lack their ledger entry.
    """

    def __init__(
        self,
        store: PayoutStore,
        *,
        stuck_after: timedelta = DEFAULT_STUCK_AFTER,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.stuck_after = stuck_after
        self.clock = clock

    def entity_history(self, entity_type: str, entity_id: str) -> list[LedgerEntry]:
        return self.store.list_ledger_entries(entity_type=entity_type, entity_id=entity_id)

    def platform_balance(self, currency: str = "RON") -> dict[str, Any]:
        rows = self.store.ledger_totals_by_type(currency=currency)
        return _summarize(rows, currency)

    def financial_report(self, start: datetime, end: datetime, currency: str = "RON") -> dict[str, Any]:
        rows = self.store.ledger_totals_by_type(currency=currency, start=start, end=end)
        return {
            "period": {"start": start, "end": end},
            "currency": currency,
            "summary": _summarize(rows, currency),
            "breakdown": [
                {"type": r["type"], "count": int(r["count"]), "total_amount": to_money(r["total"])}
                for r in rows
            ],
        }

    def verify_integrity(self) -> dict[str, Any]:
        issues: list[str] = []

        for m in self.store.list_payout_ledger_mismatches():
            if m["entry_count"] > 1:
                issues.append(f"payout {m['payout_id']} has {m['entry_count']} ledger entries")
            if m["ledger_total"] != -m["amount"]:
                issues.append(
                    f"payout {m['payout_id']} ledger total {m['ledger_total']} does not match -{m['amount']}"
                )

        missing = self.store.list_paid_missing_ledger()
        for payout in missing:
            issues.append(f"payout {payout.id} is paid but has no ledger entry")

        # a crash or failed write after the provider call leaves the row processing
        stuck = self.store.list_stuck_processing(self.clock() - self.stuck_after)
        for payout in stuck:
            since = payout.claimed_at or payout.created_at
            issues.append(f"payout {payout.id} stuck in processing since {since.isoformat() if since else 'unknown'}")

        return {
            "valid": not issues,
            "issues": issues,
            "missing_entries": len(missing),
            "stuck_processing": len(stuck),
        }

    def reconcile_missing_entries(self, *, repair: bool = False) -> dict[str, Any]:
        missing = self.store.list_paid_missing_ledger()
        repaired: list[str] = []

        for payout in missing:
            logger.warning("paid payout %s has no ledger entry (repair=%s)", payout.id, repair)
            if not repair:
                continue
            entry = LedgerEntry.for_paid_payout(payout, payout.provider_ref)
            entry = replace(entry, meta={**entry.meta, "repaired": True})
            if self.store.insert_ledger_entry(entry):
                increment_ledger_repair()
                repaired.append(payout.id)

        return {
            "checked": len(missing),
            "missing": [p.id for p in missing],
            "repaired": repaired,
        }

