# app/payouts/store.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Protocol

from app.payouts.model import LedgerEntry, Order, OrderItem, Payout


class PayoutStore(Protocol):
    """
    Persistence boundary of the payout engine. The payout row's status column
    is the synchronization point: every transition is a compare-and-set that
    reports whether exactly one row changed.
    """

    # payouts
    def get_payout(self, payout_id: str) -> Optional[Payout]: ...

    def claim_pending(self, payout_id: str) -> bool:
        """pending -> processing, only if still pending."""
        ...

    def complete_paid(self, payout_id: str, *, provider_ref: str, paid_at: datetime, entry: LedgerEntry) -> bool:
        """processing -> paid and the ledger insert, in one transaction."""
        ...

    def mark_failed(self, payout_id: str, *, failure_reason: str) -> bool:
        """processing -> failed, only if still processing."""
        ...

    def list_pending_for_cutoff(self, cutoff: date) -> list[Payout]: ...

    def insert_pending_payout(self, payout: Payout) -> bool:
        """False when a payout for (order_id, seller_id) already exists."""
        ...

    # orders (owned upstream, read only)
    def get_order(self, order_id: str) -> Optional[Order]: ...

    def list_order_items(self, order_id: str) -> list[OrderItem]: ...

    # ledger (append only)
    def insert_ledger_entry(self, entry: LedgerEntry) -> bool: ...

    def list_ledger_entries(self, *, entity_type: str, entity_id: str) -> list[LedgerEntry]: ...

    def ledger_totals_by_type(
        self,
        *,
        currency: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """Rows of {type, count, total} for the currency (and window, if given)."""
        ...

    def list_paid_missing_ledger(self) -> list[Payout]: ...

    def list_stuck_processing(self, older_than: datetime) -> list[Payout]:
        """Payouts still processing since before older_than."""
        ...

    def list_payout_ledger_mismatches(self) -> list[dict[str, Any]]:
        """Payouts whose payout-type entries do not sum to -amount or exceed one entry."""
        ...
