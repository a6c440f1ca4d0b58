from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

PENDING = "pending"
PROCESSING = "processing"
PAID = "paid"
FAILED = "failed"

TERMINAL_STATUSES = (PAID, FAILED)

LEDGER_TYPE_PAYOUT = "payout"
ENTITY_TYPE_PAYOUT = "payout"

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def cents_to_money(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


def normalize_currency(value: Optional[str]) -> str:
    return (value or "").strip().upper()


@dataclass(frozen=True)
class Payout:
    id: str
    seller_id: str
    order_id: str
    amount: Decimal
    commission_amount: Decimal
    currency: str
    status: str = PENDING
    provider_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None

    def with_changes(self, **changes: Any) -> "Payout":
        return replace(self, **changes)


@dataclass(frozen=True)
class LedgerEntry:
    type: str
    entity_type: str
    entity_id: str
    amount: Decimal
    currency: str
    meta: dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def for_paid_payout(cls, payout: Payout, provider_ref: Optional[str]) -> "LedgerEntry":
        # negative = funds leaving the platform
        return cls(
            type=LEDGER_TYPE_PAYOUT,
            entity_type=ENTITY_TYPE_PAYOUT,
            entity_id=payout.id,
            amount=-to_money(payout.amount),
            currency=normalize_currency(payout.currency),
            meta={
                "sellerId": payout.seller_id,
                "orderId": payout.order_id,
                "providerRef": provider_ref,
            },
        )


@dataclass(frozen=True)
class Order:
    id: str
    status: str
    currency: str
    delivered_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderItem:
    order_id: str
    seller_id: str
    seller_due_cents: int
    commission_amount_cents: int


@dataclass(frozen=True)
class PayoutRunResult:
    success: bool
    payout_id: str
    status: str
    provider_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "payout_id": self.payout_id,
            "status": self.status,
            "provider_ref": self.provider_ref,
            "failure_reason": self.failure_reason,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }


@dataclass
class BatchRunSummary:
    cutoff: str
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False
    error: Optional[str] = None
    results: list[PayoutRunResult] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "cutoff": self.cutoff,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "cancelled": self.cancelled,
            "error": self.error,
            "results": [r.as_dict() for r in self.results],
        }
