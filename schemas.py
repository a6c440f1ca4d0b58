# schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


# -------- PAYOUTS --------
class PayoutRunResponse(BaseModel):
    success: bool
    payout_id: str
    status: str
    provider_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None


class BatchRunResponse(BaseModel):
    cutoff: str
    processed: int
    successful: int
    failed: int
    skipped: int
    cancelled: bool = False
    error: Optional[str] = None
    results: List[PayoutRunResponse]


class PayoutDetailResponse(BaseModel):
    id: str
    seller_id: str
    order_id: str
    amount: Decimal
    commission_amount: Decimal
    currency: str
    status: str
    provider_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class CreatedPayoutsResponse(BaseModel):
    order_id: str
    created: List[PayoutDetailResponse]


# -------- LEDGER --------
class LedgerEntryResponse(BaseModel):
    id: Optional[str] = None
    type: str
    entity_type: str
    entity_id: str
    amount: Decimal
    currency: str
    meta: Dict[str, Any] = {}
    created_at: Optional[datetime] = None


class BalanceResponse(BaseModel):
    total_in: Decimal
    total_out: Decimal
    balance: Decimal
    currency: str


class ReportBreakdownItem(BaseModel):
    type: str
    count: int
    total_amount: Decimal


class ReportPeriod(BaseModel):
    start: datetime
    end: datetime


class FinancialReportResponse(BaseModel):
    period: ReportPeriod
    currency: str
    summary: BalanceResponse
    breakdown: List[ReportBreakdownItem]


class IntegrityResponse(BaseModel):
    valid: bool
    issues: List[str]
    missing_entries: int
    stuck_processing: int = 0


class ReconcileResponse(BaseModel):
    checked: int
    missing: List[str]
    repaired: List[str]
