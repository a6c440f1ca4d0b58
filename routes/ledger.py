# routes/ledger.py
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.runtime import PayoutRuntime
from deps.admin import get_runtime, require_admin, require_admin_or_cron
from schemas import (
    BalanceResponse,
    FinancialReportResponse,
    IntegrityResponse,
    LedgerEntryResponse,
    ReconcileResponse,
)

router = APIRouter(prefix="/v1/ledger", tags=["ledger"])

DEFAULT_REPORT_DAYS = 30


@router.get("/balance", response_model=BalanceResponse)
def balance(
    currency: str = Query(default="RON", min_length=3, max_length=3),
    caller: str = Depends(require_admin),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    return runtime.ledger.platform_balance(currency.upper())


@router.get("/report", response_model=FinancialReportResponse)
def report(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    currency: str = Query(default="RON", min_length=3, max_length=3),
    caller: str = Depends(require_admin),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(days=DEFAULT_REPORT_DAYS)
    if start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    return runtime.ledger.financial_report(start, end, currency.upper())


@router.get("/entities/{entity_type}/{entity_id}", response_model=List[LedgerEntryResponse])
def entity_history(
    entity_type: str,
    entity_id: str,
    caller: str = Depends(require_admin),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    return [LedgerEntryResponse(**asdict(e)) for e in runtime.ledger.entity_history(entity_type, entity_id)]


@router.get("/integrity", response_model=IntegrityResponse)
def integrity(
    caller: str = Depends(require_admin),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    return runtime.ledger.verify_integrity()


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(
    repair: bool = False,
    caller: str = Depends(require_admin_or_cron),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    return runtime.ledger.reconcile_missing_entries(repair=repair)
