# routes/payouts.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.payouts.errors import PayoutNotFound
from app.payouts.generator import create_payouts_for_delivered_order
from app.runtime import PayoutRuntime
from deps.admin import get_runtime, require_admin, require_admin_or_cron
from schemas import BatchRunResponse, CreatedPayoutsResponse, PayoutDetailResponse, PayoutRunResponse

logger = logging.getLogger("payouts.routes")
router = APIRouter(prefix="/v1", tags=["payouts"])


@router.post("/payouts/{payout_id}/run", response_model=PayoutRunResponse)
def run_payout(
    payout_id: str,
    caller: str = Depends(require_admin),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    logger.info("manual payout run payout=%s caller=%s", payout_id, caller)
    result = runtime.runner.run_payout(payout_id)
    return PayoutRunResponse(**asdict(result))


@router.post("/payouts/run-batch", response_model=BatchRunResponse)
def run_batch(
    cutoff: Optional[date] = Query(default=None, alias="date"),
    caller: str = Depends(require_admin_or_cron),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    cutoff = cutoff or datetime.now(timezone.utc).date()
    logger.info("batch run cutoff=%s caller=%s", cutoff, caller)
    summary = runtime.scheduler.run_batch_payouts(cutoff)
    return BatchRunResponse(**asdict(summary))


@router.post("/orders/{order_id}/payouts", response_model=CreatedPayoutsResponse, status_code=201)
def create_order_payouts(
    order_id: str,
    caller: str = Depends(require_admin_or_cron),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    created = create_payouts_for_delivered_order(runtime.store, order_id)
    return CreatedPayoutsResponse(
        order_id=order_id,
        created=[PayoutDetailResponse(**asdict(p)) for p in created],
    )


@router.get("/payouts/{payout_id}", response_model=PayoutDetailResponse)
def get_payout(
    payout_id: str,
    caller: str = Depends(require_admin),
    runtime: PayoutRuntime = Depends(get_runtime),
):
    payout = runtime.store.get_payout(payout_id)
    if payout is None:
        raise PayoutNotFound(payout_id)
    return PayoutDetailResponse(**asdict(payout))
