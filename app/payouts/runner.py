# app/payouts/runner.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from app.alerts.events import AlertSink, NullAlertSink, PayoutFailedEvent
from app.payouts.errors import (
    InvalidPayoutInstruction,
    PayoutAlreadyFailed,
    PayoutNotFound,
    PayoutStateConflict,
)
from app.payouts.model import (
    FAILED,
    PAID,
    PENDING,
    PROCESSING,
    LedgerEntry,
    Payout,
    PayoutRunResult,
    normalize_currency,
)
from app.payouts.state_machine import assert_failed_invariant, assert_paid_invariant, assert_transition
from app.payouts.store import PayoutStore
from app.providers.base import (
    SUPPORTED_CURRENCIES,
    PayoutInstruction,
    PayoutProvider,
    ProviderError,
    ProviderResult,
    RejectedByProvider,
    TransientProviderError,
    is_transient_provider_error,
)
from services.metrics import increment_payout_attempt, increment_payout_result
from services.retry import RetryPolicy, retry_with_logging

logger = logging.getLogger("payouts.runner")

IN_PROGRESS_REASON = "Payout is already being processed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_instruction(payout: Payout) -> PayoutInstruction:
    return PayoutInstruction(
        payout_id=payout.id,
        seller_id=payout.seller_id,
        amount=payout.amount,
        currency=normalize_currency(payout.currency),
    )


def validate_instruction(instruction: PayoutInstruction) -> None:
    if not instruction.payout_id:
        raise InvalidPayoutInstruction(instruction.payout_id, "payout_id is required")
    if not (instruction.seller_id or "").strip():
        raise InvalidPayoutInstruction(instruction.payout_id, "seller_id is required")
    try:
        amount = Decimal(instruction.amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPayoutInstruction(instruction.payout_id, "amount must be a positive number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidPayoutInstruction(instruction.payout_id, "amount must be a positive number")
    if instruction.currency not in SUPPORTED_CURRENCIES:
        raise InvalidPayoutInstruction(
            instruction.payout_id,
            f"currency must be one of {', '.join(SUPPORTED_CURRENCIES)}",
        )


def _existing_result(payout: Payout) -> PayoutRunResult:
    if payout.status == PAID:
        return PayoutRunResult(
            success=True,
            payout_id=payout.id,
            status=PAID,
            provider_ref=payout.provider_ref,
            paid_at=payout.paid_at,
        )
    if payout.status == FAILED:
        return PayoutRunResult(
            success=False,
            payout_id=payout.id,
            status=FAILED,
            failure_reason=payout.failure_reason,
        )
    return PayoutRunResult(
        success=False,
        payout_id=payout.id,
        status=payout.status,
        failure_reason=IN_PROGRESS_REASON,
    )


class PayoutRunner:
    """
    Drives one payout from pending to paid or failed.

    The provider is constructed once at startup and injected. Only the
    provider call is wrapped by the retry executor; state writes are the last
    step of each path, so a crash before them leaves the payout in its last
    durable state.
    """

    def __init__(
        self,
        store: PayoutStore,
        provider: PayoutProvider,
        *,
        alerts: Optional[AlertSink] = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.provider = provider
        self.alerts = alerts or NullAlertSink()
        self.retry_policy = retry_policy
        self.sleep = sleep
        self.clock = clock

    @property
    def provider_name(self) -> str:
        return getattr(self.provider, "name", type(self.provider).__name__)

    def run_payout(self, payout_id: str) -> PayoutRunResult:
        logger.info("processing payout %s", payout_id)

        payout = self.store.get_payout(payout_id)
        if payout is None:
            raise PayoutNotFound(payout_id)

        if payout.status == PAID:
            return _existing_result(payout)
        if payout.status == PROCESSING:
            return _existing_result(payout)
        if payout.status == FAILED:
            raise PayoutAlreadyFailed(payout_id)
        if payout.status != PENDING:
            raise PayoutStateConflict(f"Payout {payout_id} has unknown status {payout.status!r}")

        instruction = build_instruction(payout)
        validate_instruction(instruction)

        assert_transition(PENDING, PROCESSING)
        if not self.store.claim_pending(payout.id):
            # lost the compare-and-set to a concurrent runner
            current = self.store.get_payout(payout.id) or payout
            logger.info("payout %s claimed elsewhere (status=%s)", payout.id, current.status)
            return _existing_result(current)

        logger.info("sending payout %s to provider %s", payout.id, self.provider_name)
        try:
            result = retry_with_logging(
                f"payout {payout.id}",
                lambda: self._send(instruction),
                policy=self.retry_policy,
                is_retryable=is_transient_provider_error,
                sleep=self.sleep,
            )
        except ProviderError as exc:
            return self._fail(payout, str(exc))
        except Exception as exc:
            logger.exception("unexpected provider error payout=%s", payout.id)
            return self._fail(payout, f"{type(exc).__name__}: {exc}")

        return self._complete(payout, result)

    def _send(self, instruction: PayoutInstruction) -> ProviderResult:
        try:
            result = self.provider.send(instruction)
        except TransientProviderError:
            increment_payout_attempt(self.provider_name, "transient")
            raise
        except RejectedByProvider:
            increment_payout_attempt(self.provider_name, "rejected")
            raise

        if not result.accepted:
            increment_payout_attempt(self.provider_name, "rejected")
            raise RejectedByProvider(result.reason or "Rejected by provider", response=result.response)

        increment_payout_attempt(self.provider_name, "accepted")
        return result

    def _complete(self, payout: Payout, result: ProviderResult) -> PayoutRunResult:
        provider_ref = result.provider_ref or f"{self.provider_name.upper()}-{payout.id}"
        paid_at = self.clock()

        assert_transition(PROCESSING, PAID)
        assert_paid_invariant(PAID, provider_ref)
        entry = LedgerEntry.for_paid_payout(payout, provider_ref)

        try:
            completed = self.store.complete_paid(payout.id, provider_ref=provider_ref, paid_at=paid_at, entry=entry)
        except Exception as exc:
            # money has moved; the row stays processing until an operator settles it
            logger.exception("payout %s accepted by provider ref=%s but recording it failed", payout.id, provider_ref)
            self._alert(
                payout.id,
                f"Provider accepted payout (ref={provider_ref}) but recording it failed: {type(exc).__name__}: {exc}",
            )
            raise

        if not completed:
            logger.error("payout %s accepted by provider ref=%s but was no longer processing", payout.id, provider_ref)
            raise PayoutStateConflict(f"Payout {payout.id} left processing while the provider call was in flight")

        increment_payout_result(PAID)
        logger.info("payout %s paid provider_ref=%s", payout.id, provider_ref)
        return PayoutRunResult(
            success=True,
            payout_id=payout.id,
            status=PAID,
            provider_ref=provider_ref,
            paid_at=paid_at,
        )

    def _fail(self, payout: Payout, reason: str) -> PayoutRunResult:
        reason = reason or "Unknown error"
        assert_transition(PROCESSING, FAILED)
        assert_failed_invariant(FAILED, reason)

        try:
            marked = self.store.mark_failed(payout.id, failure_reason=reason)
        except Exception as exc:
            logger.exception("payout %s failed (%s) but recording the failure failed", payout.id, reason)
            self._alert(payout.id, f"{reason} (recording the failure also failed: {type(exc).__name__}: {exc})")
            raise

        if not marked:
            logger.error("payout %s failed (%s) but was no longer processing", payout.id, reason)
            raise PayoutStateConflict(f"Payout {payout.id} left processing while the provider call was in flight")

        increment_payout_result(FAILED)
        logger.warning("payout %s failed: %s", payout.id, reason)
        self._alert(payout.id, reason)
        return PayoutRunResult(
            success=False,
            payout_id=payout.id,
            status=FAILED,
            failure_reason=reason,
        )

    def _alert(self, payout_id: str, reason: str) -> None:
        try:
            self.alerts.publish(PayoutFailedEvent(payout_id=payout_id, reason=reason, occurred_at=self.clock()))
        except Exception:
            logger.exception("failed to publish payout failure alert payout=%s", payout_id)
