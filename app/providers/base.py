# app/providers/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Protocol

SUPPORTED_CURRENCIES = ("RON", "EUR")


class ProviderError(Exception):
    """
    Closed set of provider failures. str(err) is the human-readable reason
    stored verbatim as the payout's failure_reason.
    """

    def __init__(self, reason: str, *, http_status: Optional[int] = None, response: Optional[dict[str, Any]] = None):
        super().__init__(reason)
        self.reason = reason
        self.http_status = http_status
        self.response = response

    def __str__(self) -> str:
        return self.reason


class TransientProviderError(ProviderError):
    """Timeout, transport error, 5xx or rate limit. Retryable."""


class RejectedByProvider(ProviderError):
    """Provider explicitly declined the instruction. Never retried."""


class MisconfiguredProvider(ProviderError):
    """Missing credentials. Raised at construction, never at call time."""


@dataclass(frozen=True)
class PayoutInstruction:
    payout_id: str
    seller_id: str
    amount: Decimal
    currency: str

    @property
    def reference(self) -> str:
        # idempotency-bearing reference, stable across retries
        return f"PAYOUT-{self.payout_id}"


@dataclass(frozen=True)
class ProviderResult:
    accepted: bool
    provider_ref: Optional[str] = None
    reason: Optional[str] = None
    response: Optional[dict[str, Any]] = field(default=None, compare=False)

    @classmethod
    def ok(cls, provider_ref: str, response: Optional[dict[str, Any]] = None) -> "ProviderResult":
        return cls(accepted=True, provider_ref=provider_ref, response=response)

    @classmethod
    def rejected(cls, reason: str, response: Optional[dict[str, Any]] = None) -> "ProviderResult":
        return cls(accepted=False, reason=reason, response=response)


class PayoutProvider(Protocol):
    name: str

    def send(self, instruction: PayoutInstruction) -> ProviderResult: ...


def is_transient_provider_error(exc: BaseException) -> bool:
    # Pure function of the error type: tests can assert exact attempt counts.
    return isinstance(exc, TransientProviderError)


def is_retryable_http(code: int) -> bool:
    # Retry transient / throttling / gateway issues
    return code in (408, 425, 429) or 500 <= code <= 599
