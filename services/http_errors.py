# services/http_errors.py
from __future__ import annotations

from app.payouts.errors import PayoutError
from app.payouts.state_machine import InvalidTransition

PAYOUT_ERROR_HTTP_MAP: dict[str, int] = {
    "PAYOUT_NOT_FOUND": 404,
    "ORDER_NOT_FOUND": 404,
    "ORDER_NOT_DELIVERED": 409,
    "PAYOUT_ALREADY_FAILED": 409,
    "PAYOUT_STATE_CONFLICT": 409,
    "INVALID_PAYOUT_INSTRUCTION": 422,
}


def status_for(exc: Exception) -> int:
    if isinstance(exc, InvalidTransition):
        return 409
    code = getattr(exc, "code", None)
    if isinstance(exc, PayoutError) and code in PAYOUT_ERROR_HTTP_MAP:
        return PAYOUT_ERROR_HTTP_MAP[code]
    return 500


def error_body(exc: Exception) -> dict:
    status = status_for(exc)
    if status == 500:
        return {"detail": "Internal server error"}
    return {"detail": str(exc), "code": getattr(exc, "code", "INVALID_TRANSITION")}

