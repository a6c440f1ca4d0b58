# app/payouts/state_machine.py
from app.payouts.model import FAILED, PAID, PENDING, PROCESSING


class InvalidTransition(Exception):
    pass


ALLOWED = {
    PENDING: {PROCESSING},
    PROCESSING: {PAID, FAILED},
    PAID: set(),
    FAILED: set(),
}


def assert_transition(old: str, new: str) -> None:
    if new not in ALLOWED.get(old, set()):
        raise InvalidTransition(f"Illegal payout transition: {old} -> {new}")


def assert_paid_invariant(new_status: str, provider_ref: str | None) -> None:
    """
    Invariant: if payout is paid, it MUST have provider_ref.
    """
    if new_status == PAID and not provider_ref:
        raise ValueError("Invariant violation: status=paid requires provider_ref")


def assert_failed_invariant(new_status: str, failure_reason: str | None) -> None:
    if new_status == FAILED and not failure_reason:
        raise ValueError("Invariant violation: status=failed requires failure_reason")
