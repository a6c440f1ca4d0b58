from __future__ import annotations


class PayoutError(Exception):
    """Fatal, non-retryable payout engine errors. Propagate to the caller."""

    code = "PAYOUT_ERROR"


class PayoutNotFound(PayoutError):
    code = "PAYOUT_NOT_FOUND"

    def __init__(self, payout_id: str):
        super().__init__(f"Payout {payout_id} not found")
        self.payout_id = payout_id


class OrderNotFound(PayoutError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderNotDelivered(PayoutError):
    code = "ORDER_NOT_DELIVERED"

    def __init__(self, order_id: str, status: str):
        super().__init__(f"Order {order_id} is not delivered (status={status})")
        self.order_id = order_id
        self.status = status


class InvalidPayoutInstruction(PayoutError):
    code = "INVALID_PAYOUT_INSTRUCTION"

    def __init__(self, payout_id: str, reason: str):
        super().__init__(f"Invalid instruction for payout {payout_id}: {reason}")
        self.payout_id = payout_id
        self.reason = reason


class PayoutAlreadyFailed(PayoutError):
    code = "PAYOUT_ALREADY_FAILED"

    def __init__(self, payout_id: str):
        super().__init__(f"Payout {payout_id} failed previously and needs an explicit requeue")
        self.payout_id = payout_id


class PayoutStateConflict(PayoutError):
    code = "PAYOUT_STATE_CONFLICT"
