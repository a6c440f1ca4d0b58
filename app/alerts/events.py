from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class PayoutFailedEvent:
    payout_id: str
    reason: str
    occurred_at: datetime


class AlertSink(Protocol):
    def publish(self, event: PayoutFailedEvent) -> None:
        """Must not raise and must not wait for delivery."""
        ...


class NullAlertSink:
    def publish(self, event: PayoutFailedEvent) -> None:
        return None
