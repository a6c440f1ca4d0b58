from __future__ import annotations

import html
import logging
from typing import Iterable

from app.alerts.email import EmailSender
from app.alerts.events import PayoutFailedEvent
from services.metrics import increment_alert

logger = logging.getLogger("payouts.alerts")


class FailureAlertNotifier:
    """Emails every operator address about a failed payout."""

    def __init__(self, sender: EmailSender, recipients: Iterable[str]):
        self.sender = sender
        self.recipients = [r.strip() for r in recipients if r and r.strip()]

    @staticmethod
    def render(event: PayoutFailedEvent) -> tuple[str, str, str]:
        subject = f"Payout failed - {event.payout_id}"
        when = event.occurred_at.isoformat()
        text = (
            f"Payout ID: {event.payout_id}\n"
            f"Reason: {event.reason}\n"
            f"Date: {when}\n"
            "Please investigate and resolve the issue."
        )
        body = (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px">'
            '<h2 style="color: #d32f2f">Payout failed</h2>'
            f"<p>Payout ID: {html.escape(event.payout_id)}</p>"
            f"<p>Reason: {html.escape(event.reason)}</p>"
            f"<p>Date: {html.escape(when)}</p>"
            "<p>Please investigate and resolve the issue.</p>"
            "</div>"
        )
        return subject, body, text

    def handle(self, event: PayoutFailedEvent) -> int:
        """Returns how many recipients were notified. Never raises."""
        subject, body, text = self.render(event)
        delivered = 0
        for to in self.recipients:
            try:
                self.sender.send(to=to, subject=subject, html=body, text=text)
                delivered += 1
                increment_alert("sent")
            except Exception:
                increment_alert("error")
                logger.exception("failed to send payout failure alert payout=%s to=%s", event.payout_id, to)
        return delivered
