from __future__ import annotations

import json
import threading
from datetime import datetime, timezone

import httpx
import pytest

from app.alerts.dispatcher import AlertDispatcher, SyncAlertSink
from app.alerts.email import (
    RESEND_API_URL,
    EmailSendError,
    LogOnlyEmailSender,
    ResendEmailSender,
    SmtpEmailSender,
    build_email_sender,
)
from app.alerts.events import PayoutFailedEvent
from app.alerts.notifier import FailureAlertNotifier
from services.metrics import get_counter
from settings import Settings, admin_emails

EVENT = PayoutFailedEvent(
    payout_id="p-1",
    reason="Netopia API error: 400 - <Invalid IBAN>",
    occurred_at=datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc),
)


class _RecordingSender:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, *, to, subject, html, text=None):
        if to in self.fail_for:
            raise EmailSendError("mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})


def test_render_contains_payout_reason_and_date():
    subject, body, text = FailureAlertNotifier.render(EVENT)

    assert subject == "Payout failed - p-1"
    assert "Reason: Netopia API error: 400 - <Invalid IBAN>" in text
    assert "2025-03-10T12:00:00+00:00" in text
    # reason is escaped in the html part
    assert "&lt;Invalid IBAN&gt;" in body


def test_notifier_sends_to_every_recipient():
    sender = _RecordingSender()
    notifier = FailureAlertNotifier(sender, ["ops@pots.ro", " finance@pots.ro ", ""])

    delivered = notifier.handle(EVENT)

    assert delivered == 2
    assert [m["to"] for m in sender.sent] == ["ops@pots.ro", "finance@pots.ro"]
    assert get_counter("payout_alerts_total", {"result": "sent"}) == 2


def test_notifier_failure_for_one_recipient_does_not_stop_others():
    sender = _RecordingSender(fail_for={"ops@pots.ro"})
    notifier = FailureAlertNotifier(sender, ["ops@pots.ro", "finance@pots.ro"])

    assert notifier.handle(EVENT) == 1
    assert get_counter("payout_alerts_total", {"result": "error"}) == 1


def test_dispatcher_delivers_in_background_and_drains_on_stop():
    seen = []
    done = threading.Event()

    def handler(event):
        seen.append(event.payout_id)
        if len(seen) == 2:
            done.set()

    dispatcher = AlertDispatcher(handler)
    dispatcher.start()
    dispatcher.publish(EVENT)
    dispatcher.publish(PayoutFailedEvent("p-2", "declined", EVENT.occurred_at))
    assert done.wait(5)
    dispatcher.stop()

    assert seen == ["p-1", "p-2"]


def test_dispatcher_survives_handler_errors():
    seen = []

    def handler(event):
        if event.payout_id == "p-1":
            raise RuntimeError("smtp down")
        seen.append(event.payout_id)

    dispatcher = AlertDispatcher(handler)
    dispatcher.start()
    dispatcher.publish(EVENT)
    dispatcher.publish(PayoutFailedEvent("p-2", "declined", EVENT.occurred_at))
    dispatcher.stop()

    assert seen == ["p-2"]


def test_dispatcher_drops_when_full(caplog):
    dispatcher = AlertDispatcher(lambda e: None, maxsize=1)
    dispatcher.publish(EVENT)
    dispatcher.publish(EVENT)
    assert any("alert queue full" in r.message for r in caplog.records)


def test_sync_sink_swallows_handler_errors():
    def handler(event):
        raise RuntimeError("boom")

    SyncAlertSink(handler).publish(EVENT)


def test_resend_sender_posts_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-1"})

    sender = ResendEmailSender(
        api_key="re_123",
        from_email="Pots.ro <no-reply@pots.ro>",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    sender.send(to="ops@pots.ro", subject="s", html="<p>h</p>", text="t")

    assert seen["url"] == RESEND_API_URL
    assert seen["auth"] == "Bearer re_123"
    assert seen["body"]["to"] == ["ops@pots.ro"]
    assert seen["body"]["text"] == "t"


def test_resend_sender_raises_on_error_status():
    sender = ResendEmailSender(
        api_key="re_123",
        from_email="x@pots.ro",
        client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(422, text="bad"))),
    )
    with pytest.raises(EmailSendError):
        sender.send(to="ops@pots.ro", subject="s", html="h")


def test_build_email_sender_selection():
    assert isinstance(
        build_email_sender(Settings(_env_file=None, EMAIL_PROVIDER="resend", RESEND_API_KEY="re_1")),
        ResendEmailSender,
    )
    assert isinstance(
        build_email_sender(Settings(_env_file=None, EMAIL_PROVIDER="smtp", SMTP_HOST="smtp.test")),
        SmtpEmailSender,
    )
    assert isinstance(
        build_email_sender(Settings(_env_file=None, EMAIL_PROVIDER="resend", RESEND_API_KEY="")),
        LogOnlyEmailSender,
    )


def test_admin_emails_parsing():
    assert admin_emails("a@pots.ro, b@pots.ro,,") == ["a@pots.ro", "b@pots.ro"]
