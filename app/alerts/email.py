from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

import httpx

from settings import Settings

logger = logging.getLogger("payouts.alerts.email")

RESEND_API_URL = "https://api.resend.com/emails"


class EmailSendError(Exception):
    pass


class EmailSender(Protocol):
    def send(self, *, to: str, subject: str, html: str, text: Optional[str] = None) -> None: ...


class ResendEmailSender:
    """Transactional email through the Resend HTTP API."""

    def __init__(self, *, api_key: str, from_email: str, timeout_s: float = 10.0, client: httpx.Client | None = None):
        self.api_key = api_key
        self.from_email = from_email
        self._client = client or httpx.Client(timeout=timeout_s)

    def send(self, *, to: str, subject: str, html: str, text: Optional[str] = None) -> None:
        body = {"from": self.from_email, "to": [to], "subject": subject, "html": html}
        if text:
            body["text"] = text
        try:
            r = self._client.post(
                RESEND_API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=body,
            )
        except httpx.HTTPError as exc:
            raise EmailSendError(f"resend transport error: {exc}") from exc
        if r.status_code >= 300:
            raise EmailSendError(f"resend error {r.status_code}: {r.text[:200]}")


class SmtpEmailSender:
    def __init__(self, *, host: str, port: int, user: str, password: str, from_email: str, timeout_s: float = 10.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.timeout_s = timeout_s

    def send(self, *, to: str, subject: str, html: str, text: Optional[str] = None) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        if text:
            msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_s) as server:
                server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailSendError(f"smtp error: {exc}") from exc


class LogOnlyEmailSender:
    def send(self, *, to: str, subject: str, html: str, text: Optional[str] = None) -> None:
        logger.warning("email not configured; alert to=%s subject=%r not delivered", to, subject)


def build_email_sender(s: Settings) -> EmailSender:
    provider = (s.EMAIL_PROVIDER or "").strip().lower()
    if provider == "resend" and s.RESEND_API_KEY:
        return ResendEmailSender(api_key=s.RESEND_API_KEY, from_email=s.EMAIL_FROM)
    if provider == "smtp" and s.SMTP_HOST:
        return SmtpEmailSender(
            host=s.SMTP_HOST,
            port=s.SMTP_PORT,
            user=s.SMTP_USER,
            password=s.SMTP_PASSWORD,
            from_email=s.EMAIL_FROM,
        )
    return LogOnlyEmailSender()
