# app/providers/bank_transfer.py
from __future__ import annotations

import logging

from app.providers.base import MisconfiguredProvider, PayoutInstruction, ProviderResult
from app.providers.http import HttpClient, rejection_or_raise

logger = logging.getLogger("payouts.providers.bank_transfer")


class BankTransferPayoutProvider:
    """Bank transfer gateway: POST /transfers from the platform IBAN."""

    name = "transfer"

    def __init__(
        self,
        *,
        api_key: str,
        sender_iban: str,
        base_url: str = "https://api.transferbank.ro",
        timeout_s: float = 20.0,
        http: HttpClient | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.sender_iban = (sender_iban or "").strip().replace(" ", "").upper()
        self.base_url = (base_url or "").strip().rstrip("/")

        missing = [k for k, v in (("TRANSFER_BANK_API_KEY", self.api_key), ("TRANSFER_IBAN_SENDER", self.sender_iban)) if not v]
        if missing:
            raise MisconfiguredProvider(f"{' and '.join(missing)} are required for the transfer provider")

        self.http = http or HttpClient(timeout_s=timeout_s)

    def send(self, instruction: PayoutInstruction) -> ProviderResult:
        url = f"{self.base_url}/transfers"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Idempotency-Key": instruction.reference,
        }
        body = {
            "fromIban": self.sender_iban,
            "amount": float(instruction.amount),
            "currency": instruction.currency,
            "reference": instruction.reference,
            "description": f"Payout to seller {instruction.seller_id}",
            "recipient": {
                "sellerId": instruction.seller_id,
                "payoutId": instruction.payout_id,
            },
        }

        resp = self.http.post(url, headers=headers, json_body=body)
        logger.info("bank transfer status=%s reference=%s", resp.status_code, instruction.reference)

        if not resp.ok:
            return ProviderResult.rejected(
                rejection_or_raise(resp, label="Transfer Bank"),
                response={"http_status": resp.status_code, "body": resp.json},
            )

        data = resp.json or {}
        provider_ref = data.get("transferId") or f"TRANSFER-{instruction.payout_id}"
        return ProviderResult.ok(str(provider_ref), response={"http_status": resp.status_code, "body": data})
