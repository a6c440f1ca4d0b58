# app/providers/netopia.py
from __future__ import annotations

import logging

from app.providers.base import MisconfiguredProvider, PayoutInstruction, ProviderResult
from app.providers.http import HttpClient, rejection_or_raise

logger = logging.getLogger("payouts.providers.netopia")


class NetopiaPayoutProvider:
    """
    Card / payment-gateway payouts through Netopia.

    send() performs exactly one POST /payouts. A retryable response raises
    TransientProviderError; any other non-2xx comes back as a rejection.
    """

    name = "netopia"

    def __init__(
        self,
        *,
        api_key: str,
        merchant_id: str,
        base_url: str = "https://api.netopia.com",
        timeout_s: float = 20.0,
        http: HttpClient | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.merchant_id = (merchant_id or "").strip()
        self.base_url = (base_url or "").strip().rstrip("/")

        missing = [k for k, v in (("NETOPIA_API_KEY", self.api_key), ("NETOPIA_MERCHANT_ID", self.merchant_id)) if not v]
        if missing:
            raise MisconfiguredProvider(f"{' and '.join(missing)} are required for the netopia provider")

        self.http = http or HttpClient(timeout_s=timeout_s)

    def _headers(self, instruction: PayoutInstruction) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Merchant-ID": self.merchant_id,
            "Idempotency-Key": instruction.reference,
        }

    def send(self, instruction: PayoutInstruction) -> ProviderResult:
        url = f"{self.base_url}/payouts"
        body = {
            "amount": float(instruction.amount),
            "currency": instruction.currency,
            "recipient": {
                "sellerId": instruction.seller_id,
                "payoutId": instruction.payout_id,
            },
            "reference": instruction.reference,
        }

        resp = self.http.post(url, headers=self._headers(instruction), json_body=body)
        logger.info("netopia payout status=%s reference=%s", resp.status_code, instruction.reference)

        if not resp.ok:
            return ProviderResult.rejected(
                rejection_or_raise(resp, label="Netopia"),
                response={"http_status": resp.status_code, "body": resp.json},
            )

        data = resp.json or {}
        provider_ref = data.get("transactionId") or f"NETOPIA-{instruction.payout_id}"
        return ProviderResult.ok(str(provider_ref), response={"http_status": resp.status_code, "body": data})
