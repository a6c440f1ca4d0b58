# app/providers/factory.py
from __future__ import annotations

import logging

from app.providers.bank_transfer import BankTransferPayoutProvider
from app.providers.base import MisconfiguredProvider, PayoutProvider
from app.providers.netopia import NetopiaPayoutProvider
from app.providers.simulated import SimulatedPayoutProvider
from settings import Settings

logger = logging.getLogger("payouts.providers")

SUPPORTED_PROVIDERS = {"MOCK", "SIMULATED", "NETOPIA", "TRANSFER"}


def _normalize_provider(value: str) -> str:
    return (value or "").strip().upper().replace("-", "_").replace(" ", "_")


def build_simulated(s: Settings) -> SimulatedPayoutProvider:
    return SimulatedPayoutProvider(
        min_latency_ms=s.SIMULATED_MIN_LATENCY_MS,
        max_latency_ms=s.SIMULATED_MAX_LATENCY_MS,
        failure_rate=s.SIMULATED_FAILURE_RATE,
    )


def build_provider(s: Settings) -> PayoutProvider:
    """
    Resolve PAYOUT_PROVIDER once, at process startup. A real provider that
    cannot be constructed falls back to the simulated one.
    """
    key = _normalize_provider(s.PAYOUT_PROVIDER)

    try:
        if key == "NETOPIA":
            return NetopiaPayoutProvider(
                api_key=s.NETOPIA_API_KEY,
                merchant_id=s.NETOPIA_MERCHANT_ID,
                base_url=s.NETOPIA_API_URL,
                timeout_s=s.PAYOUT_HTTP_TIMEOUT_S,
            )
        if key == "TRANSFER":
            return BankTransferPayoutProvider(
                api_key=s.TRANSFER_BANK_API_KEY,
                sender_iban=s.TRANSFER_IBAN_SENDER,
                base_url=s.TRANSFER_BANK_API_URL,
                timeout_s=s.PAYOUT_HTTP_TIMEOUT_S,
            )
    except MisconfiguredProvider as exc:
        logger.warning("payout provider %s cannot be initialised, using simulated: %s", key.lower(), exc)
        return build_simulated(s)

    if key not in SUPPORTED_PROVIDERS:
        logger.warning("unknown PAYOUT_PROVIDER=%r, using simulated", s.PAYOUT_PROVIDER)
    else:
        logger.info("using simulated payout provider")
    return build_simulated(s)
