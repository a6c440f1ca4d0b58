from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from app.providers.bank_transfer import BankTransferPayoutProvider
from app.providers.base import MisconfiguredProvider, PayoutInstruction, TransientProviderError
from app.providers.http import HttpClient


def _provider(handler) -> BankTransferPayoutProvider:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return BankTransferPayoutProvider(
        api_key="bank-key",
        sender_iban="ro49 aaaa 1b31 0075 9384 0000",
        base_url="https://bank.test",
        http=HttpClient(client=client),
    )


INSTRUCTION = PayoutInstruction(payout_id="p-2", seller_id="seller-3", amount=Decimal("42.00"), currency="EUR")


def test_transfer_sends_expected_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"transferId": "TRF-9"})

    result = _provider(handler).send(INSTRUCTION)

    assert result.accepted is True
    assert result.provider_ref == "TRF-9"
    assert seen["url"] == "https://bank.test/transfers"
    assert seen["headers"]["Authorization"] == "Bearer bank-key"
    assert seen["headers"]["Idempotency-Key"] == "PAYOUT-p-2"
    assert seen["body"]["fromIban"] == "RO49AAAA1B31007593840000"
    assert seen["body"]["amount"] == 42.0
    assert seen["body"]["currency"] == "EUR"
    assert seen["body"]["description"] == "Payout to seller seller-3"


def test_transfer_synthesizes_ref_when_missing():
    result = _provider(lambda request: httpx.Response(200, json={"status": "queued"})).send(INSTRUCTION)
    assert result.provider_ref == "TRANSFER-p-2"


def test_transfer_rejection_reason():
    result = _provider(lambda request: httpx.Response(403, json={"error": "account blocked"})).send(INSTRUCTION)
    assert result.accepted is False
    assert result.reason == "Transfer Bank API error: 403 - account blocked"


def test_transfer_server_error_is_transient():
    with pytest.raises(TransientProviderError):
        _provider(lambda request: httpx.Response(502, text="bad gateway")).send(INSTRUCTION)


def test_transfer_connect_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransientProviderError):
        _provider(handler).send(INSTRUCTION)


def test_transfer_requires_credentials():
    with pytest.raises(MisconfiguredProvider):
        BankTransferPayoutProvider(api_key="k", sender_iban="  ")
