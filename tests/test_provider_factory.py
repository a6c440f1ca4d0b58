from __future__ import annotations

from app.providers.bank_transfer import BankTransferPayoutProvider
from app.providers.factory import build_provider
from app.providers.netopia import NetopiaPayoutProvider
from app.providers.simulated import SimulatedPayoutProvider
from settings import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_default_is_simulated():
    assert isinstance(build_provider(_settings(PAYOUT_PROVIDER="mock")), SimulatedPayoutProvider)


def test_netopia_selected_when_configured():
    provider = build_provider(
        _settings(PAYOUT_PROVIDER="netopia", NETOPIA_API_KEY="k", NETOPIA_MERCHANT_ID="m")
    )
    assert isinstance(provider, NetopiaPayoutProvider)
    assert provider.name == "netopia"


def test_transfer_selected_case_insensitively():
    provider = build_provider(
        _settings(PAYOUT_PROVIDER=" Transfer ", TRANSFER_BANK_API_KEY="k", TRANSFER_IBAN_SENDER="RO49AAAA")
    )
    assert isinstance(provider, BankTransferPayoutProvider)


def test_missing_credentials_fall_back_to_simulated(caplog):
    provider = build_provider(_settings(PAYOUT_PROVIDER="netopia", NETOPIA_API_KEY="", NETOPIA_MERCHANT_ID=""))
    assert isinstance(provider, SimulatedPayoutProvider)
    assert any("cannot be initialised" in r.message for r in caplog.records)


def test_unknown_provider_falls_back_to_simulated():
    assert isinstance(build_provider(_settings(PAYOUT_PROVIDER="paypal")), SimulatedPayoutProvider)
