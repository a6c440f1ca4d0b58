from __future__ import annotations

import pytest

from settings import Settings, settings, validate_env_settings


def test_validate_env_allows_dev_missing(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "dev", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", "", raising=False)
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "", raising=False)
    validate_env_settings()


def test_validate_env_staging_fails_on_missing(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "staging", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://example", raising=False)
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "", raising=False)
    monkeypatch.setattr(settings, "CRON_SECRET", "", raising=False)
    monkeypatch.setattr(settings, "PAYOUT_PROVIDER", "netopia", raising=False)
    monkeypatch.setattr(settings, "NETOPIA_API_KEY", "", raising=False)
    monkeypatch.setattr(settings, "NETOPIA_MERCHANT_ID", "m-1", raising=False)

    with pytest.raises(RuntimeError) as exc:
        validate_env_settings()

    message = str(exc.value)
    assert "ADMIN_API_KEY" in message
    assert "CRON_SECRET" in message
    assert "NETOPIA_API_KEY" in message
    assert "NETOPIA_MERCHANT_ID" not in message
    assert "DATABASE_URL" not in message


def test_validate_env_prod_requires_transfer_keys():
    s = Settings(
        _env_file=None,
        ENV="prod",
        DATABASE_URL="postgresql://example",
        ADMIN_API_KEY="a",
        CRON_SECRET="c",
        PAYOUT_PROVIDER="transfer",
    )
    with pytest.raises(RuntimeError) as exc:
        validate_env_settings(s)
    assert "TRANSFER_BANK_API_KEY" in str(exc.value)
    assert "TRANSFER_IBAN_SENDER" in str(exc.value)


def test_validate_env_prod_ok_when_complete():
    s = Settings(
        _env_file=None,
        ENV="prod",
        DATABASE_URL="postgresql://example",
        ADMIN_API_KEY="a",
        CRON_SECRET="c",
        PAYOUT_PROVIDER="simulated",
    )
    validate_env_settings(s)


def test_retry_defaults_match_one_two_four_seconds():
    s = Settings(_env_file=None)
    assert s.PAYOUT_RETRY_MAX_ATTEMPTS == 3
    assert s.PAYOUT_RETRY_BASE_DELAY_MS == 1000
    assert s.PAYOUT_RETRY_MAX_DELAY_MS == 4000


def test_failure_rate_must_be_a_probability():
    with pytest.raises(ValueError):
        Settings(_env_file=None, SIMULATED_FAILURE_RATE=1.5)
