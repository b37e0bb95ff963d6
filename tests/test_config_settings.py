import math

import pytest

from burnwatch.config import Settings


def test_cron_secret_legacy_alias(monkeypatch):
    """Cron secret should load from the legacy CRON_SECRET_TOKEN name when present."""

    monkeypatch.delenv("CRON_SECRET", raising=False)
    monkeypatch.setenv("CRON_SECRET_TOKEN", "alias-from-legacy")

    settings = Settings(_env_file=None)

    assert settings.cron_secret == "alias-from-legacy"
    assert settings.has_cron_secret is True


def test_cron_secret_direct_env(monkeypatch):
    """CRON_SECRET remains the primary source."""

    monkeypatch.setenv("CRON_SECRET", "primary-secret")
    monkeypatch.setenv("CRON_SECRET_TOKEN", "alias-from-legacy")

    settings = Settings(_env_file=None)

    assert settings.cron_secret == "primary-secret"


def test_locked_addresses_are_split_and_trimmed(monkeypatch):
    monkeypatch.setenv("LOCKED_ADDRESSES", " 0xabc , ,0xdef")

    settings = Settings(_env_file=None)

    assert settings.locked_address_list == ["0xabc", "0xdef"]


def test_lookback_covers_widest_window_with_headroom(monkeypatch):
    monkeypatch.setenv("BLOCK_TIME_SECONDS", "3")

    settings = Settings(_env_file=None)

    assert settings.lookback_blocks == math.ceil(86400 / 3 * 1.1)
    assert settings.lookback_blocks * 3 >= 86400


def test_refresh_tier_defaults():
    settings = Settings(_env_file=None)

    assert (settings.refresh_short_seconds, settings.refresh_medium_seconds, settings.refresh_long_seconds) == (
        300,
        1800,
        3600,
    )
    assert settings.sweep_batch_size == 10
    assert settings.scheduler_enabled is False


def test_rpc_url_for_unknown_chain_raises():
    settings = Settings(_env_file=None)

    assert settings.rpc_url_for_chain("BSC") == settings.bsc_rpc_url
    with pytest.raises(ValueError):
        settings.rpc_url_for_chain("sol")
