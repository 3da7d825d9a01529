"""Tests for environment-backed settings."""

from __future__ import annotations

import pytest

from did_v1.errors import InvalidModeError
from did_v1.settings import DidV1Settings, default_hostname, get_settings

_ENV = (
    "DID_V1_MODE",
    "DID_V1_HOSTNAME",
    "DID_V1_ACCELERATOR",
    "DID_V1_TIMEOUT",
    "DID_V1_VERIFY_TLS",
    "DID_V1_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host environment out of settings tests."""

    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = get_settings()

    assert settings.mode == "dev"
    assert settings.hostname is None
    assert settings.accelerator is None
    assert settings.timeout_seconds == 15.0
    assert settings.effective_hostname == "node-1.veres.one.local:45443"
    assert settings.effective_verify_tls is False
    assert settings.log_level == "WARNING"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DID_V1_MODE", " Test ")
    monkeypatch.setenv("DID_V1_HOSTNAME", "ledger.example")
    monkeypatch.setenv("DID_V1_ACCELERATOR", "accelerator.example")
    monkeypatch.setenv("DID_V1_TIMEOUT", "2.5")

    settings = get_settings()

    assert settings.mode == "test"
    assert settings.effective_hostname == "ledger.example"
    assert settings.accelerator == "accelerator.example"
    assert settings.timeout_seconds == 2.5
    assert settings.effective_verify_tls is True


@pytest.mark.parametrize("raw", ["staging", "", "42"])
def test_unknown_mode_falls_back_to_dev(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("DID_V1_MODE", raw)
    assert get_settings().mode == "dev"


@pytest.mark.parametrize("raw", ["invalid", "0", "-3"])
def test_bad_timeout_keeps_default(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("DID_V1_TIMEOUT", raw)
    assert get_settings().timeout_seconds == 15.0


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("ON", True), ("0", False), ("no", False), ("maybe", None)],
)
def test_verify_tls_override(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool | None
) -> None:
    monkeypatch.setenv("DID_V1_VERIFY_TLS", raw)
    assert get_settings().verify_tls is expected


def test_blank_hostnames_are_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DID_V1_HOSTNAME", "   ")
    monkeypatch.setenv("DID_V1_ACCELERATOR", "")

    settings = get_settings()

    assert settings.hostname is None
    assert settings.accelerator is None


def test_keyword_construction() -> None:
    settings = DidV1Settings(DID_V1_MODE="live", DID_V1_VERIFY_TLS=False)

    assert settings.effective_hostname == "veres.one"
    assert settings.effective_verify_tls is False


@pytest.mark.parametrize(
    ("mode", "hostname"),
    [
        ("dev", "node-1.veres.one.local:45443"),
        ("test", "genesis.testnet.veres.one"),
        ("live", "veres.one"),
    ],
)
def test_default_hostname(mode: str, hostname: str) -> None:
    assert default_hostname(mode) == hostname


def test_default_hostname_unknown_mode() -> None:
    with pytest.raises(InvalidModeError):
        default_hostname("staging")
