"""Environment-backed settings primitives for :mod:`did_v1`."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_HOSTNAMES, DEFAULT_MODE, MODES
from .errors import InvalidModeError

__all__ = ["DidV1Settings", "default_hostname", "get_settings"]


class DidV1Settings(BaseSettings):
    """Expose environment-derived configuration knobs for the ledger driver.

    Attributes:
        mode: Ledger mode, one of ``dev``, ``test`` or ``live``. Unknown
            values fall back to ``dev``.
        hostname: Ledger hostname override; derived from ``mode`` when unset.
        accelerator: Accelerator hostname; when set, writes request their
            eligibility proof from it instead of the ticket service.
        timeout_seconds: HTTP timeout applied to every ledger request.
        verify_tls: Certificate verification override. Defaults to off in
            ``dev`` mode (self-signed local nodes) and on otherwise.
        log_level: Log level name used by the CLI.
    """

    mode: str = Field(default=DEFAULT_MODE, alias="DID_V1_MODE")
    hostname: str | None = Field(default=None, alias="DID_V1_HOSTNAME")
    accelerator: str | None = Field(default=None, alias="DID_V1_ACCELERATOR")
    timeout_seconds: float = Field(default=15.0, alias="DID_V1_TIMEOUT")
    verify_tls: bool | None = Field(default=None, alias="DID_V1_VERIFY_TLS")
    log_level: str = Field(default="WARNING", alias="DID_V1_LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: object) -> str:
        """Normalise the mode while tolerating malformed input."""

        if isinstance(value, str) and value.strip().lower() in MODES:
            return value.strip().lower()
        return DEFAULT_MODE

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def _parse_timeout(cls, value: object) -> float:
        """Parse the timeout, keeping the default for malformed or non-positive values."""

        try:
            parsed = float(value.strip() if isinstance(value, str) else value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 15.0
        return parsed if parsed > 0 else 15.0

    @field_validator("verify_tls", mode="before")
    @classmethod
    def _parse_optional_bool(cls, value: object) -> bool | None:
        """Parse the TLS override, treating unrecognised values as unset."""

        if value is None or isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
        return None

    @field_validator("hostname", "accelerator", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def effective_hostname(self) -> str:
        return self.hostname or default_hostname(self.mode)

    @property
    def effective_verify_tls(self) -> bool:
        if self.verify_tls is not None:
            return self.verify_tls
        return self.mode != "dev"


def default_hostname(mode: str) -> str:
    """Return the ledger hostname for ``mode``.

    Raises:
        InvalidModeError: If ``mode`` is unknown.
    """

    try:
        return DEFAULT_HOSTNAMES[mode]
    except KeyError:
        raise InvalidModeError(f'Unknown mode: "{mode}".') from None


def get_settings() -> DidV1Settings:
    """Return a :class:`DidV1Settings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return DidV1Settings()
