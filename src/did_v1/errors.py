"""Typed failures raised or returned by the did:v1 toolkit.

Validation queries return these inside a
:class:`~did_v1.types.ValidationResult`; action operations raise them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

__all__ = [
    "DidV1Error",
    "InvalidModeError",
    "MissingKeyError",
    "MalformedIdError",
    "ModeMismatchError",
    "InvalidCharacterError",
    "MissingInvocationKeyError",
    "FingerprintMismatchError",
    "InvalidMethodIdError",
    "UnsupportedKeyTypeError",
    "UnknownProofPurposeError",
    "KeyNotFoundError",
    "DuplicateServiceError",
    "MissingFieldError",
    "InvalidServiceError",
    "NotObservingError",
    "MissingAuthDocumentError",
    "EligibilityProofError",
    "InvalidProofError",
    "ContextNotFoundError",
    "LedgerClientError",
    "NotFoundError",
    "NetworkError",
]


class DidV1Error(Exception):
    """Base class carrying a stable ``name`` and optional ``details``."""

    def __init__(
        self, message: str, *, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    @property
    def name(self) -> str:
        return type(self).__name__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DidV1Error):
            return NotImplemented
        return (self.name, self.message) == (other.name, other.message)

    def __hash__(self) -> int:
        return hash((self.name, self.message))


class InvalidModeError(DidV1Error, ValueError):
    """Raised when a ledger mode is outside ``dev``/``test``/``live``."""


class MissingKeyError(DidV1Error, TypeError):
    """Raised when a cryptonym is requested without a key pair."""


class MalformedIdError(DidV1Error):
    """The identifier does not match the did:v1 grammar."""


class ModeMismatchError(DidV1Error):
    """The identifier's test segment disagrees with the requested mode."""


class InvalidCharacterError(DidV1Error):
    """The method-specific identifier carries forbidden characters."""


class MissingInvocationKeyError(DidV1Error):
    """No usable capability invocation key is available."""


class FingerprintMismatchError(DidV1Error):
    """A fingerprint does not verify against its public key."""


class InvalidMethodIdError(DidV1Error):
    """A verification method id is not ``<did>#<fingerprint>``."""


class UnsupportedKeyTypeError(DidV1Error):
    """No key suite is registered for the requested type."""


class UnknownProofPurposeError(DidV1Error):
    """The document has no bucket for the requested proof purpose."""


class KeyNotFoundError(DidV1Error):
    """The key is absent from every proof purpose and the key map."""


class DuplicateServiceError(DidV1Error):
    """A service with the same id already exists."""


class MissingFieldError(DidV1Error):
    """A required field was not supplied."""


class InvalidServiceError(DidV1Error):
    """A service entry has all its fields but fails validation."""


class NotObservingError(DidV1Error):
    """The mutation tracker is idle."""


class MissingAuthDocumentError(DidV1Error):
    """The accelerator path needs an authorization DID document."""


class EligibilityProofError(DidV1Error):
    """The eligibility service returned an operation without a proof."""


class InvalidProofError(DidV1Error):
    """A capability invocation proof is missing or does not verify."""


class ContextNotFoundError(DidV1Error):
    """A JSON-LD context URL could not be resolved."""


class LedgerClientError(DidV1Error):
    """Base class for failures reported by the ledger transport."""


class NotFoundError(LedgerClientError):
    """The ledger has no record for the requested identifier."""


class NetworkError(LedgerClientError):
    """Transport failure; ``details`` carries ``url``, ``status`` and ``error``."""
