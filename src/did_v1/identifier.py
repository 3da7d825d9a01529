"""Derivation, parsing and validation of ``did:v1`` identifiers."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .constants import (
    DEFAULT_DID_TYPE,
    DEFAULT_MODE,
    DID_TYPES,
    MODES,
    VERIFICATION_RELATIONSHIPS,
)
from .errors import (
    FingerprintMismatchError,
    InvalidCharacterError,
    InvalidMethodIdError,
    InvalidModeError,
    MalformedIdError,
    MissingInvocationKeyError,
    MissingKeyError,
    ModeMismatchError,
    UnsupportedKeyTypeError,
)
from .keys import KeyPair, KeyPairRegistry, default_registry
from .methods import find_verification_method, iter_verification_methods
from .types import ValidationResult

LOGGER = logging.getLogger(__name__)

__all__ = [
    "DID_REGEX",
    "ParsedDid",
    "derive_id",
    "did_prefix",
    "key_id",
    "parse_did",
    "validate_did",
    "validate_method_ids",
]

DID_REGEX = re.compile(r"^(did:v1:)(test:)?(uuid|nym):(.+)")
_INVALID_SPECIFIC_ID = re.compile(r"[^A-Za-z0-9:\-.]+")
_LEGACY_URN_PREFIX = "urn:uuid:"


@dataclass(frozen=True, slots=True)
class ParsedDid:
    """Components of a ``did:v1`` identifier or DID URL."""

    did: str
    mode: str | None
    did_type: str
    specific_id: str
    authority: str
    fragment: str | None

    @property
    def is_nym(self) -> bool:
        return self.did_type == "nym"


def parse_did(did: str) -> ParsedDid:
    """Split ``did`` into its grammar components.

    ``mode`` is ``"test"`` for test identifiers and ``None`` otherwise,
    since dev and live identifiers share a prefix.

    Raises:
        MalformedIdError: If ``did`` does not match :data:`DID_REGEX`.
    """

    match = DID_REGEX.match(did) if isinstance(did, str) else None
    if match is None:
        raise MalformedIdError(f'Invalid DID format: "{did}".')
    authority, _, fragment = did.partition("#")
    return ParsedDid(
        did=did,
        mode=match.group(2)[:-1] if match.group(2) else None,
        did_type=match.group(3),
        specific_id=match.group(4),
        authority=authority,
        fragment=fragment or None,
    )


def did_prefix(mode: str) -> str:
    """Return the identifier prefix for ``mode``.

    Raises:
        InvalidModeError: If ``mode`` is not ``dev``, ``test`` or ``live``.
    """

    if mode not in MODES:
        raise InvalidModeError(
            f'Unknown mode: "{mode}".', details={"supported": list(MODES)}
        )
    return "did:v1:test:" if mode == "test" else "did:v1:"


def derive_id(
    *,
    key_pair: KeyPair | None = None,
    did_type: str = DEFAULT_DID_TYPE,
    mode: str = DEFAULT_MODE,
) -> str:
    """Compute a new identifier.

    ``uuid`` identifiers are random; ``nym`` identifiers embed the
    fingerprint of ``key_pair``, which becomes the capability invocation key.

    Raises:
        InvalidModeError: For an unknown ``mode``.
        MissingKeyError: For a ``nym`` without ``key_pair``.
    """

    prefix = did_prefix(mode)
    if did_type == "uuid":
        return prefix + "uuid:" + uuid.uuid4().hex
    if did_type != "nym":
        raise MalformedIdError(
            f'Unknown DID type "{did_type}".', details={"supported": list(DID_TYPES)}
        )
    if key_pair is None:
        raise MissingKeyError("`key_pair` is required to generate a cryptonym DID.")
    return prefix + "nym:" + key_pair.fingerprint()


def key_id(did: str, key_pair: KeyPair) -> str:
    """Return the verification method id for ``key_pair`` within ``did``."""

    if key_pair.id and key_pair.id.startswith("did:v1:"):
        return key_pair.id
    return f"{did}#{key_pair.fingerprint()}"


def _require_id(did_document: Mapping[str, Any] | None) -> object:
    if not did_document or "id" not in did_document or not did_document["id"]:
        raise TypeError('The "did_document.id" parameter is required.')
    return did_document["id"]


def validate_did(
    did_document: Mapping[str, Any],
    *,
    mode: str = DEFAULT_MODE,
    registry: KeyPairRegistry | None = None,
) -> ValidationResult:
    """Validate the identifier of ``did_document`` for ``mode``.

    Checks run in order and stop at the first failure: the ``urn:uuid:``
    escape, grammar, mode consistency, allowed characters and, for
    cryptonyms, the fingerprint of the first capability invocation method.

    Raises:
        TypeError: When the document or its ``id`` is missing.
        InvalidModeError: When ``mode`` itself is unknown.
    """

    did = _require_id(did_document)
    did_prefix(mode)
    if not isinstance(did, str):
        return ValidationResult.fail(MalformedIdError("DID must be a string."))
    if did.startswith(_LEGACY_URN_PREFIX):
        return ValidationResult.ok()

    try:
        parsed = parse_did(did)
    except MalformedIdError as exc:
        return ValidationResult.fail(exc)

    if mode == "test" and parsed.mode != "test":
        return ValidationResult.fail(
            ModeMismatchError(f'DID is invalid for test mode: "{did}".')
        )
    if mode != "test" and parsed.mode == "test":
        return ValidationResult.fail(
            ModeMismatchError(f'Test DID does not match mode "{mode}": "{did}".')
        )

    if _INVALID_SPECIFIC_ID.search(parsed.specific_id):
        return ValidationResult.fail(
            InvalidCharacterError(
                f'Specific id contains invalid characters: "{did}".'
            )
        )

    if parsed.is_nym:
        return _validate_cryptonym(did_document, parsed, registry or default_registry())
    return ValidationResult.ok()


def _validate_cryptonym(
    did_document: Mapping[str, Any],
    parsed: ParsedDid,
    registry: KeyPairRegistry,
) -> ValidationResult:
    method = find_verification_method(did_document, purpose="capabilityInvocation")
    if method is None:
        return ValidationResult.fail(
            MissingInvocationKeyError(
                "Cryptonym DID requires a capabilityInvocation key."
            )
        )
    try:
        key_pair = registry.from_node(method)
    except (ValueError, UnsupportedKeyTypeError) as exc:
        LOGGER.debug(
            "Unusable capability invocation method",
            extra={"did": parsed.did, "method_id": method.get("id")},
            exc_info=exc,
        )
        return ValidationResult.fail(
            MissingInvocationKeyError(
                "Public key is required for cryptonym verification."
            )
        )
    return key_pair.verify_fingerprint(parsed.specific_id)


def validate_method_ids(
    did_document: Mapping[str, Any],
    *,
    registry: KeyPairRegistry | None = None,
) -> ValidationResult:
    """Check every verification method id is ``<did>#<fingerprint>``.

    Raises:
        TypeError: When the document or its ``id`` is missing.
    """

    did = _require_id(did_document)
    registry = registry or default_registry()
    for purpose in VERIFICATION_RELATIONSHIPS:
        for method in iter_verification_methods(did_document, purpose):
            method_id = method.get("id")
            parts = method_id.split("#") if isinstance(method_id, str) else []
            if len(parts) != 2:
                return ValidationResult.fail(
                    InvalidMethodIdError(
                        "Invalid DID key ID; key ID must be of the form "
                        '"<did>#<multibase key fingerprint>".',
                        details={"method_id": method_id},
                    )
                )
            if parts[0] != did:
                return ValidationResult.fail(
                    InvalidMethodIdError(
                        "Invalid DID key ID; key ID does not match the DID.",
                        details={"method_id": method_id},
                    )
                )
            try:
                key_pair = registry.from_node(method)
            except (ValueError, UnsupportedKeyTypeError) as exc:
                return ValidationResult.fail(
                    FingerprintMismatchError(
                        f'Cannot load key "{method_id}".',
                        details={"reason": str(exc)},
                    )
                )
            result = key_pair.verify_fingerprint(parts[1])
            if not result.valid:
                return result
    return ValidationResult.ok()
