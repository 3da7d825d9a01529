"""Capability invocation proofs over ledger operations.

Proof values are Ed25519 signatures over
``sha256(canonical proof options) || sha256(canonical operation)``, where the
operation is taken without its ``proof`` property, encoded as base58btc
multibase.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Protocol

import base58

from .canonicalize import digest_canonical
from .documentloader import DocumentLoader, root_capability_id
from .errors import ContextNotFoundError, InvalidProofError, UnsupportedKeyTypeError
from .keys import KeyPairRegistry, default_registry
from .methods import find_verification_method, iter_verification_methods
from .types import ValidationResult

LOGGER = logging.getLogger(__name__)

__all__ = [
    "PROOF_PURPOSE",
    "PROOF_TYPE",
    "Signer",
    "attach_invocation_proof",
    "capability_action_for",
    "verify_invocation_proof",
]

# Ed25519 over SHA-256 digests of sorted-key compact JSON, not URDNA2015.
PROOF_TYPE = "Ed25519CanonicalJsonSignature"
PROOF_PURPOSE = "capabilityInvocation"


class Signer(Protocol):
    """Anything with a verification method ``id`` that can sign bytes."""

    id: str | None

    def sign(self, data: bytes) -> bytes: ...


def capability_action_for(operation: Mapping[str, Any]) -> str:
    """Return ``create`` for create operations and ``update`` otherwise."""

    return "create" if str(operation.get("type", "")).startswith("Create") else "update"


def _proof_list(operation: Mapping[str, Any]) -> list[dict[str, Any]]:
    proof = operation.get("proof")
    if proof is None:
        return []
    if isinstance(proof, list):
        return [dict(item) for item in proof]
    return [dict(proof)]


def _signing_input(operation: Mapping[str, Any], proof: Mapping[str, Any]) -> bytes:
    options = {key: value for key, value in proof.items() if key != "proofValue"}
    document = {key: value for key, value in operation.items() if key != "proof"}
    return digest_canonical(options) + digest_canonical(document)


def _timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace(
        "+00:00", "Z"
    )


def attach_invocation_proof(
    operation: Mapping[str, Any],
    *,
    capability: str,
    capability_action: str,
    signer: Signer,
    invocation_target: str | None = None,
    created: str | None = None,
) -> dict[str, Any]:
    """Return a copy of ``operation`` with a capability invocation proof appended.

    Args:
        operation: Ledger operation, possibly already carrying proofs.
        capability: Capability being invoked, the DID itself.
        capability_action: ``create`` or ``update``.
        signer: Key pair or external signer for the invocation key.
        invocation_target: Target of the invocation; defaults to ``capability``.
        created: Optional fixed timestamp.
    """

    proof: dict[str, Any] = {
        "type": PROOF_TYPE,
        "created": created or _timestamp(),
        "verificationMethod": signer.id,
        "proofPurpose": PROOF_PURPOSE,
        "capability": capability,
        "capabilityAction": capability_action,
        "invocationTarget": invocation_target or capability,
    }
    signature = signer.sign(_signing_input(operation, proof))
    proof["proofValue"] = "z" + base58.b58encode(signature).decode("ascii")

    signed = copy.deepcopy(dict(operation))
    signed["proof"] = _proof_list(operation) + [proof]
    return signed


def verify_invocation_proof(
    operation: Mapping[str, Any],
    did_document: Mapping[str, Any],
    *,
    expected_action: str | None = None,
    loader: DocumentLoader | None = None,
    registry: KeyPairRegistry | None = None,
) -> ValidationResult:
    """Verify the capability invocation proof of ``operation``.

    The proof must reference a ``capabilityInvocation`` method of
    ``did_document`` and its target must match the root capability of the
    invoked DID.
    """

    loader = loader or DocumentLoader()
    registry = registry or default_registry()
    proofs = [p for p in _proof_list(operation) if p.get("proofPurpose") == PROOF_PURPOSE]
    if not proofs:
        return ValidationResult.fail(
            InvalidProofError("Operation has no capability invocation proof.")
        )
    proof = proofs[-1]

    if proof.get("type") != PROOF_TYPE:
        return ValidationResult.fail(
            InvalidProofError(
                f'Unsupported proof type "{proof.get("type")}".',
                details={"type": proof.get("type")},
            )
        )

    if expected_action is not None and proof.get("capabilityAction") != expected_action:
        return ValidationResult.fail(
            InvalidProofError(
                f'Expected capability action "{expected_action}".',
                details={"capabilityAction": proof.get("capabilityAction")},
            )
        )

    capability = str(proof.get("capability", ""))
    try:
        root = loader.resolve(root_capability_id(capability)).document
    except ContextNotFoundError as exc:
        return ValidationResult.fail(exc)
    if proof.get("invocationTarget") != root["invocationTarget"]:
        return ValidationResult.fail(
            InvalidProofError("Invocation target does not match the capability.")
        )
    if did_document.get("id") != root["controller"]:
        return ValidationResult.fail(
            InvalidProofError("DID document does not control the capability.")
        )

    method_id = proof.get("verificationMethod")
    invocation_ids = {
        method.get("id")
        for method in iter_verification_methods(did_document, PROOF_PURPOSE)
    }
    method = find_verification_method(did_document, method_id=str(method_id))
    if method is None or method_id not in invocation_ids:
        return ValidationResult.fail(
            InvalidProofError(
                f'"{method_id}" is not a capabilityInvocation method.',
                details={"verificationMethod": method_id},
            )
        )

    proof_value = proof.get("proofValue")
    try:
        key_pair = registry.from_node(method)
        if not (isinstance(proof_value, str) and proof_value.startswith("z")):
            raise ValueError("proofValue must be base58btc multibase.")
        signature = base58.b58decode(proof_value[1:])
    except (ValueError, UnsupportedKeyTypeError) as exc:
        return ValidationResult.fail(
            InvalidProofError("Malformed proof.", details={"reason": str(exc)})
        )
    if not key_pair.verify(_signing_input(operation, proof), signature):
        LOGGER.debug(
            "Invocation proof signature mismatch",
            extra={"verification_method": method_id},
        )
        return ValidationResult.fail(InvalidProofError("Invalid signature."))
    return ValidationResult.ok()
