"""Eligibility and capability invocation proofs for ledger writes.

An operation first receives an eligibility proof, from an accelerator when
one is named and from the ledger's ticket service otherwise, and then a
capability invocation proof signed with the document's invocation key.
Nothing is mutated in place: every step works on a copy of the operation.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from .client import LedgerTransport
from .document import DidDocument
from .errors import (
    EligibilityProofError,
    MissingAuthDocumentError,
    MissingInvocationKeyError,
)
from .keys import KeyPair
from .proofs import Signer, attach_invocation_proof, capability_action_for

LOGGER = logging.getLogger(__name__)

__all__ = [
    "attach_accelerator_proof",
    "attach_proofs",
    "attach_ticket_service_proof",
    "authentication_key",
    "invocation_key",
]


def authentication_key(auth_document: DidDocument | None) -> KeyPair:
    """Return the private authentication key of an authorization document.

    Raises:
        MissingAuthDocumentError: If the document or its private key is missing.
    """

    key = auth_document.method_for("authentication") if auth_document else None
    if key is None or not key.has_private_key:
        raise MissingAuthDocumentError("Missing or invalid Authorization DID Doc.")
    return key


def invocation_key(did_document: DidDocument) -> KeyPair:
    """Return the private capability invocation key of ``did_document``.

    Raises:
        MissingInvocationKeyError: If no private invocation key is loaded.
    """

    key = did_document.method_for("capabilityInvocation")
    if key is None or not key.has_private_key:
        raise MissingInvocationKeyError("Invocation key required to perform a send.")
    return key


async def attach_ticket_service_proof(
    operation: Mapping[str, Any], *, client: LedgerTransport
) -> dict[str, Any]:
    """Obtain an eligibility proof from the ledger's ticket service."""

    status = await client.get_status()
    ticket_service = status.ticket_service
    if not ticket_service:
        raise EligibilityProofError("Ledger status does not name a ticket service.")
    return await client.get_ticket_service_proof(copy.deepcopy(dict(operation)), ticket_service)


async def attach_accelerator_proof(
    operation: Mapping[str, Any],
    *,
    client: LedgerTransport,
    accelerator: str,
    auth_document: DidDocument | None,
) -> dict[str, Any]:
    """Obtain an eligibility proof from an accelerator.

    The authorization document is checked before any request is made.
    """

    auth_key = authentication_key(auth_document)
    return await client.send_to_accelerator(
        copy.deepcopy(dict(operation)), hostname=accelerator, auth_key=auth_key
    )


async def attach_proofs(
    operation: Mapping[str, Any],
    *,
    did_document: DidDocument,
    client: LedgerTransport,
    accelerator: str | None = None,
    auth_document: DidDocument | None = None,
    signer: Signer | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Return ``operation`` carrying an eligibility and an invocation proof.

    Args:
        operation: Wrapped create or update operation.
        did_document: Document whose invocation key signs the operation.
        client: Ledger transport.
        accelerator: Accelerator hostname; selects the accelerator path.
        auth_document: Authorization document required by accelerators.
        signer: External signer used instead of the document's invocation key.
        logger: Optional logger; defaults to the module logger.

    Raises:
        MissingAuthDocumentError: Accelerator requested without a usable
            authorization document.
        EligibilityProofError: No eligibility proof came back.
        MissingInvocationKeyError: No invocation key or signer is available.
    """

    logger = logger or LOGGER
    if accelerator:
        logger.info(
            "Requesting accelerator proof",
            extra={"accelerator": accelerator, "did": did_document.id},
        )
        proved = await attach_accelerator_proof(
            operation,
            client=client,
            accelerator=accelerator,
            auth_document=auth_document,
        )
    else:
        logger.info("Requesting ticket service proof", extra={"did": did_document.id})
        proved = await attach_ticket_service_proof(operation, client=client)

    if not proved.get("proof"):
        raise EligibilityProofError(
            "Eligibility service returned an operation without a proof.",
            details={"accelerator": accelerator},
        )

    invoke_signer = signer if signer is not None else invocation_key(did_document)
    did = str(did_document.id)
    return attach_invocation_proof(
        proved,
        capability=did,
        capability_action=capability_action_for(proved),
        signer=invoke_signer,
        invocation_target=did,
    )
