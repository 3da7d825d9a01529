"""Tests for eligibility and invocation proof attachment."""

import copy

import pytest

from did_v1.document import DidDocument
from did_v1.errors import (
    EligibilityProofError,
    MissingAuthDocumentError,
    MissingInvocationKeyError,
)
from did_v1.keys import Ed25519VerificationKey2020
from did_v1.pipeline import attach_proofs, authentication_key, invocation_key
from did_v1.proofs import verify_invocation_proof


@pytest.fixture(scope="module")
def document() -> DidDocument:
    return DidDocument.generate(mode="test")


def _create(ledger, document: DidDocument) -> dict:
    return ledger.wrap(operation_type="create", record=document.to_dict())


@pytest.mark.asyncio
async def test_ticket_service_path(ledger, document):
    operation = _create(ledger, document)
    original = copy.deepcopy(operation)

    proved = await attach_proofs(operation, did_document=document, client=ledger)

    assert ledger.calls == [
        ("get_status", None),
        ("get_ticket_service_proof", ledger.ticket_service_url),
    ]
    assert operation == original
    assert proved["proof"][0] == ledger.eligibility_proof
    invocation = proved["proof"][1]
    assert invocation["proofPurpose"] == "capabilityInvocation"
    assert invocation["capabilityAction"] == "create"
    assert invocation["capability"] == document.id
    assert invocation["verificationMethod"] == document.method_for("capabilityInvocation").id
    assert verify_invocation_proof(proved, document.doc, expected_action="create")


@pytest.mark.asyncio
async def test_update_operation_uses_update_action(ledger, document):
    operation = ledger.wrap(operation_type="update", record_patch={"patch": []})

    proved = await attach_proofs(operation, did_document=document, client=ledger)

    assert proved["proof"][-1]["capabilityAction"] == "update"


@pytest.mark.asyncio
async def test_accelerator_without_auth_document_makes_no_requests(ledger, document):
    with pytest.raises(MissingAuthDocumentError) as excinfo:
        await attach_proofs(
            _create(ledger, document),
            did_document=document,
            client=ledger,
            accelerator="accelerator.test",
        )

    assert excinfo.value.message == "Missing or invalid Authorization DID Doc."
    assert ledger.calls == []


@pytest.mark.asyncio
async def test_accelerator_path_uses_auth_key(ledger, document):
    auth_document = DidDocument.generate(mode="test", proof_purposes=["authentication"])
    auth_key = auth_document.method_for("authentication")

    proved = await attach_proofs(
        _create(ledger, document),
        did_document=document,
        client=ledger,
        accelerator="accelerator.test",
        auth_document=auth_document,
    )

    assert ledger.calls == [("send_to_accelerator", ("accelerator.test", auth_key.id))]
    assert len(proved["proof"]) == 2


@pytest.mark.asyncio
async def test_missing_invocation_key_after_eligibility(ledger):
    public_only = DidDocument(DidDocument.generate(mode="test").to_dict())

    with pytest.raises(MissingInvocationKeyError):
        await attach_proofs(
            _create(ledger, public_only), did_document=public_only, client=ledger
        )
    assert ledger.call_names() == ["get_status", "get_ticket_service_proof"]


@pytest.mark.asyncio
async def test_external_signer_replaces_document_key(ledger):
    generated = DidDocument.generate(mode="test")
    invoke_key = generated.method_for("capabilityInvocation")
    public_only = DidDocument(generated.to_dict())

    proved = await attach_proofs(
        _create(ledger, public_only),
        did_document=public_only,
        client=ledger,
        signer=invoke_key,
    )

    assert verify_invocation_proof(proved, public_only.doc)


@pytest.mark.asyncio
async def test_missing_eligibility_proof(make_ledger, document):
    ledger = make_ledger(omit_proof=True)

    with pytest.raises(EligibilityProofError):
        await attach_proofs(_create(ledger, document), did_document=document, client=ledger)


def test_key_helpers(document):
    assert invocation_key(document).has_private_key
    with pytest.raises(MissingAuthDocumentError):
        authentication_key(None)

    public_auth = DidDocument(document.to_dict())
    with pytest.raises(MissingAuthDocumentError):
        authentication_key(public_auth)
    public_auth.keys[document.method_for("authentication").id] = (
        Ed25519VerificationKey2020.from_node(
            document.find_verification_method(purpose="authentication")
        )
    )
    with pytest.raises(MissingAuthDocumentError):
        authentication_key(public_auth)
