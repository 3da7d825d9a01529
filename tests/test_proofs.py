"""Tests for invocation proofs, context resolution and HTTP signatures."""

import pytest

from did_v1.canonicalize import canonicalize, hash_canonical
from did_v1.document import DidDocument
from did_v1.documentloader import DocumentLoader, root_capability_id
from did_v1.errors import ContextNotFoundError, InvalidProofError
from did_v1.http_signatures import sign_request_headers, verify_request_headers
from did_v1.proofs import (
    PROOF_TYPE,
    attach_invocation_proof,
    capability_action_for,
    verify_invocation_proof,
)

ELIGIBILITY = {"type": "TicketProof", "proofPurpose": "assertionMethod", "proofValue": "z1"}


@pytest.fixture(scope="module")
def document() -> DidDocument:
    return DidDocument.generate(mode="test")


def _operation(document: DidDocument) -> dict:
    return {
        "@context": ["https://w3id.org/webledger/v1"],
        "type": "CreateWebLedgerRecord",
        "record": document.to_dict(),
        "proof": [dict(ELIGIBILITY)],
    }


def _sign(document: DidDocument, operation: dict, **overrides) -> dict:
    options = {
        "capability": document.id,
        "capability_action": "create",
        "signer": document.method_for("capabilityInvocation"),
    }
    options.update(overrides)
    return attach_invocation_proof(operation, **options)


def test_canonicalize_is_order_independent():
    assert canonicalize({"b": 1, "a": [2, {"d": 1, "c": 0}]}) == '{"a":[2,{"c":0,"d":1}],"b":1}'
    assert hash_canonical({"a": 1, "b": 2}) == hash_canonical({"b": 2, "a": 1})


def test_capability_action_follows_operation_type():
    assert capability_action_for({"type": "CreateWebLedgerRecord"}) == "create"
    assert capability_action_for({"type": "UpdateWebLedgerRecord"}) == "update"


def test_invocation_proof_is_appended_after_eligibility(document):
    operation = _operation(document)

    signed = _sign(document, operation, created="2024-01-01T00:00:00Z")

    assert operation["proof"] == [ELIGIBILITY]
    assert signed["proof"][0] == ELIGIBILITY
    proof = signed["proof"][1]
    assert proof["type"] == PROOF_TYPE == "Ed25519CanonicalJsonSignature"
    assert proof["proofPurpose"] == "capabilityInvocation"
    assert proof["capability"] == document.id
    assert proof["capabilityAction"] == "create"
    assert proof["invocationTarget"] == document.id
    assert proof["verificationMethod"] == document.method_for("capabilityInvocation").id
    assert proof["created"] == "2024-01-01T00:00:00Z"
    assert proof["proofValue"].startswith("z")


def test_invocation_proof_verifies(document):
    signed = _sign(document, _operation(document))

    assert verify_invocation_proof(signed, document.doc).valid
    assert verify_invocation_proof(signed, document.doc, expected_action="create").valid


def test_tampered_operation_fails_verification(document):
    signed = _sign(document, _operation(document))
    signed["record"]["id"] = "did:v1:test:nym:z6MkTampered"

    result = verify_invocation_proof(signed, document.doc)

    assert not result.valid
    assert isinstance(result.error, InvalidProofError)


def test_foreign_suite_type_is_rejected(document):
    signed = _sign(document, _operation(document))
    signed["proof"][-1]["type"] = "Ed25519Signature2020"

    result = verify_invocation_proof(signed, document.doc)

    assert not result.valid
    assert result.error.details == {"type": "Ed25519Signature2020"}


def test_wrong_action_fails_verification(document):
    signed = _sign(document, _operation(document), capability_action="update")

    result = verify_invocation_proof(signed, document.doc, expected_action="create")

    assert not result.valid


def test_non_invocation_key_is_rejected(document):
    signed = _sign(document, _operation(document), signer=document.method_for("authentication"))

    result = verify_invocation_proof(signed, document.doc)

    assert not result.valid
    assert "capabilityInvocation" in result.error.message


def test_foreign_document_does_not_control_capability(document):
    other = DidDocument.generate(mode="test")
    signed = _sign(document, _operation(document))

    assert not verify_invocation_proof(signed, other.doc).valid


def test_missing_invocation_proof(document):
    result = verify_invocation_proof(_operation(document), document.doc)

    assert isinstance(result.error, InvalidProofError)


def test_loader_synthesises_root_capabilities():
    loader = DocumentLoader()
    did = "did:v1:test:nym:z6MkRoot"

    root = loader.resolve(root_capability_id(did))

    assert root.document["id"] == root_capability_id(did)
    assert root.document["controller"] == did
    assert root.document["invocationTarget"] == did


def test_loader_static_table():
    loader = DocumentLoader({"https://example.com/ctx/v1": {"@context": {"x": "urn:x"}}})

    assert "https://www.w3.org/ns/did/v1" in loader
    assert loader("https://example.com/ctx/v1").document == {"@context": {"x": "urn:x"}}
    with pytest.raises(ContextNotFoundError) as excinfo:
        loader.resolve("https://example.com/unknown")
    assert excinfo.value.details == {"url": "https://example.com/unknown"}


def test_http_signature_round_trip(document):
    key = document.method_for("authentication")
    headers = sign_request_headers(
        method="POST",
        path="/accelerator/proofs",
        headers={"Host": "accelerator.test"},
        key_id=key.id,
        signer=key,
    )

    assert "Date" in headers
    assert headers["Authorization"].startswith(f'Signature keyId="{key.id}"')

    def _verify(key_id: str, data: bytes, signature: bytes) -> bool:
        return key_id == key.id and key.verify(data, signature)

    assert verify_request_headers(
        method="POST", path="/accelerator/proofs", headers=headers, verify=_verify
    )
    tampered = dict(headers, Host="evil.test")
    assert not verify_request_headers(
        method="POST", path="/accelerator/proofs", headers=tampered, verify=_verify
    )
    assert not verify_request_headers(
        method="POST", path="/accelerator/proofs", headers={}, verify=_verify
    )
