"""Static identifiers shared across the did:v1 toolkit."""

from __future__ import annotations

from typing import Final

DID_CONTEXT_URL: Final[str] = "https://www.w3.org/ns/did/v1"
VERES_ONE_CONTEXT_URL: Final[str] = "https://w3id.org/veres-one/v1"
ED25519_2020_CONTEXT_URL: Final[str] = (
    "https://w3id.org/security/suites/ed25519-2020/v1"
)
X25519_2020_CONTEXT_URL: Final[str] = (
    "https://w3id.org/security/suites/x25519-2020/v1"
)
WEB_LEDGER_CONTEXT_URL: Final[str] = "https://w3id.org/webledger/v1"
JSON_LD_PATCH_CONTEXT_URL: Final[str] = "https://w3id.org/json-ld-patch/v1"
ZCAP_CONTEXT_URL: Final[str] = "https://w3id.org/zcap/v1"

ZCAP_ROOT_PREFIX: Final[str] = "urn:zcap:root:"

DID_DOC_CONTEXTS: Final[tuple[str, ...]] = (
    DID_CONTEXT_URL,
    VERES_ONE_CONTEXT_URL,
    ED25519_2020_CONTEXT_URL,
    X25519_2020_CONTEXT_URL,
)

# Fixed enumeration order for every "first matching bucket" lookup.
VERIFICATION_RELATIONSHIPS: Final[tuple[str, ...]] = (
    "authentication",
    "assertionMethod",
    "capabilityDelegation",
    "capabilityInvocation",
    "keyAgreement",
)

DID_METHOD: Final[str] = "v1"
DID_TYPES: Final[tuple[str, ...]] = ("nym", "uuid")
MODES: Final[tuple[str, ...]] = ("dev", "test", "live")

DEFAULT_MODE: Final[str] = "dev"
DEFAULT_DID_TYPE: Final[str] = "nym"
DEFAULT_KEY_TYPE: Final[str] = "Ed25519VerificationKey2020"
DEFAULT_KEY_AGREEMENT_TYPE: Final[str] = "X25519KeyAgreementKey2020"

DEFAULT_HOSTNAMES: Final[dict[str, str]] = {
    "dev": "node-1.veres.one.local:45443",
    "test": "genesis.testnet.veres.one",
    "live": "veres.one",
}

TICKET_SERVICE_KEY: Final[str] = "urn:veresone:ticket-service"
ACCELERATOR_PATH: Final[str] = "/accelerator/proofs"

CREATE_OPERATION: Final[str] = "CreateWebLedgerRecord"
UPDATE_OPERATION: Final[str] = "UpdateWebLedgerRecord"
