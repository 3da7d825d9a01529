"""Shared result and payload types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from .errors import DidV1Error


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a validation query.

    Validation never raises for expected invalidity; callers branch on
    :attr:`valid` and inspect :attr:`error` when it is ``False``.
    """

    valid: bool
    error: DidV1Error | None = None

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"valid": self.valid}
        if self.error is not None:
            payload["error"] = {"name": self.error.name, "message": self.error.message}
        return payload

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: DidV1Error) -> "ValidationResult":
        return cls(valid=False, error=error)


class VerificationMethodNode(TypedDict):
    id: str
    type: str
    controller: str
    publicKeyMultibase: str
    privateKeyMultibase: NotRequired[str]


# Sequenced RFC 6902 patch targeting a DID document.
PatchDocument = TypedDict(
    "PatchDocument",
    {
        "@context": list[Any],
        "patch": list[dict[str, Any]],
        "sequence": int,
        "target": str,
    },
)


class ProofNode(TypedDict, total=False):
    type: str
    created: str
    verificationMethod: str
    proofPurpose: str
    capability: str
    capabilityAction: str
    invocationTarget: str
    proofValue: str
