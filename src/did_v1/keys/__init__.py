"""Key pair suites consumed by DID documents."""

from __future__ import annotations

from .base import KeyPair
from .ed25519 import Ed25519VerificationKey2020
from .registry import KeyPairRegistry, default_registry
from .x25519 import X25519KeyAgreementKey2020

__all__ = [
    "Ed25519VerificationKey2020",
    "KeyPair",
    "KeyPairRegistry",
    "X25519KeyAgreementKey2020",
    "default_registry",
]
