"""X25519KeyAgreementKey2020 key suite."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Self

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from nacl.bindings import (
    crypto_sign_ed25519_pk_to_curve25519,
    crypto_sign_ed25519_sk_to_curve25519,
)

from ..constants import X25519_2020_CONTEXT_URL
from ..errors import FingerprintMismatchError, MissingKeyError
from ..types import ValidationResult
from .base import (
    KeyPair,
    decrypt_private_pem,
    encrypt_private_pem,
    multibase_decode,
    multibase_encode,
)
from .ed25519 import Ed25519VerificationKey2020

__all__ = ["X25519KeyAgreementKey2020"]

PUBLIC_KEY_HEADER = b"\xec\x01"
PRIVATE_KEY_HEADER = b"\x82\x26"


class X25519KeyAgreementKey2020(KeyPair):
    """Key agreement (encryption) key; it cannot sign."""

    type = "X25519KeyAgreementKey2020"
    context_url = X25519_2020_CONTEXT_URL

    def __init__(
        self,
        public_key: X25519PublicKey,
        private_key: X25519PrivateKey | None = None,
        *,
        id: str | None = None,
        controller: str | None = None,
        passphrase: str | None = None,
    ) -> None:
        super().__init__(id=id, controller=controller, passphrase=passphrase)
        self._public_key = public_key
        self._private_key = private_key

    @classmethod
    def generate(
        cls,
        *,
        id: str | None = None,
        controller: str | None = None,
        passphrase: str | None = None,
    ) -> Self:
        private_key = X25519PrivateKey.generate()
        return cls(
            private_key.public_key(),
            private_key,
            id=id,
            controller=controller,
            passphrase=passphrase,
        )

    @classmethod
    def from_node(
        cls, node: Mapping[str, Any], *, passphrase: str | None = None
    ) -> Self:
        public_multibase = node.get("publicKeyMultibase")
        if not isinstance(public_multibase, str):
            raise ValueError("X25519 key node requires publicKeyMultibase.")
        public_key = X25519PublicKey.from_public_bytes(
            multibase_decode(public_multibase, PUBLIC_KEY_HEADER)
        )

        private_key: X25519PrivateKey | None = None
        if isinstance(node.get("privateKeyMultibase"), str):
            private_key = X25519PrivateKey.from_private_bytes(
                multibase_decode(node["privateKeyMultibase"], PRIVATE_KEY_HEADER)
            )
        elif isinstance(node.get("privateKeyPem"), str):
            loaded = decrypt_private_pem(node["privateKeyPem"], passphrase)
            if not isinstance(loaded, X25519PrivateKey):
                raise ValueError("privateKeyPem does not hold an X25519 key.")
            private_key = loaded

        return cls(
            public_key,
            private_key,
            id=node.get("id"),
            controller=node.get("controller"),
            passphrase=passphrase,
        )

    @classmethod
    def from_ed25519_verification_key_2020(
        cls, key_pair: Ed25519VerificationKey2020
    ) -> Self:
        """Derive the birationally equivalent Curve25519 key pair.

        The controller is carried over; the id is left for the document
        builder to assign.
        """

        public_raw = crypto_sign_ed25519_pk_to_curve25519(key_pair.public_key_bytes)
        private_key: X25519PrivateKey | None = None
        seed = key_pair.private_key_bytes
        if seed is not None:
            private_key = X25519PrivateKey.from_private_bytes(
                crypto_sign_ed25519_sk_to_curve25519(seed + key_pair.public_key_bytes)
            )
        return cls(
            X25519PublicKey.from_public_bytes(public_raw),
            private_key,
            controller=key_pair.controller,
        )

    @property
    def has_private_key(self) -> bool:
        return self._private_key is not None

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @property
    def public_key_multibase(self) -> str:
        return multibase_encode(PUBLIC_KEY_HEADER, self.public_key_bytes)

    def fingerprint(self) -> str:
        return self.public_key_multibase

    def verify_fingerprint(self, fingerprint: str) -> ValidationResult:
        if not (isinstance(fingerprint, str) and fingerprint.startswith("z")):
            return ValidationResult.fail(
                FingerprintMismatchError(
                    "`fingerprint` must be a multibase encoded string."
                )
            )
        try:
            matches = multibase_decode(fingerprint, PUBLIC_KEY_HEADER) == (
                self.public_key_bytes
            )
        except ValueError:
            matches = False
        if not matches:
            return ValidationResult.fail(
                FingerprintMismatchError(
                    "The fingerprint does not match the public key."
                )
            )
        return ValidationResult.ok()

    def derive_secret(self, other: "X25519KeyAgreementKey2020") -> bytes:
        """Return the ECDH shared secret with another key agreement key."""

        if self._private_key is None:
            raise MissingKeyError(f'Private key for "{self.id}" is not loaded.')
        return self._private_key.exchange(other._public_key)

    def _public_fields(self) -> dict[str, Any]:
        return {"publicKeyMultibase": self.public_key_multibase}

    def _private_fields(self) -> dict[str, Any]:
        assert self._private_key is not None
        if self.passphrase:
            return {
                "privateKeyPem": encrypt_private_pem(self._private_key, self.passphrase)
            }
        raw = self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return {"privateKeyMultibase": multibase_encode(PRIVATE_KEY_HEADER, raw)}
