"""Ed25519VerificationKey2020 key suite backed by ``cryptography``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Self

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..constants import ED25519_2020_CONTEXT_URL
from ..errors import FingerprintMismatchError, MissingKeyError
from ..types import ValidationResult
from .base import (
    KeyPair,
    decrypt_private_pem,
    encrypt_private_pem,
    multibase_decode,
    multibase_encode,
)

__all__ = ["Ed25519VerificationKey2020"]

# multicodec ed25519-pub / ed25519-priv, varint encoded
PUBLIC_KEY_HEADER = b"\xed\x01"
PRIVATE_KEY_HEADER = b"\x80\x26"


class Ed25519VerificationKey2020(KeyPair):
    """Signing key used for authentication, assertion and capabilities."""

    type = "Ed25519VerificationKey2020"
    context_url = ED25519_2020_CONTEXT_URL

    def __init__(
        self,
        public_key: Ed25519PublicKey,
        private_key: Ed25519PrivateKey | None = None,
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
        private_key = Ed25519PrivateKey.generate()
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
        """Rebuild a key pair from a verification method or exported node.

        Raises:
            ValueError: If the public key is missing or malformed.
        """

        public_multibase = node.get("publicKeyMultibase")
        if not isinstance(public_multibase, str):
            raise ValueError("Ed25519 key node requires publicKeyMultibase.")
        public_key = Ed25519PublicKey.from_public_bytes(
            multibase_decode(public_multibase, PUBLIC_KEY_HEADER)
        )

        private_key: Ed25519PrivateKey | None = None
        if isinstance(node.get("privateKeyMultibase"), str):
            secret = multibase_decode(node["privateKeyMultibase"], PRIVATE_KEY_HEADER)
            private_key = Ed25519PrivateKey.from_private_bytes(secret[:32])
        elif isinstance(node.get("privateKeyPem"), str):
            loaded = decrypt_private_pem(node["privateKeyPem"], passphrase)
            if not isinstance(loaded, Ed25519PrivateKey):
                raise ValueError("privateKeyPem does not hold an Ed25519 key.")
            private_key = loaded

        return cls(
            public_key,
            private_key,
            id=node.get("id"),
            controller=node.get("controller"),
            passphrase=passphrase,
        )

    @classmethod
    def from_fingerprint(
        cls, fingerprint: str, *, controller: str | None = None
    ) -> Self:
        """Rebuild a public-only key pair from its multibase fingerprint.

        Raises:
            ValueError: If ``fingerprint`` does not encode an Ed25519 key.
        """

        raw = multibase_decode(fingerprint, PUBLIC_KEY_HEADER)
        if len(raw) != 32:
            raise ValueError("Ed25519 public keys are 32 bytes.")
        return cls(Ed25519PublicKey.from_public_bytes(raw), controller=controller)

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
    def private_key_bytes(self) -> bytes | None:
        """Return the 32-byte seed, or ``None`` for public-only keys."""

        if self._private_key is None:
            return None
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
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
            raw = multibase_decode(fingerprint, PUBLIC_KEY_HEADER)
        except ValueError as exc:
            return ValidationResult.fail(
                FingerprintMismatchError(
                    "The fingerprint does not match the public key.",
                    details={"reason": str(exc)},
                )
            )
        if raw != self.public_key_bytes:
            return ValidationResult.fail(
                FingerprintMismatchError(
                    "The fingerprint does not match the public key."
                )
            )
        return ValidationResult.ok()

    def _public_fields(self) -> dict[str, Any]:
        return {"publicKeyMultibase": self.public_key_multibase}

    def _private_fields(self) -> dict[str, Any]:
        assert self._private_key is not None
        if self.passphrase:
            return {
                "privateKeyPem": encrypt_private_pem(self._private_key, self.passphrase)
            }
        seed = self.private_key_bytes or b""
        return {
            "privateKeyMultibase": multibase_encode(
                PRIVATE_KEY_HEADER, seed + self.public_key_bytes
            )
        }

    def sign(self, data: bytes) -> bytes:
        if self._private_key is None:
            raise MissingKeyError(f'Private key for "{self.id}" is not loaded.')
        return self._private_key.sign(data)

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, data)
        except InvalidSignature:
            return False
        return True
