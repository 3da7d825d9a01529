"""Abstract key pair capability consumed by the document lifecycle."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Self

import base58
from cryptography.hazmat.primitives import serialization

from ..errors import UnsupportedKeyTypeError
from ..types import ValidationResult

__all__ = [
    "KeyPair",
    "decrypt_private_pem",
    "encrypt_private_pem",
    "multibase_decode",
    "multibase_encode",
]

MULTIBASE_BASE58_BTC: str = "z"


def multibase_encode(header: bytes, payload: bytes) -> str:
    """Return ``z`` + base58btc of the multicodec header and payload."""

    return MULTIBASE_BASE58_BTC + base58.b58encode(header + payload).decode("ascii")


def multibase_decode(value: str, header: bytes) -> bytes:
    """Decode a base58btc multibase value and strip its multicodec header.

    Raises:
        ValueError: If the value is not base58btc or the header differs.
    """

    if not isinstance(value, str) or not value.startswith(MULTIBASE_BASE58_BTC):
        raise ValueError("Value must be a base58btc multibase string.")
    decoded = base58.b58decode(value[1:])
    if decoded[: len(header)] != header:
        raise ValueError("Unexpected multicodec header.")
    return decoded[len(header) :]


class KeyPair(ABC):
    """Public/private key pair addressable from a DID document.

    Concrete suites carry the key type name in :attr:`type` and the JSON-LD
    context for standalone key documents in :attr:`context_url`. The ``id``
    and ``controller`` attributes are assigned by the document builder when
    the caller leaves them empty.
    """

    type: ClassVar[str]
    context_url: ClassVar[str]

    def __init__(
        self,
        *,
        id: str | None = None,
        controller: str | None = None,
        passphrase: str | None = None,
    ) -> None:
        self.id = id
        self.controller = controller
        self.passphrase = passphrase

    @classmethod
    @abstractmethod
    def generate(
        cls,
        *,
        id: str | None = None,
        controller: str | None = None,
        passphrase: str | None = None,
    ) -> Self:
        """Create a fresh random key pair."""

    @classmethod
    @abstractmethod
    def from_node(
        cls, node: Mapping[str, Any], *, passphrase: str | None = None
    ) -> Self:
        """Rebuild a key pair from an exported or public node."""

    @property
    @abstractmethod
    def has_private_key(self) -> bool:
        """Whether private material is loaded."""

    @abstractmethod
    def fingerprint(self) -> str:
        """Return the multibase fingerprint of the public key."""

    @abstractmethod
    def verify_fingerprint(self, fingerprint: str) -> ValidationResult:
        """Check ``fingerprint`` against the public key without raising."""

    @abstractmethod
    def _public_fields(self) -> dict[str, Any]:
        """Return the suite-specific public key properties."""

    @abstractmethod
    def _private_fields(self) -> dict[str, Any]:
        """Return the suite-specific private key properties."""

    def export(
        self,
        *,
        public_key: bool = False,
        private_key: bool = False,
        include_context: bool = False,
    ) -> dict[str, Any]:
        """Export the key pair as a JSON-compatible node.

        Args:
            public_key: Include public key material.
            private_key: Include private key material (encrypted when a
                passphrase is set).
            include_context: Prefix the suite's ``@context``.

        Returns:
            Mapping with ``id``, ``type`` and ``controller`` plus the
            requested material.
        """

        node: dict[str, Any] = {}
        if include_context:
            node["@context"] = self.context_url
        node["id"] = self.id
        node["type"] = self.type
        node["controller"] = self.controller
        if public_key:
            node.update(self._public_fields())
        if private_key and self.has_private_key:
            node.update(self._private_fields())
        return node

    def public_node(self, controller: str | None = None) -> dict[str, Any]:
        """Return the verification method projection stored in a document."""

        node = self.export(public_key=True)
        if controller is not None:
            node["controller"] = controller
        return node

    def sign(self, data: bytes) -> bytes:
        raise UnsupportedKeyTypeError(f'"{self.type}" keys cannot sign.')

    def verify(self, data: bytes, signature: bytes) -> bool:
        raise UnsupportedKeyTypeError(f'"{self.type}" keys cannot verify.')

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, controller={self.controller!r})"


def encrypt_private_pem(private_key: Any, passphrase: str) -> str:
    """Serialize a ``cryptography`` private key as encrypted PKCS#8 PEM."""

    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(
            passphrase.encode("utf-8")
        ),
    ).decode("ascii")


def decrypt_private_pem(pem: str, passphrase: str | None) -> Any:
    """Load an encrypted PKCS#8 PEM produced by :func:`encrypt_private_pem`.

    Raises:
        ValueError: If the passphrase is missing or wrong.
    """

    password = passphrase.encode("utf-8") if passphrase else None
    try:
        return serialization.load_pem_private_key(pem.encode("ascii"), password=password)
    except TypeError as exc:
        raise ValueError("A passphrase is required to load this key.") from exc
