"""Explicit key suite registry."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..errors import UnsupportedKeyTypeError
from .base import KeyPair
from .ed25519 import Ed25519VerificationKey2020
from .x25519 import X25519KeyAgreementKey2020

LOGGER = logging.getLogger(__name__)

__all__ = ["KeyPairRegistry", "default_registry"]


class KeyPairRegistry:
    """Map key type names to :class:`KeyPair` suites.

    Components take a registry as a parameter; :func:`default_registry`
    is only the fallback used when none is supplied.
    """

    def __init__(self, suites: Iterable[type[KeyPair]] = ()) -> None:
        self._suites: dict[str, type[KeyPair]] = {}
        for suite in suites:
            self.register(suite)

    def register(self, suite: type[KeyPair]) -> None:
        """Register ``suite`` under its ``type`` name, replacing any previous."""

        self._suites[suite.type] = suite

    def __contains__(self, key_type: object) -> bool:
        return key_type in self._suites

    @property
    def types(self) -> tuple[str, ...]:
        return tuple(self._suites)

    def suite(self, key_type: str) -> type[KeyPair]:
        try:
            return self._suites[key_type]
        except KeyError:
            raise UnsupportedKeyTypeError(
                f'Unsupported key type "{key_type}".',
                details={"supported": list(self._suites)},
            ) from None

    def generate(self, key_type: str, **options: Any) -> KeyPair:
        """Generate a key pair of ``key_type`` forwarding ``options``."""

        key_pair = self.suite(key_type).generate(**options)
        LOGGER.debug(
            "Generated key pair",
            extra={"key_type": key_type, "controller": key_pair.controller},
        )
        return key_pair

    def from_node(
        self, node: Mapping[str, Any], *, passphrase: str | None = None
    ) -> KeyPair:
        """Rebuild a key pair from a node carrying a ``type`` property."""

        key_type = node.get("type")
        if not isinstance(key_type, str):
            raise UnsupportedKeyTypeError("Key node is missing its \"type\".")
        return self.suite(key_type).from_node(node, passphrase=passphrase)


def default_registry() -> KeyPairRegistry:
    """Return a registry with the Ed25519 and X25519 2020 suites."""

    return KeyPairRegistry((Ed25519VerificationKey2020, X25519KeyAgreementKey2020))
