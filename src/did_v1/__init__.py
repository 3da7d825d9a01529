"""Veres One did:v1 DID document lifecycle and ledger client."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = [
    "DidDocument",
    "DidV1Driver",
    "DidV1Settings",
    "LedgerClient",
    "MutationTracker",
    "ValidationResult",
    "derive_id",
    "validate_did",
]

if TYPE_CHECKING:
    from .client import LedgerClient
    from .document import DidDocument
    from .driver import DidV1Driver
    from .identifier import derive_id, validate_did
    from .settings import DidV1Settings
    from .tracker import MutationTracker
    from .types import ValidationResult


def __getattr__(name: str) -> Any:
    """Lazily import submodules so ``import did_v1`` stays cheap."""

    module_map = {
        "DidDocument": "document",
        "DidV1Driver": "driver",
        "DidV1Settings": "settings",
        "LedgerClient": "client",
        "MutationTracker": "tracker",
        "ValidationResult": "types",
        "derive_id": "identifier",
        "validate_did": "identifier",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
