"""Deterministic JSON serialization and digests used for proof signing."""

from __future__ import annotations

import hashlib
import json


def canonicalize(obj: object) -> str:
    """
    Return deterministic JSON serialization for obj.

    Keys are sorted and separators compact, so equal documents always
    produce identical bytes regardless of key insertion order.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def digest_canonical(obj: object) -> bytes:
    """Return the SHA-256 digest over the canonical form of obj."""
    return hashlib.sha256(canonicalize(obj).encode("utf-8")).digest()


def hash_canonical(obj: object) -> str:
    """Return the SHA-256 hex digest over the canonical form of obj."""
    return digest_canonical(obj).hex()
