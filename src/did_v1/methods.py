"""Verification method lookup over plain DID document mappings."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from .constants import VERIFICATION_RELATIONSHIPS

__all__ = [
    "find_proof_purpose",
    "find_verification_method",
    "iter_verification_methods",
]


def _find_by_id(doc: Mapping[str, Any], method_id: str) -> dict[str, Any] | None:
    for bucket in ("verificationMethod", *VERIFICATION_RELATIONSHIPS):
        for node in doc.get(bucket) or ():
            if isinstance(node, Mapping) and node.get("id") == method_id:
                return dict(node)
    return None


def _resolve(doc: Mapping[str, Any], entry: object) -> dict[str, Any] | None:
    if isinstance(entry, str):
        return _find_by_id(doc, entry)
    if isinstance(entry, Mapping):
        return dict(entry)
    return None


def iter_verification_methods(
    doc: Mapping[str, Any], purpose: str
) -> Iterator[dict[str, Any]]:
    """Yield the methods of ``purpose``, resolving string references."""

    for entry in doc.get(purpose) or ():
        node = _resolve(doc, entry)
        if node is not None:
            yield node


def find_verification_method(
    doc: Mapping[str, Any],
    *,
    purpose: str | None = None,
    method_id: str | None = None,
) -> dict[str, Any] | None:
    """Return a verification method node by id or by proof purpose.

    With ``method_id`` every bucket is searched; with ``purpose`` the first
    method of that bucket is returned. ``None`` means no match.
    """

    if method_id is not None:
        return _find_by_id(doc, method_id)
    if purpose is None:
        raise TypeError('A "purpose" or "method_id" is required.')
    return next(iter_verification_methods(doc, purpose), None)


def find_proof_purpose(doc: Mapping[str, Any], method_id: str) -> str | None:
    """Return the first bucket, in the fixed relationship order, holding ``method_id``."""

    for purpose in VERIFICATION_RELATIONSHIPS:
        for entry in doc.get(purpose) or ():
            if isinstance(entry, str):
                entry_id = entry
            elif isinstance(entry, Mapping):
                entry_id = entry.get("id")
            else:
                continue
            if entry_id == method_id:
                return purpose
    return None
