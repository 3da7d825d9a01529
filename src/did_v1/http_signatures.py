"""Draft-cavage HTTP signatures for authenticated accelerator requests."""

from __future__ import annotations

import base64
import re
from collections.abc import Callable, Mapping, Sequence
from email.utils import formatdate

from .errors import MissingFieldError
from .proofs import Signer

__all__ = ["DEFAULT_SIGNED_HEADERS", "sign_request_headers", "verify_request_headers"]

DEFAULT_SIGNED_HEADERS: tuple[str, ...] = ("(request-target)", "date", "host")

_PARAM = re.compile(r'(\w+)="([^"]*)"')


def _header(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def _signing_string(
    method: str, path: str, headers: Mapping[str, str], signed: Sequence[str]
) -> str:
    lines = []
    for name in signed:
        if name == "(request-target)":
            lines.append(f"(request-target): {method.lower()} {path}")
            continue
        value = _header(headers, name)
        if value is None:
            raise MissingFieldError(f'Header "{name}" is required for signing.')
        lines.append(f"{name.lower()}: {value.strip()}")
    return "\n".join(lines)


def sign_request_headers(
    *,
    method: str,
    path: str,
    headers: Mapping[str, str],
    key_id: str,
    signer: Signer,
    signed_headers: Sequence[str] = DEFAULT_SIGNED_HEADERS,
) -> dict[str, str]:
    """Return ``headers`` plus ``Date`` (when absent) and ``Authorization``."""

    result = dict(headers)
    if _header(result, "date") is None:
        result["Date"] = formatdate(usegmt=True)
    signature = signer.sign(
        _signing_string(method, path, result, signed_headers).encode("utf-8")
    )
    result["Authorization"] = (
        f'Signature keyId="{key_id}",algorithm="ed25519",'
        f'headers="{" ".join(signed_headers)}",'
        f'signature="{base64.b64encode(signature).decode("ascii")}"'
    )
    return result


def verify_request_headers(
    *,
    method: str,
    path: str,
    headers: Mapping[str, str],
    verify: Callable[[str, bytes, bytes], bool],
) -> bool:
    """Check an ``Authorization: Signature`` header.

    ``verify`` receives ``(key_id, data, signature)`` and decides whether
    the signature is valid for that key.
    """

    authorization = _header(headers, "authorization") or ""
    if not authorization.startswith("Signature "):
        return False
    params = dict(_PARAM.findall(authorization))
    try:
        signed = params["headers"].split()
        signature = base64.b64decode(params["signature"])
        data = _signing_string(method, path, headers, signed).encode("utf-8")
    except (KeyError, ValueError, MissingFieldError):
        return False
    return verify(params.get("keyId", ""), data, signature)
