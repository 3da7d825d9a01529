"""Static JSON-LD context resolution for documents and proofs."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, unquote

from .constants import (
    DID_CONTEXT_URL,
    ED25519_2020_CONTEXT_URL,
    JSON_LD_PATCH_CONTEXT_URL,
    VERES_ONE_CONTEXT_URL,
    WEB_LEDGER_CONTEXT_URL,
    X25519_2020_CONTEXT_URL,
    ZCAP_CONTEXT_URL,
    ZCAP_ROOT_PREFIX,
)
from .errors import ContextNotFoundError

LOGGER = logging.getLogger(__name__)

__all__ = ["DocumentLoader", "RemoteDocument", "root_capability_id"]

# Terms are never expanded locally, so the bundled documents only mark the
# URLs as known and protected.
_BUNDLED_CONTEXT: dict[str, Any] = {
    "@context": {"@version": 1.1, "@protected": True, "id": "@id", "type": "@type"}
}

BUNDLED_CONTEXT_URLS: tuple[str, ...] = (
    DID_CONTEXT_URL,
    VERES_ONE_CONTEXT_URL,
    ED25519_2020_CONTEXT_URL,
    X25519_2020_CONTEXT_URL,
    WEB_LEDGER_CONTEXT_URL,
    JSON_LD_PATCH_CONTEXT_URL,
    ZCAP_CONTEXT_URL,
)


@dataclass(frozen=True, slots=True)
class RemoteDocument:
    """Resolved document together with the URL it was requested under."""

    document_url: str
    document: dict[str, Any]
    context_url: str | None = None


def root_capability_id(target: str) -> str:
    """Return the root capability URL for an invocation target."""

    return ZCAP_ROOT_PREFIX + quote(target, safe="")


class DocumentLoader:
    """Resolve context URLs from a static table.

    Root capability URLs (``urn:zcap:root:``) are synthesised on demand;
    everything else must be registered.
    """

    def __init__(self, documents: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            url: copy.deepcopy(_BUNDLED_CONTEXT) for url in BUNDLED_CONTEXT_URLS
        }
        for url, document in (documents or {}).items():
            self.register(url, document)

    def register(self, url: str, document: Mapping[str, Any]) -> None:
        self._documents[url] = copy.deepcopy(dict(document))

    def __contains__(self, url: object) -> bool:
        return url in self._documents

    def resolve(self, url: str) -> RemoteDocument:
        """Return the document for ``url``.

        Raises:
            ContextNotFoundError: If ``url`` is neither registered nor a root
                capability.
        """

        if url in self._documents:
            return RemoteDocument(document_url=url, document=copy.deepcopy(self._documents[url]))
        if url.startswith(ZCAP_ROOT_PREFIX):
            target = unquote(url[len(ZCAP_ROOT_PREFIX) :])
            return RemoteDocument(
                document_url=url,
                document={
                    "@context": ZCAP_CONTEXT_URL,
                    "id": url,
                    "controller": target,
                    "invocationTarget": target,
                },
            )
        LOGGER.debug("Context lookup miss", extra={"url": url})
        raise ContextNotFoundError(f'"{url}" not found.', details={"url": url})

    def __call__(self, url: str) -> RemoteDocument:
        return self.resolve(url)
