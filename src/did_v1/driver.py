"""Veres One ``did:v1`` driver: resolve, generate, register and update."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .client import LedgerClient, LedgerTransport
from .constants import CREATE_OPERATION, DEFAULT_DID_TYPE, DEFAULT_KEY_TYPE, DID_METHOD
from .document import DidDocument
from .documentloader import DocumentLoader
from .errors import MalformedIdError, NotFoundError
from .identifier import derive_id, did_prefix, key_id, parse_did, validate_did, validate_method_ids
from .keys import KeyPair, KeyPairRegistry, default_registry
from .methods import find_verification_method
from .pipeline import attach_proofs
from .proofs import Signer, verify_invocation_proof
from .settings import DidV1Settings, default_hostname, get_settings
from .tracker import DocumentMeta
from .types import ValidationResult

LOGGER = logging.getLogger(__name__)

__all__ = ["DidV1Driver"]


class DidV1Driver:
    """Entry point tying documents, proofs and the ledger transport together.

    Every collaborator is injectable; defaults come from
    :func:`~did_v1.settings.get_settings`.

    Args:
        mode: Ledger mode; defaults to the configured mode.
        hostname: Ledger hostname; defaults per mode.
        client: Ledger transport; a :class:`LedgerClient` when omitted.
        registry: Key suites used to load and generate keys.
        loader: Context loader used to verify invocation proofs.
        settings: Optional settings override.
        logger: Optional logger; defaults to the module logger.
    """

    method = DID_METHOD

    def __init__(
        self,
        *,
        mode: str | None = None,
        hostname: str | None = None,
        client: LedgerTransport | None = None,
        registry: KeyPairRegistry | None = None,
        loader: DocumentLoader | None = None,
        settings: DidV1Settings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.mode = mode or self.settings.mode
        did_prefix(self.mode)
        self.hostname = hostname or self.settings.hostname or default_hostname(self.mode)
        self.logger = logger or LOGGER
        self.registry = registry or default_registry()
        self.loader = loader or DocumentLoader()
        self.client: LedgerTransport = client or LedgerClient(
            self.hostname, mode=self.mode, settings=self.settings, logger=self.logger
        )

    async def compute_id(
        self,
        key: KeyPair,
        *,
        did: str | None = None,
        did_type: str = DEFAULT_DID_TYPE,
        mode: str | None = None,
    ) -> str:
        """Return the verification method id ``key`` would have."""

        if did is None:
            did = derive_id(key_pair=key, did_type=did_type, mode=mode or self.mode)
        return key_id(did, key)

    async def _fetch(self, did: str) -> tuple[dict[str, Any], dict[str, Any]]:
        parsed = parse_did(did)
        try:
            result = await self.client.get_record(parsed.authority)
        except NotFoundError as not_found:
            if not parsed.is_nym:
                raise
            try:
                document = DidDocument.from_nym(parsed.authority, registry=self.registry)
            except MalformedIdError:
                raise not_found from None
            self.logger.info(
                "DID not on ledger; reconstructed from cryptonym",
                extra={"did": parsed.authority},
            )
            return document.to_dict(), {}
        return dict(result.record), dict(result.meta)

    async def get(self, did: str | None = None, *, url: str | None = None) -> dict[str, Any]:
        """Resolve a DID document, or a key document for a DID URL.

        Cryptonyms missing from the ledger are reconstructed locally. A URL
        with a fragment returns only that verification method, with its
        suite context.

        Raises:
            TypeError: When neither ``did`` nor ``url`` is given.
            NotFoundError: When the record or method does not exist.
        """

        did = did or url
        if not did:
            raise TypeError('A "did" or "url" parameter is required.')
        document, _ = await self._fetch(did)
        if parse_did(did).fragment is None:
            return document

        method = find_verification_method(document, method_id=did)
        if method is None:
            raise NotFoundError(f'"{did}" not found.', details={"url": did})
        key_pair = self.registry.from_node(method)
        return key_pair.export(public_key=True, include_context=True)

    async def get_document(self, did: str, *, auto_observe: bool = False) -> DidDocument:
        """Resolve ``did`` into a :class:`DidDocument` without private keys.

        With ``auto_observe`` the returned document is already tracking
        changes, ready for :meth:`update`.
        """

        document, meta = await self._fetch(parse_did(did).authority)
        sequence = meta.get("sequence")
        did_document = DidDocument(
            document,
            meta=DocumentMeta(sequence=sequence if isinstance(sequence, int) else 0),
            registry=self.registry,
            logger=self.logger,
        )
        if auto_observe:
            did_document.observe()
        return did_document

    async def generate(
        self,
        *,
        did_type: str = DEFAULT_DID_TYPE,
        key_type: str = DEFAULT_KEY_TYPE,
        proof_purposes: Iterable[str] | None = None,
        provided_keys: Mapping[str, KeyPair] | None = None,
    ) -> DidDocument:
        """Generate a new document in this driver's mode."""

        return await asyncio.to_thread(
            DidDocument.generate,
            did_type=did_type,
            key_type=key_type,
            mode=self.mode,
            proof_purposes=proof_purposes,
            provided_keys=provided_keys,
            registry=self.registry,
            logger=self.logger,
        )

    async def register(
        self,
        did_document: DidDocument,
        *,
        accelerator: str | None = None,
        auth_document: DidDocument | None = None,
        signer: Signer | None = None,
    ) -> dict[str, Any]:
        """Submit ``did_document`` as a create operation; return the ledger response."""

        operation = self.client.wrap(operation_type="create", record=did_document.to_dict())
        return await self.send(
            operation,
            did_document=did_document,
            accelerator=accelerator,
            auth_document=auth_document,
            signer=signer,
        )

    async def update(
        self,
        did_document: DidDocument,
        *,
        accelerator: str | None = None,
        auth_document: DidDocument | None = None,
        signer: Signer | None = None,
    ) -> dict[str, Any]:
        """Commit the observed changes and submit them as an update.

        The document must be observing. When submission fails, including
        by cancellation, the tracker returns to its state before the commit
        so the update can be retried.
        """

        state = did_document.save_state()
        patch = did_document.commit()
        operation = self.client.wrap(operation_type="update", record_patch=patch)
        try:
            return await self.send(
                operation,
                did_document=did_document,
                accelerator=accelerator,
                auth_document=auth_document,
                signer=signer,
            )
        except BaseException:
            did_document.restore_state(state)
            raise

    async def send(
        self,
        operation: Mapping[str, Any],
        *,
        did_document: DidDocument,
        accelerator: str | None = None,
        auth_document: DidDocument | None = None,
        signer: Signer | None = None,
    ) -> dict[str, Any]:
        """Attach both proofs to ``operation`` and submit it."""

        accelerator = accelerator or self.settings.accelerator
        self.logger.info(
            "Sending to ledger",
            extra={"operation_type": operation.get("type"), "did": did_document.id},
        )
        proved = await attach_proofs(
            operation,
            did_document=did_document,
            client=self.client,
            accelerator=accelerator,
            auth_document=auth_document,
            signer=signer,
            logger=self.logger,
        )
        response = await self.client.send_operation(proved)
        if proved.get("type") == CREATE_OPERATION:
            self.logger.info("DID registration sent to ledger", extra={"did": did_document.id})
        else:
            self.logger.info("DID document update sent to ledger", extra={"did": did_document.id})
        return response

    def validate_did(
        self, did_document: DidDocument | Mapping[str, Any], *, mode: str | None = None
    ) -> ValidationResult:
        document = did_document.doc if isinstance(did_document, DidDocument) else did_document
        return validate_did(document, mode=mode or self.mode, registry=self.registry)

    def validate_method_ids(
        self, did_document: DidDocument | Mapping[str, Any]
    ) -> ValidationResult:
        document = did_document.doc if isinstance(did_document, DidDocument) else did_document
        return validate_method_ids(document, registry=self.registry)

    def verify_operation(
        self,
        operation: Mapping[str, Any],
        did_document: DidDocument | Mapping[str, Any],
    ) -> ValidationResult:
        """Verify the capability invocation proof of a submitted operation."""

        document = did_document.doc if isinstance(did_document, DidDocument) else did_document
        return verify_invocation_proof(
            operation, document, loader=self.loader, registry=self.registry
        )
