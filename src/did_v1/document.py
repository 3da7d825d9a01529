"""DID document builder with an out-of-band key map."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Self

from pydantic import ValidationError

from .constants import (
    DEFAULT_DID_TYPE,
    DEFAULT_KEY_AGREEMENT_TYPE,
    DEFAULT_KEY_TYPE,
    DEFAULT_MODE,
    DID_DOC_CONTEXTS,
    VERIFICATION_RELATIONSHIPS,
)
from .errors import (
    DuplicateServiceError,
    InvalidServiceError,
    KeyNotFoundError,
    MalformedIdError,
    MissingFieldError,
    UnknownProofPurposeError,
)
from .identifier import derive_id, key_id, parse_did, validate_did, validate_method_ids
from .keys import (
    Ed25519VerificationKey2020,
    KeyPair,
    KeyPairRegistry,
    X25519KeyAgreementKey2020,
    default_registry,
)
from .methods import find_proof_purpose, find_verification_method
from .schemas import ServiceEndpoint
from .tracker import DocumentMeta, MutationTracker, TrackerState
from .types import PatchDocument, ValidationResult

LOGGER = logging.getLogger(__name__)

__all__ = ["DidDocument"]


def _entry_id(entry: object) -> object:
    return entry.get("id") if isinstance(entry, Mapping) else entry


class DidDocument:
    """A DID document tree plus its private key map and sequence metadata.

    The tree returned by :meth:`to_dict` never carries private material;
    :attr:`keys` maps verification method ids to loaded key pairs.

    Args:
        data: Existing document tree; copied.
        id: Identifier for a new empty document (ignored when ``data`` has one).
        keys: Initial key map.
        meta: Sequence metadata.
        registry: Key suites used to generate and load keys.
        logger: Optional logger; defaults to the module logger.
    """

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        id: str | None = None,
        keys: Mapping[str, KeyPair] | None = None,
        meta: DocumentMeta | None = None,
        registry: KeyPairRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if data is not None:
            self._doc: dict[str, Any] = copy.deepcopy(dict(data))
        else:
            self._doc = {"@context": list(DID_DOC_CONTEXTS)}
            if id is not None:
                self._doc["id"] = id
            for purpose in VERIFICATION_RELATIONSHIPS:
                self._doc[purpose] = []
        self.keys: dict[str, KeyPair] = dict(keys or {})
        self.meta = meta if meta is not None else DocumentMeta()
        self.registry = registry or default_registry()
        self._logger = logger or LOGGER
        self._tracker = MutationTracker(self._current, meta=self.meta, logger=self._logger)

    @classmethod
    def generate(
        cls,
        *,
        did_type: str = DEFAULT_DID_TYPE,
        key_type: str = DEFAULT_KEY_TYPE,
        mode: str = DEFAULT_MODE,
        proof_purposes: Iterable[str] | None = None,
        provided_keys: Mapping[str, KeyPair] | None = None,
        registry: KeyPairRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> Self:
        """Generate a document with one key pair per proof purpose.

        The capability invocation key is created first since a cryptonym
        identifier is derived from it; it is always present. Keys in
        ``provided_keys`` (by purpose) are used instead of generated ones and
        may be the same object for several purposes. ``keyAgreement`` keys
        default to X25519.
        """

        registry = registry or default_registry()
        provided = dict(provided_keys or {})
        purposes = list(VERIFICATION_RELATIONSHIPS if proof_purposes is None else proof_purposes)
        for purpose in purposes:
            if purpose not in VERIFICATION_RELATIONSHIPS:
                raise UnknownProofPurposeError(f'Unknown proof purpose "{purpose}".')
        if "capabilityInvocation" not in purposes:
            purposes.append("capabilityInvocation")

        invoke_key = provided.get("capabilityInvocation") or registry.generate(key_type)
        did = derive_id(key_pair=invoke_key, did_type=did_type, mode=mode)

        key_pairs: dict[str, KeyPair] = {"capabilityInvocation": invoke_key}
        for purpose in purposes:
            if purpose == "capabilityInvocation":
                continue
            key_pair = provided.get(purpose)
            if key_pair is None:
                purpose_type = (
                    DEFAULT_KEY_AGREEMENT_TYPE if purpose == "keyAgreement" else key_type
                )
                key_pair = registry.generate(purpose_type, controller=did)
            key_pairs[purpose] = key_pair

        for key_pair in key_pairs.values():
            if not key_pair.controller:
                key_pair.controller = did
            key_pair.id = key_id(did, key_pair)

        document = cls(id=did, registry=registry, logger=logger)
        for purpose in VERIFICATION_RELATIONSHIPS:
            if purpose in key_pairs:
                document._doc[purpose].append(key_pairs[purpose].public_node())
                document.keys[key_pairs[purpose].id] = key_pairs[purpose]
            else:
                del document._doc[purpose]

        document._logger.info(
            "Generated DID document",
            extra={"did": did, "did_type": did_type, "mode": mode, "keys": len(document.keys)},
        )
        return document

    @classmethod
    def from_nym(
        cls,
        did: str,
        *,
        registry: KeyPairRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> Self:
        """Reconstruct a cryptonym document from its identifier alone.

        The Ed25519 key encoded in the identifier serves every signing
        purpose; the key agreement key is the X25519 key derived from it.

        Raises:
            MalformedIdError: If ``did`` is not a valid cryptonym.
        """

        parsed = parse_did(did.partition("#")[0])
        if not parsed.is_nym:
            raise MalformedIdError(f'"{did}" is not a cryptonym.')
        try:
            invoke_key = Ed25519VerificationKey2020.from_fingerprint(
                parsed.specific_id, controller=parsed.authority
            )
        except ValueError as exc:
            raise MalformedIdError(
                f"Invalid cryptonym: {did}", details={"reason": str(exc)}
            ) from exc

        provided: dict[str, KeyPair] = {
            purpose: invoke_key
            for purpose in VERIFICATION_RELATIONSHIPS
            if purpose != "keyAgreement"
        }
        provided["keyAgreement"] = X25519KeyAgreementKey2020.from_ed25519_verification_key_2020(
            invoke_key
        )
        return cls.generate(
            did_type="nym",
            key_type=invoke_key.type,
            mode="test" if parsed.mode == "test" else DEFAULT_MODE,
            provided_keys=provided,
            registry=registry,
            logger=logger,
        )

    @property
    def id(self) -> str | None:
        return self._doc.get("id")

    @property
    def doc(self) -> dict[str, Any]:
        """The live document tree; mutations are visible to the tracker."""

        return self._doc

    def _current(self) -> dict[str, Any]:
        return self._doc

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._doc)

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self._doc, indent=indent)

    # Verification methods

    def find_verification_method(
        self, *, purpose: str | None = None, method_id: str | None = None
    ) -> dict[str, Any] | None:
        return find_verification_method(self._doc, purpose=purpose, method_id=method_id)

    def method_for(self, purpose: str) -> KeyPair | None:
        """Return the loaded key pair of the first method for ``purpose``."""

        method = self.find_verification_method(purpose=purpose)
        if method is None:
            return None
        return self.keys.get(method["id"])

    def find_key(self, id: str) -> tuple[str, dict[str, Any]] | None:
        """Return ``(proof_purpose, node)`` for the first bucket holding ``id``."""

        purpose = find_proof_purpose(self._doc, id)
        if purpose is None:
            return None
        node = self.find_verification_method(method_id=id)
        if node is None:
            return None
        return purpose, node

    def add_key(
        self, key: KeyPair, proof_purpose: str, *, controller: str | None = None
    ) -> None:
        """Append ``key``'s public node to ``proof_purpose`` and keep the pair.

        Raises:
            UnknownProofPurposeError: If the document has no such bucket.
        """

        bucket = self._doc.get(proof_purpose)
        if not isinstance(bucket, list):
            raise UnknownProofPurposeError(
                f'Unknown proof purpose "{proof_purpose}".',
                details={"proof_purpose": proof_purpose},
            )
        if key.controller is None:
            key.controller = controller or self.id
        if not key.id:
            key.id = key_id(str(self.id), key)
        bucket.append(key.public_node(controller))
        self.keys[key.id] = key

    def remove_key(self, key_or_id: KeyPair | str) -> None:
        """Remove a key from every bucket and from the key map.

        Raises:
            KeyNotFoundError: If the key is in no bucket and not in the key map.
        """

        method_id = key_or_id if isinstance(key_or_id, str) else key_or_id.id
        found = False
        for bucket_name in ("verificationMethod", *VERIFICATION_RELATIONSHIPS):
            bucket = self._doc.get(bucket_name)
            if not isinstance(bucket, list):
                continue
            kept = [entry for entry in bucket if _entry_id(entry) != method_id]
            if len(kept) != len(bucket):
                found = True
                self._doc[bucket_name] = kept
        if self.keys.pop(str(method_id), None) is not None:
            found = True
        if not found:
            raise KeyNotFoundError(
                f'Key "{method_id}" is not found in did document.',
                details={"method_id": method_id},
            )

    def rotate_key(
        self,
        id_or_key: KeyPair | str,
        *,
        proof_purpose: str | None = None,
        passphrase: str | None = None,
    ) -> KeyPair:
        """Replace a key with a fresh one of the same type and controller.

        The bucket is ``proof_purpose`` when given, otherwise the first bucket
        holding the key in the fixed relationship order. The old key is
        removed from every bucket; the new key gets a new id.

        Raises:
            KeyNotFoundError: If the key is not present in the document.
        """

        method_id = id_or_key if isinstance(id_or_key, str) else id_or_key.id
        if proof_purpose is None:
            proof_purpose = find_proof_purpose(self._doc, str(method_id))
        elif not any(
            _entry_id(entry) == method_id for entry in self._doc.get(proof_purpose) or ()
        ):
            proof_purpose = None
        node = self.find_verification_method(method_id=str(method_id))
        if proof_purpose is None or node is None:
            raise KeyNotFoundError(
                f'Key "{method_id}" is not found in did document.',
                details={"method_id": method_id},
            )

        old_key = self.keys.get(str(method_id)) or self.registry.from_node(node)
        new_key = self.registry.generate(
            old_key.type, controller=old_key.controller, passphrase=passphrase
        )
        new_key.id = key_id(str(self.id), new_key)

        self.remove_key(str(method_id))
        self.add_key(new_key, proof_purpose)
        self._logger.info(
            "Rotated key",
            extra={
                "did": self.id,
                "proof_purpose": proof_purpose,
                "old_id": method_id,
                "new_id": new_key.id,
            },
        )
        return new_key

    # Services

    def service_id_for(self, fragment: str) -> str:
        if not fragment:
            raise MissingFieldError("Service fragment is required.")
        return f"{self.id}#{fragment.lstrip('#')}"

    def _service_id(self, id: str | None, fragment: str | None) -> str:
        if id:
            return id
        if fragment:
            return self.service_id_for(fragment)
        raise MissingFieldError('One of "id" or "fragment" is required.')

    def find_service(
        self, *, id: str | None = None, fragment: str | None = None
    ) -> dict[str, Any] | None:
        service_id = self._service_id(id, fragment)
        for service in self._doc.get("service") or ():
            if service.get("id") == service_id:
                return service
        return None

    def has_service(self, *, id: str | None = None, fragment: str | None = None) -> bool:
        return self.find_service(id=id, fragment=fragment) is not None

    def add_service(
        self,
        *,
        fragment: str | None = None,
        id: str | None = None,
        type: str | None = None,
        endpoint: str | Mapping[str, Any] | list[Any] | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        """Add a service entry and return it.

        ``endpoint`` is a URI, or a map or list of endpoints.

        Raises:
            MissingFieldError: If ``type`` or ``endpoint`` is missing.
            DuplicateServiceError: If the resulting id already exists.
            InvalidServiceError: If the entry fails validation.
        """

        if not type:
            raise MissingFieldError("Service endpoint type is required.")
        if not endpoint:
            raise MissingFieldError("Service endpoint uri is required.")
        if isinstance(endpoint, Mapping):
            endpoint = dict(endpoint)
        service_id = self._service_id(id, fragment)
        if self.find_service(id=service_id):
            raise DuplicateServiceError(
                "Service with that name or id already exists.",
                details={"id": service_id},
            )
        try:
            service = ServiceEndpoint(
                id=service_id, type=type, serviceEndpoint=endpoint, **extra
            )
        except ValidationError as exc:
            raise InvalidServiceError(
                "Invalid service entry.", details={"errors": exc.errors()}
            ) from exc
        node = service.to_node()
        self._doc.setdefault("service", []).append(node)
        return node

    def remove_service(self, *, id: str | None = None, fragment: str | None = None) -> None:
        """Remove a service; the ``service`` property is dropped once empty."""

        service_id = self._service_id(id, fragment)
        services = [
            service
            for service in self._doc.get("service") or ()
            if service.get("id") != service_id
        ]
        if services:
            self._doc["service"] = services
        else:
            self._doc.pop("service", None)

    # Key map import/export

    def export_keys(self) -> dict[str, dict[str, Any]]:
        """Export every key pair, public and private material, by id."""

        return {
            key_id_: key.export(public_key=True, private_key=True)
            for key_id_, key in self.keys.items()
        }

    def import_keys(
        self, data: Mapping[str, Mapping[str, Any]], *, passphrase: str | None = None
    ) -> None:
        for node in data.values():
            key = self.registry.from_node(node, passphrase=passphrase)
            self.keys[str(key.id)] = key

    # Change tracking

    @property
    def is_observing(self) -> bool:
        return self._tracker.is_observing

    def observe(self) -> None:
        self._tracker.observe()

    def unobserve(self) -> None:
        self._tracker.unobserve()

    def commit(self) -> PatchDocument:
        return self._tracker.commit()

    def save_state(self) -> TrackerState:
        return self._tracker.save_state()

    def restore_state(self, state: TrackerState) -> None:
        self._tracker.restore_state(state)

    # Validation

    def validate(self, mode: str = DEFAULT_MODE) -> ValidationResult:
        return validate_did(self._doc, mode=mode, registry=self.registry)

    def validate_method_ids(self) -> ValidationResult:
        return validate_method_ids(self._doc, registry=self.registry)

    def __repr__(self) -> str:
        return f"DidDocument(id={self.id!r}, keys={len(self.keys)})"
