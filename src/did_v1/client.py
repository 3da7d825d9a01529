"""Asynchronous HTTP client for a Veres One web ledger node."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from .constants import (
    ACCELERATOR_PATH,
    CREATE_OPERATION,
    ED25519_2020_CONTEXT_URL,
    UPDATE_OPERATION,
    WEB_LEDGER_CONTEXT_URL,
    ZCAP_CONTEXT_URL,
)
from .errors import MissingAuthDocumentError, NetworkError, NotFoundError
from .http_signatures import sign_request_headers
from .proofs import Signer
from .schemas import (
    LedgerAgentServices,
    LedgerAgentsDocument,
    LedgerRecord,
    LedgerStatus,
    TicketServiceResponse,
)
from .settings import DidV1Settings, get_settings

LOGGER = logging.getLogger(__name__)

__all__ = ["LedgerClient", "LedgerTransport"]

_ACCEPT = "application/ld+json, application/json"


class LedgerTransport(Protocol):
    """Ledger operations the driver and proof pipeline depend on."""

    async def get_record(self, id: str) -> LedgerRecord: ...

    async def get_status(self) -> LedgerStatus: ...

    async def send_operation(self, operation: Mapping[str, Any]) -> dict[str, Any]: ...

    def wrap(
        self,
        *,
        operation_type: str,
        record: Mapping[str, Any] | None = None,
        record_patch: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]: ...

    async def get_ticket_service_proof(
        self, operation: Mapping[str, Any], ticket_service: str
    ) -> dict[str, Any]: ...

    async def send_to_accelerator(
        self,
        operation: Mapping[str, Any],
        *,
        hostname: str,
        auth_key: Signer,
    ) -> dict[str, Any]: ...


class LedgerClient:
    """Talk to a ledger node discovered through ``/ledger-agents``.

    Args:
        hostname: Ledger hostname; derived from the mode when omitted.
        mode: Ledger mode; TLS verification is off in ``dev`` by default.
        settings: Optional settings override.
        transport: Optional ``httpx`` transport, used by tests.
        logger: Optional logger; defaults to the module logger.
    """

    def __init__(
        self,
        hostname: str | None = None,
        *,
        mode: str | None = None,
        settings: DidV1Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        settings = settings or get_settings()
        if mode is not None and mode != settings.mode:
            settings = settings.model_copy(update={"mode": mode})
        self._settings = settings
        self.mode = settings.mode
        self.hostname = hostname or settings.effective_hostname
        self._transport = transport
        self._timeout = settings.timeout_seconds
        self._verify = settings.effective_verify_tls
        self._logger = logger or LOGGER
        self._services: LedgerAgentServices | None = None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        missing_is_not_found: bool = False,
    ) -> Any:
        """Send one request and decode its JSON body.

        A 404 raises :class:`NotFoundError` only when ``missing_is_not_found``
        is set; every other failure raises :class:`NetworkError`.
        """

        request_headers = {"Accept": _ACCEPT, **(headers or {})}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, verify=self._verify, transport=self._transport
            ) as client:
                response = await client.request(
                    method, url, json=json, params=params, headers=request_headers
                )
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            self._logger.warning(
                "Ledger HTTP error",
                extra={"url": url, "status_code": status, "method": method},
            )
            if status == 404 and missing_is_not_found:
                raise NotFoundError(
                    "Record not found.", details={"url": url, "status": status}
                ) from exc
            raise NetworkError(
                "Ledger request failed.",
                details={"url": url, "status": status, "error": _error_body(exc.response)},
            ) from exc
        except httpx.HTTPError as exc:
            self._logger.warning(
                "Ledger transport error",
                extra={"url": url, "method": method},
                exc_info=exc,
            )
            raise NetworkError(
                "Ledger request failed.",
                details={"url": url, "status": None, "error": str(exc)},
            ) from exc
        except ValueError as exc:
            self._logger.warning(
                "Ledger response parsing error", extra={"url": url}, exc_info=exc
            )
            raise NetworkError(
                "Ledger returned invalid JSON.",
                details={"url": url, "status": None, "error": str(exc)},
            ) from exc

    def _parse(self, model: Any, payload: Any, url: str) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise NetworkError(
                "Unexpected ledger response.",
                details={"url": url, "status": None, "error": exc.errors()},
            ) from exc

    async def services(self) -> LedgerAgentServices:
        """Return (and cache) the first ledger agent's service URLs."""

        if self._services is None:
            url = f"https://{self.hostname}/ledger-agents"
            payload = await self._request("GET", url)
            self._services = self._parse(LedgerAgentsDocument, payload, url).services
        return self._services

    async def get_record(self, id: str) -> LedgerRecord:
        """Fetch the ledger record for ``id``.

        Raises:
            NotFoundError: If the ledger has no such record.
            NetworkError: On any other failure.
        """

        url = (await self.services()).ledger_query_service
        payload = await self._request(
            "POST", url, params={"id": id}, missing_is_not_found=True
        )
        return self._parse(LedgerRecord, payload, url)

    async def get_status(self) -> LedgerStatus:
        url = (await self.services()).ledger_agent_status_service
        return self._parse(LedgerStatus, await self._request("GET", url), url)

    async def send_operation(self, operation: Mapping[str, Any]) -> dict[str, Any]:
        url = (await self.services()).ledger_operation_service
        self._logger.info(
            "Submitting ledger operation",
            extra={"url": url, "operation_type": operation.get("type")},
        )
        return await self._request("POST", url, json=dict(operation))

    def wrap(
        self,
        *,
        operation_type: str,
        record: Mapping[str, Any] | None = None,
        record_patch: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Wrap a document (create) or patch (update) as a ledger operation."""

        operation: dict[str, Any] = {
            "@context": [WEB_LEDGER_CONTEXT_URL, ZCAP_CONTEXT_URL, ED25519_2020_CONTEXT_URL]
        }
        if operation_type == "create":
            if record is None:
                raise TypeError('"record" is required for a create operation.')
            operation["type"] = CREATE_OPERATION
            operation["record"] = dict(record)
        elif operation_type == "update":
            if record_patch is None:
                raise TypeError('"record_patch" is required for an update operation.')
            operation["type"] = UPDATE_OPERATION
            operation["recordPatch"] = dict(record_patch)
        else:
            raise ValueError(f'Unknown operation type "{operation_type}".')
        return operation

    async def get_ticket_service_proof(
        self, operation: Mapping[str, Any], ticket_service: str
    ) -> dict[str, Any]:
        """Post ``operation`` to the ticket service and return it with a proof."""

        payload = await self._request(
            "POST", ticket_service, json={"operation": dict(operation)}
        )
        return self._parse(TicketServiceResponse, payload, ticket_service).operation

    async def send_to_accelerator(
        self,
        operation: Mapping[str, Any],
        *,
        hostname: str,
        auth_key: Signer,
    ) -> dict[str, Any]:
        """Request an eligibility proof from an accelerator with a signed request."""

        if auth_key is None or not auth_key.id:
            raise MissingAuthDocumentError("Auth key is required for sending to accelerator.")
        url = f"https://{hostname}{ACCELERATOR_PATH}"
        headers = sign_request_headers(
            method="POST",
            path=ACCELERATOR_PATH,
            headers={"Accept": _ACCEPT, "Host": hostname},
            key_id=auth_key.id,
            signer=auth_key,
        )
        return await self._request("POST", url, json=dict(operation), headers=headers)


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
