"""Pydantic models for service entries and ledger HTTP payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import TICKET_SERVICE_KEY

__all__ = [
    "LedgerAgent",
    "LedgerAgentServices",
    "LedgerAgentsDocument",
    "LedgerRecord",
    "LedgerStatus",
    "ServiceEndpoint",
    "ServiceReference",
    "TicketServiceResponse",
]


class ServiceEndpoint(BaseModel):
    """Service entry of a DID document; unknown properties are preserved."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Absolute service id.")
    type: str = Field(..., min_length=1, description="Service type term or URI.")
    service_endpoint: str | dict[str, Any] | list[Any] = Field(
        ...,
        alias="serviceEndpoint",
        description="Endpoint URI, or a map or list of endpoints.",
    )

    @field_validator("service_endpoint")
    @classmethod
    def _non_empty_endpoint(
        cls, value: str | dict[str, Any] | list[Any]
    ) -> str | dict[str, Any] | list[Any]:
        if not value:
            raise ValueError("serviceEndpoint must not be empty")
        return value

    def to_node(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class LedgerAgentServices(BaseModel):
    """Service URLs advertised by a web ledger agent."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    ledger_query_service: str = Field(..., alias="ledgerQueryService")
    ledger_operation_service: str = Field(..., alias="ledgerOperationService")
    ledger_agent_status_service: str = Field(..., alias="ledgerAgentStatusService")


class LedgerAgent(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    service: LedgerAgentServices


class LedgerAgentsDocument(BaseModel):
    """Response of ``GET /ledger-agents``."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    ledger_agent: list[LedgerAgent] = Field(..., alias="ledgerAgent", min_length=1)

    @property
    def services(self) -> LedgerAgentServices:
        return self.ledger_agent[0].service


class ServiceReference(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str


class LedgerStatus(BaseModel):
    """Ledger agent status; names the auxiliary services such as the ticket service."""

    model_config = ConfigDict(extra="allow", frozen=True)

    service: dict[str, ServiceReference] = Field(default_factory=dict)

    @property
    def ticket_service(self) -> str | None:
        reference = self.service.get(TICKET_SERVICE_KEY)
        return reference.id if reference is not None else None


class LedgerRecord(BaseModel):
    """Record lookup result; ``record`` is the DID document."""

    model_config = ConfigDict(extra="allow", frozen=True)

    record: dict[str, Any]
    meta: dict[str, Any] = Field(default_factory=dict)


class TicketServiceResponse(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    operation: dict[str, Any]
