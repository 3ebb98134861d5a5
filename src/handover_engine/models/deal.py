"""
Deal, production (event) and handover models.

Deal is the sales-pipeline record; handover converts it, exactly once, into
a production (an ops event) and links the two via deal.event_id. Once set,
event_id is never cleared or reassigned.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .catalog import CrewRolesDiagnostic
from .run_of_show import RunOfShowUpdate


class DealStatus(str, Enum):
    """Deal pipeline status."""

    INQUIRY = 'inquiry'
    PROPOSAL = 'proposal'
    CONTRACT_SENT = 'contract_sent'
    WON = 'won'
    LOST = 'lost'


HANDOVER_READY_STATUSES = frozenset({
    DealStatus.INQUIRY.value,
    DealStatus.PROPOSAL.value,
    DealStatus.CONTRACT_SENT.value,
})


class Deal(BaseModel):
    id: str
    workspace_id: str
    title: str | None = None
    status: str
    proposed_date: date | None = None
    event_id: str | None = None
    organization_id: str | None = None
    main_contact_id: str | None = None
    venue_id: str | None = None


class Project(BaseModel):
    id: str
    workspace_id: str
    name: str | None = None
    status: str | None = None
    client_entity_id: str | None = None


class Production(BaseModel):
    """An ops event row with its run-of-show document and section versions."""

    id: str
    project_id: str | None = None
    name: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    venue_entity_id: str | None = None
    run_of_show_data: dict[str, Any] | None = None
    run_of_show_versions: dict[str, int] = Field(default_factory=dict)


class Contract(BaseModel):
    """Latest contract of a production; handover seeds a signed one."""

    status: str = 'draft'
    signed_at: datetime | None = None
    pdf_url: str | None = None

    @field_validator('status', mode='before')
    @classmethod
    def _default_status(cls, v: Any) -> Any:
        return 'draft' if v is None else v


# =============================================================================
# Handover payload / outcome
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HandoverVitals(_CamelModel):
    start_at: datetime
    end_at: datetime
    venue_entity_id: str | None = None
    client_entity_id: str | None = None


class HandoverPayload(_CamelModel):
    """Handoff wizard input. Without it, handover falls back to deal defaults."""

    name: str | None = None
    vitals: HandoverVitals
    run_of_show: RunOfShowUpdate | None = Field(
        default=None,
        validation_alias=AliasChoices('runOfShow', 'run_of_show', 'run_of_show_data'),
    )
    project_id: str | None = None


class HandoverOutcome(BaseModel):
    event_id: str
    created: bool
    project_id: str | None = None
    project_created: bool = False
    crew_roles: list[str] = Field(default_factory=list)
    contract_seeded: bool = False


@dataclass
class HandoverPlan:
    """Everything the handover transaction writes, computed before it opens."""

    workspace_id: str
    deal_id: str
    event_id: str
    name: str
    start_at: datetime
    end_at: datetime
    run_of_show_data: dict[str, Any]
    project_id: str | None = None
    create_project: bool = False
    project_name: str = 'Production'
    project_status: str = 'lead'
    venue_entity_id: str | None = None
    client_entity_id: str | None = None
    contract_id: str | None = None
    contract_signed_at: datetime | None = None
    crew_roles: list[str] = field(default_factory=list)


class SyncOutcome(BaseModel):
    added: int
    roles: list[str] = Field(default_factory=list)
    diagnostic: CrewRolesDiagnostic | None = None


class EventConflict(BaseModel):
    event_id: str
    event_name: str
    resource_type: Literal['crew', 'gear']
    resource_name: str
