"""
Deal stakeholder models.

A stakeholder slot on a deal is one of three identities:

- OrganizationIdentity: a company (e.g. the venue)
- PersonIdentity: an individual with no organization (e.g. the bride)
- OrganizationWithContactIdentity ("dual node"): a person at a company

The identity is a tagged union discriminated on `kind`, so display and
persistence code handles every case explicitly instead of inspecting two
nullable foreign keys.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from ..errors import MissingIdentityError


class StakeholderRole(str, Enum):
    """How a party is connected to a deal."""

    BILL_TO = 'bill_to'
    PLANNER = 'planner'
    VENUE_CONTACT = 'venue_contact'
    VENDOR = 'vendor'


class OrganizationIdentity(BaseModel):
    kind: Literal['organization'] = 'organization'
    organization_id: str


class PersonIdentity(BaseModel):
    kind: Literal['person'] = 'person'
    entity_id: str


class OrganizationWithContactIdentity(BaseModel):
    kind: Literal['organization_with_contact'] = 'organization_with_contact'
    organization_id: str
    entity_id: str


StakeholderIdentity = Annotated[
    Union[OrganizationIdentity, PersonIdentity, OrganizationWithContactIdentity],
    Field(discriminator='kind'),
]


def identity_from_ids(
    organization_id: str | None = None,
    entity_id: str | None = None,
) -> StakeholderIdentity:
    """
    Build the identity variant from optional organization / person ids.

    Raises:
        MissingIdentityError: both ids are missing or blank
    """
    org = (organization_id or '').strip() or None
    entity = (entity_id or '').strip() or None
    if org and entity:
        return OrganizationWithContactIdentity(organization_id=org, entity_id=entity)
    if org:
        return OrganizationIdentity(organization_id=org)
    if entity:
        return PersonIdentity(entity_id=entity)
    raise MissingIdentityError()


def identity_columns(
    identity: StakeholderIdentity,
) -> tuple[str | None, str | None]:
    """(organization_id, entity_id) column values for an identity."""
    if isinstance(identity, OrganizationWithContactIdentity):
        return identity.organization_id, identity.entity_id
    if isinstance(identity, OrganizationIdentity):
        return identity.organization_id, None
    return None, identity.entity_id


class StakeholderRow(BaseModel):
    """A deal_stakeholders row."""

    id: str
    deal_id: str
    role: str
    is_primary: bool = False
    organization_id: str | None = None
    entity_id: str | None = None
    created_at: datetime | None = None

    @property
    def identity(self) -> StakeholderIdentity:
        return identity_from_ids(self.organization_id, self.entity_id)


class OrganizationRecord(BaseModel):
    id: str
    name: str | None = None
    category: str | None = None
    website: str | None = None
    logo_url: str | None = None
    support_email: str | None = None
    address: dict[str, Any] | None = None


class EntityRecord(BaseModel):
    id: str
    email: str | None = None


class ContactRecord(BaseModel):
    """A row of the legacy contacts table (deal.main_contact_id)."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None


class DealClientRefs(BaseModel):
    """The client columns stored directly on a deal."""

    organization_id: str | None = None
    main_contact_id: str | None = None


class OrgMemberRecord(BaseModel):
    id: str
    org_id: str
    entity_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    skill_tags: list[str] = Field(default_factory=list)

    @field_validator('skill_tags', mode='before')
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def full_name(self) -> str | None:
        name = ' '.join(p for p in (self.first_name, self.last_name) if p).strip()
        return name or None


# =============================================================================
# Display shapes
# =============================================================================


class StakeholderDisplay(BaseModel):
    """
    Display-ready stakeholder.

    `name` is the primary line: the contact's name for a dual node, else the
    organization's or person's name. `organization_name` is the subtitle.
    """

    id: str
    deal_id: str
    role: str
    is_primary: bool
    kind: Literal['organization', 'person', 'organization_with_contact']
    organization_id: str | None = None
    entity_id: str | None = None
    name: str
    email: str | None = None
    phone: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    organization_name: str | None = None
    logo_url: str | None = None
    address: dict[str, Any] | None = None


class OrgRosterContact(BaseModel):
    """A person who can be the point of contact at an organization."""

    id: str
    entity_id: str
    display_name: str
    email: str | None = None


class InternalTeamMember(BaseModel):
    """A member of the workspace's own organization, for crew assignment."""

    id: str
    entity_id: str
    name: str
    job_title: str | None = None
    skill_tags: list[str] = Field(default_factory=list)


class ClientOrganization(BaseModel):
    id: str
    name: str
    category: str | None = None
    support_email: str | None = None
    website: str | None = None
    address: dict[str, Any] | None = None


class ClientContact(BaseModel):
    id: str
    first_name: str = ''
    last_name: str = ''
    email: str | None = None
    phone: str | None = None


class DealClientContext(BaseModel):
    """
    Who the deal is for, as shown on the deal header.

    The organization is the bill-to party when one is recorded, else the
    deal's own organization. A person-only bill-to is presented as a
    minimal organization named after the person.
    """

    organization: ClientOrganization
    main_contact: ClientContact | None = None
    past_deals_count: int = 0
