"""
Run-of-show document models and the flight-check normalization rules.

The run-of-show document is a semi-structured record stored as JSON on the
production (event) row. Its top-level sections evolve independently:

- crew_roles: bare role names (legacy / wizard input)
- crew_items: structured crew slots with status and assignee
- gear_items: gear checklist with pull/load status
- logistics: three readiness booleans
- gear_requirements / venue_restrictions: free text

Key design decisions:
- Unknown top-level keys are preserved (extra='allow') so newer writers
  never lose data written by older ones.
- crew_items, when non-empty, is authoritative; otherwise placeholder items
  are synthesized from crew_roles. The same precedence applies everywhere
  the crew list is read.
- Each section carries its own integer version (stored alongside the
  document) so concurrent writers of different sections never conflict.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


class CrewStatus(str, Enum):
    """Crew slot lifecycle. Cycles requested → confirmed → dispatched → requested."""

    REQUESTED = 'requested'
    CONFIRMED = 'confirmed'
    DISPATCHED = 'dispatched'


class GearStatus(str, Enum):
    """Gear lifecycle. Cycles pending → pulled → loaded → pending."""

    PENDING = 'pending'
    PULLED = 'pulled'
    LOADED = 'loaded'


CREW_STATUS_ORDER = [CrewStatus.REQUESTED, CrewStatus.CONFIRMED, CrewStatus.DISPATCHED]
GEAR_STATUS_ORDER = [GearStatus.PENDING, GearStatus.PULLED, GearStatus.LOADED]

LOGISTICS_KEYS = ('venue_access_confirmed', 'truck_loaded', 'crew_confirmed')

RUN_OF_SHOW_SECTIONS = (
    'crew_roles',
    'crew_items',
    'gear_items',
    'logistics',
    'gear_requirements',
    'venue_restrictions',
)

GEAR_REQUIREMENTS_PLACEHOLDER_ID = 'gear-requirements'


class CrewItem(BaseModel):
    """One crew slot on a production."""

    role: str = ''
    status: CrewStatus = CrewStatus.REQUESTED
    entity_id: str | None = None
    assignee_name: str | None = None

    @field_validator('status', mode='before')
    @classmethod
    def _default_status(cls, v: Any) -> Any:
        return CrewStatus.REQUESTED if v is None else v

    @field_validator('role', mode='before')
    @classmethod
    def _role_to_str(cls, v: Any) -> Any:
        return '' if v is None else str(v)


class GearItem(BaseModel):
    """One gear checklist entry, addressed by id."""

    id: str
    name: str = ''
    status: GearStatus = GearStatus.PENDING

    @field_validator('status', mode='before')
    @classmethod
    def _default_status(cls, v: Any) -> Any:
        return GearStatus.PENDING if v is None else v

    @field_validator('name', mode='before')
    @classmethod
    def _name_to_str(cls, v: Any) -> Any:
        return '' if v is None else str(v)


class LogisticsState(BaseModel):
    """Logistics readiness booleans. Missing keys read as False."""

    venue_access_confirmed: bool = False
    truck_loaded: bool = False
    crew_confirmed: bool = False

    @field_validator(*LOGISTICS_KEYS, mode='before')
    @classmethod
    def _none_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class RunOfShowDocument(BaseModel):
    """The stored run-of-show document, as read from the production row."""

    model_config = ConfigDict(extra='allow')

    crew_roles: list[str] | None = None
    crew_items: list[CrewItem] | None = None
    gear_items: list[GearItem] | None = None
    logistics: LogisticsState | None = None
    gear_requirements: str | None = None
    venue_restrictions: str | None = None

    _malformed: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def _fill_gear_ids(cls, data: Any) -> Any:
        """Older gear entries may lack an id; address them positionally as gear-<i>."""
        if not isinstance(data, dict) or not isinstance(data.get('gear_items'), list):
            return data
        gear = [
            {**item, 'id': f'gear-{i}'} if isinstance(item, dict) and item.get('id') is None else item
            for i, item in enumerate(data['gear_items'])
        ]
        return {**data, 'gear_items': gear}

    @property
    def malformed_sections(self) -> list[str]:
        """Sections present in storage that could not be read (left out of this model)."""
        return list(self._malformed)

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> 'RunOfShowDocument':
        """
        Parse a stored document one section at a time.

        A section that fails validation is dropped from the parsed model and
        listed in malformed_sections; the other sections still load.
        """
        data = dict(raw) if isinstance(raw, dict) else {}
        malformed = []
        for name in RUN_OF_SHOW_SECTIONS:
            if name not in data:
                continue
            try:
                cls.model_validate({name: data[name]})
            except PydanticValidationError:
                malformed.append(name)
                del data[name]
        doc = cls.model_validate(data)
        doc._malformed = malformed
        return doc


class RunOfShowUpdate(BaseModel):
    """
    Partial update to a run-of-show document.

    Only fields that were explicitly provided (including explicit nulls) are
    written; every other section is left untouched. Accepts both the
    snake_case wire shape and camelCase keys.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='forbid',
    )

    crew_roles: list[str] | None = None
    crew_items: list[CrewItem] | None = None
    gear_items: list[GearItem] | None = None
    logistics: LogisticsState | None = None
    gear_requirements: str | None = None
    venue_restrictions: str | None = None

    def sections(self) -> dict[str, Any]:
        """JSON-ready values for each explicitly provided section."""
        provided = [name for name in RUN_OF_SHOW_SECTIONS if name in self.model_fields_set]
        dumped = self.model_dump(mode='json', include=set(provided))
        return {name: dumped[name] for name in provided}


class RunOfShowView(BaseModel):
    """Display-ready run-of-show: raw document plus normalized sections."""

    event_id: str
    document: RunOfShowDocument
    crew: list[CrewItem]
    gear: list[GearItem]
    logistics: LogisticsState
    versions: dict[str, int] = Field(default_factory=dict)
    malformed_sections: list[str] = Field(default_factory=list)


# =============================================================================
# Normalization
# =============================================================================


def normalize_crew_items(doc: RunOfShowDocument | None) -> list[CrewItem]:
    """Structured crew_items win; otherwise one requested placeholder per crew role."""
    if doc is None:
        return []
    if doc.crew_items:
        return [item.model_copy() for item in doc.crew_items]
    if doc.crew_roles:
        return [CrewItem(role=str(role)) for role in doc.crew_roles]
    return []


def normalize_gear_items(doc: RunOfShowDocument | None) -> list[GearItem]:
    """Structured gear_items win; otherwise a single item built from gear_requirements."""
    if doc is None:
        return []
    if doc.gear_items:
        return [item.model_copy() for item in doc.gear_items]
    if doc.gear_requirements and doc.gear_requirements.strip():
        return [
            GearItem(
                id=GEAR_REQUIREMENTS_PLACEHOLDER_ID,
                name=doc.gear_requirements[:80],
            )
        ]
    return []


def normalize_logistics(doc: RunOfShowDocument | None) -> LogisticsState:
    """Logistics with every key present; a missing section reads as all False."""
    if doc is None or doc.logistics is None:
        return LogisticsState()
    return doc.logistics.model_copy()


def next_crew_status(status: CrewStatus) -> CrewStatus:
    idx = CREW_STATUS_ORDER.index(status)
    return CREW_STATUS_ORDER[(idx + 1) % len(CREW_STATUS_ORDER)]


def next_gear_status(status: GearStatus) -> GearStatus:
    idx = GEAR_STATUS_ORDER.index(status)
    return GEAR_STATUS_ORDER[(idx + 1) % len(GEAR_STATUS_ORDER)]
