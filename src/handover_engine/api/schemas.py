"""Request bodies for the handover API (camelCase on the wire)."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from deal_stakeholders.models import StakeholderRole

from ..models.run_of_show import CrewStatus, RunOfShowUpdate


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssignCrewBody(_Body):
    entity_id: str
    assignee_name: str | None = None


class CrewStatusBody(_Body):
    status: CrewStatus


class AddCrewRoleBody(_Body):
    role: str


class AddGearBody(_Body):
    name: str


class RunOfShowPatchBody(RunOfShowUpdate):
    """Section replacements plus the section versions the edit was based on."""

    expected_versions: dict[str, int] | None = None


class AddStakeholderBody(_Body):
    role: StakeholderRole
    organization_id: str | None = None
    entity_id: str | None = None
    is_primary: bool = False


class CreateContactBody(_Body):
    first_name: str = ""
    last_name: str = ""
    email: str
