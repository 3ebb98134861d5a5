"""
Organization roster lookups.

- get_org_roster: everyone who can be the point of contact at an
  organization. Active affiliations and org_members are two independent
  sources; both are read and unioned.
- get_internal_team_for_role: members of the workspace's own organization
  whose job title or skill tags match a crew role. Matching is
  case-insensitive and for presentation only; crew roles themselves stay
  exact strings.
- create_contact_for_org: add an unclaimed (ghost) person to an
  organization so they can be picked as a point of contact before they
  have an account.
"""

import structlog

from handover_engine.errors import (
    InternalError,
    NotFoundError,
    PostgresConstraintError,
    ValidationError,
)
from handover_engine.results import fail_soft
from handover_engine.utils import unique_in_order

from .errors import DuplicateContactError
from .models.stakeholder import InternalTeamMember, OrgMemberRecord, OrgRosterContact
from .repository import StakeholderRepository

logger = structlog.get_logger(__name__)


def member_matches_role(member: OrgMemberRecord, role: str) -> bool:
    """Job title contains the role, or a skill tag contains / is contained in it."""
    needle = role.strip().lower()
    if not needle:
        return True
    if member.job_title and needle in member.job_title.lower():
        return True
    for tag in member.skill_tags:
        tag = (tag or '').strip().lower()
        if tag and (needle in tag or tag in needle):
            return True
    return False


class OrgRoster:
    """Roster reads and ghost-contact creation over affiliations, org_members and entities."""

    def __init__(self, repository: StakeholderRepository):
        self.repository = repository

    async def _require_org(self, workspace_id: str, organization_id: str) -> None:
        if not await self.repository.organization_exists(workspace_id, organization_id):
            raise NotFoundError('Organization not found.', context={'organization_id': organization_id})

    async def roster(self, workspace_id: str, organization_id: str) -> list[OrgRosterContact]:
        """Raising variant of get_org_roster()."""
        await self._require_org(workspace_id, organization_id)

        affiliated = await self.repository.list_affiliated_entity_ids(organization_id)
        members = await self.repository.list_org_members([organization_id])

        entity_ids = unique_in_order([*affiliated, *(m.entity_id for m in members if m.entity_id)])
        if not entity_ids:
            return []

        entities = await self.repository.get_entities(entity_ids)
        member_by_entity: dict[str, OrgMemberRecord] = {}
        for m in members:
            if m.entity_id:
                member_by_entity.setdefault(m.entity_id, m)

        contacts = []
        for entity_id in entity_ids:
            member = member_by_entity.get(entity_id)
            entity = entities.get(entity_id)
            email = entity.email if entity else None
            contacts.append(
                OrgRosterContact(
                    id=member.id if member else entity_id,
                    entity_id=entity_id,
                    display_name=(member.full_name if member else None) or email or 'Unknown',
                    email=email,
                )
            )

        logger.debug(
            'roster.loaded',
            organization_id=organization_id,
            affiliated=len(affiliated),
            members=len(members),
            contacts=len(contacts),
        )
        return contacts

    async def team_for_role(
        self, workspace_id: str, organization_id: str, role: str
    ) -> list[InternalTeamMember]:
        """
        Raising variant of get_internal_team_for_role().

        Falls back to the whole roster when nobody matches the role.
        """
        await self._require_org(workspace_id, organization_id)
        roster = [m for m in await self.repository.list_org_members([organization_id]) if m.entity_id]
        matched = [m for m in roster if member_matches_role(m, role)]
        chosen = matched or roster

        entities = await self.repository.get_entities(unique_in_order(m.entity_id for m in chosen))
        team = []
        for m in chosen:
            entity = entities.get(m.entity_id)
            team.append(
                InternalTeamMember(
                    id=m.id,
                    entity_id=m.entity_id,
                    name=m.full_name or (entity.email if entity else None) or 'Unknown',
                    job_title=m.job_title,
                    skill_tags=list(m.skill_tags),
                )
            )
        return team

    async def create_contact(
        self,
        workspace_id: str,
        organization_id: str,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
    ) -> str:
        """
        Add a ghost contact to an organization (raising variant).

        Returns:
            The new contact's entity id, ready to use as a stakeholder entity_id

        Raises:
            ValidationError: email missing or without '@'
            NotFoundError: organization not in the workspace
            DuplicateContactError: the email is already a member
        """
        email = (email or '').strip()
        if '@' not in email:
            raise ValidationError('Valid email required.', context={'organization_id': organization_id})
        await self._require_org(workspace_id, organization_id)

        context = {'organization_id': organization_id}
        try:
            result = await self.repository.add_ghost_member(
                workspace_id,
                organization_id,
                (first_name or '').strip(),
                (last_name or '').strip(),
                email,
            )
        except PostgresConstraintError as e:
            raise DuplicateContactError(context=context) from e

        member_id = result.get('id')
        if not result.get('ok') or not member_id:
            raise ValidationError(result.get('error') or 'Failed to add contact.', context=context)

        entity_id = await self.repository.get_member_entity_id(organization_id, member_id)
        if not entity_id:
            raise InternalError(
                'Contact was created but could not be linked.',
                context={**context, 'member_id': member_id},
            )

        logger.info('roster.contact_created', organization_id=organization_id, entity_id=entity_id)
        return entity_id

    @fail_soft('get_org_roster')
    async def get_org_roster(self, workspace_id: str, organization_id: str) -> list[OrgRosterContact]:
        return await self.roster(workspace_id, organization_id)

    @fail_soft('get_internal_team_for_role')
    async def get_internal_team_for_role(
        self, workspace_id: str, organization_id: str, role: str
    ) -> list[InternalTeamMember]:
        return await self.team_for_role(workspace_id, organization_id, role)

    @fail_soft('create_contact_for_org')
    async def create_contact_for_org(
        self,
        workspace_id: str,
        organization_id: str,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
    ) -> str:
        return await self.create_contact(workspace_id, organization_id, first_name, last_name, email)
