"""
Stakeholder resolver.

Maintains the parties connected to a deal (bill-to, planner, venue
contact, vendor) and resolves each into a display-ready shape:

- Dual node: the contact's name is primary, the organization is the subtitle
- Organization only: the organization's name
- Person only: the person's name (their email when no name is stored)

It also resolves the deal header's client: the bill-to party when one is
recorded, else the organization stored on the deal.
"""

import structlog

from handover_engine.errors import (
    MissingDependencyError,
    NotFoundError,
    PostgresConstraintError,
    ValidationError,
)
from handover_engine.results import fail_soft
from handover_engine.utils import uuid7

from .errors import DuplicateStakeholderError
from .models.stakeholder import (
    ClientContact,
    ClientOrganization,
    DealClientContext,
    EntityRecord,
    OrganizationIdentity,
    OrganizationRecord,
    OrganizationWithContactIdentity,
    StakeholderDisplay,
    StakeholderRole,
    StakeholderRow,
    identity_columns,
    identity_from_ids,
)
from .repository import StakeholderRepository

logger = structlog.get_logger(__name__)

UNKNOWN = 'Unknown'


def _display(
    row: StakeholderRow,
    orgs: dict[str, OrganizationRecord],
    entities: dict[str, EntityRecord],
    contact_names: dict[tuple[str, str], str],
) -> StakeholderDisplay:
    identity = row.identity
    base = {
        'id': row.id,
        'deal_id': row.deal_id,
        'role': row.role,
        'is_primary': row.is_primary,
        'kind': identity.kind,
    }

    if isinstance(identity, OrganizationWithContactIdentity):
        org = orgs.get(identity.organization_id)
        entity = entities.get(identity.entity_id)
        contact_email = entity.email if entity else None
        contact_name = contact_names.get((identity.organization_id, identity.entity_id)) or contact_email
        org_name = (org.name if org else None) or UNKNOWN
        return StakeholderDisplay(
            **base,
            organization_id=identity.organization_id,
            entity_id=identity.entity_id,
            name=contact_name or org_name,
            email=contact_email or (org.support_email if org else None),
            contact_name=contact_name,
            contact_email=contact_email,
            organization_name=org_name,
            logo_url=org.logo_url if org else None,
            address=org.address if org else None,
        )

    if isinstance(identity, OrganizationIdentity):
        org = orgs.get(identity.organization_id)
        return StakeholderDisplay(
            **base,
            organization_id=identity.organization_id,
            name=(org.name if org else None) or UNKNOWN,
            email=org.support_email if org else None,
            organization_name=org.name if org else None,
            logo_url=org.logo_url if org else None,
            address=org.address if org else None,
        )

    entity = entities.get(identity.entity_id)
    return StakeholderDisplay(
        **base,
        entity_id=identity.entity_id,
        name=(entity.email if entity else None) or UNKNOWN,
        email=entity.email if entity else None,
    )


def _client_org(org: OrganizationRecord) -> ClientOrganization:
    return ClientOrganization(
        id=org.id,
        name=org.name or UNKNOWN,
        category=org.category,
        support_email=org.support_email,
        website=org.website,
        address=org.address,
    )


class StakeholderResolver:
    """
    Add, remove and display the stakeholders of a deal.
    """

    def __init__(self, repository: StakeholderRepository):
        self.repository = repository

    async def _require_deal(self, workspace_id: str, deal_id: str) -> None:
        if not await self.repository.deal_exists(workspace_id, deal_id):
            raise NotFoundError('Deal not found.', context={'deal_id': deal_id})

    async def add(
        self,
        workspace_id: str,
        deal_id: str,
        role: StakeholderRole | str,
        organization_id: str | None = None,
        entity_id: str | None = None,
        is_primary: bool = False,
    ) -> str:
        """
        Connect a party to a deal (raising variant).

        Returns:
            The new stakeholder id

        Raises:
            MissingIdentityError: neither organization_id nor entity_id given
            NotFoundError: deal (or organization) not in the workspace
            DuplicateStakeholderError: the same connection already exists
        """
        identity = identity_from_ids(organization_id, entity_id)
        try:
            role_value = StakeholderRole(role).value
        except ValueError as e:
            raise ValidationError(f'Unknown stakeholder role: {role}', context={'role': role}) from e

        await self._require_deal(workspace_id, deal_id)
        org_id, person_id = identity_columns(identity)
        if org_id and not await self.repository.organization_exists(workspace_id, org_id):
            raise NotFoundError('Organization not found.', context={'organization_id': org_id})

        try:
            stakeholder_id = await self.repository.insert_stakeholder(
                deal_id=deal_id,
                stakeholder_id=str(uuid7()),
                role=role_value,
                organization_id=org_id,
                entity_id=person_id,
                is_primary=is_primary,
            )
        except PostgresConstraintError as e:
            raise DuplicateStakeholderError(
                context={'deal_id': deal_id, 'role': role_value, 'kind': identity.kind}
            ) from e

        logger.info(
            'stakeholders.added',
            deal_id=deal_id,
            stakeholder_id=stakeholder_id,
            role=role_value,
            kind=identity.kind,
        )
        return stakeholder_id

    async def remove(self, workspace_id: str, deal_id: str, stakeholder_id: str) -> None:
        await self._require_deal(workspace_id, deal_id)
        deleted = await self.repository.delete_stakeholder(workspace_id, deal_id, stakeholder_id)
        if not deleted:
            raise NotFoundError(
                'Stakeholder not found.',
                context={'deal_id': deal_id, 'stakeholder_id': stakeholder_id},
            )
        logger.info('stakeholders.removed', deal_id=deal_id, stakeholder_id=stakeholder_id)

    async def list_for_deal(self, workspace_id: str, deal_id: str) -> list[StakeholderDisplay]:
        """
        Display-ready stakeholders, primary first then oldest first.

        A workspace without the stakeholders table yet reads as no stakeholders.
        """
        await self._require_deal(workspace_id, deal_id)
        try:
            rows = await self.repository.list_stakeholders(deal_id)
        except MissingDependencyError:
            logger.info('stakeholders.table_missing', deal_id=deal_id)
            return []
        if not rows:
            return []

        org_ids = sorted({r.organization_id for r in rows if r.organization_id})
        entity_ids = sorted({r.entity_id for r in rows if r.entity_id})
        dual_pairs = {
            (r.organization_id, r.entity_id) for r in rows if r.organization_id and r.entity_id
        }

        orgs = await self.repository.get_organizations(workspace_id, org_ids)
        entities = await self.repository.get_entities(entity_ids)
        contact_names: dict[tuple[str, str], str] = {}
        if dual_pairs:
            members = await self.repository.list_org_members(
                sorted({o for o, _ in dual_pairs}), sorted({e for _, e in dual_pairs})
            )
            for m in members:
                if m.entity_id and m.full_name:
                    contact_names.setdefault((m.org_id, m.entity_id), m.full_name)

        return [_display(r, orgs, entities, contact_names) for r in rows]

    async def client_context(self, workspace_id: str, deal_id: str) -> DealClientContext | None:
        """
        Client organization and main contact of a deal (raising variant).

        Resolution order:
        1. Bill-to person with an organization (its own, else the deal's):
           that organization, contact named from org_members
        2. Bill-to person and no organization: a minimal organization named
           after the person
        3. Bill-to organization, else deal.organization_id, with the
           contact from deal.main_contact_id

        Returns None when no organization can be resolved.
        """
        refs = await self.repository.get_deal_client_refs(workspace_id, deal_id)
        if refs is None:
            raise NotFoundError('Deal not found.', context={'deal_id': deal_id})

        bill_to = None
        try:
            bill_to = await self.repository.get_bill_to(deal_id)
        except MissingDependencyError:
            logger.info('stakeholders.table_missing', deal_id=deal_id)

        org_id = (bill_to.organization_id if bill_to else None) or refs.organization_id
        contact_entity_id = bill_to.entity_id if bill_to else None

        if contact_entity_id:
            entity = (await self.repository.get_entities([contact_entity_id])).get(contact_entity_id)
            if entity is not None and org_id:
                org = (await self.repository.get_organizations(workspace_id, [org_id])).get(org_id)
                if org is not None:
                    members = await self.repository.list_org_members([org_id], [contact_entity_id])
                    member = members[0] if members else None
                    return DealClientContext(
                        organization=_client_org(org),
                        main_contact=ClientContact(
                            id=entity.id,
                            first_name=(member.first_name if member else None) or '',
                            last_name=(member.last_name if member else None) or '',
                            email=entity.email,
                        ),
                        past_deals_count=await self.repository.count_org_deals(workspace_id, org_id),
                    )
            elif entity is not None:
                return DealClientContext(
                    organization=ClientOrganization(
                        id=entity.id,
                        name=entity.email or UNKNOWN,
                        support_email=entity.email,
                    ),
                )

        if not org_id:
            return None
        org = (await self.repository.get_organizations(workspace_id, [org_id])).get(org_id)
        if org is None:
            return None

        main_contact = None
        if refs.main_contact_id:
            contact = await self.repository.get_contact(refs.main_contact_id)
            if contact is not None:
                main_contact = ClientContact(
                    id=contact.id,
                    first_name=contact.first_name or '',
                    last_name=contact.last_name or '',
                    email=contact.email,
                    phone=contact.phone,
                )

        return DealClientContext(
            organization=_client_org(org),
            main_contact=main_contact,
            past_deals_count=await self.repository.count_org_deals(workspace_id, org_id),
        )

    @fail_soft('add_stakeholder')
    async def add_stakeholder(
        self,
        workspace_id: str,
        deal_id: str,
        role: StakeholderRole | str,
        organization_id: str | None = None,
        entity_id: str | None = None,
        is_primary: bool = False,
    ) -> str:
        return await self.add(workspace_id, deal_id, role, organization_id, entity_id, is_primary)

    @fail_soft('remove_stakeholder')
    async def remove_stakeholder(self, workspace_id: str, deal_id: str, stakeholder_id: str) -> None:
        await self.remove(workspace_id, deal_id, stakeholder_id)

    @fail_soft('get_deal_stakeholders')
    async def get_deal_stakeholders(self, workspace_id: str, deal_id: str) -> list[StakeholderDisplay]:
        return await self.list_for_deal(workspace_id, deal_id)

    @fail_soft('get_deal_client_context')
    async def get_deal_client_context(self, workspace_id: str, deal_id: str) -> DealClientContext | None:
        return await self.client_context(workspace_id, deal_id)
