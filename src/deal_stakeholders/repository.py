"""
Row-store repository for deal stakeholders and organization rosters.

Tables: deal_stakeholders, organizations, entities, org_members,
affiliations and the legacy contacts table. Deal and organization lookups
are workspace-scoped; entity, contact and member lookups are keyed by ids
already reached through a scoped row.
"""

import json
from typing import Any

import structlog

from handover_engine.clients.postgres_client import PostgresClient

from .models.stakeholder import (
    ContactRecord,
    DealClientRefs,
    EntityRecord,
    OrganizationRecord,
    OrgMemberRecord,
    StakeholderRow,
)

logger = structlog.get_logger(__name__)

_ROSTER_LIMIT = 1000


class StakeholderRepository:
    """
    CRUD for deal stakeholders plus the organization/person lookups used to
    display them.
    """

    def __init__(self, postgres_client: PostgresClient):
        self.postgres = postgres_client

    # =========================================================================
    # Scope checks
    # =========================================================================

    async def deal_exists(self, workspace_id: str, deal_id: str) -> bool:
        row = await self.postgres.fetch_one(
            'SELECT id FROM deals WHERE id = :deal_id AND workspace_id = :workspace_id',
            {'deal_id': deal_id, 'workspace_id': workspace_id},
        )
        return row is not None

    async def organization_exists(self, workspace_id: str, organization_id: str) -> bool:
        row = await self.postgres.fetch_one(
            'SELECT id FROM organizations WHERE id = :organization_id AND workspace_id = :workspace_id',
            {'organization_id': organization_id, 'workspace_id': workspace_id},
        )
        return row is not None

    async def get_deal_client_refs(self, workspace_id: str, deal_id: str) -> DealClientRefs | None:
        row = await self.postgres.fetch_one(
            """
            SELECT organization_id, main_contact_id
            FROM deals
            WHERE id = :deal_id AND workspace_id = :workspace_id
            """,
            {'deal_id': deal_id, 'workspace_id': workspace_id},
        )
        return DealClientRefs.model_validate(row) if row else None

    async def count_org_deals(self, workspace_id: str, organization_id: str) -> int:
        row = await self.postgres.fetch_one(
            """
            SELECT COUNT(*) AS n
            FROM deals
            WHERE organization_id = :organization_id AND workspace_id = :workspace_id
            """,
            {'organization_id': organization_id, 'workspace_id': workspace_id},
        )
        return int(row['n']) if row else 0

    # =========================================================================
    # deal_stakeholders
    # =========================================================================

    async def insert_stakeholder(
        self,
        deal_id: str,
        stakeholder_id: str,
        role: str,
        organization_id: str | None,
        entity_id: str | None,
        is_primary: bool,
    ) -> str:
        """
        Insert a stakeholder row.

        Raises:
            PostgresConstraintError: the (deal, org, entity, role) unique index rejected it
        """
        rows = await self.postgres.execute(
            """
            INSERT INTO deal_stakeholders (id, deal_id, organization_id, entity_id, role, is_primary)
            VALUES (:id, :deal_id, :organization_id, :entity_id, :role, :is_primary)
            RETURNING id
            """,
            {
                'id': stakeholder_id,
                'deal_id': deal_id,
                'organization_id': organization_id,
                'entity_id': entity_id,
                'role': role,
                'is_primary': is_primary,
            },
        )
        return rows[0]['id']

    async def delete_stakeholder(self, workspace_id: str, deal_id: str, stakeholder_id: str) -> bool:
        """Delete one stakeholder of a workspace deal. Returns False if no row matched."""
        rows = await self.postgres.execute(
            """
            DELETE FROM deal_stakeholders s
            USING deals d
            WHERE s.id = :stakeholder_id
              AND s.deal_id = :deal_id
              AND d.id = s.deal_id
              AND d.workspace_id = :workspace_id
            RETURNING s.id
            """,
            {'stakeholder_id': stakeholder_id, 'deal_id': deal_id, 'workspace_id': workspace_id},
        )
        return bool(rows)

    async def list_stakeholders(self, deal_id: str) -> list[StakeholderRow]:
        """Stakeholders of a deal, primary first, then oldest first."""
        rows = await self.postgres.fetch_all(
            """
            SELECT id, deal_id, role, is_primary, organization_id, entity_id, created_at
            FROM deal_stakeholders
            WHERE deal_id = :deal_id
            ORDER BY is_primary DESC, created_at ASC
            """,
            {'deal_id': deal_id},
        )
        return [StakeholderRow.model_validate(r) for r in rows]

    async def get_bill_to(self, deal_id: str) -> StakeholderRow | None:
        """The deal's bill-to stakeholder, primary first then oldest first."""
        row = await self.postgres.fetch_one(
            """
            SELECT id, deal_id, role, is_primary, organization_id, entity_id, created_at
            FROM deal_stakeholders
            WHERE deal_id = :deal_id AND role = 'bill_to'
            ORDER BY is_primary DESC, created_at ASC
            LIMIT 1
            """,
            {'deal_id': deal_id},
        )
        return StakeholderRow.model_validate(row) if row else None

    # =========================================================================
    # Organizations / people
    # =========================================================================

    async def get_organizations(
        self, workspace_id: str, organization_ids: list[str]
    ) -> dict[str, OrganizationRecord]:
        if not organization_ids:
            return {}
        rows = await self.postgres.fetch_all(
            """
            SELECT id, name, category, website, logo_url, support_email, address
            FROM organizations
            WHERE CAST(id AS text) = ANY(:organization_ids)
              AND workspace_id = :workspace_id
            """,
            {'organization_ids': list(organization_ids), 'workspace_id': workspace_id},
        )
        records = {}
        for r in rows:
            address = r.get('address')
            if isinstance(address, str):
                try:
                    address = json.loads(address)
                except ValueError:
                    address = None
            r['address'] = address if isinstance(address, dict) else None
            records[r['id']] = OrganizationRecord.model_validate(r)
        return records

    async def get_entities(self, entity_ids: list[str]) -> dict[str, EntityRecord]:
        if not entity_ids:
            return {}
        rows = await self.postgres.fetch_all(
            'SELECT id, email FROM entities WHERE CAST(id AS text) = ANY(:entity_ids)',
            {'entity_ids': list(entity_ids)},
        )
        return {r['id']: EntityRecord.model_validate(r) for r in rows}

    async def list_org_members(
        self,
        organization_ids: list[str],
        entity_ids: list[str] | None = None,
    ) -> list[OrgMemberRecord]:
        """org_members rows for the organizations, optionally narrowed to entity ids."""
        if not organization_ids:
            return []
        sql = """
            SELECT id, org_id, entity_id, first_name, last_name, job_title, skill_tags
            FROM org_members
            WHERE CAST(org_id AS text) = ANY(:organization_ids)
        """
        params: dict[str, Any] = {'organization_ids': list(organization_ids), 'limit': _ROSTER_LIMIT}
        if entity_ids is not None:
            sql += ' AND CAST(entity_id AS text) = ANY(:entity_ids)'
            params['entity_ids'] = list(entity_ids)
        sql += ' ORDER BY created_at ASC LIMIT :limit'
        rows = await self.postgres.fetch_all(sql, params)
        return [OrgMemberRecord.model_validate(r) for r in rows]

    async def list_affiliated_entity_ids(self, organization_id: str) -> list[str]:
        """Entity ids with an active affiliation to the organization."""
        rows = await self.postgres.fetch_all(
            """
            SELECT entity_id
            FROM affiliations
            WHERE organization_id = :organization_id
              AND status = 'active'
              AND entity_id IS NOT NULL
            ORDER BY created_at ASC
            LIMIT :limit
            """,
            {'organization_id': organization_id, 'limit': _ROSTER_LIMIT},
        )
        return [r['entity_id'] for r in rows]

    async def get_contact(self, contact_id: str) -> ContactRecord | None:
        row = await self.postgres.fetch_one(
            'SELECT id, first_name, last_name, email, phone FROM contacts WHERE id = :contact_id',
            {'contact_id': contact_id},
        )
        return ContactRecord.model_validate(row) if row else None

    # =========================================================================
    # Contacts
    # =========================================================================

    async def add_ghost_member(
        self,
        workspace_id: str,
        organization_id: str,
        first_name: str,
        last_name: str,
        email: str,
    ) -> dict[str, Any]:
        """
        Create an unclaimed entity plus org_members row via add_ghost_member().

        Returns:
            The function's jsonb result: {ok, id, error}

        Raises:
            PostgresConstraintError: the email is already a member of the organization
        """
        rows = await self.postgres.execute(
            """
            SELECT add_ghost_member(
                :organization_id, :workspace_id, :first_name, :last_name, :email, 'member'
            ) AS result
            """,
            {
                'organization_id': organization_id,
                'workspace_id': workspace_id,
                'first_name': first_name,
                'last_name': last_name,
                'email': email,
            },
        )
        result = rows[0]['result'] if rows else None
        if isinstance(result, str):
            try:
                result = json.loads(result)
            except ValueError:
                result = None
        return result if isinstance(result, dict) else {}

    async def get_member_entity_id(self, organization_id: str, member_id: str) -> str | None:
        row = await self.postgres.fetch_one(
            'SELECT entity_id FROM org_members WHERE id = :member_id AND org_id = :organization_id',
            {'member_id': member_id, 'organization_id': organization_id},
        )
        return row['entity_id'] if row else None
