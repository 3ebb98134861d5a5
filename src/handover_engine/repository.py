"""
Row-store repository for the handover engine.

Provides typed, workspace-scoped CRUD over the CRM tables the engine reads
and writes: deals, proposals, proposal_items, packages, ops.projects,
ops.events (run-of-show document + section versions) and contracts.

Key design decisions:
- Every query that can see another workspace's data joins through the
  owning row (deal or project) and filters on workspace_id.
- Run-of-show sections are written one top-level key at a time with a
  per-section version check, so writers of different sections never touch
  each other's data and same-section writers cannot silently overwrite.
- The handover writes (default project, production, project client, deal
  link, contract) run in a single transaction; the deal link is guarded by
  event_id IS NULL so a concurrent handover can never link a second event.
"""

import json
from datetime import datetime
from typing import Any

import structlog

from .clients.postgres_client import PostgresClient, execute_in
from .errors import DealAlreadyLinkedError, NotFoundError, StaleSectionError
from .models.catalog import Package, Proposal, ProposalItem
from .models.deal import Contract, Deal, HandoverPlan, Production, Project

logger = structlog.get_logger(__name__)


def _load_json(value: Any) -> Any:
    """jsonb normally arrives decoded; tolerate drivers that return text."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def _to_production(row: dict[str, Any]) -> Production:
    data = dict(row)
    data['run_of_show_data'] = _load_json(row.get('run_of_show_data'))
    data['run_of_show_versions'] = _load_json(row.get('run_of_show_versions')) or {}
    return Production.model_validate(data)


_PRODUCTION_COLUMNS = """
    e.id, e.project_id, e.name, e.start_at, e.end_at, e.venue_entity_id,
    e.run_of_show_data,
    COALESCE(e.run_of_show_versions, '{}'::jsonb) AS run_of_show_versions
"""

_EVENT_EXISTS_SQL = """
    SELECT e.id
    FROM ops.events e
    JOIN ops.projects p ON p.id = e.project_id
    WHERE e.id = :event_id AND p.workspace_id = :workspace_id
"""


class ProductionRepository:
    """
    Workspace-scoped CRUD for deals, the catalog and productions.
    """

    def __init__(self, postgres_client: PostgresClient):
        self.postgres = postgres_client

    # =========================================================================
    # Deals
    # =========================================================================

    async def get_deal(self, workspace_id: str, deal_id: str) -> Deal | None:
        row = await self.postgres.fetch_one(
            """
            SELECT id, workspace_id, title, status, proposed_date, event_id,
                   organization_id, main_contact_id, venue_id
            FROM deals
            WHERE id = :deal_id AND workspace_id = :workspace_id
            """,
            {'deal_id': deal_id, 'workspace_id': workspace_id},
        )
        return Deal.model_validate(row) if row else None

    async def find_deal_for_event(self, workspace_id: str, event_id: str) -> Deal | None:
        """The deal handed over into this production, if any."""
        row = await self.postgres.fetch_one(
            """
            SELECT id, workspace_id, title, status, proposed_date, event_id,
                   organization_id, main_contact_id, venue_id
            FROM deals
            WHERE event_id = :event_id AND workspace_id = :workspace_id
            LIMIT 1
            """,
            {'event_id': event_id, 'workspace_id': workspace_id},
        )
        return Deal.model_validate(row) if row else None

    # =========================================================================
    # Proposals / catalog
    # =========================================================================

    async def list_proposals(self, workspace_id: str, deal_id: str) -> list[Proposal]:
        """All proposals for a deal, newest first."""
        rows = await self.postgres.fetch_all(
            """
            SELECT p.id, p.deal_id, p.status, p.created_at, p.accepted_at
            FROM proposals p
            JOIN deals d ON d.id = p.deal_id
            WHERE p.deal_id = :deal_id AND d.workspace_id = :workspace_id
            ORDER BY p.created_at DESC NULLS LAST
            """,
            {'deal_id': deal_id, 'workspace_id': workspace_id},
        )
        return [Proposal.model_validate(r) for r in rows]

    async def get_accepted_proposal(self, workspace_id: str, deal_id: str) -> Proposal | None:
        """Most recent accepted proposal for a deal."""
        row = await self.postgres.fetch_one(
            """
            SELECT p.id, p.deal_id, p.status, p.created_at, p.accepted_at
            FROM proposals p
            JOIN deals d ON d.id = p.deal_id
            WHERE p.deal_id = :deal_id AND d.workspace_id = :workspace_id
              AND p.status = 'accepted'
            ORDER BY p.created_at DESC NULLS LAST
            LIMIT 1
            """,
            {'deal_id': deal_id, 'workspace_id': workspace_id},
        )
        return Proposal.model_validate(row) if row else None

    async def list_proposal_items(self, proposal_id: str) -> list[ProposalItem]:
        rows = await self.postgres.fetch_all(
            """
            SELECT id, package_id, origin_package_id
            FROM proposal_items
            WHERE proposal_id = :proposal_id
            """,
            {'proposal_id': proposal_id},
        )
        return [ProposalItem.model_validate(r) for r in rows]

    async def get_packages(self, workspace_id: str, package_ids: list[str]) -> list[Package]:
        """
        Load catalog packages by id within the workspace.

        Ids that no longer exist (or belong to another workspace) are simply
        absent from the result.
        """
        if not package_ids:
            return []
        rows = await self.postgres.fetch_all(
            """
            SELECT id, name, category, definition
            FROM packages
            WHERE CAST(id AS text) = ANY(:package_ids)
              AND workspace_id = :workspace_id
            """,
            {'package_ids': list(package_ids), 'workspace_id': workspace_id},
        )
        packages = []
        for r in rows:
            r['definition'] = _load_json(r.get('definition'))
            packages.append(Package.model_validate(r))
        return packages

    # =========================================================================
    # Projects
    # =========================================================================

    async def list_projects(self, workspace_id: str) -> list[Project]:
        rows = await self.postgres.fetch_all(
            """
            SELECT id, workspace_id, name, status, client_entity_id
            FROM ops.projects
            WHERE workspace_id = :workspace_id
            ORDER BY created_at ASC
            """,
            {'workspace_id': workspace_id},
        )
        return [Project.model_validate(r) for r in rows]

    # =========================================================================
    # Productions (ops.events)
    # =========================================================================

    async def get_production(self, workspace_id: str, event_id: str) -> Production | None:
        row = await self.postgres.fetch_one(
            f"""
            SELECT {_PRODUCTION_COLUMNS}
            FROM ops.events e
            JOIN ops.projects p ON p.id = e.project_id
            WHERE e.id = :event_id AND p.workspace_id = :workspace_id
            """,
            {'event_id': event_id, 'workspace_id': workspace_id},
        )
        return _to_production(row) if row else None

    async def get_contract_for_event(self, workspace_id: str, event_id: str) -> Contract | None:
        """Most recent contract of a production, or None."""
        row = await self.postgres.fetch_one(
            """
            SELECT status, signed_at, pdf_url
            FROM contracts
            WHERE event_id = :event_id AND workspace_id = :workspace_id
            ORDER BY created_at DESC NULLS LAST
            LIMIT 1
            """,
            {'event_id': event_id, 'workspace_id': workspace_id},
        )
        return Contract.model_validate(row) if row else None

    async def list_overlapping_productions(
        self,
        workspace_id: str,
        event_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> list[Production]:
        """Other productions in the workspace whose time window overlaps [start_at, end_at]."""
        rows = await self.postgres.fetch_all(
            f"""
            SELECT {_PRODUCTION_COLUMNS}
            FROM ops.events e
            JOIN ops.projects p ON p.id = e.project_id
            WHERE p.workspace_id = :workspace_id
              AND e.id <> :event_id
              AND e.start_at <= :end_at
              AND e.end_at >= :start_at
            ORDER BY e.start_at ASC
            """,
            {
                'workspace_id': workspace_id,
                'event_id': event_id,
                'start_at': start_at,
                'end_at': end_at,
            },
        )
        return [_to_production(r) for r in rows]

    async def write_run_of_show_sections(
        self,
        workspace_id: str,
        event_id: str,
        sections: dict[str, Any],
        expected_versions: dict[str, int],
    ) -> dict[str, int]:
        """
        Replace the given top-level sections, each guarded by its version.

        All sections are written in one transaction. If any section's stored
        version differs from expected_versions (missing = 0), nothing is
        written and StaleSectionError is raised. A production that no longer
        exists (or is outside the workspace) raises NotFoundError instead.

        Args:
            workspace_id: Owning workspace
            event_id: Production id
            sections: section name → JSON-ready replacement value
            expected_versions: section name → version the caller read

        Returns:
            section name → new version for every written section
        """
        sql = """
            UPDATE ops.events e
            SET run_of_show_data = COALESCE(e.run_of_show_data, '{}'::jsonb)
                    || jsonb_build_object(CAST(:section AS text), CAST(:value AS jsonb)),
                run_of_show_versions = COALESCE(e.run_of_show_versions, '{}'::jsonb)
                    || jsonb_build_object(CAST(:section AS text), CAST(:next_version AS integer))
            WHERE e.id = :event_id
              AND e.project_id IN (
                  SELECT id FROM ops.projects WHERE workspace_id = :workspace_id
              )
              AND COALESCE(
                  CAST(e.run_of_show_versions ->> CAST(:section AS text) AS integer), 0
              ) = :expected_version
            RETURNING e.id
        """
        new_versions: dict[str, int] = {}
        async with self.postgres.transaction() as conn:
            for section, value in sections.items():
                expected = expected_versions.get(section, 0)
                rows = await execute_in(
                    conn,
                    sql,
                    {
                        'event_id': event_id,
                        'workspace_id': workspace_id,
                        'section': section,
                        'value': json.dumps(value),
                        'expected_version': expected,
                        'next_version': expected + 1,
                    },
                )
                if not rows:
                    scope = {'event_id': event_id, 'workspace_id': workspace_id}
                    if not await execute_in(conn, _EVENT_EXISTS_SQL, scope):
                        raise NotFoundError(
                            'Production not found',
                            context=scope,
                        )
                    raise StaleSectionError(
                        f"Run-of-show section '{section}' changed since it was read",
                        context={'event_id': event_id, 'section': section, 'expected_version': expected},
                    )
                new_versions[section] = expected + 1

        logger.debug(
            'production_repository.sections_written',
            event_id=event_id,
            sections=sorted(sections),
        )
        return new_versions

    # =========================================================================
    # Handover
    # =========================================================================

    async def commit_handover(self, plan: HandoverPlan) -> None:
        """
        Apply every handover write atomically.

        Raises:
            DealAlreadyLinkedError: the deal gained an event_id concurrently
                                    (the transaction is rolled back)
        """
        async with self.postgres.transaction() as conn:
            if plan.create_project:
                await execute_in(
                    conn,
                    """
                    INSERT INTO ops.projects (id, workspace_id, name, status)
                    VALUES (:id, :workspace_id, :name, :status)
                    """,
                    {
                        'id': plan.project_id,
                        'workspace_id': plan.workspace_id,
                        'name': plan.project_name,
                        'status': plan.project_status,
                    },
                )

            await execute_in(
                conn,
                """
                INSERT INTO ops.events (
                    id, project_id, name, start_at, end_at, venue_entity_id,
                    run_of_show_data, run_of_show_versions
                ) VALUES (
                    :id, :project_id, :name, :start_at, :end_at, :venue_entity_id,
                    CAST(:run_of_show_data AS jsonb), '{}'::jsonb
                )
                """,
                {
                    'id': plan.event_id,
                    'project_id': plan.project_id,
                    'name': plan.name,
                    'start_at': plan.start_at,
                    'end_at': plan.end_at,
                    'venue_entity_id': plan.venue_entity_id,
                    'run_of_show_data': json.dumps(plan.run_of_show_data),
                },
            )

            if plan.client_entity_id:
                await execute_in(
                    conn,
                    """
                    UPDATE ops.projects
                    SET client_entity_id = :client_entity_id
                    WHERE id = :project_id AND workspace_id = :workspace_id
                    """,
                    {
                        'client_entity_id': plan.client_entity_id,
                        'project_id': plan.project_id,
                        'workspace_id': plan.workspace_id,
                    },
                )

            linked = await execute_in(
                conn,
                """
                UPDATE deals
                SET status = 'won', event_id = :event_id, updated_at = now()
                WHERE id = :deal_id AND workspace_id = :workspace_id
                  AND event_id IS NULL
                RETURNING id
                """,
                {
                    'event_id': plan.event_id,
                    'deal_id': plan.deal_id,
                    'workspace_id': plan.workspace_id,
                },
            )
            if not linked:
                raise DealAlreadyLinkedError(
                    'Deal was handed over concurrently',
                    context={'deal_id': plan.deal_id},
                )

            if plan.contract_id:
                await execute_in(
                    conn,
                    """
                    INSERT INTO contracts (id, workspace_id, event_id, status, signed_at, pdf_url)
                    VALUES (:id, :workspace_id, :event_id, 'signed', :signed_at, NULL)
                    """,
                    {
                        'id': plan.contract_id,
                        'workspace_id': plan.workspace_id,
                        'event_id': plan.event_id,
                        'signed_at': plan.contract_signed_at,
                    },
                )
