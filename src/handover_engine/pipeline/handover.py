"""
Handover orchestrator.

Converts a deal into a production exactly once:

1. Idempotency: a deal already linked to a production returns that id
2. Status guard: only inquiry / proposal / contract_sent deals hand over
3. Project resolution: explicit project_id, else the workspace's single
   project, else a new default project (several projects is a
   configuration error)
4. Vitals: wizard payload, else the deal's proposed date 08:00-18:00 UTC
5. Crew: roles derived from the catalog unioned with the wizard's roles;
   one requested slot per role not already in the wizard's crew list
6-9. Production insert, project client link, deal link and contract
   seeding, all in one transaction
10. Return the production id

The deal link only succeeds while deal.event_id is still NULL. Losing that
race rolls the whole transaction back and returns the winning production.
"""

from datetime import date, datetime, time, timezone
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..config import config
from ..errors import (
    ClientError,
    ConfigurationError,
    DealAlreadyLinkedError,
    HandoverError,
    MissingDependencyError,
    NotFoundError,
    ValidationError,
)
from ..logging import OperationTimer, logging_context
from ..models.deal import (
    HANDOVER_READY_STATUSES,
    Contract,
    Deal,
    HandoverOutcome,
    HandoverPayload,
    HandoverPlan,
)
from ..models.run_of_show import CrewItem
from ..repository import ProductionRepository
from ..results import fail_soft
from ..utils import unique_in_order, utc_now, uuid7
from .expander import CatalogExpander

logger = structlog.get_logger(__name__)

UNTITLED_PRODUCTION = 'Untitled Production'


def _parse_payload(payload: HandoverPayload | dict[str, Any] | None) -> HandoverPayload | None:
    if payload is None or isinstance(payload, HandoverPayload):
        return payload
    try:
        return HandoverPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            'Invalid handover payload',
            context={'errors': e.errors(include_url=False, include_context=False)},
        ) from e


def _on_day(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, time.fromisoformat(hhmm), tzinfo=timezone.utc)


def build_crew_sections(
    run_of_show: dict[str, Any],
    derived_roles: list[str],
) -> tuple[dict[str, Any], list[str]]:
    """
    Merge derived roles into the wizard's run-of-show sections.

    Args:
        run_of_show: JSON-ready sections supplied by the wizard (may be empty)
        derived_roles: Roles from the catalog expander

    Returns:
        (run-of-show document to store, unioned role list)
    """
    document = dict(run_of_show)
    wizard_roles = [r.strip() for r in document.get('crew_roles') or [] if r and r.strip()]
    roles = unique_in_order([*wizard_roles, *derived_roles])

    explicit_items = list(document.get('crew_items') or [])
    represented = {item.get('role') for item in explicit_items}
    synthesized = [
        CrewItem(role=role).model_dump(mode='json')
        for role in roles
        if role not in represented
    ]

    if roles:
        document['crew_roles'] = roles
    if explicit_items or synthesized:
        document['crew_items'] = explicit_items + synthesized
    return document, roles


class HandoverOrchestrator:
    """
    Deal → production handover.
    """

    def __init__(
        self,
        repository: ProductionRepository,
        expander: CatalogExpander | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            repository: Row-store access for deals, projects and productions
            expander: Catalog expander (defaults to one over the same repository)
        """
        self.repository = repository
        self.expander = expander or CatalogExpander(repository)

    async def run(
        self,
        workspace_id: str,
        deal_id: str,
        payload: HandoverPayload | dict[str, Any] | None = None,
        trace_id: str | None = None,
    ) -> HandoverOutcome:
        """Raising variant of handover()."""
        parsed = _parse_payload(payload)
        timer = OperationTimer()

        with logging_context(trace_id=trace_id, workspace_id=workspace_id, deal_id=deal_id):
            with timer.stage('load_deal'):
                deal = await self.repository.get_deal(workspace_id, deal_id)
            if deal is None:
                raise NotFoundError('Deal not found.', context={'deal_id': deal_id})

            if deal.event_id:
                logger.info('handover.already_linked', event_id=deal.event_id)
                return HandoverOutcome(event_id=deal.event_id, created=False)

            if deal.status not in HANDOVER_READY_STATUSES:
                raise ValidationError(
                    'Deal is not ready for handover.',
                    context={'deal_id': deal_id, 'status': deal.status},
                )

            logger.info('handover.started', has_payload=parsed is not None)

            with timer.stage('resolve_project'):
                project_id, create_project = await self._resolve_project(
                    workspace_id, parsed.project_id if parsed else None
                )

            with timer.stage('derive_roles'):
                derived = await self.expander.expand_roles(workspace_id, deal_id)

            with timer.stage('seed_contract'):
                accepted = await self.repository.get_accepted_proposal(workspace_id, deal_id)

            plan = self._plan(deal, parsed, project_id, create_project, derived)
            if accepted is not None:
                plan.contract_id = str(uuid7())
                plan.contract_signed_at = accepted.accepted_at or utc_now()

            with timer.stage('commit'):
                outcome = await self._commit(plan)

            logger.info(
                'handover.complete',
                event_id=outcome.event_id,
                created=outcome.created,
                project_id=outcome.project_id,
                project_created=outcome.project_created,
                crew_roles=outcome.crew_roles,
                contract_seeded=outcome.contract_seeded,
                **timer.summary(),
            )
            return outcome

    @fail_soft('handover')
    async def handover(
        self,
        workspace_id: str,
        deal_id: str,
        payload: HandoverPayload | dict[str, Any] | None = None,
        trace_id: str | None = None,
    ) -> HandoverOutcome:
        return await self.run(workspace_id, deal_id, payload, trace_id)

    async def contract_for(self, workspace_id: str, event_id: str) -> Contract | None:
        """
        Latest contract of a production (raising variant).

        A workspace without the contracts table reads as no contract.

        Raises:
            NotFoundError: production not in the workspace
        """
        if await self.repository.get_production(workspace_id, event_id) is None:
            raise NotFoundError(
                'Production not found',
                context={'event_id': event_id, 'workspace_id': workspace_id},
            )
        try:
            return await self.repository.get_contract_for_event(workspace_id, event_id)
        except MissingDependencyError:
            logger.info('handover.contracts_table_missing', event_id=event_id)
            return None

    @fail_soft('get_contract_for_event')
    async def get_contract_for_event(self, workspace_id: str, event_id: str) -> Contract | None:
        return await self.contract_for(workspace_id, event_id)

    # =========================================================================
    # Steps
    # =========================================================================

    async def _resolve_project(
        self, workspace_id: str, requested_id: str | None
    ) -> tuple[str, bool]:
        """Returns (project_id, needs_create)."""
        projects = await self.repository.list_projects(workspace_id)

        if requested_id:
            if not any(p.id == requested_id for p in projects):
                raise NotFoundError(
                    'Project not found',
                    context={'project_id': requested_id, 'workspace_id': workspace_id},
                )
            return requested_id, False

        if len(projects) == 1:
            return projects[0].id, False
        if not projects:
            return str(uuid7()), True
        raise ConfigurationError(
            f'Workspace has {len(projects)} projects; choose one with project_id',
            context={'project_ids': [p.id for p in projects]},
        )

    def _plan(
        self,
        deal: Deal,
        payload: HandoverPayload | None,
        project_id: str,
        create_project: bool,
        derived_roles: list[str],
    ) -> HandoverPlan:
        title = (deal.title or '').strip() or UNTITLED_PRODUCTION
        venue_entity_id = None
        client_entity_id = None
        run_of_show: dict[str, Any] = {}

        if payload is not None:
            name = (payload.name or '').strip() or title
            start_at = payload.vitals.start_at
            end_at = payload.vitals.end_at
            venue_entity_id = payload.vitals.venue_entity_id or None
            client_entity_id = payload.vitals.client_entity_id or None
            if payload.run_of_show is not None:
                run_of_show = payload.run_of_show.sections()
        else:
            name = title
            day = deal.proposed_date or utc_now().date()
            start_at = _on_day(day, config.HANDOVER_DEFAULT_START)
            end_at = _on_day(day, config.HANDOVER_DEFAULT_END)

        if end_at < start_at:
            raise ValidationError(
                'Production end is before its start',
                context={'start_at': start_at.isoformat(), 'end_at': end_at.isoformat()},
            )

        document, roles = build_crew_sections(run_of_show, derived_roles)
        return HandoverPlan(
            workspace_id=deal.workspace_id,
            deal_id=deal.id,
            event_id=str(uuid7()),
            name=name,
            start_at=start_at,
            end_at=end_at,
            run_of_show_data=document,
            project_id=project_id,
            create_project=create_project,
            project_name=config.DEFAULT_PROJECT_NAME,
            project_status=config.DEFAULT_PROJECT_STATUS,
            venue_entity_id=venue_entity_id,
            client_entity_id=client_entity_id,
            crew_roles=roles,
        )

    async def _commit(self, plan: HandoverPlan) -> HandoverOutcome:
        try:
            await self.repository.commit_handover(plan)
        except DealAlreadyLinkedError:
            winner = await self.repository.get_deal(plan.workspace_id, plan.deal_id)
            if winner is None or not winner.event_id:
                raise
            logger.info('handover.lost_race', event_id=winner.event_id)
            return HandoverOutcome(event_id=winner.event_id, created=False)
        except ClientError as e:
            raise HandoverError(
                'Handover failed; no changes were saved',
                context={'deal_id': plan.deal_id, 'cause': e.message, 'cause_code': e.code},
            ) from e

        return HandoverOutcome(
            event_id=plan.event_id,
            created=True,
            project_id=plan.project_id,
            project_created=plan.create_project,
            crew_roles=plan.crew_roles,
            contract_seeded=plan.contract_id is not None,
        )
