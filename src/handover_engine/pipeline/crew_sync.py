"""
Crew sync: post-handover repair of a production's crew from its deal's proposal.

Additive only. Roles derived from the proposal that are not yet on the
production get a new requested crew slot and are appended to crew_roles;
existing slots (including placeholders synthesized from crew_roles) are
never removed or reordered. When nothing is added, the outcome carries the
catalog diagnostic so the caller can explain why.
"""

import structlog

from ..errors import NotFoundError
from ..models.deal import SyncOutcome
from ..models.run_of_show import CrewItem, RunOfShowDocument, normalize_crew_items
from ..repository import ProductionRepository
from ..results import fail_soft
from ..utils import unique_in_order
from .expander import CatalogExpander
from .flight_checks import UNCHANGED, SectionMutator
from .merger import RunOfShowMerger

logger = structlog.get_logger(__name__)


class CrewSync(SectionMutator):
    """
    Pulls crew roles from a linked deal's proposal into a production.
    """

    def __init__(
        self,
        repository: ProductionRepository,
        expander: CatalogExpander,
        merger: RunOfShowMerger,
        max_attempts: int | None = None,
    ):
        super().__init__(merger, max_attempts)
        self.repository = repository
        self.expander = expander

    async def sync(self, workspace_id: str, event_id: str) -> SyncOutcome:
        """Raising variant of sync_crew_from_proposal."""
        await self.merger.load(workspace_id, event_id)

        deal = await self.repository.find_deal_for_event(workspace_id, event_id)
        if deal is None:
            raise NotFoundError(
                'No deal linked to this event. Crew from proposal is set when you hand over a deal.',
                context={'event_id': event_id},
            )

        walk = await self.expander.walk(workspace_id, deal.id)
        roles = walk.roles

        def compute(doc: RunOfShowDocument):
            crew = normalize_crew_items(doc)
            present = {item.role for item in crew}
            missing = [role for role in roles if role not in present]
            if not missing:
                return UNCHANGED, []
            crew.extend(CrewItem(role=role) for role in missing)
            crew_roles = unique_in_order([*(doc.crew_roles or []), *roles])
            return {
                'crew_roles': crew_roles,
                'crew_items': [item.model_dump(mode='json') for item in crew],
            }, missing

        added = await self.mutate(workspace_id, event_id, 'crew_items', compute) if roles else []

        logger.info(
            'crew_sync.complete',
            event_id=event_id,
            deal_id=deal.id,
            derived=len(roles),
            added=len(added),
        )
        if not added:
            return SyncOutcome(added=0, roles=roles, diagnostic=walk.to_diagnostic())
        return SyncOutcome(added=len(added), roles=added)

    @fail_soft('sync_crew_from_proposal')
    async def sync_crew_from_proposal(self, workspace_id: str, event_id: str) -> SyncOutcome:
        return await self.sync(workspace_id, event_id)
