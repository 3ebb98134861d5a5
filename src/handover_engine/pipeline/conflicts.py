"""
Event conflict detection.

Finds other productions in the same workspace whose time window overlaps
this one and that need the same crew role or gear resource. Resource names
are read from the normalized crew/gear views, so productions that only
carry crew_roles or gear_requirements are still compared.
"""

import structlog

from ..models.deal import EventConflict, Production
from ..models.run_of_show import GEAR_REQUIREMENTS_PLACEHOLDER_ID
from ..repository import ProductionRepository
from ..results import fail_soft
from ..utils import unique_in_order
from .merger import RunOfShowMerger, build_view

logger = structlog.get_logger(__name__)

GEAR_REQUIREMENTS_RESOURCE = 'Gear requirements'


def crew_resources(production: Production) -> list[str]:
    return unique_in_order(item.role for item in build_view(production).crew if item.role)


def gear_resources(production: Production) -> list[str]:
    names = []
    for item in build_view(production).gear:
        if item.id == GEAR_REQUIREMENTS_PLACEHOLDER_ID:
            names.append(GEAR_REQUIREMENTS_RESOURCE)
        elif item.name:
            names.append(item.name)
    return unique_in_order(names)


class ConflictDetector:
    """Crew / gear double-booking across overlapping productions."""

    def __init__(self, repository: ProductionRepository, merger: RunOfShowMerger | None = None):
        self.repository = repository
        self.merger = merger or RunOfShowMerger(repository)

    async def find(self, workspace_id: str, event_id: str) -> list[EventConflict]:
        """Raising variant of find_event_conflicts()."""
        production = await self.merger.load(workspace_id, event_id)
        if production.start_at is None or production.end_at is None:
            return []

        overlapping = await self.repository.list_overlapping_productions(
            workspace_id, event_id, production.start_at, production.end_at
        )
        crew = crew_resources(production)
        gear = gear_resources(production)

        conflicts: list[EventConflict] = []
        for other in overlapping:
            other_name = other.name or 'Untitled'
            other_crew = set(crew_resources(other))
            other_gear = set(gear_resources(other))
            conflicts.extend(
                EventConflict(event_id=other.id, event_name=other_name, resource_type='crew', resource_name=r)
                for r in crew if r in other_crew
            )
            conflicts.extend(
                EventConflict(event_id=other.id, event_name=other_name, resource_type='gear', resource_name=g)
                for g in gear if g in other_gear
            )

        if conflicts:
            logger.info(
                'conflicts.detected',
                event_id=event_id,
                conflict_count=len(conflicts),
                overlapping=len(overlapping),
            )
        return conflicts

    @fail_soft('find_event_conflicts')
    async def find_event_conflicts(self, workspace_id: str, event_id: str) -> list[EventConflict]:
        return await self.find(workspace_id, event_id)
