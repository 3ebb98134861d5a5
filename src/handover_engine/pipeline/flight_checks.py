"""
Flight-check state machines.

Three independent readiness trackers over the run-of-show document, each
owning exactly one section:

- Crew (crew_items): requested → confirmed → dispatched → requested.
  Assignment jumps straight to confirmed and stamps the assignee.
- Gear (gear_items): pending → pulled → loaded → pending, addressed by id.
- Logistics (logistics): three booleans toggled in place.

Every operation re-reads the production, computes a full replacement for
its section and writes it through the merger. If the section changed in
between, the whole read-compute-write is retried.
"""

from typing import Any, Callable

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from ..config import config
from ..errors import NotFoundError, StaleSectionError, ValidationError
from ..models.run_of_show import (
    LOGISTICS_KEYS,
    CrewItem,
    CrewStatus,
    GearItem,
    LogisticsState,
    RunOfShowDocument,
    next_crew_status,
    next_gear_status,
    normalize_crew_items,
    normalize_gear_items,
    normalize_logistics,
)
from ..results import fail_soft
from ..utils import uuid7
from .merger import RunOfShowMerger, document_of, require_readable

logger = structlog.get_logger(__name__)

# Returned by a compute step that needs no write
UNCHANGED = object()


def _crew_payload(items: list[CrewItem]) -> list[dict[str, Any]]:
    return [item.model_dump(mode='json') for item in items]


def _gear_payload(items: list[GearItem]) -> list[dict[str, Any]]:
    return [item.model_dump(mode='json') for item in items]


def _crew_slot(items: list[CrewItem], index: int) -> CrewItem:
    if index < 0 or index >= len(items):
        raise ValidationError('Invalid crew slot.', context={'index': index, 'crew_count': len(items)})
    return items[index]


class SectionMutator:
    """Read-compute-write of one run-of-show section with stale-version retry."""

    def __init__(self, merger: RunOfShowMerger, max_attempts: int | None = None):
        self.merger = merger
        self.max_attempts = max_attempts or config.SECTION_WRITE_MAX_ATTEMPTS

    async def mutate(
        self,
        workspace_id: str,
        event_id: str,
        section: str,
        compute: Callable[[RunOfShowDocument], tuple[dict[str, Any] | object, Any]],
    ) -> Any:
        """
        Apply `compute` to a fresh read of the document and write its sections.

        Args:
            section: The one section `compute` rewrites; a stored value that
                     cannot be read is a validation error
            compute: document → (sections to write, or UNCHANGED; result).
                     Raising inside compute aborts without writing.

        Returns:
            The result produced by the successful compute call
        """
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(StaleSectionError),
            stop=stop_after_attempt(self.max_attempts),
            reraise=True,
        ):
            with attempt:
                production = await self.merger.load(workspace_id, event_id)
                doc = document_of(production)
                require_readable(production, doc, section)
                sections, result = compute(doc)
                if sections is not UNCHANGED:
                    await self.merger.write_sections(workspace_id, production, sections)
                return result


class FlightChecks(SectionMutator):
    """
    Crew, gear and logistics status transitions for a production.
    """

    # -------------------------------------------------------------------------
    # Crew
    # -------------------------------------------------------------------------

    @fail_soft('cycle_crew_status')
    async def cycle_crew_status(self, workspace_id: str, event_id: str, index: int) -> CrewItem:
        """Advance one crew slot to its next status."""

        def compute(doc: RunOfShowDocument):
            items = normalize_crew_items(doc)
            slot = _crew_slot(items, index)
            slot.status = next_crew_status(slot.status)
            return {'crew_items': _crew_payload(items)}, slot

        return await self.mutate(workspace_id, event_id, 'crew_items', compute)

    @fail_soft('set_crew_status')
    async def set_crew_status(
        self, workspace_id: str, event_id: str, index: int, status: CrewStatus | str
    ) -> CrewItem:
        """Set one crew slot's status directly."""
        try:
            new_status = CrewStatus(status)
        except ValueError as e:
            raise ValidationError(f'Unknown crew status: {status}', context={'status': status}) from e

        def compute(doc: RunOfShowDocument):
            items = normalize_crew_items(doc)
            slot = _crew_slot(items, index)
            slot.status = new_status
            return {'crew_items': _crew_payload(items)}, slot

        return await self.mutate(workspace_id, event_id, 'crew_items', compute)

    @fail_soft('assign_crew_member')
    async def assign_crew_member(
        self,
        workspace_id: str,
        event_id: str,
        index: int,
        entity_id: str,
        assignee_name: str | None = None,
    ) -> CrewItem:
        """
        Assign a team member to a crew slot.

        The slot is confirmed directly (not via the status cycle). An index
        outside the current crew list is a validation error and nothing is
        written.
        """

        def compute(doc: RunOfShowDocument):
            items = normalize_crew_items(doc)
            slot = _crew_slot(items, index)
            slot.entity_id = entity_id
            slot.assignee_name = assignee_name
            slot.status = CrewStatus.CONFIRMED
            return {'crew_items': _crew_payload(items)}, slot

        slot = await self.mutate(workspace_id, event_id, 'crew_items', compute)
        logger.info(
            'flight_checks.crew_assigned',
            event_id=event_id,
            index=index,
            role=slot.role,
            entity_id=entity_id,
        )
        return slot

    @fail_soft('add_crew_role')
    async def add_crew_role(self, workspace_id: str, event_id: str, role: str) -> list[CrewItem]:
        """Append a requested slot for `role` unless the role is already staffed."""
        role = (role or '').strip()
        if not role:
            raise ValidationError('Role is required', context={'event_id': event_id})

        def compute(doc: RunOfShowDocument):
            items = normalize_crew_items(doc)
            if any(item.role == role for item in items):
                return UNCHANGED, items
            items.append(CrewItem(role=role))
            return {'crew_items': _crew_payload(items)}, items

        return await self.mutate(workspace_id, event_id, 'crew_items', compute)

    # -------------------------------------------------------------------------
    # Gear
    # -------------------------------------------------------------------------

    @fail_soft('cycle_gear_status')
    async def cycle_gear_status(self, workspace_id: str, event_id: str, gear_id: str) -> GearItem:
        """Advance a gear item (by id) to its next status."""

        def compute(doc: RunOfShowDocument):
            items = normalize_gear_items(doc)
            for item in items:
                if item.id == gear_id:
                    item.status = next_gear_status(item.status)
                    return {'gear_items': _gear_payload(items)}, item
            raise NotFoundError('Gear item not found', context={'event_id': event_id, 'gear_id': gear_id})

        return await self.mutate(workspace_id, event_id, 'gear_items', compute)

    @fail_soft('add_gear_item')
    async def add_gear_item(self, workspace_id: str, event_id: str, name: str) -> GearItem:
        """Append a pending gear item with a fresh id."""
        name = (name or '').strip()
        if not name:
            raise ValidationError('Gear name is required', context={'event_id': event_id})
        new_item = GearItem(id=str(uuid7()), name=name)

        def compute(doc: RunOfShowDocument):
            items = normalize_gear_items(doc)
            items.append(new_item)
            return {'gear_items': _gear_payload(items)}, new_item

        return await self.mutate(workspace_id, event_id, 'gear_items', compute)

    # -------------------------------------------------------------------------
    # Logistics
    # -------------------------------------------------------------------------

    @fail_soft('toggle_logistics')
    async def toggle_logistics(self, workspace_id: str, event_id: str, key: str) -> LogisticsState:
        """Flip one logistics boolean; other keys keep their value (missing = False)."""
        if key not in LOGISTICS_KEYS:
            raise ValidationError(f'Unknown logistics key: {key}', context={'key': key})

        def compute(doc: RunOfShowDocument):
            state = normalize_logistics(doc)
            setattr(state, key, not getattr(state, key))
            return {'logistics': state.model_dump(mode='json')}, state

        return await self.mutate(workspace_id, event_id, 'logistics', compute)
