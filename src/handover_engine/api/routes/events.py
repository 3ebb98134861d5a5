"""Production endpoints: run of show, flight checks, crew sync, conflicts, contract."""

from fastapi import APIRouter, Depends

from ...pipeline import (
    ConflictDetector,
    CrewSync,
    FlightChecks,
    HandoverOrchestrator,
    RunOfShowMerger,
    describe_diagnostic,
)
from ..auth import get_workspace_id, verify_worker_token
from ..dependencies import (
    get_conflict_detector,
    get_crew_sync,
    get_flight_checks,
    get_merger,
    get_orchestrator,
)
from ..responses import to_response
from ..schemas import AddCrewRoleBody, AddGearBody, AssignCrewBody, CrewStatusBody, RunOfShowPatchBody

router = APIRouter(prefix="/events", dependencies=[Depends(verify_worker_token)])


# =============================================================================
# Run of show
# =============================================================================


@router.get("/{event_id}/run-of-show")
async def get_run_of_show(
    event_id: str,
    workspace_id: str = Depends(get_workspace_id),
    merger: RunOfShowMerger = Depends(get_merger),
):
    return to_response(await merger.get_run_of_show(workspace_id, event_id))


@router.patch("/{event_id}/run-of-show")
async def merge_run_of_show(
    event_id: str,
    body: RunOfShowPatchBody,
    workspace_id: str = Depends(get_workspace_id),
    merger: RunOfShowMerger = Depends(get_merger),
):
    """Replace the sections present in the body; expectedVersions guards against stale edits."""
    return to_response(
        await merger.merge_run_of_show(workspace_id, event_id, body, body.expected_versions)
    )


# =============================================================================
# Crew
# =============================================================================


@router.post("/{event_id}/crew/sync")
async def sync_crew_from_proposal(
    event_id: str,
    workspace_id: str = Depends(get_workspace_id),
    sync: CrewSync = Depends(get_crew_sync),
):
    result = await sync.sync_crew_from_proposal(workspace_id, event_id)
    if result.success and result.data.diagnostic is not None:
        payload = result.to_dict()
        payload["message"] = describe_diagnostic(result.data.diagnostic)
        return payload
    return to_response(result)


@router.post("/{event_id}/crew")
async def add_crew_role(
    event_id: str,
    body: AddCrewRoleBody,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(await checks.add_crew_role(workspace_id, event_id, body.role))


@router.post("/{event_id}/crew/{index}/cycle")
async def cycle_crew_status(
    event_id: str,
    index: int,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(await checks.cycle_crew_status(workspace_id, event_id, index))


@router.put("/{event_id}/crew/{index}/status")
async def set_crew_status(
    event_id: str,
    index: int,
    body: CrewStatusBody,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(await checks.set_crew_status(workspace_id, event_id, index, body.status))


@router.post("/{event_id}/crew/{index}/assign")
async def assign_crew_member(
    event_id: str,
    index: int,
    body: AssignCrewBody,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(
        await checks.assign_crew_member(workspace_id, event_id, index, body.entity_id, body.assignee_name)
    )


# =============================================================================
# Gear / logistics
# =============================================================================


@router.post("/{event_id}/gear")
async def add_gear_item(
    event_id: str,
    body: AddGearBody,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(await checks.add_gear_item(workspace_id, event_id, body.name), success_status=201)


@router.post("/{event_id}/gear/{gear_id}/cycle")
async def cycle_gear_status(
    event_id: str,
    gear_id: str,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(await checks.cycle_gear_status(workspace_id, event_id, gear_id))


@router.post("/{event_id}/logistics/{key}/toggle")
async def toggle_logistics(
    event_id: str,
    key: str,
    workspace_id: str = Depends(get_workspace_id),
    checks: FlightChecks = Depends(get_flight_checks),
):
    return to_response(await checks.toggle_logistics(workspace_id, event_id, key))


@router.get("/{event_id}/conflicts")
async def find_event_conflicts(
    event_id: str,
    workspace_id: str = Depends(get_workspace_id),
    detector: ConflictDetector = Depends(get_conflict_detector),
):
    return to_response(await detector.find_event_conflicts(workspace_id, event_id))


@router.get("/{event_id}/contract")
async def get_contract_for_event(
    event_id: str,
    workspace_id: str = Depends(get_workspace_id),
    orchestrator: HandoverOrchestrator = Depends(get_orchestrator),
):
    """Latest contract of the production; data is null when there is none."""
    return to_response(await orchestrator.get_contract_for_event(workspace_id, event_id))
