"""Deal endpoints: crew-role derivation and handover."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends

from ...pipeline import CatalogExpander, HandoverOrchestrator, describe_diagnostic
from ...results import ActionResult
from ..auth import get_workspace_id, verify_worker_token
from ..dependencies import get_expander, get_orchestrator
from ..responses import to_response

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/deals", dependencies=[Depends(verify_worker_token)])


@router.get("/{deal_id}/crew-roles")
async def derive_crew_roles(
    deal_id: str,
    workspace_id: str = Depends(get_workspace_id),
    expander: CatalogExpander = Depends(get_expander),
):
    """Staff roles implied by the deal's governing proposal."""
    return to_response(await expander.derive_crew_roles(workspace_id, deal_id))


@router.get("/{deal_id}/crew-roles/diagnostic")
async def diagnose_crew_roles(
    deal_id: str,
    workspace_id: str = Depends(get_workspace_id),
    expander: CatalogExpander = Depends(get_expander),
):
    """Where the crew-role walk stopped, with a human-readable message."""
    result = await expander.diagnose_crew_roles(workspace_id, deal_id)
    if not result.success:
        return to_response(result)
    payload = result.to_dict()
    payload["message"] = describe_diagnostic(result.data)
    return payload


@router.post("/{deal_id}/handover")
async def handover(
    deal_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    workspace_id: str = Depends(get_workspace_id),
    orchestrator: HandoverOrchestrator = Depends(get_orchestrator),
):
    """Convert the deal into a production (idempotent)."""
    result: ActionResult = await orchestrator.handover(workspace_id, deal_id, payload)
    if result.success and result.data.created:
        return to_response(result, success_status=201)
    return to_response(result)
