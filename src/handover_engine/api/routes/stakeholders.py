"""Stakeholder and organization roster endpoints."""

from fastapi import APIRouter, Depends, Query

from deal_stakeholders.resolver import StakeholderResolver
from deal_stakeholders.roster import OrgRoster

from ..auth import get_workspace_id, verify_worker_token
from ..dependencies import get_roster, get_stakeholder_resolver
from ..responses import to_response
from ..schemas import AddStakeholderBody, CreateContactBody

router = APIRouter(dependencies=[Depends(verify_worker_token)])


@router.get("/deals/{deal_id}/stakeholders")
async def get_deal_stakeholders(
    deal_id: str,
    workspace_id: str = Depends(get_workspace_id),
    resolver: StakeholderResolver = Depends(get_stakeholder_resolver),
):
    return to_response(await resolver.get_deal_stakeholders(workspace_id, deal_id))


@router.post("/deals/{deal_id}/stakeholders")
async def add_stakeholder(
    deal_id: str,
    body: AddStakeholderBody,
    workspace_id: str = Depends(get_workspace_id),
    resolver: StakeholderResolver = Depends(get_stakeholder_resolver),
):
    result = await resolver.add_stakeholder(
        workspace_id,
        deal_id,
        body.role,
        organization_id=body.organization_id,
        entity_id=body.entity_id,
        is_primary=body.is_primary,
    )
    return to_response(result, success_status=201)


@router.get("/deals/{deal_id}/client")
async def get_deal_client_context(
    deal_id: str,
    workspace_id: str = Depends(get_workspace_id),
    resolver: StakeholderResolver = Depends(get_stakeholder_resolver),
):
    """Client organization and main contact for the deal header; data is null when unresolved."""
    return to_response(await resolver.get_deal_client_context(workspace_id, deal_id))


@router.delete("/deals/{deal_id}/stakeholders/{stakeholder_id}")
async def remove_stakeholder(
    deal_id: str,
    stakeholder_id: str,
    workspace_id: str = Depends(get_workspace_id),
    resolver: StakeholderResolver = Depends(get_stakeholder_resolver),
):
    return to_response(await resolver.remove_stakeholder(workspace_id, deal_id, stakeholder_id))


@router.get("/organizations/{organization_id}/roster")
async def get_org_roster(
    organization_id: str,
    workspace_id: str = Depends(get_workspace_id),
    roster: OrgRoster = Depends(get_roster),
):
    return to_response(await roster.get_org_roster(workspace_id, organization_id))


@router.get("/organizations/{organization_id}/team")
async def get_internal_team_for_role(
    organization_id: str,
    role: str = Query(""),
    workspace_id: str = Depends(get_workspace_id),
    roster: OrgRoster = Depends(get_roster),
):
    return to_response(await roster.get_internal_team_for_role(workspace_id, organization_id, role))


@router.post("/organizations/{organization_id}/contacts")
async def create_contact_for_org(
    organization_id: str,
    body: CreateContactBody,
    workspace_id: str = Depends(get_workspace_id),
    roster: OrgRoster = Depends(get_roster),
):
    """Add an unclaimed contact; data is the new entity id."""
    result = await roster.create_contact_for_org(
        workspace_id, organization_id, body.first_name, body.last_name, body.email
    )
    return to_response(result, success_status=201)
