"""
Caller authentication and workspace scoping for the handover API.

The calling app server authenticates the end user, resolves the active
workspace and forwards both: a shared worker token in the Authorization
header and the workspace id in X-Workspace-Id. Every route depends on
verify_worker_token; routes that touch tenant data also take
get_workspace_id.
"""

import hmac

from fastapi import Header, HTTPException

from .config import get_settings


async def verify_worker_token(authorization: str = Header(...)) -> None:
    """Validate the bearer token sent by the calling app server."""
    api_key = get_settings().WORKER_API_KEY
    if not api_key:
        raise HTTPException(status_code=503, detail="Worker token is not configured")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip().encode(), api_key.encode()):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_workspace_id(x_workspace_id: str = Header(...)) -> str:
    workspace_id = x_workspace_id.strip()
    if not workspace_id:
        raise HTTPException(status_code=400, detail="X-Workspace-Id header is empty")
    return workspace_id
