"""Workspace switcher — every workspace the caller can open."""

from fastapi import APIRouter

from voicehub.api.deps import CurrentPrincipal, Session
from voicehub.models.workspace import AccessibleWorkspace
from voicehub.services.tenancy import list_accessible_workspaces

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("", response_model=list[AccessibleWorkspace])
async def list_workspaces(principal: CurrentPrincipal, session: Session) -> list[AccessibleWorkspace]:
    return await list_accessible_workspaces(session, principal)
