"""Workspace name and description. The slug never changes."""

from fastapi import APIRouter

from voicehub.api.deps import WorkspaceAdminCtx, WorkspaceCtx
from voicehub.models.base import utcnow
from voicehub.models.workspace import WorkspaceRead, WorkspaceUpdate

router = APIRouter(prefix="/w/{workspace_slug}/settings", tags=["settings"])


@router.get("", response_model=WorkspaceRead)
async def get_settings(ctx: WorkspaceCtx) -> WorkspaceRead:
    return WorkspaceRead.model_validate(ctx.workspace)


@router.patch("", response_model=WorkspaceRead)
async def update_settings(body: WorkspaceUpdate, ctx: WorkspaceAdminCtx) -> WorkspaceRead:
    session = ctx.session
    workspace = ctx.workspace
    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)
    for field, value in update_data.items():
        setattr(workspace, field, value)
    workspace.updated_at = utcnow()
    session.add(workspace)
    await session.commit()
    await session.refresh(workspace)
    return WorkspaceRead.model_validate(workspace)
