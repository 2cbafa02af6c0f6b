"""Workspace invitations.

Owners and admins invite by email; the invitee signs in with that email and
accepts with the token from the invite link.
"""

from fastapi import APIRouter, Query, status
from sqlmodel import select

from voicehub.api.deps import CurrentPrincipal, Session, WorkspaceAdminCtx
from voicehub.core.errors import Forbidden, NotFound
from voicehub.models.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    InvitationCreate,
    InvitationPreview,
    InvitationRead,
    InvitationStatus,
    JoinedWorkspace,
    WorkspaceInvitation,
)
from voicehub.models.workspace import WorkspaceMemberRole
from voicehub.services.invitations import (
    accept_invitation,
    create_invitation,
    get_invitation_by_token,
)

router = APIRouter(tags=["invitations"])


@router.get("/w/{workspace_slug}/invitations", response_model=list[InvitationRead])
async def list_invitations(ctx: WorkspaceAdminCtx) -> list[InvitationRead]:
    stmt = (
        select(WorkspaceInvitation)
        .where(
            WorkspaceInvitation.workspace_id == ctx.workspace.id,
            WorkspaceInvitation.status == InvitationStatus.PENDING,
        )
        .order_by(WorkspaceInvitation.created_at.desc())  # type: ignore[union-attr]
    )
    result = await ctx.session.execute(stmt)
    return [InvitationRead.model_validate(i) for i in result.scalars().all()]


@router.post(
    "/w/{workspace_slug}/invitations",
    response_model=InvitationRead,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(body: InvitationCreate, ctx: WorkspaceAdminCtx) -> InvitationRead:
    if body.role == WorkspaceMemberRole.OWNER and not ctx.can_manage_owners:
        raise Forbidden("Only owners can invite another owner")
    invitation = await create_invitation(ctx.session, ctx.workspace, body, ctx.principal)
    return InvitationRead.model_validate(invitation)


@router.get("/workspace-invitations", response_model=InvitationPreview)
async def preview_invitation(session: Session, token: str = Query(min_length=1)) -> InvitationPreview:
    """Unauthenticated lookup backing the accept page."""
    found = await get_invitation_by_token(session, token)
    if found is None:
        raise NotFound("Invitation")
    invitation, workspace, partner = found
    return InvitationPreview(
        email=invitation.email,
        role=invitation.role,
        message=invitation.message,
        status=invitation.status,
        expires_at=invitation.expires_at,
        workspace_name=workspace.name,
        workspace_slug=workspace.slug,
        partner_name=partner.name,
    )


@router.post("/workspace-invitations/accept", response_model=AcceptInvitationResponse)
async def accept(
    body: AcceptInvitationRequest, principal: CurrentPrincipal, session: Session
) -> AcceptInvitationResponse:
    workspace, joined = await accept_invitation(session, body.token, principal)
    message = (
        f"Welcome to {workspace.name}!" if joined
        else "You're already a member of this workspace"
    )
    return AcceptInvitationResponse(
        message=message,
        workspace=JoinedWorkspace(id=workspace.id, name=workspace.name, slug=workspace.slug),
        redirect=f"/w/{workspace.slug}/dashboard",
    )

