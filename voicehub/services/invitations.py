"""Workspace invitations: seat limits, issuing and accepting."""

import json
import logging
import uuid

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.core.errors import Forbidden, ValidationFailed
from voicehub.models.base import utcnow
from voicehub.models.invitation import InvitationCreate, InvitationStatus, WorkspaceInvitation
from voicehub.models.partner import Partner
from voicehub.models.principal import Principal
from voicehub.models.workspace import Workspace, WorkspaceMember

logger = logging.getLogger(__name__)

DEFAULT_MAX_MEMBERS = 20


async def get_max_members(session: AsyncSession, workspace: Workspace) -> int:
    partner = await session.get(Partner, workspace.partner_id)
    if partner is None:
        return DEFAULT_MAX_MEMBERS
    try:
        limits = json.loads(partner.resource_limits or "{}")
    except json.JSONDecodeError:
        return DEFAULT_MAX_MEMBERS
    value = limits.get("max_users_per_workspace") if isinstance(limits, dict) else None
    return int(value) if value is not None else DEFAULT_MAX_MEMBERS


async def count_seats(session: AsyncSession, workspace_id: uuid.UUID) -> int:
    """Live members plus pending invitations."""
    members = await session.execute(
        select(func.count()).select_from(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
        )
    )
    pending = await session.execute(
        select(func.count()).select_from(WorkspaceInvitation).where(
            WorkspaceInvitation.workspace_id == workspace_id,
            WorkspaceInvitation.status == InvitationStatus.PENDING,
        )
    )
    return members.scalar_one() + pending.scalar_one()


async def get_live_membership(
    session: AsyncSession, workspace_id: uuid.UUID, principal_id: uuid.UUID
) -> WorkspaceMember | None:
    result = await session.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.principal_id == principal_id,
            WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
        )
    )
    return result.scalars().first()


async def create_invitation(
    session: AsyncSession,
    workspace: Workspace,
    body: InvitationCreate,
    invited_by: Principal,
) -> WorkspaceInvitation:
    email = body.email.lower()

    existing_principal = (
        await session.execute(select(Principal).where(Principal.email == email))
    ).scalar_one_or_none()
    if existing_principal is not None and await get_live_membership(
        session, workspace.id, existing_principal.id
    ):
        raise ValidationFailed("This user is already a member of this workspace")

    pending = await session.execute(
        select(WorkspaceInvitation.id).where(
            WorkspaceInvitation.workspace_id == workspace.id,
            WorkspaceInvitation.email == email,
            WorkspaceInvitation.status == InvitationStatus.PENDING,
        )
    )
    if pending.first() is not None:
        raise ValidationFailed("An invitation is already pending for this email")

    max_members = await get_max_members(session, workspace)
    if await count_seats(session, workspace.id) >= max_members:
        raise Forbidden(f"Member limit reached. Maximum: {max_members} members.")

    invitation = WorkspaceInvitation(
        workspace_id=workspace.id,
        email=email,
        role=body.role,
        message=body.message,
        invited_by=invited_by.id,
    )
    session.add(invitation)
    await session.commit()
    await session.refresh(invitation)
    logger.info("Invited %s to workspace %s as %s", email, workspace.slug, invitation.role)
    return invitation


async def get_invitation_by_token(
    session: AsyncSession, token: str
) -> tuple[WorkspaceInvitation, Workspace, Partner] | None:
    stmt = (
        select(WorkspaceInvitation, Workspace, Partner)
        .join(Workspace, WorkspaceInvitation.workspace_id == Workspace.id)
        .join(Partner, Workspace.partner_id == Partner.id)
        .where(
            WorkspaceInvitation.token == token,
            Workspace.deleted_at.is_(None),  # type: ignore[union-attr]
            Partner.deleted_at.is_(None),  # type: ignore[union-attr]
        )
    )
    row = (await session.execute(stmt)).first()
    return None if row is None else (row[0], row[1], row[2])


async def accept_invitation(
    session: AsyncSession, token: str, principal: Principal
) -> tuple[Workspace, bool]:
    """Join the invited workspace. Returns the workspace and whether a seat was added."""
    found = await get_invitation_by_token(session, token)
    if found is None:
        raise ValidationFailed("Invalid invitation token")
    invitation, workspace, _ = found

    if invitation.status != InvitationStatus.PENDING:
        raise ValidationFailed(f"This invitation has already been {invitation.status}")

    now = utcnow()
    if invitation.expires_at < now:
        invitation.status = InvitationStatus.EXPIRED
        invitation.updated_at = now
        session.add(invitation)
        await session.commit()
        raise ValidationFailed("This invitation has expired")

    if invitation.email.lower() != principal.email.lower():
        raise ValidationFailed("This invitation was sent to a different email address")

    joined = await get_live_membership(session, workspace.id, principal.id) is None
    if joined:
        session.add(
            WorkspaceMember(
                workspace_id=workspace.id, principal_id=principal.id, role=invitation.role,
            )
        )

    invitation.status = InvitationStatus.ACCEPTED
    invitation.accepted_at = now
    invitation.updated_at = now
    session.add(invitation)
    await session.commit()
    logger.info("Principal %s accepted invitation to workspace %s", principal.id, workspace.slug)
    return workspace, joined
