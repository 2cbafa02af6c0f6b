"""Workspace membership: listing, role changes and removal."""

import logging
import uuid

from fastapi import APIRouter, status
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.api.deps import WorkspaceAdminCtx, WorkspaceCtx
from voicehub.core.errors import Forbidden, NotFound, ValidationFailed
from voicehub.models.base import utcnow
from voicehub.models.principal import Principal
from voicehub.models.workspace import (
    WorkspaceMember,
    WorkspaceMemberRead,
    WorkspaceMemberRole,
    WorkspaceMemberUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/w/{workspace_slug}/members", tags=["members"])


@router.get("", response_model=list[WorkspaceMemberRead])
async def list_members(ctx: WorkspaceCtx) -> list[WorkspaceMemberRead]:
    stmt = (
        select(WorkspaceMember, Principal)
        .join(Principal, WorkspaceMember.principal_id == Principal.id)
        .where(
            WorkspaceMember.workspace_id == ctx.workspace.id,
            WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
        )
        .order_by(WorkspaceMember.created_at.asc())  # type: ignore[union-attr]
    )
    rows = (await ctx.session.execute(stmt)).all()
    return [
        WorkspaceMemberRead(
            id=member.id,
            principal_id=principal.id,
            email=principal.email,
            first_name=principal.first_name,
            last_name=principal.last_name,
            role=member.role,
            created_at=member.created_at,
        )
        for member, principal in rows
    ]


@router.patch("/{member_id}", response_model=WorkspaceMemberRead)
async def update_member_role(
    member_id: uuid.UUID, body: WorkspaceMemberUpdate, ctx: WorkspaceAdminCtx
) -> WorkspaceMemberRead:
    session = ctx.session
    member = await _get_member_or_404(session, ctx.workspace.id, member_id)

    if member.role == WorkspaceMemberRole.OWNER and not ctx.can_manage_owners:
        raise Forbidden("Only owners can modify other owners")
    if body.role == WorkspaceMemberRole.OWNER and not ctx.can_manage_owners:
        raise Forbidden("Only owners can assign the owner role")
    if member.principal_id == ctx.principal.id:
        raise ValidationFailed("You cannot change your own role")
    if (
        member.role == WorkspaceMemberRole.OWNER
        and body.role != WorkspaceMemberRole.OWNER
        and await _count_owners(session, ctx.workspace.id) <= 1
    ):
        raise ValidationFailed("Cannot demote the last owner. Assign another owner first.")

    member.role = body.role
    member.updated_at = utcnow()
    session.add(member)
    await session.commit()
    await session.refresh(member)

    principal = await session.get(Principal, member.principal_id)
    logger.info(
        "Principal %s set role of member %s in workspace %s to %s",
        ctx.principal.id, member.id, ctx.workspace.slug, member.role,
    )
    return WorkspaceMemberRead(
        id=member.id,
        principal_id=member.principal_id,
        email=principal.email,
        first_name=principal.first_name,
        last_name=principal.last_name,
        role=member.role,
        created_at=member.created_at,
    )


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(member_id: uuid.UUID, ctx: WorkspaceAdminCtx) -> None:
    session = ctx.session
    member = await _get_member_or_404(session, ctx.workspace.id, member_id)

    if member.role == WorkspaceMemberRole.OWNER:
        if not ctx.can_manage_owners:
            raise Forbidden("Only owners can remove an owner")
        if await _count_owners(session, ctx.workspace.id) <= 1:
            raise ValidationFailed("Cannot remove the last owner of a workspace")

    member.removed_at = utcnow()
    member.updated_at = member.removed_at
    session.add(member)
    await session.commit()
    logger.info(
        "Principal %s removed member %s from workspace %s",
        ctx.principal.id, member.id, ctx.workspace.slug,
    )


# ── Internal helpers ──────────────────────────────────────────

async def _get_member_or_404(
    session: AsyncSession, workspace_id: uuid.UUID, member_id: uuid.UUID
) -> WorkspaceMember:
    stmt = select(WorkspaceMember).where(
        WorkspaceMember.id == member_id,
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
    )
    member = (await session.execute(stmt)).scalar_one_or_none()
    if member is None:
        raise NotFound("Member")
    return member


async def _count_owners(session: AsyncSession, workspace_id: uuid.UUID) -> int:
    stmt = select(func.count()).select_from(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.role == WorkspaceMemberRole.OWNER,
        WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
    )
    return (await session.execute(stmt)).scalar_one()
