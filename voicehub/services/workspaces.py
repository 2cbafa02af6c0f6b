"""Workspace provisioning and listing helpers shared by partner and admin routes."""

import logging
import re
import secrets
import uuid

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.models.agent import Agent
from voicehub.models.principal import Principal
from voicehub.models.workspace import (
    Workspace,
    WorkspaceCreate,
    WorkspaceMember,
    WorkspaceMemberRole,
    WorkspaceSummary,
)

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _SLUG_STRIP.sub("-", name.lower()).strip("-")
    return slug[:80] or "workspace"


async def slug_taken(session: AsyncSession, slug: str) -> bool:
    # Deleted workspaces keep their slug reserved
    result = await session.execute(select(Workspace.id).where(Workspace.slug == slug))
    return result.first() is not None


async def generate_unique_slug(session: AsyncSession, name: str) -> str:
    base = slugify(name)
    if not await slug_taken(session, base):
        return base
    for _ in range(5):
        candidate = f"{base}-{secrets.token_hex(3)}"
        if not await slug_taken(session, candidate):
            return candidate
    return f"{base}-{uuid.uuid4().hex}"


async def create_workspace(
    session: AsyncSession,
    partner_id: uuid.UUID,
    body: WorkspaceCreate,
    owner: Principal,
) -> Workspace:
    """Create a workspace and make ``owner`` its first owner member.

    The caller checks slug availability when one is supplied.
    """
    slug = body.slug or await generate_unique_slug(session, body.name)
    workspace = Workspace(
        partner_id=partner_id,
        name=body.name,
        slug=slug,
        description=body.description,
        is_billing_exempt=body.is_billing_exempt,
    )
    session.add(workspace)
    await session.flush()

    session.add(
        WorkspaceMember(
            workspace_id=workspace.id,
            principal_id=owner.id,
            role=WorkspaceMemberRole.OWNER,
        )
    )
    await session.commit()
    await session.refresh(workspace)
    logger.info("Created workspace %s for partner %s", workspace.slug, partner_id)
    return workspace


async def count_partner_workspaces(session: AsyncSession, partner_id: uuid.UUID) -> int:
    stmt = select(func.count()).select_from(Workspace).where(
        Workspace.partner_id == partner_id,
        Workspace.deleted_at.is_(None),  # type: ignore[union-attr]
    )
    return (await session.execute(stmt)).scalar_one()


async def summarize_workspaces(
    session: AsyncSession, workspaces: list[Workspace]
) -> list[WorkspaceSummary]:
    """Attach member and agent counts using one grouped query each."""
    ids = [ws.id for ws in workspaces]
    member_counts: dict[uuid.UUID, int] = {}
    agent_counts: dict[uuid.UUID, int] = {}
    if ids:
        member_stmt = (
            select(WorkspaceMember.workspace_id, func.count())
            .where(
                WorkspaceMember.workspace_id.in_(ids),  # type: ignore[attr-defined]
                WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
            )
            .group_by(WorkspaceMember.workspace_id)
        )
        member_counts = {wid: n for wid, n in (await session.execute(member_stmt)).all()}

        agent_stmt = (
            select(Agent.workspace_id, func.count())
            .where(
                Agent.workspace_id.in_(ids),  # type: ignore[attr-defined]
                Agent.deleted_at.is_(None),  # type: ignore[union-attr]
            )
            .group_by(Agent.workspace_id)
        )
        agent_counts = {wid: n for wid, n in (await session.execute(agent_stmt)).all()}

    return [
        WorkspaceSummary.model_validate({
            **ws.model_dump(),
            "member_count": member_counts.get(ws.id, 0),
            "agent_count": agent_counts.get(ws.id, 0),
        })
        for ws in workspaces
    ]
