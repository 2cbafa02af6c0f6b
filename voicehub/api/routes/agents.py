"""Voice agents configured in a workspace."""

import logging
import uuid

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.api.deps import WorkspaceAdminCtx, WorkspaceCtx
from voicehub.core.errors import Forbidden, NotFound, ValidationFailed
from voicehub.core.voices import find_voice
from voicehub.models.agent import Agent, AgentCreate, AgentRead, AgentUpdate, VoiceProvider
from voicehub.models.base import utcnow
from voicehub.services.billing import count_agents, get_max_agents

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/w/{workspace_slug}/agents", tags=["agents"])


@router.get("", response_model=list[AgentRead])
async def list_agents(ctx: WorkspaceCtx) -> list[AgentRead]:
    stmt = (
        select(Agent)
        .where(
            Agent.workspace_id == ctx.workspace.id,
            Agent.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        .order_by(Agent.created_at.desc())  # type: ignore[union-attr]
    )
    result = await ctx.session.execute(stmt)
    return [AgentRead.model_validate(a) for a in result.scalars().all()]


@router.post("", response_model=AgentRead, status_code=status.HTTP_201_CREATED)
async def create_agent(body: AgentCreate, ctx: WorkspaceAdminCtx) -> AgentRead:
    session = ctx.session

    max_agents = await get_max_agents(session, ctx.workspace)
    if max_agents is not None and await count_agents(session, ctx.workspace.id) >= max_agents:
        raise Forbidden(
            f"Agent limit reached ({max_agents}). Upgrade your plan to create more agents."
        )
    _validate_voice(body.provider, body.voice_id)

    agent = Agent(workspace_id=ctx.workspace.id, **body.model_dump())
    session.add(agent)
    await session.commit()
    await session.refresh(agent)
    logger.info("Created agent %s in workspace %s", agent.id, ctx.workspace.slug)
    return AgentRead.model_validate(agent)


@router.get("/{agent_id}", response_model=AgentRead)
async def get_agent(agent_id: uuid.UUID, ctx: WorkspaceCtx) -> AgentRead:
    agent = await _get_or_404(agent_id, ctx.workspace.id, ctx.session)
    return AgentRead.model_validate(agent)


@router.patch("/{agent_id}", response_model=AgentRead)
async def update_agent(agent_id: uuid.UUID, body: AgentUpdate, ctx: WorkspaceAdminCtx) -> AgentRead:
    session = ctx.session
    agent = await _get_or_404(agent_id, ctx.workspace.id, session)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("voice_id") is not None:
        _validate_voice(agent.provider, update_data["voice_id"])
    for field, value in update_data.items():
        setattr(agent, field, value)

    agent.updated_at = utcnow()
    session.add(agent)
    await session.commit()
    await session.refresh(agent)
    return AgentRead.model_validate(agent)


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(agent_id: uuid.UUID, ctx: WorkspaceAdminCtx) -> None:
    session = ctx.session
    agent = await _get_or_404(agent_id, ctx.workspace.id, session)
    agent.deleted_at = utcnow()
    agent.is_active = False
    agent.updated_at = agent.deleted_at
    session.add(agent)
    await session.commit()


# ── Internal helpers ──────────────────────────────────────────

def _validate_voice(provider: VoiceProvider, voice_id: str | None) -> None:
    if voice_id is not None and find_voice(provider, voice_id) is None:
        raise ValidationFailed(f"Unknown voice '{voice_id}' for provider {provider}")


async def _get_or_404(agent_id: uuid.UUID, workspace_id: uuid.UUID, session: AsyncSession) -> Agent:
    stmt = select(Agent).where(
        Agent.id == agent_id,
        Agent.workspace_id == workspace_id,
        Agent.deleted_at.is_(None),  # type: ignore[union-attr]
    )
    agent = (await session.execute(stmt)).scalar_one_or_none()
    if agent is None:
        raise NotFound("Agent")
    return agent
