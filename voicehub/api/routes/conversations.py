"""Call logs of a workspace."""

import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Query
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.api.deps import WorkspaceCtx
from voicehub.core.errors import NotFound
from voicehub.core.pagination import Page, Pagination
from voicehub.models.agent import Agent, AgentRef
from voicehub.models.conversation import (
    CallDirection,
    Conversation,
    ConversationDetail,
    ConversationRead,
)

router = APIRouter(prefix="/w/{workspace_slug}/conversations", tags=["conversations"])


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("", response_model=Page[ConversationRead])
async def list_conversations(
    ctx: WorkspaceCtx,
    params: Pagination,
    status: Annotated[str | None, Query(max_length=50)] = None,
    direction: CallDirection | None = None,
    agent_id: uuid.UUID | None = None,
    search: Annotated[str | None, Query(max_length=255)] = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> Page[ConversationRead]:
    """Newest first. Search matches transcript, caller, phone number or agent name."""
    session = ctx.session
    workspace_id = ctx.workspace.id

    filters = [
        Conversation.workspace_id == workspace_id,
        Conversation.deleted_at.is_(None),  # type: ignore[union-attr]
    ]
    if status:
        filters.append(Conversation.status == status)
    if direction is not None:
        filters.append(Conversation.direction == direction)
    if agent_id is not None:
        filters.append(Conversation.agent_id == agent_id)
    if start_date is not None:
        filters.append(Conversation.created_at >= _as_naive_utc(start_date))
    if end_date is not None:
        filters.append(Conversation.created_at <= _as_naive_utc(end_date))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        agent_match = select(Agent.id).where(
            Agent.workspace_id == workspace_id,
            Agent.deleted_at.is_(None),  # type: ignore[union-attr]
            Agent.name.ilike(pattern),  # type: ignore[attr-defined]
        )
        filters.append(
            or_(
                Conversation.transcript.ilike(pattern),  # type: ignore[union-attr]
                Conversation.caller_name.ilike(pattern),  # type: ignore[union-attr]
                Conversation.phone_number.ilike(pattern),  # type: ignore[union-attr]
                Conversation.agent_id.in_(agent_match),  # type: ignore[union-attr]
            )
        )

    total = (
        await session.execute(select(func.count()).select_from(Conversation).where(*filters))
    ).scalar_one()
    stmt = (
        select(Conversation)
        .where(*filters)
        .order_by(Conversation.created_at.desc())  # type: ignore[union-attr]
        .offset(params.offset)
        .limit(params.page_size)
    )
    conversations = list((await session.execute(stmt)).scalars().all())

    agents = await _agent_refs(session, {c.agent_id for c in conversations if c.agent_id})
    data = [_to_read(ConversationRead, c, agents) for c in conversations]
    return Page.build(data, total, params)


@router.get("/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(conversation_id: uuid.UUID, ctx: WorkspaceCtx) -> ConversationDetail:
    stmt = select(Conversation).where(
        Conversation.id == conversation_id,
        Conversation.workspace_id == ctx.workspace.id,
        Conversation.deleted_at.is_(None),  # type: ignore[union-attr]
    )
    conversation = (await ctx.session.execute(stmt)).scalar_one_or_none()
    if conversation is None:
        raise NotFound("Conversation")

    ids = {conversation.agent_id} if conversation.agent_id else set()
    agents = await _agent_refs(ctx.session, ids)
    return _to_read(ConversationDetail, conversation, agents)


async def _agent_refs(session: AsyncSession, ids: set[uuid.UUID]) -> dict[uuid.UUID, AgentRef]:
    if not ids:
        return {}
    result = await session.execute(
        select(Agent).where(Agent.id.in_(ids))  # type: ignore[attr-defined]
    )
    return {a.id: AgentRef.model_validate(a) for a in result.scalars().all()}


def _to_read(schema, conversation: Conversation, agents: dict[uuid.UUID, AgentRef]):
    return schema.model_validate({
        **conversation.model_dump(),
        "agent": agents.get(conversation.agent_id) if conversation.agent_id else None,
    })
