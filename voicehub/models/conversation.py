"""Conversation model — a logged call between an agent and a caller."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from voicehub.models.agent import AgentRef
from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class CallDirection(StrEnum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Conversation(TimestampMixin, SQLModel, table=True):
    """Immutable once logged, except for ``status`` and ``deleted_at``."""

    __tablename__ = "conversations"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", nullable=False, index=True)
    agent_id: uuid.UUID | None = Field(
        default=None, foreign_key="ai_agents.id", nullable=True, index=True,
    )

    # Call id on the voice provider side
    external_id: str | None = Field(default=None, max_length=255, index=True)

    direction: CallDirection = Field(default=CallDirection.INBOUND)
    status: str = Field(default="completed", max_length=50, index=True)
    duration_seconds: int = Field(default=0)
    total_cost: float = Field(default=0.0)

    transcript: str | None = Field(default=None, sa_column=Column(Text))
    summary: str | None = Field(default=None, sa_column=Column(Text))
    sentiment: str | None = Field(default=None, max_length=50)
    recording_url: str | None = Field(default=None, max_length=2048)

    phone_number: str | None = Field(default=None, max_length=50)
    caller_name: str | None = Field(default=None, max_length=255)

    started_at: datetime | None = Field(default=None)
    ended_at: datetime | None = Field(default=None)
    deleted_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class ConversationRead(CamelModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    agent_id: uuid.UUID | None
    agent: AgentRef | None = None
    external_id: str | None
    direction: CallDirection
    status: str
    duration_seconds: int
    total_cost: float
    summary: str | None
    sentiment: str | None
    phone_number: str | None
    caller_name: str | None
    started_at: datetime | None
    ended_at: datetime | None
    created_at: datetime


class ConversationDetail(ConversationRead):
    transcript: str | None
    recording_url: str | None
