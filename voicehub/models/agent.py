"""Agent model — an AI voice agent configured within a workspace."""

import uuid
from datetime import datetime
from enum import StrEnum

import pydantic
from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class VoiceProvider(StrEnum):
    VAPI = "vapi"
    RETELL = "retell"


class Agent(TimestampMixin, SQLModel, table=True):
    __tablename__ = "ai_agents"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    description: str | None = Field(default=None, max_length=1000)
    provider: VoiceProvider = Field(default=VoiceProvider.VAPI)
    voice_id: str | None = Field(default=None, max_length=100)
    system_prompt: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    first_message: str | None = Field(default=None, max_length=2000)

    # Id of the synced agent on the voice provider side
    external_agent_id: str | None = Field(default=None, max_length=255)

    is_active: bool = Field(default=True)
    deleted_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class AgentCreate(CamelModel):
    name: str = pydantic.Field(min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=1000)
    provider: VoiceProvider = VoiceProvider.VAPI
    voice_id: str | None = pydantic.Field(default=None, max_length=100)
    system_prompt: str = ""
    first_message: str | None = pydantic.Field(default=None, max_length=2000)


class AgentUpdate(CamelModel):
    name: str | None = pydantic.Field(default=None, min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=1000)
    voice_id: str | None = pydantic.Field(default=None, max_length=100)
    system_prompt: str | None = None
    first_message: str | None = pydantic.Field(default=None, max_length=2000)
    is_active: bool | None = None


class AgentRead(CamelModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    description: str | None
    provider: VoiceProvider
    voice_id: str | None
    system_prompt: str
    first_message: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AgentRef(CamelModel):
    id: uuid.UUID
    name: str
    provider: VoiceProvider
