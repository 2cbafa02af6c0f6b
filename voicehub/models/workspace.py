"""Workspace model — the primary tenant boundary."""

import uuid
from datetime import datetime
from enum import StrEnum

import pydantic
from sqlmodel import Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class WorkspaceMemberRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class WorkspaceStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Workspace(TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspaces"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    partner_id: uuid.UUID = Field(foreign_key="partners.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    # Unique across the platform and never changed after creation
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)
    description: str | None = Field(default=None, max_length=1000)
    status: WorkspaceStatus = Field(default=WorkspaceStatus.ACTIVE)

    # Billing-exempt workspaces draw on partner credits and are never paywalled
    is_billing_exempt: bool = Field(default=False)
    credits_balance_cents: int = Field(default=0)

    deleted_at: datetime | None = Field(default=None)


class WorkspaceMember(TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspace_members"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", nullable=False, index=True)
    principal_id: uuid.UUID = Field(foreign_key="principals.id", nullable=False, index=True)
    role: WorkspaceMemberRole = Field(default=WorkspaceMemberRole.MEMBER)
    removed_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class WorkspaceCreate(CamelModel):
    name: str = pydantic.Field(min_length=1, max_length=255)
    slug: str | None = pydantic.Field(default=None, max_length=100, pattern=r"^[a-z0-9\-]+$")
    description: str | None = pydantic.Field(default=None, max_length=1000)
    is_billing_exempt: bool = False


class WorkspaceUpdate(CamelModel):
    """Slug is deliberately absent: it is immutable."""
    name: str | None = pydantic.Field(default=None, min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=1000)


class WorkspaceRead(CamelModel):
    id: uuid.UUID
    partner_id: uuid.UUID
    name: str
    slug: str
    description: str | None
    status: WorkspaceStatus
    is_billing_exempt: bool
    created_at: datetime


class WorkspaceSummary(WorkspaceRead):
    member_count: int = 0
    agent_count: int = 0


class AccessibleWorkspace(WorkspaceRead):
    """A workspace as seen by the caller, with their effective role."""
    role: WorkspaceMemberRole
    is_partner_access: bool = False
    is_super_admin_access: bool = False


class WorkspaceMemberRead(CamelModel):
    id: uuid.UUID
    principal_id: uuid.UUID
    email: str
    first_name: str | None
    last_name: str | None
    role: WorkspaceMemberRole
    created_at: datetime


class WorkspaceMemberUpdate(CamelModel):
    role: WorkspaceMemberRole
