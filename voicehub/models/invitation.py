"""Workspace invitation model — a pending seat offered to an email address."""

import secrets
import uuid
from datetime import datetime, timedelta
from enum import StrEnum

import pydantic
from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid, utcnow
from voicehub.models.workspace import WorkspaceMemberRole

INVITATION_TTL = timedelta(days=7)


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


def new_invitation_token() -> str:
    return secrets.token_urlsafe(32)


def invitation_expiry() -> datetime:
    return utcnow() + INVITATION_TTL


class WorkspaceInvitation(TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspace_invitations"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", nullable=False, index=True)
    email: str = Field(max_length=320, nullable=False, index=True)
    role: WorkspaceMemberRole = Field(default=WorkspaceMemberRole.MEMBER)
    message: str | None = Field(default=None, max_length=1000)

    token: str = Field(default_factory=new_invitation_token, max_length=64, unique=True, index=True)
    status: InvitationStatus = Field(default=InvitationStatus.PENDING)
    invited_by: uuid.UUID = Field(foreign_key="principals.id", nullable=False)
    expires_at: datetime = Field(default_factory=invitation_expiry, nullable=False)
    accepted_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class InvitationCreate(CamelModel):
    email: EmailStr
    role: WorkspaceMemberRole = WorkspaceMemberRole.MEMBER
    message: str | None = pydantic.Field(default=None, max_length=1000)


class InvitationRead(CamelModel):
    """Admin view; carries the token so the caller can build the invite link."""
    id: uuid.UUID
    email: str
    role: WorkspaceMemberRole
    message: str | None
    token: str
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime


class InvitationPreview(CamelModel):
    email: str
    role: WorkspaceMemberRole
    message: str | None
    status: InvitationStatus
    expires_at: datetime
    workspace_name: str
    workspace_slug: str
    partner_name: str


class AcceptInvitationRequest(CamelModel):
    token: str = pydantic.Field(min_length=1)


class JoinedWorkspace(CamelModel):
    id: uuid.UUID
    name: str
    slug: str


class AcceptInvitationResponse(CamelModel):
    message: str
    workspace: JoinedWorkspace
    redirect: str
