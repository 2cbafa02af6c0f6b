"""Partner model — white-label reseller owning workspaces."""

import uuid
from datetime import datetime
from enum import StrEnum

import pydantic
from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class PartnerMemberRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class PlanTier(StrEnum):
    FREE = "free"
    PRO = "pro"
    AGENCY = "agency"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class Partner(TimestampMixin, SQLModel, table=True):
    __tablename__ = "partners"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)

    # White-label domain, e.g. "app.acme-voice.com"
    hostname: str | None = Field(default=None, max_length=255, unique=True, index=True)

    # JSON objects stored as text: {"company_name", "logo_url", "primary_color", ...}
    branding: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))
    # {"max_workspaces", "max_users_per_workspace", "max_agents_per_workspace"}
    resource_limits: str = Field(
        default="{}", sa_column=Column(Text, nullable=False, server_default="{}"),
    )

    plan_tier: PlanTier = Field(default=PlanTier.ENTERPRISE)
    is_platform_partner: bool = Field(default=False)
    white_label_variant_id: uuid.UUID | None = Field(
        default=None, foreign_key="white_label_variants.id", nullable=True, index=True,
    )

    deleted_at: datetime | None = Field(default=None)


class PartnerMember(TimestampMixin, SQLModel, table=True):
    __tablename__ = "partner_members"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    partner_id: uuid.UUID = Field(foreign_key="partners.id", nullable=False, index=True)
    principal_id: uuid.UUID = Field(foreign_key="principals.id", nullable=False, index=True)
    role: PartnerMemberRole = Field(default=PartnerMemberRole.MEMBER)
    removed_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class PartnerBranding(CamelModel):
    company_name: str | None = None
    logo_url: str | None = None
    favicon_url: str | None = None
    primary_color: str | None = None
    secondary_color: str | None = None


class PartnerResourceLimits(CamelModel):
    max_workspaces: int | None = None
    max_users_per_workspace: int | None = None
    max_agents_per_workspace: int | None = None


class PartnerCreate(CamelModel):
    name: str = pydantic.Field(min_length=1, max_length=255)
    slug: str = pydantic.Field(min_length=1, max_length=100, pattern=r"^[a-z0-9\-]+$")
    hostname: str | None = pydantic.Field(default=None, max_length=255)
    branding: PartnerBranding | None = None
    plan_tier: PlanTier = PlanTier.ENTERPRISE
    resource_limits: PartnerResourceLimits | None = None
    is_platform_partner: bool = False
    white_label_variant_id: uuid.UUID | None = None


class PartnerUpdate(CamelModel):
    name: str | None = pydantic.Field(default=None, min_length=1, max_length=255)
    hostname: str | None = pydantic.Field(default=None, max_length=255)
    branding: PartnerBranding | None = None
    plan_tier: PlanTier | None = None
    resource_limits: PartnerResourceLimits | None = None
    is_platform_partner: bool | None = None
    white_label_variant_id: uuid.UUID | None = None


class PartnerRead(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    hostname: str | None
    branding: PartnerBranding
    plan_tier: PlanTier
    resource_limits: PartnerResourceLimits
    is_platform_partner: bool
    white_label_variant_id: uuid.UUID | None
    workspace_count: int = 0
    agent_count: int = 0
    created_at: datetime
    updated_at: datetime
