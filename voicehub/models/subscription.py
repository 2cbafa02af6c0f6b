"""Partner subscription plans and the per-workspace subscription row."""

import uuid
from datetime import datetime
from enum import StrEnum

import pydantic
from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    PAUSED = "paused"


class SubscriptionPlan(TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspace_subscription_plans"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    partner_id: uuid.UUID = Field(foreign_key="partners.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    description: str | None = Field(default=None, max_length=2000)
    monthly_price_cents: int = Field(default=0, ge=0)
    included_minutes: int = Field(default=0, ge=0)
    overage_rate_cents: int = Field(default=0, ge=0)

    # JSON array of feature strings
    features: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))

    max_agents: int | None = Field(default=None)
    max_conversations_per_month: int | None = Field(default=None)

    is_active: bool = Field(default=True)
    is_public: bool = Field(default=True)
    sort_order: int = Field(default=0)

    # Payment-provider identifiers, never sent to workspace or public endpoints
    stripe_product_id: str | None = Field(default=None, max_length=255)
    stripe_price_id: str | None = Field(default=None, max_length=255)


class WorkspaceSubscription(TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspace_subscriptions"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", unique=True, nullable=False, index=True,
    )
    plan_id: uuid.UUID = Field(
        foreign_key="workspace_subscription_plans.id", nullable=False, index=True,
    )
    status: SubscriptionStatus = Field(default=SubscriptionStatus.INCOMPLETE)

    current_period_start: datetime | None = Field(default=None)
    current_period_end: datetime | None = Field(default=None)
    minutes_used_this_period: int = Field(default=0)
    overage_charges_cents: int = Field(default=0)

    cancel_at_period_end: bool = Field(default=False)
    canceled_at: datetime | None = Field(default=None)
    trial_end: datetime | None = Field(default=None)

    stripe_subscription_id: str | None = Field(default=None, max_length=255)


# ── Pydantic schemas ─────────────────────────────────────────

class SubscriptionPlanCreate(CamelModel):
    name: str = pydantic.Field(min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=2000)
    monthly_price_cents: int = pydantic.Field(ge=0)
    included_minutes: int = pydantic.Field(default=0, ge=0)
    overage_rate_cents: int = pydantic.Field(default=0, ge=0)
    features: list[str] = pydantic.Field(default_factory=list)
    max_agents: int | None = pydantic.Field(default=None, ge=0)
    max_conversations_per_month: int | None = pydantic.Field(default=None, ge=0)
    is_public: bool = True
    sort_order: int = 0


class SubscriptionPlanUpdate(CamelModel):
    """Price is fixed once created; create a new plan to change it."""
    name: str | None = pydantic.Field(default=None, min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=2000)
    included_minutes: int | None = pydantic.Field(default=None, ge=0)
    overage_rate_cents: int | None = pydantic.Field(default=None, ge=0)
    features: list[str] | None = None
    max_agents: int | None = pydantic.Field(default=None, ge=0)
    max_conversations_per_month: int | None = pydantic.Field(default=None, ge=0)
    is_active: bool | None = None
    is_public: bool | None = None
    sort_order: int | None = None


class PartnerPlanRead(CamelModel):
    """Partner-staff view of its catalog."""
    id: uuid.UUID
    name: str
    description: str | None
    monthly_price_cents: int
    included_minutes: int
    overage_rate_cents: int
    features: list[str]
    max_agents: int | None
    max_conversations_per_month: int | None
    is_active: bool
    is_public: bool
    sort_order: int
    subscriber_count: int = 0
    created_at: datetime
    updated_at: datetime


class WorkspacePlanRead(CamelModel):
    """Plan as offered to a workspace."""
    id: uuid.UUID
    name: str
    description: str | None
    monthly_price_cents: int
    monthly_price_dollars: str
    included_minutes: int
    overage_rate_cents: int
    overage_rate_dollars: str
    features: list[str]
    max_agents: int | None
    max_conversations_per_month: int | None
    is_current: bool = False


class WorkspacePlansResponse(CamelModel):
    plans: list[WorkspacePlanRead]
    current_plan_id: uuid.UUID | None


class SubscriptionUsage(CamelModel):
    included_minutes: int
    used_minutes: int
    remaining_minutes: int
    overage_minutes: int
    overage_charges_cents: int


class SubscriptionPlanSummary(CamelModel):
    id: uuid.UUID
    name: str
    description: str | None
    monthly_price_cents: int
    included_minutes: int
    overage_rate_cents: int
    features: list[str]
    max_agents: int | None
    max_conversations_per_month: int | None


class WorkspaceSubscriptionRead(CamelModel):
    id: uuid.UUID
    status: SubscriptionStatus
    plan: SubscriptionPlanSummary
    current_period_start: datetime | None
    current_period_end: datetime | None
    usage: SubscriptionUsage
    cancel_at_period_end: bool
    canceled_at: datetime | None
    trial_end: datetime | None
    created_at: datetime


class PendingPlan(CamelModel):
    id: uuid.UUID
    name: str


class SubscriptionResponse(CamelModel):
    has_subscription: bool
    subscription: WorkspaceSubscriptionRead | None = None
    pending_checkout: bool = False
    pending_plan: PendingPlan | None = None


class SubscribeRequest(CamelModel):
    plan_id: uuid.UUID


class PublicPlan(CamelModel):
    id: uuid.UUID
    name: str
    description: str | None
    monthly_price_cents: int
    monthly_price: float
    included_minutes: int
    overage_rate_cents: int
    features: list[str]
    max_agents: int | None
    max_conversations_per_month: int | None
    sort_order: int
