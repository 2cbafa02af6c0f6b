"""WhiteLabelVariant model — agency pricing tiers sold to partners."""

import uuid
from datetime import datetime

import pydantic
from sqlmodel import Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class WhiteLabelVariant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "white_label_variants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)
    name: str = Field(max_length=255, nullable=False)
    description: str | None = Field(default=None, max_length=2000)
    monthly_price_cents: int = Field(default=0, ge=0)

    # Payment-provider price id. Admin-only; never sent to public endpoints
    stripe_price_id: str | None = Field(default=None, max_length=255)

    max_workspaces: int = Field(default=-1)  # -1 = unlimited
    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)


# ── Pydantic schemas ─────────────────────────────────────────

class WhiteLabelVariantCreate(CamelModel):
    slug: str = pydantic.Field(min_length=1, max_length=100, pattern=r"^[a-z0-9\-]+$")
    name: str = pydantic.Field(min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=2000)
    monthly_price_cents: int = pydantic.Field(ge=0)
    stripe_price_id: str | None = None
    max_workspaces: int = pydantic.Field(default=-1, ge=-1)
    is_active: bool = True
    sort_order: int = 0


class WhiteLabelVariantUpdate(CamelModel):
    name: str | None = pydantic.Field(default=None, min_length=1, max_length=255)
    description: str | None = pydantic.Field(default=None, max_length=2000)
    monthly_price_cents: int | None = pydantic.Field(default=None, ge=0)
    stripe_price_id: str | None = None
    max_workspaces: int | None = pydantic.Field(default=None, ge=-1)
    is_active: bool | None = None
    sort_order: int | None = None


class WhiteLabelVariantRead(CamelModel):
    """Super-admin view, includes the payment-provider price id."""
    id: uuid.UUID
    slug: str
    name: str
    description: str | None
    monthly_price_cents: int
    stripe_price_id: str | None
    max_workspaces: int
    is_active: bool
    sort_order: int
    partner_count: int = 0
    created_at: datetime
    updated_at: datetime


class PublicWhiteLabelPlan(CamelModel):
    """Public view — no payment-provider identifiers."""
    id: uuid.UUID
    slug: str
    name: str
    description: str | None
    monthly_price_cents: int
    monthly_price: float
    max_workspaces: int


class PublicWhiteLabelPlans(CamelModel):
    plans: list[PublicWhiteLabelPlan]
