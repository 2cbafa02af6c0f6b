"""Unauthenticated pricing endpoints."""

import json

from fastapi import APIRouter
from sqlmodel import select

from voicehub.api.deps import HostPartner, Session
from voicehub.core.errors import NotFound
from voicehub.models.base import CamelModel
from voicehub.models.partner import PartnerBranding
from voicehub.models.subscription import PublicPlan, SubscriptionPlan
from voicehub.models.white_label import (
    PublicWhiteLabelPlan,
    PublicWhiteLabelPlans,
    WhiteLabelVariant,
)
from voicehub.services.billing import plan_features

router = APIRouter(prefix="/public", tags=["public"])


class PublicPartner(CamelModel):
    id: str
    name: str
    is_platform_partner: bool
    branding: PartnerBranding


class PublicPricingResponse(CamelModel):
    plans: list[PublicPlan]
    partner: PublicPartner


@router.get("/white-label-plans", response_model=PublicWhiteLabelPlans)
async def list_white_label_plans(session: Session) -> PublicWhiteLabelPlans:
    """Agency plans shown on the partner request form."""
    stmt = (
        select(WhiteLabelVariant)
        .where(WhiteLabelVariant.is_active.is_(True))  # type: ignore[attr-defined]
        .order_by(
            WhiteLabelVariant.sort_order.asc(),  # type: ignore[attr-defined]
            WhiteLabelVariant.created_at.asc(),  # type: ignore[union-attr]
        )
    )
    variants = (await session.execute(stmt)).scalars().all()
    return PublicWhiteLabelPlans(
        plans=[
            PublicWhiteLabelPlan(
                id=v.id,
                slug=v.slug,
                name=v.name,
                description=v.description,
                monthly_price_cents=v.monthly_price_cents,
                monthly_price=v.monthly_price_cents / 100,
                max_workspaces=v.max_workspaces,
            )
            for v in variants
        ]
    )


@router.get("/pricing", response_model=PublicPricingResponse)
async def get_partner_pricing(partner: HostPartner, session: Session) -> PublicPricingResponse:
    """Public subscription plans of the partner serving this hostname.

    The platform partner sells no workspace plans here and returns an empty list.
    """
    if partner is None:
        raise NotFound("Partner")

    try:
        branding = PartnerBranding.model_validate(json.loads(partner.branding or "{}"))
    except (json.JSONDecodeError, ValueError):
        branding = PartnerBranding()

    plans: list[PublicPlan] = []
    if not partner.is_platform_partner:
        stmt = (
            select(SubscriptionPlan)
            .where(
                SubscriptionPlan.partner_id == partner.id,
                SubscriptionPlan.is_active.is_(True),  # type: ignore[attr-defined]
                SubscriptionPlan.is_public.is_(True),  # type: ignore[attr-defined]
            )
            .order_by(
                SubscriptionPlan.sort_order.asc(),  # type: ignore[attr-defined]
                SubscriptionPlan.monthly_price_cents.asc(),  # type: ignore[attr-defined]
            )
        )
        plans = [
            PublicPlan(
                id=p.id,
                name=p.name,
                description=p.description,
                monthly_price_cents=p.monthly_price_cents,
                monthly_price=p.monthly_price_cents / 100,
                included_minutes=p.included_minutes,
                overage_rate_cents=p.overage_rate_cents,
                features=plan_features(p),
                max_agents=p.max_agents,
                max_conversations_per_month=p.max_conversations_per_month,
                sort_order=p.sort_order,
            )
            for p in (await session.execute(stmt)).scalars().all()
        ]

    return PublicPricingResponse(
        plans=plans,
        partner=PublicPartner(
            id=str(partner.id),
            name=partner.name,
            is_platform_partner=partner.is_platform_partner,
            branding=branding,
        ),
    )
