"""Workspace subscription to a partner plan.

Billing endpoints skip the paywall so an exhausted workspace can still
subscribe. Paid plans start ``incomplete``; the checkout itself happens with
the payment provider and activates the row out of band.
"""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, status
from sqlalchemy import or_
from sqlmodel import select

from voicehub.api.deps import BillingAdminCtx, BillingCtx
from voicehub.core.errors import NotFound, ValidationFailed
from voicehub.models.base import CamelModel, utcnow
from voicehub.models.subscription import (
    PendingPlan,
    SubscribeRequest,
    SubscriptionPlan,
    SubscriptionResponse,
    SubscriptionStatus,
    WorkspacePlansResponse,
    WorkspaceSubscription,
)
from voicehub.services.billing import (
    CURRENT_STATUSES,
    add_months,
    get_partner_plan,
    get_subscription,
    to_subscription_read,
    to_workspace_plan,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/w/{workspace_slug}/subscription", tags=["subscription"])


class SubscribedPlan(CamelModel):
    id: uuid.UUID
    status: SubscriptionStatus
    plan_id: uuid.UUID
    plan_name: str


class SubscribeResponse(CamelModel):
    subscription: SubscribedPlan
    # Set by the payment provider integration; None for free plans
    checkout_url: str | None = None


class CancelResponse(CamelModel):
    message: str
    cancel_at_period_end: bool
    current_period_end: datetime | None


@router.get("", response_model=SubscriptionResponse)
async def get_workspace_subscription(ctx: BillingCtx) -> SubscriptionResponse:
    found = await get_subscription(ctx.session, ctx.workspace.id)
    if found is None:
        return SubscriptionResponse(has_subscription=False)

    subscription, plan = found
    if subscription.status == SubscriptionStatus.INCOMPLETE:
        return SubscriptionResponse(
            has_subscription=False,
            pending_checkout=True,
            pending_plan=PendingPlan(id=plan.id, name=plan.name),
        )
    return SubscriptionResponse(
        has_subscription=True,
        subscription=to_subscription_read(subscription, plan),
    )


@router.get("/plans", response_model=WorkspacePlansResponse)
async def list_available_plans(ctx: BillingCtx) -> WorkspacePlansResponse:
    """Public plans of the workspace's partner, plus the current plan if it is private."""
    session = ctx.session
    found = await get_subscription(session, ctx.workspace.id)
    current_plan_id = (
        found[0].plan_id if found is not None and found[0].status in CURRENT_STATUSES else None
    )

    visible = SubscriptionPlan.is_public.is_(True)  # type: ignore[attr-defined]
    if current_plan_id is not None:
        visible = or_(visible, SubscriptionPlan.id == current_plan_id)
    stmt = (
        select(SubscriptionPlan)
        .where(
            SubscriptionPlan.partner_id == ctx.partner_id,
            SubscriptionPlan.is_active.is_(True),  # type: ignore[attr-defined]
            visible,
        )
        .order_by(
            SubscriptionPlan.sort_order.asc(),  # type: ignore[attr-defined]
            SubscriptionPlan.monthly_price_cents.asc(),  # type: ignore[attr-defined]
        )
    )
    plans = (await session.execute(stmt)).scalars().all()
    return WorkspacePlansResponse(
        plans=[to_workspace_plan(p, current_plan_id) for p in plans],
        current_plan_id=current_plan_id,
    )


@router.post("", response_model=SubscribeResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(body: SubscribeRequest, ctx: BillingAdminCtx) -> SubscribeResponse:
    session = ctx.session
    workspace = ctx.workspace

    existing = await session.execute(
        select(WorkspaceSubscription).where(WorkspaceSubscription.workspace_id == workspace.id)
    )
    subscription = existing.scalar_one_or_none()
    if subscription is not None and subscription.status == SubscriptionStatus.ACTIVE:
        raise ValidationFailed(
            "Workspace already has an active subscription. Use plan change to switch plans."
        )

    plan = await get_partner_plan(session, ctx.partner_id, body.plan_id)
    if plan is None:
        raise NotFound("Subscription plan")

    now = utcnow()
    if subscription is None:
        subscription = WorkspaceSubscription(workspace_id=workspace.id, plan_id=plan.id)

    subscription.plan_id = plan.id
    subscription.minutes_used_this_period = 0
    subscription.overage_charges_cents = 0
    subscription.cancel_at_period_end = False
    subscription.canceled_at = None
    subscription.updated_at = now
    if plan.monthly_price_cents == 0:
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.current_period_start = now
        subscription.current_period_end = add_months(now, 1)
    else:
        subscription.status = SubscriptionStatus.INCOMPLETE
        subscription.current_period_start = None
        subscription.current_period_end = None

    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)
    logger.info(
        "Workspace %s subscribed to plan %s (%s)", workspace.slug, plan.id, subscription.status,
    )
    return SubscribeResponse(
        subscription=SubscribedPlan(
            id=subscription.id,
            status=subscription.status,
            plan_id=plan.id,
            plan_name=plan.name,
        ),
    )


@router.delete("", response_model=CancelResponse)
async def cancel_subscription(ctx: BillingAdminCtx) -> CancelResponse:
    session = ctx.session
    result = await session.execute(
        select(WorkspaceSubscription).where(
            WorkspaceSubscription.workspace_id == ctx.workspace.id
        )
    )
    subscription = result.scalar_one_or_none()
    if subscription is None:
        raise NotFound("Subscription")
    if subscription.status == SubscriptionStatus.CANCELED:
        raise ValidationFailed("Subscription is already canceled")

    now = utcnow()
    subscription.cancel_at_period_end = True
    subscription.canceled_at = now
    subscription.updated_at = now
    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)
    return CancelResponse(
        message="Subscription will be canceled at the end of the billing period",
        cancel_at_period_end=True,
        current_period_end=subscription.current_period_end,
    )
