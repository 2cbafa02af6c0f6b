"""Subscription lookups, paywall status, and plan limits for workspaces."""

import calendar
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.models.agent import Agent
from voicehub.models.base import utcnow
from voicehub.models.conversation import Conversation
from voicehub.models.partner import Partner
from voicehub.models.subscription import (
    SubscriptionPlan,
    SubscriptionPlanSummary,
    SubscriptionStatus,
    SubscriptionUsage,
    WorkspacePlanRead,
    WorkspaceSubscription,
    WorkspaceSubscriptionRead,
)
from voicehub.models.workspace import Workspace

logger = logging.getLogger(__name__)

# Statuses that make a plan the workspace's current plan
CURRENT_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.TRIALING,
    SubscriptionStatus.PAST_DUE,
)


@dataclass(frozen=True, slots=True)
class PaywallStatus:
    is_paywalled: bool
    is_billing_exempt: bool
    has_active_subscription: bool
    credits_balance_cents: int
    reason: str | None = None


class LimitUsage(BaseModel):
    limit: int | None
    used: int
    remaining: int | None


# ── Plan helpers ──────────────────────────────────────────────

def plan_features(plan: SubscriptionPlan) -> list[str]:
    try:
        features = json.loads(plan.features or "[]")
    except json.JSONDecodeError:
        logger.warning("Plan %s has malformed features JSON", plan.id)
        return []
    return [str(f) for f in features] if isinstance(features, list) else []


def cents_to_dollars(cents: int) -> str:
    return f"{cents / 100:.2f}"


def to_workspace_plan(plan: SubscriptionPlan, current_plan_id: uuid.UUID | None) -> WorkspacePlanRead:
    return WorkspacePlanRead(
        id=plan.id,
        name=plan.name,
        description=plan.description,
        monthly_price_cents=plan.monthly_price_cents,
        monthly_price_dollars=cents_to_dollars(plan.monthly_price_cents),
        included_minutes=plan.included_minutes,
        overage_rate_cents=plan.overage_rate_cents,
        overage_rate_dollars=cents_to_dollars(plan.overage_rate_cents),
        features=plan_features(plan),
        max_agents=plan.max_agents,
        max_conversations_per_month=plan.max_conversations_per_month,
        is_current=current_plan_id is not None and plan.id == current_plan_id,
    )


def to_plan_summary(plan: SubscriptionPlan) -> SubscriptionPlanSummary:
    return SubscriptionPlanSummary(
        id=plan.id,
        name=plan.name,
        description=plan.description,
        monthly_price_cents=plan.monthly_price_cents,
        included_minutes=plan.included_minutes,
        overage_rate_cents=plan.overage_rate_cents,
        features=plan_features(plan),
        max_agents=plan.max_agents,
        max_conversations_per_month=plan.max_conversations_per_month,
    )


def to_subscription_read(
    subscription: WorkspaceSubscription, plan: SubscriptionPlan
) -> WorkspaceSubscriptionRead:
    included = plan.included_minutes
    used = subscription.minutes_used_this_period
    return WorkspaceSubscriptionRead(
        id=subscription.id,
        status=subscription.status,
        plan=to_plan_summary(plan),
        current_period_start=subscription.current_period_start,
        current_period_end=subscription.current_period_end,
        usage=SubscriptionUsage(
            included_minutes=included,
            used_minutes=used,
            remaining_minutes=max(0, included - used),
            overage_minutes=max(0, used - included),
            overage_charges_cents=subscription.overage_charges_cents,
        ),
        cancel_at_period_end=subscription.cancel_at_period_end,
        canceled_at=subscription.canceled_at,
        trial_end=subscription.trial_end,
        created_at=subscription.created_at,
    )


# ── Queries ───────────────────────────────────────────────────

async def get_subscription(
    session: AsyncSession, workspace_id: uuid.UUID
) -> tuple[WorkspaceSubscription, SubscriptionPlan] | None:
    stmt = (
        select(WorkspaceSubscription, SubscriptionPlan)
        .join(SubscriptionPlan, WorkspaceSubscription.plan_id == SubscriptionPlan.id)
        .where(WorkspaceSubscription.workspace_id == workspace_id)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        return None
    return row[0], row[1]


async def get_current_plan(session: AsyncSession, workspace_id: uuid.UUID) -> SubscriptionPlan | None:
    found = await get_subscription(session, workspace_id)
    if found is None:
        return None
    subscription, plan = found
    return plan if subscription.status in CURRENT_STATUSES else None


async def get_partner_plan(
    session: AsyncSession, partner_id: uuid.UUID, plan_id: uuid.UUID
) -> SubscriptionPlan | None:
    stmt = select(SubscriptionPlan).where(
        SubscriptionPlan.id == plan_id,
        SubscriptionPlan.partner_id == partner_id,
        SubscriptionPlan.is_active.is_(True),  # type: ignore[attr-defined]
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_paywall_status(session: AsyncSession, workspace: Workspace) -> PaywallStatus:
    """A workspace is paywalled when it is not billing exempt, has no active
    subscription, and its credit balance is exhausted."""
    found = await get_subscription(session, workspace.id)
    has_active = found is not None and found[0].status == SubscriptionStatus.ACTIVE
    balance = workspace.credits_balance_cents

    if workspace.is_billing_exempt:
        return PaywallStatus(False, True, has_active, balance)
    if has_active:
        return PaywallStatus(False, False, True, balance)
    if balance <= 0:
        return PaywallStatus(
            True, False, False, balance, reason="Credits exhausted. Upgrade to continue.",
        )
    return PaywallStatus(False, False, False, balance)


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def add_months(moment: datetime, months: int) -> datetime:
    """Same day next month(s), clamped to the last day of a shorter month."""
    index = moment.month - 1 + months
    year, month = moment.year + index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


async def count_agents(session: AsyncSession, workspace_id: uuid.UUID) -> int:
    stmt = select(func.count()).select_from(Agent).where(
        Agent.workspace_id == workspace_id,
        Agent.deleted_at.is_(None),  # type: ignore[union-attr]
    )
    return (await session.execute(stmt)).scalar_one()


async def get_max_agents(
    session: AsyncSession, workspace: Workspace
) -> int | None:
    """Agent cap: the current plan's limit, else the partner's per-workspace default."""
    plan = await get_current_plan(session, workspace.id)
    if plan is not None:
        return plan.max_agents

    partner = await session.get(Partner, workspace.partner_id)
    if partner is None:
        return None
    try:
        limits = json.loads(partner.resource_limits or "{}")
    except json.JSONDecodeError:
        return None
    value = limits.get("max_agents_per_workspace") if isinstance(limits, dict) else None
    return int(value) if value is not None else None


def _usage(limit: int | None, used: int) -> LimitUsage:
    return LimitUsage(
        limit=limit,
        used=used,
        remaining=max(0, limit - used) if limit is not None else None,
    )


async def get_workspace_limits(session: AsyncSession, workspace: Workspace) -> dict[str, LimitUsage]:
    found = await get_subscription(session, workspace.id)
    plan = found[1] if found is not None and found[0].status in CURRENT_STATUSES else None
    minutes_used = found[0].minutes_used_this_period if found is not None else 0

    agents_used = await count_agents(session, workspace.id)
    max_agents = await get_max_agents(session, workspace)

    conv_stmt = select(func.count()).select_from(Conversation).where(
        Conversation.workspace_id == workspace.id,
        Conversation.deleted_at.is_(None),  # type: ignore[union-attr]
        Conversation.created_at >= _month_start(utcnow()),
    )
    conversations_used = (await session.execute(conv_stmt)).scalar_one()

    return {
        "agents": _usage(max_agents, agents_used),
        "minutes": _usage(plan.included_minutes if plan else None, minutes_used),
        "conversations": _usage(
            plan.max_conversations_per_month if plan else None, conversations_used,
        ),
    }
