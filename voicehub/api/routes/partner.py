"""Partner dashboard — workspaces and the subscription plan catalog.

The partner is the one serving the request hostname; the caller must be one
of its members.
"""

import json
import logging
import uuid

from fastapi import APIRouter, status
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.api.deps import PartnerAdminCtx, PartnerCtx
from voicehub.core.errors import Conflict, Forbidden, NotFound
from voicehub.core.pagination import Page, Pagination
from voicehub.models.base import utcnow
from voicehub.models.partner import Partner
from voicehub.models.subscription import (
    PartnerPlanRead,
    SubscriptionPlan,
    SubscriptionPlanCreate,
    SubscriptionPlanUpdate,
    WorkspaceSubscription,
)
from voicehub.models.white_label import WhiteLabelVariant
from voicehub.models.workspace import Workspace, WorkspaceCreate, WorkspaceSummary
from voicehub.services.billing import CURRENT_STATUSES, plan_features
from voicehub.services.workspaces import (
    count_partner_workspaces,
    create_workspace,
    slug_taken,
    summarize_workspaces,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partner", tags=["partner"])


# ── Workspaces ────────────────────────────────────────────────

@router.get("/workspaces", response_model=Page[WorkspaceSummary])
async def list_workspaces(ctx: PartnerCtx, params: Pagination) -> Page[WorkspaceSummary]:
    session = ctx.session
    filters = (
        Workspace.partner_id == ctx.partner.id,
        Workspace.deleted_at.is_(None),  # type: ignore[union-attr]
    )
    total = (
        await session.execute(select(func.count()).select_from(Workspace).where(*filters))
    ).scalar_one()
    stmt = (
        select(Workspace)
        .where(*filters)
        .order_by(Workspace.created_at.desc())  # type: ignore[union-attr]
        .offset(params.offset)
        .limit(params.page_size)
    )
    workspaces = list((await session.execute(stmt)).scalars().all())
    return Page.build(await summarize_workspaces(session, workspaces), total, params)


@router.post("/workspaces", response_model=WorkspaceSummary, status_code=status.HTTP_201_CREATED)
async def create_partner_workspace(body: WorkspaceCreate, ctx: PartnerAdminCtx) -> WorkspaceSummary:
    session = ctx.session

    limit = await _max_workspaces(session, ctx.partner)
    if limit is not None and await count_partner_workspaces(session, ctx.partner.id) >= limit:
        raise Forbidden(f"Workspace limit reached ({limit}). Upgrade your plan to add more.")

    if body.slug and await slug_taken(session, body.slug):
        raise Conflict(f"Workspace slug '{body.slug}' is already taken")

    workspace = await create_workspace(session, ctx.partner.id, body, ctx.principal)
    summaries = await summarize_workspaces(session, [workspace])
    return summaries[0]


async def _max_workspaces(session: AsyncSession, partner: Partner) -> int | None:
    """Partner override from ``resource_limits``, else the white-label variant cap."""
    try:
        limits = json.loads(partner.resource_limits or "{}")
    except json.JSONDecodeError:
        limits = {}
    if isinstance(limits, dict) and limits.get("max_workspaces") is not None:
        return int(limits["max_workspaces"])

    if partner.white_label_variant_id is not None:
        variant = await session.get(WhiteLabelVariant, partner.white_label_variant_id)
        if variant is not None and variant.max_workspaces >= 0:
            return variant.max_workspaces
    return None


# ── Subscription plans ────────────────────────────────────────

@router.get("/subscription-plans", response_model=list[PartnerPlanRead])
async def list_plans(ctx: PartnerCtx) -> list[PartnerPlanRead]:
    session = ctx.session
    stmt = (
        select(SubscriptionPlan)
        .where(SubscriptionPlan.partner_id == ctx.partner.id)
        .order_by(
            SubscriptionPlan.sort_order.asc(),  # type: ignore[attr-defined]
            SubscriptionPlan.monthly_price_cents.asc(),  # type: ignore[attr-defined]
        )
    )
    plans = list((await session.execute(stmt)).scalars().all())
    counts = await _subscriber_counts(session, [p.id for p in plans])
    return [_to_plan_read(p, counts.get(p.id, 0)) for p in plans]


@router.post(
    "/subscription-plans", response_model=PartnerPlanRead, status_code=status.HTTP_201_CREATED
)
async def create_plan(body: SubscriptionPlanCreate, ctx: PartnerAdminCtx) -> PartnerPlanRead:
    session = ctx.session
    data = body.model_dump()
    data["features"] = json.dumps(data["features"])
    plan = SubscriptionPlan(partner_id=ctx.partner.id, **data)
    session.add(plan)
    await session.commit()
    await session.refresh(plan)
    logger.info("Partner %s created plan %s", ctx.partner.slug, plan.id)
    return _to_plan_read(plan)


@router.patch("/subscription-plans/{plan_id}", response_model=PartnerPlanRead)
async def update_plan(
    plan_id: uuid.UUID, body: SubscriptionPlanUpdate, ctx: PartnerAdminCtx
) -> PartnerPlanRead:
    session = ctx.session
    plan = await _get_plan_or_404(session, ctx.partner.id, plan_id)

    update_data = body.model_dump(exclude_unset=True)
    if "features" in update_data:
        update_data["features"] = json.dumps(update_data["features"] or [])
    for field, value in update_data.items():
        setattr(plan, field, value)
    plan.updated_at = utcnow()
    session.add(plan)
    await session.commit()
    await session.refresh(plan)

    counts = await _subscriber_counts(session, [plan.id])
    return _to_plan_read(plan, counts.get(plan.id, 0))


@router.delete("/subscription-plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(plan_id: uuid.UUID, ctx: PartnerAdminCtx) -> None:
    session = ctx.session
    plan = await _get_plan_or_404(session, ctx.partner.id, plan_id)

    # Any subscription row, even a canceled one, still references the plan
    referenced = await session.execute(
        select(WorkspaceSubscription.id).where(WorkspaceSubscription.plan_id == plan.id)
    )
    if referenced.first() is not None:
        raise Conflict("Plan has subscribers. Deactivate it instead.")

    await session.delete(plan)
    await session.commit()


# ── Internal helpers ──────────────────────────────────────────

async def _get_plan_or_404(
    session: AsyncSession, partner_id: uuid.UUID, plan_id: uuid.UUID
) -> SubscriptionPlan:
    stmt = select(SubscriptionPlan).where(
        SubscriptionPlan.id == plan_id,
        SubscriptionPlan.partner_id == partner_id,
    )
    plan = (await session.execute(stmt)).scalar_one_or_none()
    if plan is None:
        raise NotFound("Plan")
    return plan


async def _subscriber_counts(
    session: AsyncSession, plan_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not plan_ids:
        return {}
    stmt = (
        select(WorkspaceSubscription.plan_id, func.count())
        .where(
            WorkspaceSubscription.plan_id.in_(plan_ids),  # type: ignore[attr-defined]
            WorkspaceSubscription.status.in_(CURRENT_STATUSES),  # type: ignore[attr-defined]
        )
        .group_by(WorkspaceSubscription.plan_id)
    )
    return {pid: n for pid, n in (await session.execute(stmt)).all()}


def _to_plan_read(plan: SubscriptionPlan, subscriber_count: int = 0) -> PartnerPlanRead:
    return PartnerPlanRead(
        id=plan.id,
        name=plan.name,
        description=plan.description,
        monthly_price_cents=plan.monthly_price_cents,
        included_minutes=plan.included_minutes,
        overage_rate_cents=plan.overage_rate_cents,
        features=plan_features(plan),
        max_agents=plan.max_agents,
        max_conversations_per_month=plan.max_conversations_per_month,
        is_active=plan.is_active,
        is_public=plan.is_public,
        sort_order=plan.sort_order,
        subscriber_count=subscriber_count,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )
