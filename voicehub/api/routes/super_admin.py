"""Platform administration — partners and the white-label variant catalog."""

import json
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Query, status
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.api.deps import SuperAdminCtx
from voicehub.core.errors import Conflict, NotFound, ValidationFailed
from voicehub.core.pagination import Page, Pagination
from voicehub.models.agent import Agent
from voicehub.models.base import utcnow
from voicehub.models.partner import (
    Partner,
    PartnerBranding,
    PartnerCreate,
    PartnerRead,
    PartnerResourceLimits,
    PartnerUpdate,
    PlanTier,
)
from voicehub.models.white_label import (
    WhiteLabelVariant,
    WhiteLabelVariantCreate,
    WhiteLabelVariantRead,
    WhiteLabelVariantUpdate,
)
from voicehub.models.workspace import Workspace, WorkspaceSummary
from voicehub.services.workspaces import summarize_workspaces

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/super-admin", tags=["super-admin"])


# ── Partners ──────────────────────────────────────────────────

@router.get("/partners", response_model=Page[PartnerRead])
async def list_partners(
    ctx: SuperAdminCtx,
    params: Pagination,
    search: Annotated[str | None, Query(max_length=255)] = None,
    plan_tier: PlanTier | None = None,
) -> Page[PartnerRead]:
    session = ctx.session
    filters = [Partner.deleted_at.is_(None)]  # type: ignore[union-attr]
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(
                Partner.name.ilike(pattern),  # type: ignore[attr-defined]
                Partner.slug.ilike(pattern),  # type: ignore[attr-defined]
            )
        )
    if plan_tier is not None:
        filters.append(Partner.plan_tier == plan_tier)

    total = (
        await session.execute(select(func.count()).select_from(Partner).where(*filters))
    ).scalar_one()
    stmt = (
        select(Partner)
        .where(*filters)
        .order_by(Partner.created_at.desc())  # type: ignore[union-attr]
        .offset(params.offset)
        .limit(params.page_size)
    )
    partners = list((await session.execute(stmt)).scalars().all())

    ids = [p.id for p in partners]
    workspace_counts = await _workspace_counts(session, ids)
    agent_counts = await _agent_counts(session, ids)
    data = [
        _to_partner_read(p, workspace_counts.get(p.id, 0), agent_counts.get(p.id, 0))
        for p in partners
    ]
    return Page.build(data, total, params)


@router.post("/partners", response_model=PartnerRead, status_code=status.HTTP_201_CREATED)
async def create_partner(body: PartnerCreate, ctx: SuperAdminCtx) -> PartnerRead:
    session = ctx.session
    await _ensure_partner_unique(session, body.slug, body.hostname)
    if body.white_label_variant_id is not None:
        await _get_variant_or_404(session, body.white_label_variant_id)

    partner = Partner(
        name=body.name,
        slug=body.slug,
        hostname=body.hostname.lower() if body.hostname else None,
        branding=_dump_json(body.branding),
        resource_limits=_dump_json(body.resource_limits),
        plan_tier=body.plan_tier,
        is_platform_partner=body.is_platform_partner,
        white_label_variant_id=body.white_label_variant_id,
    )
    session.add(partner)
    await session.commit()
    await session.refresh(partner)
    logger.info("Super admin %s created partner %s", ctx.principal.id, partner.slug)
    return _to_partner_read(partner)


@router.get("/partners/{partner_id}", response_model=PartnerRead)
async def get_partner(partner_id: uuid.UUID, ctx: SuperAdminCtx) -> PartnerRead:
    partner = await _get_partner_or_404(ctx.session, partner_id)
    workspace_counts = await _workspace_counts(ctx.session, [partner.id])
    agent_counts = await _agent_counts(ctx.session, [partner.id])
    return _to_partner_read(
        partner, workspace_counts.get(partner.id, 0), agent_counts.get(partner.id, 0),
    )


@router.patch("/partners/{partner_id}", response_model=PartnerRead)
async def update_partner(
    partner_id: uuid.UUID, body: PartnerUpdate, ctx: SuperAdminCtx
) -> PartnerRead:
    session = ctx.session
    partner = await _get_partner_or_404(session, partner_id)

    update_data = body.model_dump(exclude_unset=True)
    if "hostname" in update_data and update_data["hostname"]:
        hostname = update_data["hostname"].lower()
        if hostname != partner.hostname:
            await _ensure_partner_unique(session, None, hostname)
        update_data["hostname"] = hostname
    if update_data.get("white_label_variant_id") is not None:
        await _get_variant_or_404(session, update_data["white_label_variant_id"])
    if "branding" in update_data:
        update_data["branding"] = _dump_json(body.branding)
    if "resource_limits" in update_data:
        update_data["resource_limits"] = _dump_json(body.resource_limits)

    for field, value in update_data.items():
        setattr(partner, field, value)
    partner.updated_at = utcnow()
    session.add(partner)
    await session.commit()
    await session.refresh(partner)
    return _to_partner_read(partner)


@router.delete("/partners/{partner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_partner(partner_id: uuid.UUID, ctx: SuperAdminCtx) -> None:
    session = ctx.session
    partner = await _get_partner_or_404(session, partner_id)
    if partner.is_platform_partner:
        raise ValidationFailed("The platform partner cannot be deleted")

    partner.deleted_at = utcnow()
    partner.updated_at = partner.deleted_at
    session.add(partner)
    await session.commit()
    logger.info("Super admin %s deleted partner %s", ctx.principal.id, partner.slug)


@router.get("/partners/{partner_id}/workspaces", response_model=Page[WorkspaceSummary])
async def list_partner_workspaces(
    partner_id: uuid.UUID, ctx: SuperAdminCtx, params: Pagination
) -> Page[WorkspaceSummary]:
    session = ctx.session
    await _get_partner_or_404(session, partner_id)

    filters = (
        Workspace.partner_id == partner_id,
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


# ── White-label variants ──────────────────────────────────────

@router.get("/white-label-variants", response_model=list[WhiteLabelVariantRead])
async def list_variants(ctx: SuperAdminCtx) -> list[WhiteLabelVariantRead]:
    session = ctx.session
    stmt = select(WhiteLabelVariant).order_by(
        WhiteLabelVariant.sort_order.asc(),  # type: ignore[attr-defined]
        WhiteLabelVariant.created_at.asc(),  # type: ignore[union-attr]
    )
    variants = list((await session.execute(stmt)).scalars().all())

    count_stmt = (
        select(Partner.white_label_variant_id, func.count())
        .where(
            Partner.white_label_variant_id.is_not(None),  # type: ignore[union-attr]
            Partner.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        .group_by(Partner.white_label_variant_id)
    )
    counts = {vid: n for vid, n in (await session.execute(count_stmt)).all()}
    return [_to_variant_read(v, counts.get(v.id, 0)) for v in variants]


@router.post(
    "/white-label-variants",
    response_model=WhiteLabelVariantRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_variant(body: WhiteLabelVariantCreate, ctx: SuperAdminCtx) -> WhiteLabelVariantRead:
    session = ctx.session
    existing = await session.execute(
        select(WhiteLabelVariant).where(WhiteLabelVariant.slug == body.slug)
    )
    if existing.scalar_one_or_none():
        raise Conflict(f"Variant slug '{body.slug}' is already taken")

    variant = WhiteLabelVariant(**body.model_dump())
    session.add(variant)
    await session.commit()
    await session.refresh(variant)
    return _to_variant_read(variant)


@router.patch("/white-label-variants/{variant_id}", response_model=WhiteLabelVariantRead)
async def update_variant(
    variant_id: uuid.UUID, body: WhiteLabelVariantUpdate, ctx: SuperAdminCtx
) -> WhiteLabelVariantRead:
    session = ctx.session
    variant = await _get_variant_or_404(session, variant_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(variant, field, value)
    variant.updated_at = utcnow()
    session.add(variant)
    await session.commit()
    await session.refresh(variant)

    partner_count = (
        await session.execute(
            select(func.count()).select_from(Partner).where(
                Partner.white_label_variant_id == variant.id,
                Partner.deleted_at.is_(None),  # type: ignore[union-attr]
            )
        )
    ).scalar_one()
    return _to_variant_read(variant, partner_count)


# ── Shared helpers ────────────────────────────────────────────

async def _workspace_counts(
    session: AsyncSession, partner_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not partner_ids:
        return {}
    stmt = (
        select(Workspace.partner_id, func.count())
        .where(
            Workspace.partner_id.in_(partner_ids),  # type: ignore[attr-defined]
            Workspace.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        .group_by(Workspace.partner_id)
    )
    return {pid: n for pid, n in (await session.execute(stmt)).all()}


async def _agent_counts(
    session: AsyncSession, partner_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not partner_ids:
        return {}
    stmt = (
        select(Workspace.partner_id, func.count(Agent.id))
        .join(Workspace, Agent.workspace_id == Workspace.id)
        .where(
            Workspace.partner_id.in_(partner_ids),  # type: ignore[attr-defined]
            Workspace.deleted_at.is_(None),  # type: ignore[union-attr]
            Agent.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        .group_by(Workspace.partner_id)
    )
    return {pid: n for pid, n in (await session.execute(stmt)).all()}


async def _ensure_partner_unique(
    session: AsyncSession, slug: str | None, hostname: str | None
) -> None:
    if slug:
        result = await session.execute(select(Partner.id).where(Partner.slug == slug))
        if result.first() is not None:
            raise Conflict(f"Partner slug '{slug}' is already taken")
    if hostname:
        result = await session.execute(
            select(Partner.id).where(Partner.hostname == hostname.lower())
        )
        if result.first() is not None:
            raise Conflict(f"Hostname '{hostname}' is already in use")


async def _get_partner_or_404(session: AsyncSession, partner_id: uuid.UUID) -> Partner:
    stmt = select(Partner).where(
        Partner.id == partner_id,
        Partner.deleted_at.is_(None),  # type: ignore[union-attr]
    )
    partner = (await session.execute(stmt)).scalar_one_or_none()
    if partner is None:
        raise NotFound("Partner")
    return partner


async def _get_variant_or_404(session: AsyncSession, variant_id: uuid.UUID) -> WhiteLabelVariant:
    variant = await session.get(WhiteLabelVariant, variant_id)
    if variant is None:
        raise NotFound("White-label variant")
    return variant


def _dump_json(value: PartnerBranding | PartnerResourceLimits | None) -> str:
    if value is None:
        return "{}"
    return json.dumps(value.model_dump(exclude_none=True))


def _load_json(raw: str | None) -> dict:
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def _to_partner_read(partner: Partner, workspace_count: int = 0, agent_count: int = 0) -> PartnerRead:
    return PartnerRead(
        id=partner.id,
        name=partner.name,
        slug=partner.slug,
        hostname=partner.hostname,
        branding=PartnerBranding.model_validate(_load_json(partner.branding)),
        plan_tier=partner.plan_tier,
        resource_limits=PartnerResourceLimits.model_validate(_load_json(partner.resource_limits)),
        is_platform_partner=partner.is_platform_partner,
        white_label_variant_id=partner.white_label_variant_id,
        workspace_count=workspace_count,
        agent_count=agent_count,
        created_at=partner.created_at,
        updated_at=partner.updated_at,
    )


def _to_variant_read(variant: WhiteLabelVariant, partner_count: int = 0) -> WhiteLabelVariantRead:
    return WhiteLabelVariantRead.model_validate({
        **variant.model_dump(),
        "partner_count": partner_count,
    })
