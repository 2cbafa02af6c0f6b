"""Tenant context resolution.

Every tenant-scoped request goes through one of the resolvers below before any
query touches tenant data. A resolver returns a fully populated, immutable
context or ``None``. ``None`` covers every failure (no session, unknown or
deleted tenant, not a member, wrong role) so callers can answer with one
uniform "Unauthorized" and never reveal whether a tenant exists.

Role precedence for workspace access, when several apply:

1. a live ``WorkspaceMember`` row (its own role),
2. owner/admin of the workspace's partner (effective role ``admin``),
3. super admin (effective role ``admin``).

The session carried by a context runs with server-side credentials; tenant
isolation comes from the ownership checks done here, not from the database.
"""

import logging
import uuid
from collections.abc import Collection
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.core.config import get_settings
from voicehub.models.base import utcnow
from voicehub.models.partner import Partner, PartnerMember, PartnerMemberRole
from voicehub.models.principal import Principal, SuperAdmin
from voicehub.models.workspace import (
    AccessibleWorkspace,
    Workspace,
    WorkspaceMember,
    WorkspaceMemberRole,
)

logger = logging.getLogger(__name__)

settings = get_settings()

PARTNER_ADMIN_ROLES = (PartnerMemberRole.OWNER, PartnerMemberRole.ADMIN)
WORKSPACE_ADMIN_ROLES = (WorkspaceMemberRole.OWNER, WorkspaceMemberRole.ADMIN)


@dataclass(frozen=True, slots=True)
class WorkspaceContext:
    principal: Principal
    workspace: Workspace
    partner_id: uuid.UUID
    role: WorkspaceMemberRole
    session: AsyncSession
    is_partner_access: bool = False
    is_super_admin_access: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role in WORKSPACE_ADMIN_ROLES

    @property
    def can_manage_owners(self) -> bool:
        """Owners, partner staff and super admins may add, change or remove owners."""
        return (
            self.role == WorkspaceMemberRole.OWNER
            or self.is_partner_access
            or self.is_super_admin_access
        )


@dataclass(frozen=True, slots=True)
class PartnerContext:
    principal: Principal
    partner: Partner
    role: PartnerMemberRole
    session: AsyncSession

    @property
    def is_admin(self) -> bool:
        return self.role in PARTNER_ADMIN_ROLES


@dataclass(frozen=True, slots=True)
class SuperAdminContext:
    principal: Principal
    super_admin: SuperAdmin
    session: AsyncSession


# ── Lookups ───────────────────────────────────────────────────

async def get_super_admin(session: AsyncSession, principal_id: uuid.UUID) -> SuperAdmin | None:
    result = await session.execute(
        select(SuperAdmin).where(SuperAdmin.principal_id == principal_id)
    )
    return result.scalar_one_or_none()


async def _get_live_workspace(session: AsyncSession, slug: str) -> Workspace | None:
    stmt = (
        select(Workspace)
        .join(Partner, Workspace.partner_id == Partner.id)
        .where(
            Workspace.slug == slug,
            Workspace.deleted_at.is_(None),  # type: ignore[union-attr]
            Partner.deleted_at.is_(None),  # type: ignore[union-attr]
        )
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _get_workspace_membership(
    session: AsyncSession, workspace_id: uuid.UUID, principal_id: uuid.UUID
) -> WorkspaceMember | None:
    stmt = select(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.principal_id == principal_id,
        WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def get_partner_membership(
    session: AsyncSession, partner_id: uuid.UUID, principal_id: uuid.UUID
) -> PartnerMember | None:
    stmt = select(PartnerMember).where(
        PartnerMember.partner_id == partner_id,
        PartnerMember.principal_id == principal_id,
        PartnerMember.removed_at.is_(None),  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def _touch_last_login(session: AsyncSession, super_admin_id: uuid.UUID) -> None:
    """Record the login time. Best effort: a failed write never blocks access.

    The write runs in its own short-lived session on the same engine, so a
    failure rolls back only that session and leaves the rows already loaded
    by the request untouched.
    """
    try:
        async with AsyncSession(session.bind, expire_on_commit=False) as writer:
            await writer.execute(
                update(SuperAdmin)
                .where(SuperAdmin.id == super_admin_id)
                .values(last_login_at=utcnow())
            )
            await writer.commit()
    except SQLAlchemyError:
        logger.warning(
            "Failed to update last_login_at for super admin %s", super_admin_id, exc_info=True,
        )


# ── Resolvers ─────────────────────────────────────────────────

async def resolve_workspace_context(
    session: AsyncSession,
    principal: Principal | None,
    slug: str,
    required_roles: Collection[WorkspaceMemberRole] | None = None,
) -> WorkspaceContext | None:
    if principal is None or not principal.is_active:
        return None

    workspace = await _get_live_workspace(session, slug)
    if workspace is None:
        logger.debug("Workspace %r not found or deleted", slug)
        return None

    is_partner_access = False
    is_super_admin_access = False

    membership = await _get_workspace_membership(session, workspace.id, principal.id)
    if membership is not None:
        role = membership.role
    else:
        partner_membership = await get_partner_membership(
            session, workspace.partner_id, principal.id
        )
        if partner_membership is not None and partner_membership.role in PARTNER_ADMIN_ROLES:
            role = WorkspaceMemberRole.ADMIN
            is_partner_access = True
        elif await get_super_admin(session, principal.id) is not None:
            role = WorkspaceMemberRole.ADMIN
            is_super_admin_access = True
        else:
            logger.debug("Principal %s has no access to workspace %r", principal.id, slug)
            return None

    if required_roles is not None and role not in required_roles:
        return None

    return WorkspaceContext(
        principal=principal,
        workspace=workspace,
        partner_id=workspace.partner_id,
        role=role,
        session=session,
        is_partner_access=is_partner_access,
        is_super_admin_access=is_super_admin_access,
    )


async def resolve_super_admin_context(
    session: AsyncSession,
    principal: Principal | None,
) -> SuperAdminContext | None:
    if principal is None or not principal.is_active:
        return None

    super_admin = await get_super_admin(session, principal.id)
    if super_admin is None:
        return None

    await _touch_last_login(session, super_admin.id)

    return SuperAdminContext(principal=principal, super_admin=super_admin, session=session)


async def resolve_partner_context(
    session: AsyncSession,
    principal: Principal | None,
    partner: Partner | None,
    required_roles: Collection[PartnerMemberRole] | None = None,
) -> PartnerContext | None:
    if principal is None or not principal.is_active or partner is None:
        return None

    membership = await get_partner_membership(session, partner.id, principal.id)
    if membership is None:
        return None
    if required_roles is not None and membership.role not in required_roles:
        return None

    return PartnerContext(
        principal=principal, partner=partner, role=membership.role, session=session,
    )


async def resolve_partner_from_host(session: AsyncSession, host: str | None) -> Partner | None:
    """Map a request hostname to a partner.

    Order: exact white-label hostname, then ``<slug>.<platform_domain>``
    subdomain, then the platform partner.
    """
    hostname = (host or "").split(":")[0].strip().lower()
    live = Partner.deleted_at.is_(None)  # type: ignore[union-attr]

    if hostname:
        result = await session.execute(
            select(Partner).where(Partner.hostname == hostname, live)
        )
        partner = result.scalar_one_or_none()
        if partner is not None:
            return partner

        suffix = f".{settings.platform_domain}"
        if hostname.endswith(suffix):
            subdomain = hostname[: -len(suffix)]
            result = await session.execute(
                select(Partner).where(Partner.slug == subdomain, live)
            )
            partner = result.scalar_one_or_none()
            if partner is not None:
                return partner

    result = await session.execute(
        select(Partner)
        .where(Partner.is_platform_partner.is_(True), live)  # type: ignore[attr-defined]
        .order_by(Partner.created_at.asc())  # type: ignore[union-attr]
    )
    return result.scalars().first()


async def list_accessible_workspaces(
    session: AsyncSession,
    principal: Principal,
    partner_id: uuid.UUID | None = None,
) -> list[AccessibleWorkspace]:
    """Workspaces the principal can open: direct memberships, then partner-admin access."""
    live_ws = Workspace.deleted_at.is_(None)  # type: ignore[union-attr]
    live_partner = Partner.deleted_at.is_(None)  # type: ignore[union-attr]

    member_stmt = (
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .join(Partner, Workspace.partner_id == Partner.id)
        .where(
            WorkspaceMember.principal_id == principal.id,
            WorkspaceMember.removed_at.is_(None),  # type: ignore[union-attr]
            live_ws,
            live_partner,
        )
    )
    if partner_id is not None:
        member_stmt = member_stmt.where(Workspace.partner_id == partner_id)

    accessible: dict[uuid.UUID, AccessibleWorkspace] = {}
    for ws, role in (await session.execute(member_stmt)).all():
        accessible.setdefault(ws.id, _to_accessible(ws, role))

    admin_partner_stmt = select(PartnerMember.partner_id).where(
        PartnerMember.principal_id == principal.id,
        PartnerMember.removed_at.is_(None),  # type: ignore[union-attr]
        PartnerMember.role.in_(PARTNER_ADMIN_ROLES),  # type: ignore[attr-defined]
    )
    if partner_id is not None:
        admin_partner_stmt = admin_partner_stmt.where(PartnerMember.partner_id == partner_id)
    admin_partner_ids = list((await session.execute(admin_partner_stmt)).scalars().all())

    if admin_partner_ids:
        partner_ws_stmt = (
            select(Workspace)
            .join(Partner, Workspace.partner_id == Partner.id)
            .where(
                Workspace.partner_id.in_(admin_partner_ids),  # type: ignore[attr-defined]
                live_ws,
                live_partner,
            )
        )
        for ws in (await session.execute(partner_ws_stmt)).scalars().all():
            if ws.id not in accessible:
                accessible[ws.id] = _to_accessible(
                    ws, WorkspaceMemberRole.ADMIN, is_partner_access=True,
                )

    return sorted(accessible.values(), key=lambda w: w.name.lower())


def _to_accessible(
    ws: Workspace, role: WorkspaceMemberRole, is_partner_access: bool = False
) -> AccessibleWorkspace:
    return AccessibleWorkspace.model_validate({
        **ws.model_dump(),
        "role": role,
        "is_partner_access": is_partner_access,
    })
