"""Tests for tenant context resolution (service level and over HTTP)."""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from voicehub.models import PartnerMemberRole, SuperAdmin, WorkspaceMemberRole
from voicehub.models.base import utcnow
from voicehub.services.tenancy import (
    WORKSPACE_ADMIN_ROLES,
    list_accessible_workspaces,
    resolve_partner_context,
    resolve_partner_from_host,
    resolve_super_admin_context,
    resolve_workspace_context,
)


@pytest.mark.asyncio
async def test_anonymous_gets_no_context(session, factory):
    partner = await factory.partner()
    workspace = await factory.workspace(partner)

    assert await resolve_workspace_context(session, None, workspace.slug) is None
    assert await resolve_super_admin_context(session, None) is None
    assert await resolve_partner_context(session, None, partner) is None


@pytest.mark.asyncio
async def test_member_resolves_with_own_role(session, factory):
    principal = await factory.principal()
    partner = await factory.partner()
    workspace = await factory.workspace(partner, member=principal, role=WorkspaceMemberRole.MEMBER)

    ctx = await resolve_workspace_context(session, principal, workspace.slug)
    assert ctx is not None
    assert ctx.workspace.id == workspace.id
    assert ctx.partner_id == partner.id
    assert ctx.role == WorkspaceMemberRole.MEMBER
    assert ctx.is_partner_access is False
    assert ctx.is_super_admin_access is False
    assert ctx.is_admin is False


@pytest.mark.asyncio
async def test_non_member_gets_none(session, factory):
    outsider = await factory.principal()
    partner = await factory.partner()
    workspace = await factory.workspace(partner, member=await factory.principal())

    assert await resolve_workspace_context(session, outsider, workspace.slug) is None


@pytest.mark.asyncio
async def test_unknown_slug_gets_none(session, factory):
    principal = await factory.principal()
    assert await resolve_workspace_context(session, principal, "no-such-workspace") is None


@pytest.mark.asyncio
async def test_soft_deleted_workspace_gets_none_even_for_member(session, factory):
    principal = await factory.principal()
    partner = await factory.partner()
    workspace = await factory.workspace(partner, member=principal, deleted_at=utcnow())

    assert await resolve_workspace_context(session, principal, workspace.slug) is None


@pytest.mark.asyncio
async def test_workspace_of_deleted_partner_gets_none(session, factory):
    principal = await factory.principal()
    partner = await factory.partner(deleted_at=utcnow())
    workspace = await factory.workspace(partner, member=principal)

    assert await resolve_workspace_context(session, principal, workspace.slug) is None


@pytest.mark.asyncio
async def test_removed_membership_gets_none(session, factory):
    principal = await factory.principal()
    partner = await factory.partner()
    workspace = await factory.workspace(partner)
    member = await factory.member(workspace, principal)
    member.removed_at = utcnow()
    session.add(member)
    await session.commit()

    assert await resolve_workspace_context(session, principal, workspace.slug) is None


@pytest.mark.asyncio
async def test_required_roles_filter_effective_role(session, factory):
    viewer = await factory.principal()
    partner = await factory.partner()
    workspace = await factory.workspace(partner, member=viewer, role=WorkspaceMemberRole.VIEWER)

    assert await resolve_workspace_context(
        session, viewer, workspace.slug, required_roles=WORKSPACE_ADMIN_ROLES
    ) is None
    assert await resolve_workspace_context(
        session, viewer, workspace.slug, required_roles=[WorkspaceMemberRole.VIEWER]
    ) is not None


@pytest.mark.asyncio
async def test_partner_admin_gets_admin_access(session, factory):
    staff = await factory.principal()
    partner = await factory.partner(member=staff, role=PartnerMemberRole.ADMIN)
    workspace = await factory.workspace(partner)

    ctx = await resolve_workspace_context(session, staff, workspace.slug)
    assert ctx is not None
    assert ctx.role == WorkspaceMemberRole.ADMIN
    assert ctx.is_partner_access is True
    assert ctx.is_admin is True


@pytest.mark.asyncio
async def test_plain_partner_member_has_no_workspace_access(session, factory):
    staff = await factory.principal()
    partner = await factory.partner(member=staff, role=PartnerMemberRole.MEMBER)
    workspace = await factory.workspace(partner)

    assert await resolve_workspace_context(session, staff, workspace.slug) is None


@pytest.mark.asyncio
async def test_partner_admin_of_other_partner_gets_none(session, factory):
    staff = await factory.principal()
    await factory.partner(member=staff, role=PartnerMemberRole.OWNER)
    workspace = await factory.workspace(await factory.partner())

    assert await resolve_workspace_context(session, staff, workspace.slug) is None


@pytest.mark.asyncio
async def test_direct_membership_takes_precedence(session, factory):
    principal = await factory.principal(is_super_admin=True)
    partner = await factory.partner(member=principal, role=PartnerMemberRole.OWNER)
    workspace = await factory.workspace(partner, member=principal, role=WorkspaceMemberRole.VIEWER)

    ctx = await resolve_workspace_context(session, principal, workspace.slug)
    assert ctx is not None
    assert ctx.role == WorkspaceMemberRole.VIEWER
    assert ctx.is_partner_access is False
    assert ctx.is_super_admin_access is False


@pytest.mark.asyncio
async def test_super_admin_gets_admin_access_anywhere(session, factory):
    admin = await factory.principal(is_super_admin=True)
    workspace = await factory.workspace(await factory.partner())

    ctx = await resolve_workspace_context(session, admin, workspace.slug)
    assert ctx is not None
    assert ctx.role == WorkspaceMemberRole.ADMIN
    assert ctx.is_super_admin_access is True


@pytest.mark.asyncio
async def test_super_admin_context_records_last_login(session, factory):
    admin = await factory.principal(is_super_admin=True)

    ctx = await resolve_super_admin_context(session, admin)
    assert ctx is not None
    assert ctx.principal.id == admin.id

    row = await session.get(SuperAdmin, ctx.super_admin.id)
    await session.refresh(row)
    assert row.last_login_at is not None


@pytest.mark.asyncio
async def test_super_admin_context_survives_last_login_failure(session, factory, monkeypatch):
    admin = await factory.principal(is_super_admin=True)

    async def failing_commit(self):
        raise OperationalError("UPDATE super_admins", {}, Exception("database is locked"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)

    ctx = await resolve_super_admin_context(session, admin)
    assert ctx is not None
    # Rows loaded by the request stay readable after the failed write
    assert ctx.principal.id == admin.id
    assert ctx.principal.email == admin.email
    assert ctx.super_admin.principal_id == admin.id


@pytest.mark.asyncio
async def test_concurrent_super_admin_resolutions(factory, test_session_factory):
    admin = await factory.principal(is_super_admin=True)

    async def resolve_once():
        async with test_session_factory() as own_session:
            ctx = await resolve_super_admin_context(own_session, admin)
            return None if ctx is None else ctx.super_admin.principal_id

    results = await asyncio.gather(*(resolve_once() for _ in range(5)))
    assert results == [admin.id] * 5


@pytest.mark.asyncio
async def test_non_super_admin_gets_no_super_admin_context(session, factory):
    principal = await factory.principal()
    assert await resolve_super_admin_context(session, principal) is None


@pytest.mark.asyncio
async def test_inactive_principal_gets_none(session, factory):
    principal = await factory.principal(is_super_admin=True)
    workspace = await factory.workspace(await factory.partner(), member=principal)
    principal.is_active = False
    session.add(principal)
    await session.commit()

    assert await resolve_workspace_context(session, principal, workspace.slug) is None
    assert await resolve_super_admin_context(session, principal) is None


@pytest.mark.asyncio
async def test_partner_context_requires_membership(session, factory):
    staff = await factory.principal()
    outsider = await factory.principal(is_super_admin=True)
    partner = await factory.partner(member=staff, role=PartnerMemberRole.MEMBER)

    ctx = await resolve_partner_context(session, staff, partner)
    assert ctx is not None
    assert ctx.role == PartnerMemberRole.MEMBER
    assert ctx.is_admin is False

    assert await resolve_partner_context(
        session, staff, partner, required_roles=[PartnerMemberRole.OWNER]
    ) is None
    assert await resolve_partner_context(session, outsider, partner) is None


@pytest.mark.asyncio
async def test_partner_from_exact_hostname(session, factory):
    partner = await factory.partner(hostname="calls.acme-voice.test")

    found = await resolve_partner_from_host(session, "Calls.Acme-Voice.test:443")
    assert found is not None
    assert found.id == partner.id


@pytest.mark.asyncio
async def test_partner_from_platform_subdomain(session, factory):
    partner = await factory.partner(hostname=None)

    found = await resolve_partner_from_host(session, f"{partner.slug}.voicehub.app")
    assert found is not None
    assert found.id == partner.id


@pytest.mark.asyncio
async def test_unknown_host_falls_back_to_platform_partner(session, factory):
    await factory.partner(is_platform_partner=True)

    found = await resolve_partner_from_host(session, "unknown.example.org")
    assert found is not None
    assert found.is_platform_partner is True


@pytest.mark.asyncio
async def test_accessible_workspaces_merge_membership_and_partner_access(session, factory):
    principal = await factory.principal()
    own_partner = await factory.partner(member=principal, role=PartnerMemberRole.OWNER)
    managed = await factory.workspace(own_partner, slug=factory.unique("b-managed"))
    joined = await factory.workspace(
        await factory.partner(), member=principal, role=WorkspaceMemberRole.VIEWER,
        slug=factory.unique("a-joined"),
    )
    await factory.workspace(await factory.partner())  # unrelated

    workspaces = await list_accessible_workspaces(session, principal)
    by_id = {w.id: w for w in workspaces}

    assert set(by_id) == {managed.id, joined.id}
    assert by_id[managed.id].is_partner_access is True
    assert by_id[managed.id].role == WorkspaceMemberRole.ADMIN
    assert by_id[joined.id].role == WorkspaceMemberRole.VIEWER
    assert [w.name for w in workspaces] == sorted(w.name for w in workspaces)


# ── Over HTTP ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_inaccessible_workspace_returns_uniform_401(client, factory, headers_for):
    outsider = await factory.principal()
    workspace = await factory.workspace(await factory.partner())

    for slug in (workspace.slug, "does-not-exist"):
        resp = await client.get(f"/api/w/{slug}/agents", headers=headers_for(outsider))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_missing_or_invalid_token_returns_401(client, factory):
    workspace = await factory.workspace(await factory.partner())

    resp = await client.get(f"/api/w/{workspace.slug}/agents")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}

    resp = await client.get(
        f"/api/w/{workspace.slug}/agents", headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401
