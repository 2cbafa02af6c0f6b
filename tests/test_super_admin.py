"""Tests for the super-admin partner and variant endpoints."""

import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from voicehub.models import PlanTier, SuperAdmin


@pytest.fixture
async def admin_headers(factory, headers_for):
    return headers_for(await factory.principal(is_super_admin=True))


@pytest.mark.asyncio
async def test_requires_super_admin(client, factory, headers_for):
    principal = await factory.principal()

    for path in ("/api/super-admin/partners", "/api/super-admin/white-label-variants"):
        resp = await client.get(path, headers=headers_for(principal))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_access_records_last_login(client, factory, headers_for):
    principal = await factory.principal(is_super_admin=True)

    resp = await client.get("/api/super-admin/partners", headers=headers_for(principal))
    assert resp.status_code == 200

    row = (
        await factory.session.execute(
            select(SuperAdmin).where(SuperAdmin.principal_id == principal.id)
        )
    ).scalar_one()
    await factory.session.refresh(row)
    assert row.last_login_at is not None


@pytest.mark.asyncio
async def test_failed_last_login_write_does_not_fail_request(
    client, factory, headers_for, monkeypatch
):
    principal = await factory.principal(is_super_admin=True)
    real_commit = AsyncSession.commit
    commits = []

    async def flaky_commit(self):
        commits.append(self)
        if len(commits) == 1:
            raise OperationalError("UPDATE super_admins", {}, Exception("database is locked"))
        return await real_commit(self)

    monkeypatch.setattr(AsyncSession, "commit", flaky_commit)

    slug = factory.unique("locked")
    resp = await client.post("/api/super-admin/partners", json={
        "name": "Locked Out Inc", "slug": slug,
    }, headers=headers_for(principal))
    assert resp.status_code == 201
    assert resp.json()["slug"] == slug
    assert len(commits) == 2


@pytest.mark.asyncio
async def test_create_and_fetch_partner(client, factory, admin_headers):
    slug = factory.unique("acme")
    resp = await client.post("/api/super-admin/partners", json={
        "name": "Acme Voice",
        "slug": slug,
        "hostname": f"App.{slug}.test",
        "branding": {"companyName": "Acme", "primaryColor": "#ff0000"},
        "planTier": "agency",
        "resourceLimits": {"maxWorkspaces": 5},
    }, headers=admin_headers)
    assert resp.status_code == 201
    partner = resp.json()
    assert partner["hostname"] == f"app.{slug}.test"
    assert partner["branding"]["primaryColor"] == "#ff0000"
    assert partner["resourceLimits"]["maxWorkspaces"] == 5
    assert partner["workspaceCount"] == 0

    resp = await client.post("/api/super-admin/partners", json={
        "name": "Dup", "slug": slug,
    }, headers=admin_headers)
    assert resp.status_code == 409

    resp = await client.get(f"/api/super-admin/partners/{partner['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["planTier"] == "agency"


@pytest.mark.asyncio
async def test_invalid_slug_rejected(client, admin_headers):
    resp = await client.post("/api/super-admin/partners", json={
        "name": "Bad", "slug": "Not A Slug",
    }, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("slug:")


@pytest.mark.asyncio
async def test_list_partners_with_counts_and_search(client, factory, admin_headers):
    partner = await factory.partner(slug=factory.unique("zephyr"))
    first = await factory.workspace(partner)
    await factory.workspace(partner)
    await factory.agent(first)

    resp = await client.get(
        "/api/super-admin/partners", params={"search": partner.slug}, headers=admin_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    row = body["data"][0]
    assert row["id"] == str(partner.id)
    assert row["workspaceCount"] == 2
    assert row["agentCount"] == 1


@pytest.mark.asyncio
async def test_list_partners_filter_by_tier(client, factory, admin_headers):
    partner = await factory.partner(plan_tier=PlanTier.STARTER)

    resp = await client.get(
        "/api/super-admin/partners",
        params={"plan_tier": "starter", "pageSize": 100},
        headers=admin_headers,
    )
    rows = resp.json()["data"]
    assert str(partner.id) in [r["id"] for r in rows]
    assert all(r["planTier"] == "starter" for r in rows)


@pytest.mark.asyncio
async def test_update_and_delete_partner(client, factory, admin_headers):
    partner = await factory.partner()

    resp = await client.patch(
        f"/api/super-admin/partners/{partner.id}",
        json={"name": "Renamed", "resourceLimits": {"maxAgentsPerWorkspace": 3}},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"
    assert resp.json()["resourceLimits"]["maxAgentsPerWorkspace"] == 3

    resp = await client.delete(f"/api/super-admin/partners/{partner.id}", headers=admin_headers)
    assert resp.status_code == 204

    resp = await client.get(f"/api/super-admin/partners/{partner.id}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_platform_partner_cannot_be_deleted(client, factory, admin_headers):
    platform = await factory.partner(is_platform_partner=True)

    resp = await client.delete(f"/api/super-admin/partners/{platform.id}", headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_partner_workspaces_paginated(client, factory, admin_headers):
    partner = await factory.partner()
    owner = await factory.principal()
    for _ in range(3):
        await factory.workspace(partner, member=owner)

    resp = await client.get(
        f"/api/super-admin/partners/{partner.id}/workspaces",
        params={"pageSize": 2},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert body["totalPages"] == 2
    assert len(body["data"]) == 2
    assert all(w["memberCount"] == 1 and w["agentCount"] == 0 for w in body["data"])


@pytest.mark.asyncio
async def test_white_label_variant_catalog(client, factory, admin_headers):
    slug = factory.unique("growth")
    resp = await client.post("/api/super-admin/white-label-variants", json={
        "slug": slug,
        "name": "Growth",
        "monthlyPriceCents": 19900,
        "stripePriceId": "price_growth",
        "maxWorkspaces": 10,
    }, headers=admin_headers)
    assert resp.status_code == 201
    variant = resp.json()
    assert variant["stripePriceId"] == "price_growth"

    resp = await client.post("/api/super-admin/white-label-variants", json={
        "slug": slug, "name": "Again", "monthlyPriceCents": 1,
    }, headers=admin_headers)
    assert resp.status_code == 409

    await factory.partner(white_label_variant_id=uuid.UUID(variant["id"]))

    resp = await client.get("/api/super-admin/white-label-variants", headers=admin_headers)
    listed = next(v for v in resp.json() if v["slug"] == slug)
    assert listed["partnerCount"] == 1

    resp = await client.patch(
        f"/api/super-admin/white-label-variants/{variant['id']}",
        json={"isActive": False},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["isActive"] is False
    assert resp.json()["partnerCount"] == 1
