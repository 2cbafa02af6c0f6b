"""Tests for workspace invitations and joining through them."""

import json
from datetime import timedelta

import pytest

from voicehub.models import InvitationStatus, WorkspaceInvitation, WorkspaceMemberRole
from voicehub.models.base import utcnow


async def _owned_workspace(factory, **partner_fields):
    owner = await factory.principal()
    partner = await factory.partner(**partner_fields)
    workspace = await factory.workspace(partner, member=owner)
    return owner, workspace


@pytest.mark.asyncio
async def test_invite_preview_and_accept(client, factory, headers_for):
    owner, workspace = await _owned_workspace(factory)
    invitee_email = f"{factory.unique('invitee')}@example.com"
    owner_headers = headers_for(owner)

    resp = await client.post(f"/api/w/{workspace.slug}/invitations", json={
        "email": invitee_email.upper(), "role": "viewer", "message": "Join the front desk",
    }, headers=owner_headers)
    assert resp.status_code == 201
    invitation = resp.json()
    assert invitation["email"] == invitee_email
    assert invitation["status"] == "pending"
    token = invitation["token"]

    resp = await client.get(f"/api/w/{workspace.slug}/invitations", headers=owner_headers)
    assert [i["id"] for i in resp.json()] == [invitation["id"]]

    resp = await client.get("/api/workspace-invitations", params={"token": token})
    assert resp.status_code == 200
    assert resp.json()["workspaceSlug"] == workspace.slug
    assert resp.json()["role"] == "viewer"

    invitee = await factory.principal(email=invitee_email)
    resp = await client.post(
        "/api/workspace-invitations/accept", json={"token": token}, headers=headers_for(invitee),
    )
    assert resp.status_code == 200
    assert resp.json()["workspace"]["slug"] == workspace.slug
    assert resp.json()["redirect"] == f"/w/{workspace.slug}/dashboard"

    resp = await client.get(f"/api/w/{workspace.slug}/members", headers=headers_for(invitee))
    assert resp.status_code == 200
    roles = {m["email"]: m["role"] for m in resp.json()}
    assert roles[invitee_email] == "viewer"

    resp = await client.get(f"/api/w/{workspace.slug}/invitations", headers=owner_headers)
    assert resp.json() == []

    resp = await client.post(
        "/api/workspace-invitations/accept", json={"token": token}, headers=headers_for(invitee),
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "This invitation has already been accepted"}


@pytest.mark.asyncio
async def test_duplicate_and_existing_member_rejected(client, factory, headers_for):
    owner, workspace = await _owned_workspace(factory)
    headers = headers_for(owner)
    url = f"/api/w/{workspace.slug}/invitations"
    email = f"{factory.unique('dup')}@example.com"

    assert (await client.post(url, json={"email": email}, headers=headers)).status_code == 201
    resp = await client.post(url, json={"email": email}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "An invitation is already pending for this email"}

    resp = await client.post(url, json={"email": owner.email}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "This user is already a member of this workspace"}


@pytest.mark.asyncio
async def test_seat_limit_counts_pending_invitations(client, factory, headers_for):
    owner, workspace = await _owned_workspace(
        factory, resource_limits=json.dumps({"max_users_per_workspace": 2}),
    )
    headers = headers_for(owner)
    url = f"/api/w/{workspace.slug}/invitations"

    resp = await client.post(url, json={"email": f"{factory.unique('a')}@example.com"}, headers=headers)
    assert resp.status_code == 201

    resp = await client.post(url, json={"email": f"{factory.unique('b')}@example.com"}, headers=headers)
    assert resp.status_code == 403
    assert resp.json() == {"error": "Member limit reached. Maximum: 2 members."}


@pytest.mark.asyncio
async def test_only_owners_invite_owners(client, factory, headers_for):
    owner, workspace = await _owned_workspace(factory)
    admin = await factory.principal()
    await factory.member(workspace, admin, WorkspaceMemberRole.ADMIN)
    url = f"/api/w/{workspace.slug}/invitations"

    resp = await client.post(
        url, json={"email": f"{factory.unique('o')}@example.com", "role": "owner"},
        headers=headers_for(admin),
    )
    assert resp.status_code == 403

    resp = await client.post(
        url, json={"email": f"{factory.unique('o')}@example.com", "role": "owner"},
        headers=headers_for(owner),
    )
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_members_cannot_manage_invitations(client, factory, headers_for):
    _, workspace = await _owned_workspace(factory)
    member = await factory.principal()
    await factory.member(workspace, member)

    resp = await client.get(f"/api/w/{workspace.slug}/invitations", headers=headers_for(member))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_accept_requires_matching_email(client, factory, headers_for):
    owner, workspace = await _owned_workspace(factory)
    invitation = WorkspaceInvitation(
        workspace_id=workspace.id, email="someone-else@example.com", invited_by=owner.id,
    )
    factory.session.add(invitation)
    await factory.session.commit()
    stranger = await factory.principal()

    resp = await client.post(
        "/api/workspace-invitations/accept",
        json={"token": invitation.token},
        headers=headers_for(stranger),
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "This invitation was sent to a different email address"}

    resp = await client.post("/api/workspace-invitations/accept", json={"token": invitation.token})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_expired_invitation_is_marked(client, factory, headers_for):
    owner, workspace = await _owned_workspace(factory)
    invitee = await factory.principal()
    invitation = WorkspaceInvitation(
        workspace_id=workspace.id,
        email=invitee.email,
        invited_by=owner.id,
        expires_at=utcnow() - timedelta(minutes=1),
    )
    factory.session.add(invitation)
    await factory.session.commit()

    resp = await client.post(
        "/api/workspace-invitations/accept",
        json={"token": invitation.token},
        headers=headers_for(invitee),
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "This invitation has expired"}

    await factory.session.refresh(invitation)
    assert invitation.status == InvitationStatus.EXPIRED


@pytest.mark.asyncio
async def test_unknown_token(client, factory, headers_for):
    principal = await factory.principal()

    resp = await client.post(
        "/api/workspace-invitations/accept", json={"token": "nope"}, headers=headers_for(principal),
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid invitation token"}

    resp = await client.get("/api/workspace-invitations", params={"token": "nope"})
    assert resp.status_code == 404
