"""Tests for the workspace call log endpoints."""

from datetime import timedelta

import pytest
from sqlmodel import select

from voicehub.models import CallDirection, Conversation, WorkspaceMemberRole
from voicehub.models.base import utcnow


async def _workspace(factory):
    principal = await factory.principal()
    workspace = await factory.workspace(
        await factory.partner(), member=principal, role=WorkspaceMemberRole.VIEWER,
    )
    return principal, workspace


@pytest.mark.asyncio
async def test_pagination_envelope(client, factory, headers_for):
    principal, workspace = await _workspace(factory)
    await factory.conversations(workspace, 45)
    headers = headers_for(principal)

    resp = await client.get(f"/api/w/{workspace.slug}/conversations", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 45
    assert body["page"] == 1
    assert body["pageSize"] == 20
    assert body["totalPages"] == 3
    assert len(body["data"]) == 20

    resp = await client.get(
        f"/api/w/{workspace.slug}/conversations",
        params={"page": 3, "pageSize": 20},
        headers=headers,
    )
    body = resp.json()
    assert body["page"] == 3
    assert len(body["data"]) == 5


@pytest.mark.asyncio
async def test_empty_workspace_has_zero_pages(client, factory, headers_for):
    principal, workspace = await _workspace(factory)

    resp = await client.get(f"/api/w/{workspace.slug}/conversations", headers=headers_for(principal))
    assert resp.status_code == 200
    assert resp.json() == {"data": [], "total": 0, "page": 1, "pageSize": 20, "totalPages": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"pageSize": 101}, {"pageSize": 0}, {"page": 0}])
async def test_invalid_pagination_rejected(client, factory, headers_for, params):
    principal, workspace = await _workspace(factory)

    resp = await client.get(
        f"/api/w/{workspace.slug}/conversations", params=params, headers=headers_for(principal),
    )
    assert resp.status_code == 400
    assert "error" in resp.json()


@pytest.mark.asyncio
async def test_rows_are_camel_cased_with_agent(client, factory, headers_for):
    principal, workspace = await _workspace(factory)
    agent = await factory.agent(workspace, name="Front Desk")
    await factory.conversations(
        workspace, 1, agent_id=agent.id, caller_name="Ada", duration_seconds=42,
    )

    resp = await client.get(f"/api/w/{workspace.slug}/conversations", headers=headers_for(principal))
    row = resp.json()["data"][0]
    assert row["durationSeconds"] == 42
    assert row["callerName"] == "Ada"
    assert row["agent"] == {"id": str(agent.id), "name": "Front Desk", "provider": "vapi"}
    assert "transcript" not in row


@pytest.mark.asyncio
async def test_filters(client, factory, headers_for):
    principal, workspace = await _workspace(factory)
    agent = await factory.agent(workspace, name="Sales Line")
    await factory.conversations(workspace, 2, direction=CallDirection.OUTBOUND, status="failed")
    await factory.conversations(workspace, 3, caller_name="Grace Hopper", phone_number="+15550100")
    await factory.conversations(workspace, 1, agent_id=agent.id, transcript="asked about pricing")
    headers = headers_for(principal)
    url = f"/api/w/{workspace.slug}/conversations"

    resp = await client.get(url, params={"direction": "outbound"}, headers=headers)
    assert resp.json()["total"] == 2

    resp = await client.get(url, params={"status": "failed"}, headers=headers)
    assert resp.json()["total"] == 2

    resp = await client.get(url, params={"search": "grace"}, headers=headers)
    assert resp.json()["total"] == 3

    resp = await client.get(url, params={"search": "pricing"}, headers=headers)
    assert resp.json()["total"] == 1

    resp = await client.get(url, params={"search": "sales"}, headers=headers)
    assert resp.json()["total"] == 1

    resp = await client.get(url, params={"agent_id": str(agent.id)}, headers=headers)
    assert resp.json()["total"] == 1


@pytest.mark.asyncio
async def test_date_range_filter(client, factory, headers_for):
    principal, workspace = await _workspace(factory)
    await factory.conversations(workspace, 2)
    headers = headers_for(principal)
    url = f"/api/w/{workspace.slug}/conversations"

    tomorrow = (utcnow() + timedelta(days=1)).isoformat()
    yesterday = (utcnow() - timedelta(days=1)).isoformat()

    resp = await client.get(url, params={"start_date": tomorrow}, headers=headers)
    assert resp.json()["total"] == 0

    resp = await client.get(
        url, params={"start_date": yesterday, "end_date": tomorrow}, headers=headers,
    )
    assert resp.json()["total"] == 2


@pytest.mark.asyncio
async def test_deleted_conversations_hidden(client, factory, headers_for):
    principal, workspace = await _workspace(factory)
    await factory.conversations(workspace, 2)
    await factory.conversations(workspace, 1, deleted_at=utcnow())

    resp = await client.get(f"/api/w/{workspace.slug}/conversations", headers=headers_for(principal))
    assert resp.json()["total"] == 2


@pytest.mark.asyncio
async def test_detail_is_scoped_to_workspace(client, factory, headers_for):
    principal, workspace = await _workspace(factory)
    _, other = await _workspace(factory)
    await factory.conversations(workspace, 1, transcript="hello there", recording_url="https://r/1.mp3")
    await factory.conversations(other, 1)
    headers = headers_for(principal)

    own = (await client.get(f"/api/w/{workspace.slug}/conversations", headers=headers)).json()
    conversation_id = own["data"][0]["id"]
    resp = await client.get(f"/api/w/{workspace.slug}/conversations/{conversation_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["transcript"] == "hello there"
    assert resp.json()["recordingUrl"] == "https://r/1.mp3"

    other_row = (
        await factory.session.execute(
            select(Conversation).where(Conversation.workspace_id == other.id)
        )
    ).scalars().first()
    resp = await client.get(
        f"/api/w/{workspace.slug}/conversations/{other_row.id}", headers=headers,
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Conversation not found"}
