"""Shared test fixtures — async SQLite in-memory DB + test client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

# Import all models so metadata is populated
import voicehub.models  # noqa: E402,F401
from voicehub.core.database import get_session  # noqa: E402
from voicehub.core.security import create_session_token, hash_password  # noqa: E402
from voicehub.main import app  # noqa: E402
from voicehub.models import (  # noqa: E402
    Agent,
    Conversation,
    Partner,
    PartnerMember,
    PartnerMemberRole,
    Principal,
    SubscriptionPlan,
    SuperAdmin,
    Workspace,
    WorkspaceMember,
    WorkspaceMemberRole,
)

# Argon2 is slow; hash once and reuse
PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(scope="session")
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture(scope="session")
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
async def client(session) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session override."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class Factory:
    """Creates committed rows with unique slugs and emails."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _save(self, row):
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return row

    @staticmethod
    def unique(prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:8]}"

    async def principal(self, email: str | None = None, is_super_admin: bool = False) -> Principal:
        principal = await self._save(Principal(
            email=email or f"{self.unique('user')}@example.com",
            password_hash=PASSWORD_HASH,
            first_name="Test",
            last_name="User",
        ))
        if is_super_admin:
            await self._save(SuperAdmin(principal_id=principal.id))
        return principal

    async def partner(self, member: Principal | None = None,
                      role: PartnerMemberRole = PartnerMemberRole.OWNER, **fields) -> Partner:
        slug = fields.pop("slug", None) or self.unique("partner")
        fields.setdefault("hostname", f"{slug}.example.com")
        partner = await self._save(Partner(name=f"{slug} Inc", slug=slug, **fields))
        if member is not None:
            await self._save(PartnerMember(partner_id=partner.id, principal_id=member.id, role=role))
        return partner

    async def workspace(self, partner: Partner, member: Principal | None = None,
                        role: WorkspaceMemberRole = WorkspaceMemberRole.OWNER, **fields) -> Workspace:
        slug = fields.pop("slug", None) or self.unique("ws")
        fields.setdefault("is_billing_exempt", True)
        workspace = await self._save(
            Workspace(partner_id=partner.id, name=f"{slug} Workspace", slug=slug, **fields)
        )
        if member is not None:
            await self.member(workspace, member, role)
        return workspace

    async def member(self, workspace: Workspace, principal: Principal,
                     role: WorkspaceMemberRole = WorkspaceMemberRole.MEMBER) -> WorkspaceMember:
        return await self._save(
            WorkspaceMember(workspace_id=workspace.id, principal_id=principal.id, role=role)
        )

    async def plan(self, partner: Partner, **fields) -> SubscriptionPlan:
        fields.setdefault("name", self.unique("plan"))
        fields.setdefault("monthly_price_cents", 0)
        return await self._save(SubscriptionPlan(partner_id=partner.id, **fields))

    async def agent(self, workspace: Workspace, **fields) -> Agent:
        fields.setdefault("name", self.unique("agent"))
        return await self._save(Agent(workspace_id=workspace.id, **fields))

    async def conversations(self, workspace: Workspace, count: int, **fields) -> None:
        for _ in range(count):
            self.session.add(Conversation(workspace_id=workspace.id, **fields))
        await self.session.commit()


@pytest.fixture
def factory(session) -> Factory:
    return Factory(session)


def auth_headers(principal: Principal, host: str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {create_session_token(str(principal.id), principal.email)}"}
    if host:
        headers["host"] = host
    return headers


@pytest.fixture
def headers_for():
    return auth_headers
