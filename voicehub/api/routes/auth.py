"""Authentication endpoints — signup, login, and current principal."""

from fastapi import APIRouter, status
from pydantic import BaseModel, EmailStr
from sqlmodel import select

from voicehub.api.deps import CurrentPrincipal, Session
from voicehub.core.errors import Conflict, Unauthenticated
from voicehub.core.security import create_session_token, hash_password, verify_password
from voicehub.models.base import CamelModel
from voicehub.models.principal import Principal, PrincipalCreate, PrincipalRead
from voicehub.models.workspace import AccessibleWorkspace
from voicehub.services.tenancy import get_super_admin, list_accessible_workspaces

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    principal: PrincipalRead


class MeResponse(CamelModel):
    principal: PrincipalRead
    is_super_admin: bool
    workspaces: list[AccessibleWorkspace]


# ── Routes ───────────────────────────────────────────────────

@router.post("/signup", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: PrincipalCreate, session: Session) -> LoginResponse:
    email = body.email.lower()
    existing = await session.execute(select(Principal).where(Principal.email == email))
    if existing.scalar_one_or_none():
        raise Conflict("An account with this email already exists")

    principal = Principal(
        email=email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
    )
    session.add(principal)
    await session.commit()
    await session.refresh(principal)

    return LoginResponse(
        access_token=create_session_token(str(principal.id), principal.email),
        principal=PrincipalRead.model_validate(principal),
    )


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session) -> LoginResponse:
    """Authenticate with email + password, receive a session token."""
    result = await session.execute(
        select(Principal).where(Principal.email == body.email.lower())
    )
    principal = result.scalar_one_or_none()

    if principal is None or not verify_password(body.password, principal.password_hash):
        raise Unauthenticated("Invalid email or password")
    if not principal.is_active:
        raise Unauthenticated("Account is disabled")

    return LoginResponse(
        access_token=create_session_token(str(principal.id), principal.email),
        principal=PrincipalRead.model_validate(principal),
    )


@router.get("/me", response_model=MeResponse)
async def get_me(principal: CurrentPrincipal, session: Session) -> MeResponse:
    """The current principal and every workspace they can open."""
    workspaces = await list_accessible_workspaces(session, principal)
    return MeResponse(
        principal=PrincipalRead.model_validate(principal),
        is_super_admin=await get_super_admin(session, principal.id) is not None,
        workspaces=workspaces,
    )
