"""Principal and SuperAdmin models — authenticated identities."""

import uuid
from datetime import datetime

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from voicehub.models.base import CamelModel, TimestampMixin, new_uuid


class Principal(TimestampMixin, SQLModel, table=True):
    __tablename__ = "principals"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    email: str = Field(max_length=320, unique=True, nullable=False, index=True)
    password_hash: str = Field(nullable=False)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    is_active: bool = Field(default=True)


class SuperAdmin(TimestampMixin, SQLModel, table=True):
    """Platform-wide privileges. Provisioned manually, one per principal."""

    __tablename__ = "super_admins"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    principal_id: uuid.UUID = Field(
        foreign_key="principals.id", unique=True, nullable=False, index=True,
    )
    last_login_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class PrincipalCreate(SQLModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class PrincipalRead(CamelModel):
    id: uuid.UUID
    email: str
    first_name: str | None
    last_name: str | None
