"""add workspace invitations

Revision ID: 8d4e2b6a51c3
Revises: 3f1a9c2e7b10
Create Date: 2026-10-18 16:40:02.518877

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8d4e2b6a51c3'
down_revision: str | Sequence[str] | None = '3f1a9c2e7b10'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

invitation_status = sa.Enum("PENDING", "ACCEPTED", "EXPIRED", name="invitationstatus")
# Created by the initial revision
workspace_member_role = postgresql.ENUM(
    "OWNER", "ADMIN", "MEMBER", "VIEWER", name="workspacememberrole", create_type=False,
)


def upgrade() -> None:
    op.create_table(
        "workspace_invitations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", workspace_member_role, nullable=False),
        sa.Column("message", sa.String(1000), nullable=True),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("status", invitation_status, nullable=False),
        sa.Column("invited_by", sa.Uuid(), sa.ForeignKey("principals.id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_workspace_invitations_workspace_id", "workspace_invitations", ["workspace_id"],
    )
    op.create_index("ix_workspace_invitations_email", "workspace_invitations", ["email"])
    op.create_index(
        "ix_workspace_invitations_token", "workspace_invitations", ["token"], unique=True,
    )


def downgrade() -> None:
    op.drop_table("workspace_invitations")
    invitation_status.drop(op.get_bind(), checkfirst=True)
