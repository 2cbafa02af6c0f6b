"""initial tenancy, billing and call log schema

Revision ID: 3f1a9c2e7b10
Revises: 
Create Date: 2026-10-18 09:12:44.102318

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enum columns store member names, matching SQLAlchemy's Enum default
partner_member_role = sa.Enum("OWNER", "ADMIN", "MEMBER", name="partnermemberrole")
plan_tier = sa.Enum(
    "FREE", "PRO", "AGENCY", "STARTER", "PROFESSIONAL", "ENTERPRISE", name="plantier",
)
workspace_member_role = sa.Enum("OWNER", "ADMIN", "MEMBER", "VIEWER", name="workspacememberrole")
workspace_status = sa.Enum("ACTIVE", "SUSPENDED", name="workspacestatus")
subscription_status = sa.Enum(
    "ACTIVE", "TRIALING", "PAST_DUE", "CANCELED", "INCOMPLETE", "PAUSED",
    name="subscriptionstatus",
)
voice_provider = sa.Enum("VAPI", "RETELL", name="voiceprovider")
call_direction = sa.Enum("INBOUND", "OUTBOUND", name="calldirection")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "principals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_principals_email", "principals", ["email"], unique=True)

    op.create_table(
        "super_admins",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("principal_id", sa.Uuid(), sa.ForeignKey("principals.id"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_super_admins_principal_id", "super_admins", ["principal_id"], unique=True)

    op.create_table(
        "white_label_variants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("monthly_price_cents", sa.Integer(), nullable=False),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
        sa.Column("max_workspaces", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_white_label_variants_slug", "white_label_variants", ["slug"], unique=True)

    op.create_table(
        "partners",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("hostname", sa.String(255), nullable=True),
        sa.Column("branding", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("resource_limits", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("plan_tier", plan_tier, nullable=False),
        sa.Column("is_platform_partner", sa.Boolean(), nullable=False),
        sa.Column(
            "white_label_variant_id", sa.Uuid(),
            sa.ForeignKey("white_label_variants.id"), nullable=True,
        ),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_partners_slug", "partners", ["slug"], unique=True)
    op.create_index("ix_partners_hostname", "partners", ["hostname"], unique=True)
    op.create_index("ix_partners_white_label_variant_id", "partners", ["white_label_variant_id"])

    op.create_table(
        "partner_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("partner_id", sa.Uuid(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("principal_id", sa.Uuid(), sa.ForeignKey("principals.id"), nullable=False),
        sa.Column("role", partner_member_role, nullable=False),
        sa.Column("removed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_partner_members_partner_id", "partner_members", ["partner_id"])
    op.create_index("ix_partner_members_principal_id", "partner_members", ["principal_id"])

    op.create_table(
        "workspaces",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("partner_id", sa.Uuid(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("status", workspace_status, nullable=False),
        sa.Column("is_billing_exempt", sa.Boolean(), nullable=False),
        sa.Column("credits_balance_cents", sa.Integer(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_workspaces_partner_id", "workspaces", ["partner_id"])
    op.create_index("ix_workspaces_slug", "workspaces", ["slug"], unique=True)

    op.create_table(
        "workspace_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("principal_id", sa.Uuid(), sa.ForeignKey("principals.id"), nullable=False),
        sa.Column("role", workspace_member_role, nullable=False),
        sa.Column("removed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"])
    op.create_index("ix_workspace_members_principal_id", "workspace_members", ["principal_id"])

    op.create_table(
        "workspace_subscription_plans",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("partner_id", sa.Uuid(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("monthly_price_cents", sa.Integer(), nullable=False),
        sa.Column("included_minutes", sa.Integer(), nullable=False),
        sa.Column("overage_rate_cents", sa.Integer(), nullable=False),
        sa.Column("features", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("max_agents", sa.Integer(), nullable=True),
        sa.Column("max_conversations_per_month", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("stripe_product_id", sa.String(255), nullable=True),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_workspace_subscription_plans_partner_id",
        "workspace_subscription_plans", ["partner_id"],
    )

    op.create_table(
        "workspace_subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column(
            "plan_id", sa.Uuid(),
            sa.ForeignKey("workspace_subscription_plans.id"), nullable=False,
        ),
        sa.Column("status", subscription_status, nullable=False),
        sa.Column("current_period_start", sa.DateTime(), nullable=True),
        sa.Column("current_period_end", sa.DateTime(), nullable=True),
        sa.Column("minutes_used_this_period", sa.Integer(), nullable=False),
        sa.Column("overage_charges_cents", sa.Integer(), nullable=False),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
        sa.Column("trial_end", sa.DateTime(), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_workspace_subscriptions_workspace_id",
        "workspace_subscriptions", ["workspace_id"], unique=True,
    )
    op.create_index("ix_workspace_subscriptions_plan_id", "workspace_subscriptions", ["plan_id"])

    op.create_table(
        "ai_agents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("provider", voice_provider, nullable=False),
        sa.Column("voice_id", sa.String(100), nullable=True),
        sa.Column("system_prompt", sa.Text(), nullable=False, server_default=""),
        sa.Column("first_message", sa.String(2000), nullable=True),
        sa.Column("external_agent_id", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_ai_agents_workspace_id", "ai_agents", ["workspace_id"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("agent_id", sa.Uuid(), sa.ForeignKey("ai_agents.id"), nullable=True),
        sa.Column("external_id", sa.String(255), nullable=True),
        sa.Column("direction", call_direction, nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("total_cost", sa.Float(), nullable=False),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("sentiment", sa.String(50), nullable=True),
        sa.Column("recording_url", sa.String(2048), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("caller_name", sa.String(255), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_conversations_workspace_id", "conversations", ["workspace_id"])
    op.create_index("ix_conversations_agent_id", "conversations", ["agent_id"])
    op.create_index("ix_conversations_external_id", "conversations", ["external_id"])
    op.create_index("ix_conversations_status", "conversations", ["status"])


def downgrade() -> None:
    for table in (
        "conversations",
        "ai_agents",
        "workspace_subscriptions",
        "workspace_subscription_plans",
        "workspace_members",
        "workspaces",
        "partner_members",
        "partners",
        "white_label_variants",
        "super_admins",
        "principals",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        call_direction,
        voice_provider,
        subscription_status,
        workspace_status,
        workspace_member_role,
        plan_tier,
        partner_member_role,
    ):
        enum.drop(bind, checkfirst=True)
