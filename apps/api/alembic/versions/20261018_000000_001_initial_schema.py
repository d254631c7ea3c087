"""Initial schema: accounts, submissions and consent records.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    # Create enum types
    op.execute(
        "CREATE TYPE subscription_status AS ENUM ('active', 'canceled', 'past_due', 'inactive')"
    )
    op.execute("CREATE TYPE sex AS ENUM ('Male', 'Female', 'Other')")
    op.execute(
        "CREATE TYPE consent_category AS ENUM ('essential', 'marketing', 'retention', 'cookies')"
    )

    # Create accounts table
    op.create_table(
        "accounts",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("billing_customer_id", sa.String(255), nullable=True),
        sa.Column("billing_subscription_id", sa.String(255), nullable=True),
        sa.Column(
            "subscription_status",
            postgresql.ENUM(name="subscription_status", create_type=False),
            nullable=False,
            server_default="inactive",
        ),
        sa.Column("locale", sa.String(50), nullable=False, server_default="English"),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("sex", postgresql.ENUM(name="sex", create_type=False), nullable=True),
        sa.Column("consent_given_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("marketing_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("retention_consent", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deletion_scheduled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_accounts")),
    )
    op.create_index(op.f("ix_accounts_email"), "accounts", ["email"], unique=True)
    op.create_index(
        op.f("ix_accounts_billing_customer_id"), "accounts", ["billing_customer_id"]
    )
    op.create_index(
        op.f("ix_accounts_billing_subscription_id"), "accounts", ["billing_subscription_id"]
    )
    op.create_index(
        op.f("ix_accounts_deletion_scheduled_at"), "accounts", ["deletion_scheduled_at"]
    )

    # Create submissions table
    op.create_table(
        "submissions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("account_id", sa.UUID(), nullable=False),
        sa.Column("blob_id", sa.String(512), nullable=False),
        sa.Column("image_url", sa.String(1024), nullable=False),
        sa.Column("body_region", sa.String(100), nullable=True),
        sa.Column("questionnaire", postgresql.JSONB(), nullable=False),
        sa.Column("result", postgresql.JSONB(), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_submissions")),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["accounts.id"],
            name=op.f("fk_submissions_account_id_accounts"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(op.f("ix_submissions_account_id"), "submissions", ["account_id"])
    op.create_index(op.f("ix_submissions_expires_at"), "submissions", ["expires_at"])

    # Create consent_records table
    op.create_table(
        "consent_records",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("account_id", sa.UUID(), nullable=False),
        sa.Column(
            "category",
            postgresql.ENUM(name="consent_category", create_type=False),
            nullable=False,
        ),
        sa.Column("granted", sa.Boolean(), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("policy_version", sa.String(20), nullable=False, server_default="1.0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_consent_records")),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["accounts.id"],
            name=op.f("fk_consent_records_account_id_accounts"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(op.f("ix_consent_records_account_id"), "consent_records", ["account_id"])


def downgrade() -> None:
    op.drop_table("consent_records")
    op.drop_table("submissions")
    op.drop_table("accounts")

    op.execute("DROP TYPE IF EXISTS consent_category")
    op.execute("DROP TYPE IF EXISTS sex")
    op.execute("DROP TYPE IF EXISTS subscription_status")
