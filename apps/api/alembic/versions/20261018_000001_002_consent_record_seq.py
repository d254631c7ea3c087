"""Per-account insertion order for consent records.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:01.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("consent_records", sa.Column("seq", sa.Integer(), nullable=True))

    # Number existing rows per account in timestamp order
    op.execute(
        """
        UPDATE consent_records AS c
        SET seq = numbered.seq
        FROM (
            SELECT id, ROW_NUMBER() OVER (
                PARTITION BY account_id ORDER BY created_at, id
            ) AS seq
            FROM consent_records
        ) AS numbered
        WHERE c.id = numbered.id
        """
    )

    op.alter_column("consent_records", "seq", nullable=False)
    op.create_unique_constraint(
        op.f("uq_consent_records_account_id"),
        "consent_records",
        ["account_id", "seq"],
    )


def downgrade() -> None:
    op.drop_constraint(
        op.f("uq_consent_records_account_id"), "consent_records", type_="unique"
    )
    op.drop_column("consent_records", "seq")
