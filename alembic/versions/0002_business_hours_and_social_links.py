"""Add business_hours and business_social_links.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """Create the business profile tables."""
    op.create_table(
        "business_hours",
        _id(),
        sa.Column("business_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("opens", sa.String(length=5), nullable=True),
        sa.Column("closes", sa.String(length=5), nullable=True),
        sa.Column("is_closed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_business_day"),
        sa.ForeignKeyConstraint(
            ["business_id"],
            ["businesses.id"],
            name="fk_business_hours_business_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_business_hours_business_id"), "business_hours", ["business_id"], unique=False
    )

    op.create_table(
        "business_social_links",
        _id(),
        sa.Column("business_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("platform", sa.String(length=20), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "platform", name="uq_social_links_business_platform"),
        sa.ForeignKeyConstraint(
            ["business_id"],
            ["businesses.id"],
            name="fk_business_social_links_business_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_business_social_links_business_id"),
        "business_social_links",
        ["business_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop the business profile tables."""
    op.drop_index(
        op.f("ix_business_social_links_business_id"), table_name="business_social_links"
    )
    op.drop_table("business_social_links")
    op.drop_index(op.f("ix_business_hours_business_id"), table_name="business_hours")
    op.drop_table("business_hours")
