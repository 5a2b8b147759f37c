"""Create businesses, sources, prompt templates, webhooks and generation tables.

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _business_id() -> sa.Column:
    return sa.Column("business_id", postgresql.UUID(as_uuid=False), nullable=False)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _business_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["business_id"],
        ["businesses.id"],
        name=f"fk_{table}_business_id",
        ondelete="CASCADE",
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "businesses",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("industry", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=50), nullable=True),
        sa.Column("zip", sa.String(length=20), nullable=True),
        sa.Column(
            "country", sa.String(length=2), server_default=sa.text("'US'"), nullable=False
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_businesses_name"), "businesses", ["name"], unique=False)

    op.create_table(
        "questionnaires",
        _id(),
        _business_id(),
        sa.Column(
            "data",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "completeness_score", sa.Integer(), server_default=sa.text("0"), nullable=False
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id"),
        _business_fk("questionnaires"),
    )

    op.create_table(
        "keywords",
        _id(),
        _business_id(),
        sa.Column("keyword", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column(
            "language", sa.String(length=2), server_default=sa.text("'en'"), nullable=False
        ),
        sa.Column("search_intent", sa.String(length=20), nullable=True),
        sa.Column("priority", sa.Integer(), server_default=sa.text("5"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "business_id", "slug", "language", name="uq_keywords_business_slug_language"
        ),
        _business_fk("keywords"),
    )
    op.create_index(
        op.f("ix_keywords_business_id"), "keywords", ["business_id"], unique=False
    )

    op.create_table(
        "locations",
        _id(),
        _business_id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=50), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column(
            "country", sa.String(length=2), server_default=sa.text("'US'"), nullable=False
        ),
        sa.Column("full_address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("google_maps_url", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default=sa.text("'active'"),
            nullable=False,
        ),
        sa.Column(
            "is_headquarters", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("priority", sa.Integer(), server_default=sa.text("0"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        _business_fk("locations"),
    )
    op.create_index(
        op.f("ix_locations_business_id"), "locations", ["business_id"], unique=False
    )
    op.create_index(op.f("ix_locations_status"), "locations", ["status"], unique=False)

    op.create_table(
        "service_areas",
        _id(),
        _business_id(),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=50), nullable=False),
        sa.Column("county", sa.String(length=100), nullable=True),
        sa.Column("slug", sa.String(length=160), nullable=False),
        sa.Column("priority", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "slug", name="uq_service_areas_business_slug"),
        _business_fk("service_areas"),
        sa.ForeignKeyConstraint(
            ["location_id"],
            ["locations.id"],
            name="fk_service_areas_location_id",
            ondelete="SET NULL",
        ),
    )
    op.create_index(
        op.f("ix_service_areas_business_id"), "service_areas", ["business_id"], unique=False
    )
    op.create_index(
        op.f("ix_service_areas_location_id"), "service_areas", ["location_id"], unique=False
    )

    op.create_table(
        "prompt_templates",
        _id(),
        _business_id(),
        sa.Column("page_type", sa.String(length=50), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("template", sa.Text(), nullable=False),
        sa.Column(
            "required_variables",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "optional_variables",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "word_count_target", sa.Integer(), server_default=sa.text("600"), nullable=False
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "business_id",
            "page_type",
            "version",
            name="uq_prompt_templates_business_type_version",
        ),
        _business_fk("prompt_templates"),
    )
    op.create_index(
        op.f("ix_prompt_templates_business_id"),
        "prompt_templates",
        ["business_id"],
        unique=False,
    )

    op.create_table(
        "webhooks",
        _id(),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("events", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "generation_jobs",
        _id(),
        _business_id(),
        sa.Column("page_type", sa.String(length=50), nullable=False),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("total_pages", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "completed_pages", sa.Integer(), server_default=sa.text("0"), nullable=False
        ),
        sa.Column("failed_pages", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("cost_total_usd", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        _timestamp("created_at"),
        _timestamp("started_at", nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("webhook_sent_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
        _business_fk("generation_jobs"),
    )
    op.create_index(
        op.f("ix_generation_jobs_business_id"),
        "generation_jobs",
        ["business_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_generation_jobs_status"), "generation_jobs", ["status"], unique=False
    )

    op.create_table(
        "job_pages",
        _id(),
        sa.Column("job_id", postgresql.UUID(as_uuid=False), nullable=False),
        _business_id(),
        sa.Column("keyword_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("service_area_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("location_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("keyword_slug", sa.String(length=255), nullable=False),
        sa.Column("keyword_text", sa.String(length=255), nullable=False),
        sa.Column(
            "keyword_language",
            sa.String(length=2),
            server_default=sa.text("'en'"),
            nullable=False,
        ),
        sa.Column("service_area_slug", sa.String(length=160), nullable=False),
        sa.Column("url_path", sa.String(length=512), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=50), nullable=False),
        sa.Column("location_status", sa.String(length=20), nullable=True),
        sa.Column(
            "status", sa.String(length=20), server_default=sa.text("'queued'"), nullable=False
        ),
        sa.Column("attempts", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("worker_id", sa.String(length=100), nullable=True),
        _timestamp("claimed_at", nullable=True),
        sa.Column("content", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("section_count", sa.Integer(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
        sa.Column("model_name", sa.String(length=100), nullable=True),
        sa.Column("prompt_version", sa.Integer(), nullable=True),
        sa.Column("generation_duration_ms", sa.Integer(), nullable=True),
        sa.Column("input_tokens", sa.Integer(), nullable=True),
        sa.Column("output_tokens", sa.Integer(), nullable=True),
        sa.Column("cost_usd", sa.Float(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("completed_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["job_id"],
            ["generation_jobs.id"],
            name="fk_job_pages_job_id",
            ondelete="CASCADE",
        ),
        _business_fk("job_pages"),
    )
    op.create_index(op.f("ix_job_pages_job_id"), "job_pages", ["job_id"], unique=False)
    op.create_index(
        "ix_job_pages_job_status_created",
        "job_pages",
        ["job_id", "status", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_job_pages_job_status_created", table_name="job_pages")
    op.drop_index(op.f("ix_job_pages_job_id"), table_name="job_pages")
    op.drop_table("job_pages")
    op.drop_index(op.f("ix_generation_jobs_status"), table_name="generation_jobs")
    op.drop_index(op.f("ix_generation_jobs_business_id"), table_name="generation_jobs")
    op.drop_table("generation_jobs")
    op.drop_table("webhooks")
    op.drop_index(op.f("ix_prompt_templates_business_id"), table_name="prompt_templates")
    op.drop_table("prompt_templates")
    op.drop_index(op.f("ix_service_areas_location_id"), table_name="service_areas")
    op.drop_index(op.f("ix_service_areas_business_id"), table_name="service_areas")
    op.drop_table("service_areas")
    op.drop_index(op.f("ix_locations_status"), table_name="locations")
    op.drop_index(op.f("ix_locations_business_id"), table_name="locations")
    op.drop_table("locations")
    op.drop_index(op.f("ix_keywords_business_id"), table_name="keywords")
    op.drop_table("keywords")
    op.drop_table("questionnaires")
    op.drop_index(op.f("ix_businesses_name"), table_name="businesses")
    op.drop_table("businesses")
