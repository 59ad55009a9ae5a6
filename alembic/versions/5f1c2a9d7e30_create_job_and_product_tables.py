"""Create async job, progress, product registry and maintenance task tables.

Revision ID: 5f1c2a9d7e30
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "5f1c2a9d7e30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "async_jobs",
    sa.Column("id", sa.String(length=64), nullable=False),
    sa.Column("job_type", sa.String(length=128), nullable=False),
    sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
    sa.Column("result", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_async_jobs_status_created_at", "async_jobs", ["status", "created_at"], unique=False)
  op.create_index(op.f("ix_async_jobs_job_type"), "async_jobs", ["job_type"], unique=False)

  op.create_table(
    "async_job_progress",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("job_id", sa.String(length=64), nullable=False),
    sa.Column("step_label", sa.String(length=255), nullable=False),
    sa.Column("percent", sa.Integer(), nullable=True),
    sa.Column("ai_message", sa.Text(), nullable=True),
    sa.Column("is_final", sa.Boolean(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.ForeignKeyConstraint(["job_id"], ["async_jobs.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_async_job_progress_job_id"), "async_job_progress", ["job_id"], unique=False)

  op.create_table(
    "product_registry",
    sa.Column("id", sa.String(length=64), nullable=False),
    sa.Column("category", sa.String(length=64), nullable=False),
    sa.Column("subcategory", sa.String(length=128), nullable=True),
    sa.Column("manufacturer", sa.String(length=255), nullable=False),
    sa.Column("model", sa.String(length=255), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("specs", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("manufacturer_url", sa.Text(), nullable=True),
    sa.Column("documentation_links", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("spare_parts_links", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("is_verified", sa.Boolean(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("manufacturer", "model", name="ux_product_registry_manufacturer_model"),
  )
  op.create_index(op.f("ix_product_registry_manufacturer"), "product_registry", ["manufacturer"], unique=False)

  op.create_table(
    "product_maintenance_tasks",
    sa.Column("id", sa.String(length=64), nullable=False),
    sa.Column("product_registry_id", sa.String(length=64), nullable=False),
    sa.Column("title", sa.String(length=255), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("category", sa.String(length=32), nullable=False),
    sa.Column("priority", sa.String(length=16), nullable=False),
    sa.Column("recurrence", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("estimated_hours", sa.Float(), nullable=True),
    sa.Column("source", sa.String(length=32), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.ForeignKeyConstraint(["product_registry_id"], ["product_registry.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("product_registry_id", "title", name="ux_product_maintenance_tasks_product_title"),
  )
  op.create_index(op.f("ix_product_maintenance_tasks_product_registry_id"), "product_maintenance_tasks", ["product_registry_id"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_product_maintenance_tasks_product_registry_id"), table_name="product_maintenance_tasks")
  op.drop_table("product_maintenance_tasks")
  op.drop_index(op.f("ix_product_registry_manufacturer"), table_name="product_registry")
  op.drop_table("product_registry")
  op.drop_index(op.f("ix_async_job_progress_job_id"), table_name="async_job_progress")
  op.drop_table("async_job_progress")
  op.drop_index(op.f("ix_async_jobs_job_type"), table_name="async_jobs")
  op.drop_index("ix_async_jobs_status_created_at", table_name="async_jobs")
  op.drop_table("async_jobs")
