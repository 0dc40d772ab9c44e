"""add keyword check jobs

Revision ID: 6b8c3f0e5a12
Revises: 4d2e9a7c1b30
Create Date: 2026-03-09 14:40:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "6b8c3f0e5a12"
down_revision = "4d2e9a7c1b30"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "keyword_check_jobs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("domain_id", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "processing", "completed", "failed", "cancelled", name="jobstatus"),
            nullable=False,
        ),
        sa.Column("total_keywords", sa.Integer(), nullable=False),
        sa.Column("processed_keywords", sa.Integer(), nullable=False),
        sa.Column("failed_keywords", sa.Integer(), nullable=False),
        sa.Column("keyword_ids", sa.JSON(), nullable=False),
        sa.Column("current_keyword_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_keyword_check_jobs_domain_id"), "keyword_check_jobs", ["domain_id"], unique=False)
    op.create_index(op.f("ix_keyword_check_jobs_status"), "keyword_check_jobs", ["status"], unique=False)
    op.create_index(op.f("ix_keyword_check_jobs_created_at"), "keyword_check_jobs", ["created_at"], unique=False)

    checking_status = sa.Enum("queued", "checking", "completed", "failed", name="checkingstatus")
    checking_status.create(op.get_bind(), checkfirst=True)
    op.add_column("keywords", sa.Column("checking_status", checking_status, nullable=True))
    op.add_column("keywords", sa.Column("check_job_id", sa.Integer(), nullable=True))
    op.create_foreign_key(
        "fk_keywords_check_job_id", "keywords", "keyword_check_jobs", ["check_job_id"], ["id"]
    )
    op.create_index(op.f("ix_keywords_check_job_id"), "keywords", ["check_job_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_keywords_check_job_id"), table_name="keywords")
    op.drop_constraint("fk_keywords_check_job_id", "keywords", type_="foreignkey")
    op.drop_column("keywords", "check_job_id")
    op.drop_column("keywords", "checking_status")
    sa.Enum(name="checkingstatus").drop(op.get_bind(), checkfirst=True)
    op.drop_index(op.f("ix_keyword_check_jobs_created_at"), table_name="keyword_check_jobs")
    op.drop_index(op.f("ix_keyword_check_jobs_status"), table_name="keyword_check_jobs")
    op.drop_index(op.f("ix_keyword_check_jobs_domain_id"), table_name="keyword_check_jobs")
    op.drop_table("keyword_check_jobs")
    sa.Enum(name="jobstatus").drop(op.get_bind(), checkfirst=True)
