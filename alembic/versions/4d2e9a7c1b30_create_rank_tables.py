"""create domains, keywords and keyword positions

Revision ID: 4d2e9a7c1b30
Revises:
Create Date: 2026-03-02 10:15:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "4d2e9a7c1b30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "domains",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column(
            "refresh_frequency",
            sa.Enum("daily", "weekly", "on_demand", name="refreshfrequency"),
            nullable=False,
        ),
        sa.Column("search_engine", sa.String(length=32), nullable=False),
        sa.Column("location", sa.String(length=128), nullable=False),
        sa.Column("language", sa.String(length=8), nullable=False),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_domains_domain"), "domains", ["domain"], unique=True)
    op.create_index(op.f("ix_domains_refresh_frequency"), "domains", ["refresh_frequency"], unique=False)

    op.create_table(
        "keywords",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("domain_id", sa.Integer(), nullable=False),
        sa.Column("phrase", sa.String(length=300), nullable=False),
        sa.Column("status", sa.Enum("active", "paused", name="keywordstatus"), nullable=False),
        sa.Column("search_volume", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.Integer(), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("domain_id", "phrase", name="uq_keywords_domain_phrase"),
    )
    op.create_index(op.f("ix_keywords_domain_id"), "keywords", ["domain_id"], unique=False)
    op.create_index(op.f("ix_keywords_status"), "keywords", ["status"], unique=False)

    op.create_table(
        "keyword_positions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("keyword_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("url", sa.String(length=1000), nullable=True),
        sa.Column("search_volume", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.Integer(), nullable=True),
        sa.Column("cpc", sa.Float(), nullable=True),
        sa.Column("is_estimate", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("fetched_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("keyword_id", "date", name="uq_keyword_positions_keyword_date"),
    )
    op.create_index(op.f("ix_keyword_positions_keyword_id"), "keyword_positions", ["keyword_id"], unique=False)
    op.create_index(op.f("ix_keyword_positions_date"), "keyword_positions", ["date"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_keyword_positions_date"), table_name="keyword_positions")
    op.drop_index(op.f("ix_keyword_positions_keyword_id"), table_name="keyword_positions")
    op.drop_table("keyword_positions")
    op.drop_index(op.f("ix_keywords_status"), table_name="keywords")
    op.drop_index(op.f("ix_keywords_domain_id"), table_name="keywords")
    op.drop_table("keywords")
    op.drop_index(op.f("ix_domains_refresh_frequency"), table_name="domains")
    op.drop_index(op.f("ix_domains_domain"), table_name="domains")
    op.drop_table("domains")
    sa.Enum(name="keywordstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="refreshfrequency").drop(op.get_bind(), checkfirst=True)
