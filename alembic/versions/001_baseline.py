"""Baseline: articles and sources.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "articles",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("source_type", sa.String, nullable=False),
        sa.Column("source_name", sa.String, nullable=False),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("url", sa.String, nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("author", sa.String, nullable=True),
        sa.Column("published_at", sa.DateTime, nullable=True),
        sa.Column("fetched_at", sa.DateTime, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.text("0")),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("engagement_score", sa.Integer, nullable=True),
        sa.Column("engagement_raw", sa.String, nullable=True),
        sa.Column("engagement_type", sa.String, nullable=True),
        sa.Column("engagement_fetched_at", sa.DateTime, nullable=True),
    )
    op.create_index("idx_articles_source", "articles", ["source_type", "source_name"])
    op.create_index("idx_articles_published", "articles", ["published_at"])
    op.create_index("idx_articles_read", "articles", ["is_read"])
    op.create_index("idx_articles_engagement", "articles", ["engagement_score"])

    op.create_table(
        "sources",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("type", sa.String, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("value", sa.String, nullable=False),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
    )
    op.create_index("idx_sources_type", "sources", ["type"])
    op.create_index("idx_sources_enabled", "sources", ["enabled"])


def downgrade() -> None:
    op.drop_index("idx_sources_enabled", table_name="sources")
    op.drop_index("idx_sources_type", table_name="sources")
    op.drop_table("sources")
    op.drop_index("idx_articles_engagement", table_name="articles")
    op.drop_index("idx_articles_read", table_name="articles")
    op.drop_index("idx_articles_published", table_name="articles")
    op.drop_index("idx_articles_source", table_name="articles")
    op.drop_table("articles")
