"""Add user preferences, feed topic metadata and filtering statistics."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("feeds") as batch_op:
        batch_op.add_column(sa.Column("name", sa.String(), nullable=True))
        batch_op.add_column(sa.Column("category", sa.String(), nullable=True))

    op.create_table(
        "user_preferences",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("selected_topics_json", sa.Text(), server_default="[]", nullable=False),
        sa.Column("custom_keywords_json", sa.Text(), server_default="[]", nullable=False),
        sa.Column("relevance_threshold", sa.Integer(), server_default="80", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
        sa.CheckConstraint(
            "relevance_threshold >= 0 AND relevance_threshold <= 100",
            name="ck_user_preferences_threshold_range",
        ),
    )

    op.create_table(
        "filtering_statistics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("stat_date", sa.Date(), nullable=False),
        sa.Column("included_articles", sa.Integer(), nullable=False),
        sa.Column("filtered_out_articles", sa.Integer(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_filtering_statistics_user_date",
        "filtering_statistics",
        ["user_id", "stat_date"],
    )


def downgrade() -> None:
    op.drop_index("idx_filtering_statistics_user_date", table_name="filtering_statistics")
    op.drop_table("filtering_statistics")
    op.drop_table("user_preferences")
    with op.batch_alter_table("feeds") as batch_op:
        batch_op.drop_column("category")
        batch_op.drop_column("name")
