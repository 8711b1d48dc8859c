"""Adventure graph schema — contents, adventures, nodes, choices, journeys.

Revision ID: 001_adventure_graph
Revises: None
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_adventure_graph"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "narrative_contents",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("narrative", sa.Text, nullable=False),
        sa.Column("word_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # start_node_id FK added after adventure_nodes exists (circular reference)
    op.create_table(
        "adventures",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("setting", sa.Text, nullable=False, server_default=""),
        sa.Column("start_node_id", UUID(as_uuid=True), nullable=True),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "adventure_nodes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "adventure_id", UUID(as_uuid=True),
            sa.ForeignKey(
                "adventures.id", ondelete="CASCADE",
                deferrable=True, initially="DEFERRED",
            ),
            nullable=False,
        ),
        sa.Column("content_id", UUID(as_uuid=True), sa.ForeignKey("narrative_contents.id"), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("node_type", sa.String(20), nullable=False),
        sa.Column("ending_type", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "node_type = 'ENDING' OR ending_type IS NULL",
            name="ck_adventure_nodes_ending_type",
        ),
    )
    op.create_index(
        "uq_adventure_nodes_single_start", "adventure_nodes", ["adventure_id"],
        unique=True, postgresql_where=sa.text("node_type = 'START'"),
    )

    op.create_foreign_key(
        "fk_adventures_start_node_id", "adventures", "adventure_nodes",
        ["start_node_id"], ["id"],
    )

    op.create_table(
        "choices",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("adventure_id", UUID(as_uuid=True), sa.ForeignKey("adventures.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source_node_id", UUID(as_uuid=True), sa.ForeignKey("adventure_nodes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_node_id", UUID(as_uuid=True), sa.ForeignKey("adventure_nodes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("label", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("consequence", sa.Text, nullable=False, server_default=""),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_choices_source_node_id", "choices", ["source_node_id"])

    op.create_table(
        "journeys",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("adventure_id", UUID(as_uuid=True), sa.ForeignKey("adventures.id", ondelete="CASCADE"), nullable=False),
        sa.Column("current_node_id", UUID(as_uuid=True), sa.ForeignKey("adventure_nodes.id"), nullable=False),
        sa.Column("path", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("is_completed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "uq_journeys_active_per_user", "journeys", ["user_id", "adventure_id"],
        unique=True, postgresql_where=sa.text("is_completed = false"),
    )
    op.create_index("ix_journeys_adventure_id", "journeys", ["adventure_id"])


def downgrade() -> None:
    op.drop_index("ix_journeys_adventure_id", table_name="journeys")
    op.drop_index("uq_journeys_active_per_user", table_name="journeys")
    op.drop_table("journeys")
    op.drop_index("ix_choices_source_node_id", table_name="choices")
    op.drop_table("choices")
    op.drop_constraint("fk_adventures_start_node_id", "adventures", type_="foreignkey")
    op.drop_index("uq_adventure_nodes_single_start", table_name="adventure_nodes")
    op.drop_table("adventure_nodes")
    op.drop_table("adventures")
    op.drop_table("narrative_contents")
