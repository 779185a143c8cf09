"""create narratives and belief_edges

Revision ID: 5e1c7a9d2b40
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "5e1c7a9d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _text_array(name: str) -> sa.Column:
    return sa.Column(name, postgresql.ARRAY(sa.Text), nullable=False, server_default="{}")


def _jsonb(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB, nullable=False, server_default="[]")


def upgrade() -> None:
    op.create_table(
        "narratives",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("confidence_score", sa.Integer, nullable=False, server_default="50"),
        sa.Column("confidence_trend", sa.String(8), nullable=False, server_default="flat"),
        sa.Column("confidence_last_updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        _jsonb("assumptions"),
        _jsonb("supporting_evidence"),
        _jsonb("contradicting_evidence"),
        sa.Column("decay_half_life_days", sa.Integer, nullable=False, server_default="30"),
        sa.Column("decay_last_reinforced", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        _text_array("related_reinforces"),
        _text_array("related_conflicts"),
        _text_array("related_overlaps"),
        _jsonb("affected_assets"),
        _jsonb("history"),
        _text_array("tags"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_narratives_confidence_score", "narratives", ["confidence_score"])

    op.create_table(
        "belief_edges",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column(
            "from_narrative_id",
            sa.String,
            sa.ForeignKey("narratives.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "to_narrative_id",
            sa.String,
            sa.ForeignKey("narratives.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("relationship", sa.String(16), nullable=False),
        sa.Column("strength", sa.Float, nullable=False, server_default="0.5"),
    )

    # read-only for the public anon key; writes go through the service role
    op.execute("ALTER TABLE narratives ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE belief_edges ENABLE ROW LEVEL SECURITY")
    op.execute('CREATE POLICY "narratives are public" ON narratives FOR SELECT USING (true)')
    op.execute('CREATE POLICY "belief edges are public" ON belief_edges FOR SELECT USING (true)')


def downgrade() -> None:
    op.drop_table("belief_edges")
    op.drop_index("ix_narratives_confidence_score", table_name="narratives")
    op.drop_table("narratives")
