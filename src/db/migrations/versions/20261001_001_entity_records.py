"""Create entity record and index tables.

Revision ID: 20261001_001
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "20261001_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create entity_records and entity_index_entries tables."""

    op.create_table(
        "entity_records",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("entity_type", "entity_id", name="uq_entity_records_type_id"),
    )
    op.create_index("ix_entity_records_entity_type", "entity_records", ["entity_type"])

    op.create_table(
        "entity_index_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "record_seq",
            sa.Integer(),
            sa.ForeignKey("entity_records.seq", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("field", sa.String(64), nullable=False),
        sa.Column("value", sa.String(512), nullable=True),
    )
    op.create_index(
        "ix_entity_index_lookup",
        "entity_index_entries",
        ["entity_type", "field", "value"],
    )


def downgrade() -> None:
    """Drop entity tables."""
    op.drop_index("ix_entity_index_lookup", table_name="entity_index_entries")
    op.drop_table("entity_index_entries")
    op.drop_index("ix_entity_records_entity_type", table_name="entity_records")
    op.drop_table("entity_records")
