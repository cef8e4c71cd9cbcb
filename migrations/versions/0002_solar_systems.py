"""Create solar_systems table

Revision ID: 0002_solar_systems
Revises: 0001_saves
Create Date: 2024-03-09 18:42:00

Solar systems belong to a save and are removed with it. Names only need to be
unique within their save.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_solar_systems"
down_revision = "0001_saves"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "solar_systems",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("save_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="solar_systems_pkey"),
        sa.ForeignKeyConstraint(
            ["save_id"], ["saves.id"], ondelete="CASCADE", name="solar_systems_save_id_fkey"
        ),
        sa.CheckConstraint("version >= 0", name="positive_version"),
        sa.UniqueConstraint("save_id", "name", name="solar_systems_save_id_name_key"),
    )


def downgrade() -> None:
    op.drop_table("solar_systems")
