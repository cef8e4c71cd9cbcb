"""Create saves table

Revision ID: 0001_saves
Revises: 
Create Date: 2024-03-02 14:10:00

One row per game save profile. Names are globally unique and mining speed is
stored as a percentage that can never drop below 100.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_saves"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "saves",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("mining_speed", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="saves_pkey"),
        sa.CheckConstraint("mining_speed >= 100", name="mining_speed_at_least_100"),
        sa.CheckConstraint("version >= 0", name="positive_version"),
        sa.UniqueConstraint("name", name="saves_name_key"),
    )


def downgrade() -> None:
    op.drop_table("saves")
