"""Create spectral_class enum and stars table

Revision ID: 0003_stars
Revises: 0002_solar_systems
Create Date: 2024-03-16 11:05:00

One star per solar system (unique solar_system_id). There is no ON DELETE rule,
so a solar system cannot be deleted while its star exists.

Known defect, kept as shipped: positive_radius checks `version > 0.0` rather
than `radius > 0.0`. Stars must be written with version >= 1 and radius is not
checked by the database.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0003_stars"
down_revision = "0002_solar_systems"
branch_labels = None
depends_on = None

SPECTRAL_CLASSES = (
    "class_a",
    "class_b",
    "class_f",
    "class_g",
    "class_k",
    "class_m",
    "class_o",
    "red_giant",
    "yellow_giant",
    "white_giant",
    "blue_giant",
    "white_dwarf",
    "black_hole",
    "neutron",
)

spectral_class = sa.Enum(*SPECTRAL_CLASSES, name="spectral_class", create_constraint=True)


def upgrade() -> None:
    op.create_table(
        "stars",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("solar_system_id", sa.Uuid(), nullable=False),
        sa.Column("spectral_class", spectral_class, nullable=False),
        sa.Column("luminosity", sa.REAL(), nullable=False),
        sa.Column("radius", sa.REAL(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="stars_pkey"),
        sa.ForeignKeyConstraint(["solar_system_id"], ["solar_systems.id"], name="stars_solar_system_id_fkey"),
        sa.CheckConstraint("version >= 0", name="positive_version"),
        sa.CheckConstraint("luminosity > 0.0", name="positive_luminosity"),
        sa.CheckConstraint("version > 0.0", name="positive_radius"),
        sa.UniqueConstraint("solar_system_id", name="stars_solar_system_id_key"),
    )


def downgrade() -> None:
    op.drop_table("stars")
    spectral_class.drop(op.get_bind(), checkfirst=True)
