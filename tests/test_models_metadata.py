import unittest

from sqlalchemy import CheckConstraint, ForeignKeyConstraint, UniqueConstraint

from dsptracker.models.database import Save, SolarSystem, SpectralClass, Star


def _constraint_names(table, kind):
    return {c.name for c in table.constraints if isinstance(c, kind)}


class TestSchemaConstraintNames(unittest.TestCase):
    def test_saves_constraints(self):
        table = Save.__table__
        self.assertEqual(table.primary_key.name, "saves_pkey")
        self.assertIn("saves_name_key", _constraint_names(table, UniqueConstraint))
        checks = _constraint_names(table, CheckConstraint)
        self.assertIn("mining_speed_at_least_100", checks)
        self.assertIn("positive_version", checks)

    def test_solar_systems_constraints(self):
        table = SolarSystem.__table__
        self.assertEqual(table.primary_key.name, "solar_systems_pkey")
        self.assertIn("solar_systems_save_id_name_key", _constraint_names(table, UniqueConstraint))
        fks = {c.name: c for c in table.constraints if isinstance(c, ForeignKeyConstraint)}
        self.assertIn("solar_systems_save_id_fkey", fks)
        self.assertEqual(fks["solar_systems_save_id_fkey"].ondelete, "CASCADE")

    def test_stars_constraints(self):
        table = Star.__table__
        self.assertEqual(table.primary_key.name, "stars_pkey")
        self.assertIn("stars_solar_system_id_key", _constraint_names(table, UniqueConstraint))
        fks = {c.name: c for c in table.constraints if isinstance(c, ForeignKeyConstraint)}
        self.assertIn("stars_solar_system_id_fkey", fks)
        self.assertIsNone(fks["stars_solar_system_id_fkey"].ondelete)
        checks = {c.name: str(c.sqltext) for c in table.constraints if isinstance(c, CheckConstraint)}
        self.assertEqual(checks["positive_luminosity"], "luminosity > 0.0")
        # Kept as shipped in migration 0003: the check reads version, not radius
        self.assertEqual(checks["positive_radius"], "version > 0.0")

    def test_no_server_defaults(self):
        for model in (Save, SolarSystem, Star):
            for column in model.__table__.columns:
                self.assertIsNone(column.server_default, f"{model.__tablename__}.{column.name}")

    def test_spectral_class_members(self):
        self.assertEqual(
            [m.value for m in SpectralClass],
            [
                "class_a", "class_b", "class_f", "class_g", "class_k", "class_m", "class_o",
                "red_giant", "yellow_giant", "white_giant", "blue_giant",
                "white_dwarf", "black_hole", "neutron",
            ],
        )
        column_type = Star.__table__.c.spectral_class.type
        self.assertEqual(column_type.name, "spectral_class")
        self.assertEqual(list(column_type.enums), [m.value for m in SpectralClass])


if __name__ == "__main__":
    unittest.main()
