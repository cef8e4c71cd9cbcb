"""Unit tests for IntegrityError translation, using stand-in driver exceptions."""
from sqlalchemy.exc import IntegrityError

from dsptracker.actions.constraints import (
    SQLITE_FOREIGN_KEY_FAILED,
    ConstraintRule,
    constraint_name,
    sqlite_check,
    sqlite_unique,
    translate,
)
from dsptracker.core.errors import DatabaseError, DuplicateError, FieldValue, NotFoundError, ObjectKind


class _PgError(Exception):
    """Shaped like asyncpg's UniqueViolationError."""

    def __init__(self, message, constraint_name):
        super().__init__(message)
        self.constraint_name = constraint_name


class _Diag:
    def __init__(self, constraint_name):
        self.constraint_name = constraint_name


class _PsycopgError(Exception):
    def __init__(self, message, constraint_name):
        super().__init__(message)
        self.diag = _Diag(constraint_name)


class _AdaptedError(Exception):
    """SQLAlchemy's asyncpg adapter re-raises with the driver error as __cause__."""


def _integrity_error(orig):
    return IntegrityError("INSERT ...", {}, orig)


RULES = [
    ConstraintRule(
        "saves_name_key",
        lambda: DuplicateError(ObjectKind.SAVE, FieldValue("name", "Main")),
        (sqlite_unique("saves.name"),),
    ),
    ConstraintRule(
        "solar_systems_save_id_fkey",
        lambda: NotFoundError(ObjectKind.SAVE, FieldValue("id", "x")),
        (SQLITE_FOREIGN_KEY_FAILED,),
    ),
]


def test_constraint_name_from_asyncpg_cause():
    adapted = _AdaptedError("duplicate key")
    adapted.__cause__ = _PgError("duplicate key", "saves_name_key")
    assert constraint_name(_integrity_error(adapted)) == "saves_name_key"


def test_constraint_name_from_psycopg_diag():
    err = _integrity_error(_PsycopgError("duplicate key", "saves_name_key"))
    assert constraint_name(err) == "saves_name_key"


def test_translate_by_name():
    err = _integrity_error(_PgError("violates foreign key", "solar_systems_save_id_fkey"))
    assert isinstance(translate(err, RULES), NotFoundError)


def test_reported_name_wins_over_message_text():
    # The message mentions saves.name but the driver names another constraint
    err = _integrity_error(_PgError("UNIQUE constraint failed: saves.name", "saves_pkey"))
    assert isinstance(translate(err, RULES), DatabaseError)


def test_translate_sqlite_messages():
    assert isinstance(translate(_integrity_error(Exception(sqlite_unique("saves.name"))), RULES), DuplicateError)
    assert isinstance(translate(_integrity_error(Exception(SQLITE_FOREIGN_KEY_FAILED)), RULES), NotFoundError)
    assert sqlite_check("positive_luminosity") == "CHECK constraint failed: positive_luminosity"


def test_unmapped_violation_is_a_database_error():
    err = _integrity_error(Exception(sqlite_check("positive_radius")))
    translated = translate(err, RULES)
    assert isinstance(translated, DatabaseError)
    assert translated.original is err
