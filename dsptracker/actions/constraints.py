"""Translate database integrity failures into TrackerError subclasses.

Postgres drivers report the violated constraint by name. SQLite only reports
the constrained columns (UNIQUE, NOT NULL), the constraint name (CHECK) or
nothing at all (FOREIGN KEY), so each rule carries the SQLite message text it
corresponds to as well.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dsptracker.core.errors import DatabaseError, TrackerError

logger = logging.getLogger(__name__)

SQLITE_FOREIGN_KEY_FAILED = "FOREIGN KEY constraint failed"


def sqlite_unique(*columns: str) -> str:
    return "UNIQUE constraint failed: " + ", ".join(columns)


def sqlite_check(name: str) -> str:
    return "CHECK constraint failed: " + name


def constraint_name(err: IntegrityError) -> Optional[str]:
    """Return the violated constraint's name when the driver exposes it.

    psycopg exposes it on `diag`; asyncpg on the exception SQLAlchemy's
    adapter wraps (`orig.__cause__`).
    """
    orig = getattr(err, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None)
        if name:
            return str(name)
        name = getattr(getattr(candidate, "diag", None), "constraint_name", None)
        if name:
            return str(name)
    return None


@dataclass(frozen=True)
class ConstraintRule:
    name: str
    build: Callable[[], TrackerError]
    sqlite_messages: Sequence[str] = field(default_factory=tuple)

    def matches(self, reported_name: Optional[str], message: str) -> bool:
        if reported_name:
            return reported_name == self.name
        return any(m in message for m in self.sqlite_messages)


def translate(err: IntegrityError, rules: Iterable[ConstraintRule]) -> TrackerError:
    """Map an IntegrityError onto the first matching rule, else DatabaseError."""
    reported = constraint_name(err)
    message = str(getattr(err, "orig", err))
    for rule in rules:
        if rule.matches(reported, message):
            return rule.build()
    logger.debug("Unmapped integrity error (constraint=%s): %s", reported, message)
    return DatabaseError(err)


async def execute(session: AsyncSession, statement, rules: Iterable[ConstraintRule] = ()):
    """Execute a write statement, converting driver errors into TrackerError."""
    try:
        return await session.execute(statement)
    except IntegrityError as exc:
        raise translate(exc, rules) from exc
    except DBAPIError as exc:
        raise DatabaseError(exc) from exc


__all__ = [
    "SQLITE_FOREIGN_KEY_FAILED",
    "sqlite_unique",
    "sqlite_check",
    "constraint_name",
    "ConstraintRule",
    "translate",
    "execute",
]
