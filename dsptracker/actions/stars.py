"""Star operations. A solar system holds at most one star."""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete as sa_delete, insert, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from dsptracker.actions.constraints import (
    SQLITE_FOREIGN_KEY_FAILED,
    ConstraintRule,
    execute,
    sqlite_check,
    sqlite_unique,
)
from dsptracker.core.errors import (
    AllowedValues,
    Bound,
    ConcurrentUpdateError,
    DuplicateError,
    FieldValue,
    InvalidFieldValueError,
    NotFoundError,
    ObjectKind,
    TrackerError,
)
from dsptracker.core.time_utils import utc_now
from dsptracker.models.database import Star
from dsptracker.schemas import CreateStarRequest, UpdateStarRequest

logger = logging.getLogger(__name__)

# The stars table's positive_radius check actually requires version > 0
INITIAL_VERSION = 1


def _constraint_rules(star_id: uuid.UUID, solar_system_id: uuid.UUID, luminosity: Optional[float]) -> List[ConstraintRule]:
    return [
        ConstraintRule(
            "stars_pkey",
            lambda: DuplicateError(ObjectKind.STAR, FieldValue("id", star_id)),
            (sqlite_unique("stars.id"),),
        ),
        ConstraintRule(
            "stars_solar_system_id_key",
            lambda: DuplicateError(ObjectKind.STAR, FieldValue("solar_system_id", solar_system_id)),
            (sqlite_unique("stars.solar_system_id"),),
        ),
        ConstraintRule(
            "stars_solar_system_id_fkey",
            lambda: NotFoundError(ObjectKind.SOLAR_SYSTEM, FieldValue("id", solar_system_id)),
            (SQLITE_FOREIGN_KEY_FAILED,),
        ),
        ConstraintRule(
            "positive_luminosity",
            lambda: InvalidFieldValueError(
                FieldValue("luminosity", luminosity),
                AllowedValues.number(min=Bound.excluding(0.0)),
            ),
            (sqlite_check("positive_luminosity"),),
        ),
    ]


async def create(session: AsyncSession, solar_system_id: uuid.UUID, request: CreateStarRequest) -> Star:
    star_id = uuid.uuid4()
    stmt = insert(Star).values(
        id=star_id,
        created_at=utc_now(),
        version=INITIAL_VERSION,
        solar_system_id=solar_system_id,
        spectral_class=request.spectral_class,
        luminosity=request.luminosity,
        radius=request.radius,
    )
    try:
        await execute(session, stmt, _constraint_rules(star_id, solar_system_id, request.luminosity))
    except TrackerError as exc:
        logger.error("Failed to create star for solar system `%s`: %s", solar_system_id, exc)
        raise

    try:
        return await lookup(session, star_id)
    except NotFoundError as exc:
        raise exc.unexpected() from exc


async def lookup_optional(session: AsyncSession, star_id: uuid.UUID) -> Optional[Star]:
    stmt = select(Star).where(Star.id == star_id).limit(1).execution_options(populate_existing=True)
    return (await session.execute(stmt)).scalar_one_or_none()


async def lookup(session: AsyncSession, star_id: uuid.UUID) -> Star:
    star = await lookup_optional(session, star_id)
    if star is None:
        raise NotFoundError(ObjectKind.STAR, FieldValue("id", star_id))
    return star


async def lookup_by_solar_system_id(session: AsyncSession, solar_system_id: uuid.UUID) -> Star:
    stmt = (
        select(Star)
        .where(Star.solar_system_id == solar_system_id)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    star = (await session.execute(stmt)).scalar_one_or_none()
    if star is None:
        raise NotFoundError(ObjectKind.STAR, FieldValue("solar_system_id", solar_system_id))
    return star


async def update(
    session: AsyncSession,
    star_id: uuid.UUID,
    request: UpdateStarRequest,
    expected_version: Optional[int] = None,
) -> Star:
    try:
        current = await lookup(session, star_id)
        version = current.version if expected_version is None else expected_version
        changes = request.changes()
        stmt = (
            sa_update(Star)
            .where(Star.id == star_id, Star.version == version)
            .values(updated_at=utc_now(), version=Star.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        rules = _constraint_rules(star_id, current.solar_system_id, changes.get("luminosity"))
        result = await execute(session, stmt, rules)
        if result.rowcount == 0:
            raise ConcurrentUpdateError(ObjectKind.STAR, FieldValue("id", star_id))
        return await lookup(session, star_id)
    except TrackerError as exc:
        logger.error("Failed to update star with id `%s`: %s", star_id, exc)
        raise


async def delete(session: AsyncSession, star_id: uuid.UUID) -> None:
    stmt = sa_delete(Star).where(Star.id == star_id).execution_options(synchronize_session=False)
    try:
        await execute(session, stmt)
    except TrackerError as exc:
        logger.error("Failed to delete star with id `%s`: %s", star_id, exc)
        raise
