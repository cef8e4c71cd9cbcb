"""Solar system operations, scoped to the owning save."""
from __future__ import annotations

import logging
import re
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import delete as sa_delete, func, insert, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from dsptracker.actions import saves
from dsptracker.actions.constraints import (
    SQLITE_FOREIGN_KEY_FAILED,
    ConstraintRule,
    execute,
    sqlite_unique,
)
from dsptracker.core.errors import (
    ConcurrentUpdateError,
    DuplicateError,
    FieldValue,
    NotFoundError,
    ObjectKind,
    TrackerError,
)
from dsptracker.core.paging import Page, PageMetadata, PageRequest
from dsptracker.core.time_utils import utc_now
from dsptracker.models.database import Save, SolarSystem
from dsptracker.schemas import CreateSolarSystemRequest, UpdateSolarSystemRequest

logger = logging.getLogger(__name__)

INITIAL_VERSION = 0

SORT_COLUMNS = {
    "id": SolarSystem.id,
    "created_at": SolarSystem.created_at,
    "name": SolarSystem.name,
    "notes": SolarSystem.notes,
}
# Fields of the owning save, sortable as `save.<field>`
SAVE_SORT_PREFIX = "save."
SORT_COLUMNS.update({SAVE_SORT_PREFIX + name: column for name, column in saves.SORT_COLUMNS.items()})
DEFAULT_SORT = "created_at"


def _constraint_rules(solar_system_id: uuid.UUID, save_id: uuid.UUID, name: Optional[str]) -> List[ConstraintRule]:
    return [
        ConstraintRule(
            "solar_systems_pkey",
            lambda: DuplicateError(ObjectKind.SOLAR_SYSTEM, FieldValue("id", solar_system_id)),
            (sqlite_unique("solar_systems.id"),),
        ),
        ConstraintRule(
            "solar_systems_save_id_name_key",
            lambda: DuplicateError(
                ObjectKind.SOLAR_SYSTEM,
                [FieldValue("save_id", save_id), FieldValue("name", name)],
            ),
            (sqlite_unique("solar_systems.save_id", "solar_systems.name"),),
        ),
        ConstraintRule(
            "solar_systems_save_id_fkey",
            lambda: NotFoundError(ObjectKind.SAVE, FieldValue("id", save_id)),
            (SQLITE_FOREIGN_KEY_FAILED,),
        ),
    ]


def parse_page_request(page: Optional[str] = None, size: Optional[str] = None, sorts: Iterable[str] = ()) -> PageRequest:
    return PageRequest.parse(page, size, sorts, fields=SORT_COLUMNS, default_field=DEFAULT_SORT)


def _name_filter(name: str):
    """Case-insensitive match of `name` at the start of any word of the system name."""
    return SolarSystem.name.regexp_match(r"(^|\s)" + re.escape(name), flags="i")


async def create(session: AsyncSession, save_id: uuid.UUID, request: CreateSolarSystemRequest) -> SolarSystem:
    solar_system_id = uuid.uuid4()
    stmt = insert(SolarSystem).values(
        id=solar_system_id,
        created_at=utc_now(),
        version=INITIAL_VERSION,
        save_id=save_id,
        name=request.name,
        notes=request.notes,
    )
    try:
        await execute(session, stmt, _constraint_rules(solar_system_id, save_id, request.name))
    except TrackerError as exc:
        logger.error("Failed to create solar system %s: %s", request.name, exc)
        raise

    try:
        return await lookup(session, solar_system_id)
    except NotFoundError as exc:
        raise exc.unexpected() from exc


async def lookup_optional(session: AsyncSession, solar_system_id: uuid.UUID) -> Optional[SolarSystem]:
    stmt = (
        select(SolarSystem)
        .where(SolarSystem.id == solar_system_id)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def lookup(session: AsyncSession, solar_system_id: uuid.UUID) -> SolarSystem:
    solar_system = await lookup_optional(session, solar_system_id)
    if solar_system is None:
        raise NotFoundError(ObjectKind.SOLAR_SYSTEM, FieldValue("id", solar_system_id))
    return solar_system


async def update(
    session: AsyncSession,
    solar_system_id: uuid.UUID,
    request: UpdateSolarSystemRequest,
    expected_version: Optional[int] = None,
) -> SolarSystem:
    try:
        current = await lookup(session, solar_system_id)
        version = current.version if expected_version is None else expected_version
        changes = request.changes()
        stmt = (
            sa_update(SolarSystem)
            .where(SolarSystem.id == solar_system_id, SolarSystem.version == version)
            .values(updated_at=utc_now(), version=SolarSystem.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        rules = _constraint_rules(solar_system_id, current.save_id, changes.get("name", current.name))
        result = await execute(session, stmt, rules)
        if result.rowcount == 0:
            raise ConcurrentUpdateError(ObjectKind.SOLAR_SYSTEM, FieldValue("id", solar_system_id))
        return await lookup(session, solar_system_id)
    except TrackerError as exc:
        logger.error("Failed to update solar system with id `%s`: %s", solar_system_id, exc)
        raise


async def delete(session: AsyncSession, solar_system_id: uuid.UUID) -> None:
    """Delete a solar system.

    Stars have no ON DELETE rule, so this raises DatabaseError while a star
    still references the system.
    """
    stmt = (
        sa_delete(SolarSystem)
        .where(SolarSystem.id == solar_system_id)
        .execution_options(synchronize_session=False)
    )
    try:
        await execute(session, stmt)
    except TrackerError as exc:
        logger.error("Failed to delete solar system with id `%s`: %s", solar_system_id, exc)
        raise


async def search(
    session: AsyncSession,
    save_id: uuid.UUID,
    page_request: PageRequest,
    name: Optional[str] = None,
) -> Page[SolarSystem]:
    conditions = [SolarSystem.save_id == save_id]
    if name:
        conditions.append(_name_filter(name))

    total = (
        await session.execute(select(func.count()).select_from(SolarSystem).where(*conditions))
    ).scalar_one()
    stmt = select(SolarSystem).where(*conditions)
    if any(sort.field.startswith(SAVE_SORT_PREFIX) for sort in page_request.sorts):
        stmt = stmt.outerjoin(Save, Save.id == SolarSystem.save_id)
    stmt = (
        stmt
        .order_by(*page_request.order_by(SORT_COLUMNS, DEFAULT_SORT), SolarSystem.id)
        .limit(page_request.size)
        .offset(page_request.offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return Page(list(rows), PageMetadata.build(page_request.page, page_request.size, int(total)))
