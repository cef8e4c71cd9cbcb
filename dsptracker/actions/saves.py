"""Save operations: create, lookup, optimistic update, delete and paged search.

All functions run inside the caller's transaction (see
dsptracker.core.database.session_scope) and never commit themselves.
"""
from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import delete as sa_delete, func, insert, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from dsptracker.actions.constraints import ConstraintRule, execute, sqlite_check, sqlite_unique
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
from dsptracker.core.paging import Page, PageMetadata, PageRequest
from dsptracker.core.time_utils import utc_now
from dsptracker.models.database import Save
from dsptracker.schemas import CreateSaveRequest, UpdateSaveRequest

logger = logging.getLogger(__name__)

INITIAL_VERSION = 0
MIN_MINING_SPEED = 100

SORT_COLUMNS = {
    "id": Save.id,
    "created_at": Save.created_at,
    "name": Save.name,
    "notes": Save.notes,
    "mining_speed": Save.mining_speed,
}
DEFAULT_SORT = "created_at"


def _constraint_rules(save_id: uuid.UUID, name: Optional[str], mining_speed: Optional[int]) -> List[ConstraintRule]:
    return [
        ConstraintRule(
            "saves_pkey",
            lambda: DuplicateError(ObjectKind.SAVE, FieldValue("id", save_id)),
            (sqlite_unique("saves.id"),),
        ),
        ConstraintRule(
            "saves_name_key",
            lambda: DuplicateError(ObjectKind.SAVE, FieldValue("name", name)),
            (sqlite_unique("saves.name"),),
        ),
        ConstraintRule(
            "mining_speed_at_least_100",
            lambda: InvalidFieldValueError(
                FieldValue("mining_speed", mining_speed),
                AllowedValues.integer(min=Bound.including(MIN_MINING_SPEED)),
            ),
            (sqlite_check("mining_speed_at_least_100"),),
        ),
    ]


def parse_page_request(page: Optional[str] = None, size: Optional[str] = None, sorts: Iterable[str] = ()) -> PageRequest:
    return PageRequest.parse(page, size, sorts, fields=SORT_COLUMNS, default_field=DEFAULT_SORT)


async def create(session: AsyncSession, request: CreateSaveRequest) -> Save:
    save_id = uuid.uuid4()
    stmt = insert(Save).values(
        id=save_id,
        created_at=utc_now(),
        version=INITIAL_VERSION,
        name=request.name,
        notes=request.notes,
        mining_speed=request.mining_speed,
    )
    try:
        await execute(session, stmt, _constraint_rules(save_id, request.name, request.mining_speed))
    except TrackerError as exc:
        logger.error("Failed to create save %s: %s", request.name, exc)
        raise

    try:
        return await lookup(session, save_id)
    except NotFoundError as exc:
        raise exc.unexpected() from exc


async def lookup_optional(session: AsyncSession, save_id: uuid.UUID) -> Optional[Save]:
    stmt = select(Save).where(Save.id == save_id).limit(1).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def lookup(session: AsyncSession, save_id: uuid.UUID) -> Save:
    save = await lookup_optional(session, save_id)
    if save is None:
        raise NotFoundError(ObjectKind.SAVE, FieldValue("id", save_id))
    return save


async def update(
    session: AsyncSession,
    save_id: uuid.UUID,
    request: UpdateSaveRequest,
    expected_version: Optional[int] = None,
) -> Save:
    """Apply the fields present in `request`, bumping the version by one.

    Raises ConcurrentUpdateError when the stored version no longer matches
    `expected_version` (or the version read at the start of this call).
    """
    try:
        current = await lookup(session, save_id)
        version = current.version if expected_version is None else expected_version
        changes = request.changes()
        stmt = (
            sa_update(Save)
            .where(Save.id == save_id, Save.version == version)
            .values(updated_at=utc_now(), version=Save.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        result = await execute(
            session,
            stmt,
            _constraint_rules(save_id, changes.get("name"), changes.get("mining_speed")),
        )
        if result.rowcount == 0:
            raise ConcurrentUpdateError(ObjectKind.SAVE, FieldValue("id", save_id))
        return await lookup(session, save_id)
    except TrackerError as exc:
        logger.error("Failed to update save with id `%s`: %s", save_id, exc)
        raise


async def delete(session: AsyncSession, save_id: uuid.UUID) -> None:
    """Delete a save; its solar systems go with it (ON DELETE CASCADE)."""
    stmt = sa_delete(Save).where(Save.id == save_id).execution_options(synchronize_session=False)
    try:
        await execute(session, stmt)
    except TrackerError as exc:
        logger.error("Failed to delete save with id `%s`: %s", save_id, exc)
        raise


async def search(session: AsyncSession, page_request: PageRequest) -> Page[Save]:
    total = (await session.execute(select(func.count()).select_from(Save))).scalar_one()
    stmt = (
        select(Save)
        .order_by(*page_request.order_by(SORT_COLUMNS, DEFAULT_SORT), Save.id)
        .limit(page_request.size)
        .offset(page_request.offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return Page(list(rows), PageMetadata.build(page_request.page, page_request.size, int(total)))
