import uuid

import pytest

from dsptracker.actions import saves, solar_systems, stars
from dsptracker.core.database import session_scope
from dsptracker.core.errors import (
    ConcurrentUpdateError,
    DatabaseError,
    DuplicateError,
    InvalidFieldValueError,
    NotFoundError,
    ObjectKind,
)
from dsptracker.models.database import SpectralClass
from dsptracker.schemas import (
    CreateSaveRequest,
    CreateSolarSystemRequest,
    CreateStarRequest,
    PageRead,
    SolarSystemRead,
    UpdateSolarSystemRequest,
)


async def _create_save(name="Main"):
    async with session_scope() as session:
        return await saves.create(session, CreateSaveRequest(name=name, mining_speed=100))


async def _create_system(save_id, name, notes=None):
    async with session_scope() as session:
        return await solar_systems.create(session, save_id, CreateSolarSystemRequest(name=name, notes=notes))


def test_create_and_lookup(run_db):
    async def scenario():
        save = await _create_save()
        created = await _create_system(save.id, "Sol", notes="home")
        async with session_scope() as session:
            return save, created, await solar_systems.lookup(session, created.id)

    save, created, found = run_db(scenario)
    assert created.version == 0
    assert found.save_id == save.id
    assert found.name == "Sol"
    assert found.notes == "home"


def test_create_under_unknown_save(run_db):
    missing = uuid.uuid4()

    async def scenario():
        with pytest.raises(NotFoundError) as exc_info:
            await _create_system(missing, "Sol")
        return exc_info.value

    err = run_db(scenario)
    assert err.object_kind is ObjectKind.SAVE
    assert err.keys[0].value == missing


def test_names_are_unique_within_a_save(run_db):
    async def scenario():
        first = await _create_save("First")
        second = await _create_save("Second")
        await _create_system(first.id, "Sol")
        with pytest.raises(DuplicateError) as exc_info:
            await _create_system(first.id, "Sol")
        other = await _create_system(second.id, "Sol")
        return exc_info.value, other

    err, other = run_db(scenario)
    assert err.object_kind is ObjectKind.SOLAR_SYSTEM
    assert [k.name for k in err.keys] == ["save_id", "name"]
    assert other.name == "Sol"


def test_update_and_concurrency(run_db):
    async def scenario():
        save = await _create_save()
        system = await _create_system(save.id, "Sol", notes="home")
        async with session_scope() as session:
            updated = await solar_systems.update(
                session, system.id, UpdateSolarSystemRequest(name="Sun"), expected_version=0
            )
        with pytest.raises(ConcurrentUpdateError) as exc_info:
            async with session_scope() as session:
                await solar_systems.update(
                    session, system.id, UpdateSolarSystemRequest(name="Helios"), expected_version=0
                )
        return updated, exc_info.value

    updated, err = run_db(scenario)
    assert updated.version == 1
    assert updated.name == "Sun"
    assert updated.notes == "home"
    assert err.to_error_response()["error_code"] == "ConcurrentUpdate"


def test_update_to_taken_name(run_db):
    async def scenario():
        save = await _create_save()
        await _create_system(save.id, "Sol")
        other = await _create_system(save.id, "Alpha")
        with pytest.raises(DuplicateError):
            async with session_scope() as session:
                await solar_systems.update(session, other.id, UpdateSolarSystemRequest(name="Sol"))

    run_db(scenario)


def test_delete_blocked_by_star(run_db):
    async def scenario():
        save = await _create_save()
        system = await _create_system(save.id, "Sol")
        async with session_scope() as session:
            star = await stars.create(
                session,
                system.id,
                CreateStarRequest(spectral_class=SpectralClass.CLASS_G, luminosity=1.0, radius=1.0),
            )
        with pytest.raises(DatabaseError) as exc_info:
            async with session_scope() as session:
                await solar_systems.delete(session, system.id)
        async with session_scope() as session:
            await stars.delete(session, star.id)
            await solar_systems.delete(session, system.id)
        async with session_scope() as session:
            return exc_info.value, await solar_systems.lookup_optional(session, system.id)

    err, remaining = run_db(scenario)
    assert err.is_internal
    assert remaining is None


def test_search_is_scoped_to_save_and_filters_by_word_prefix(run_db):
    async def scenario():
        save = await _create_save("First")
        other = await _create_save("Second")
        for name in ("Alpha Centauri", "Beta Hydri", "Sirius Alpha", "Alphard", "Epsilon_Eridani"):
            await _create_system(save.id, name)
        await _create_system(other.id, "Alpha Other")

        async with session_scope() as session:
            request = solar_systems.parse_page_request(sorts=["name"])
            everything = await solar_systems.search(session, save.id, request)
            alpha = await solar_systems.search(session, save.id, request, name="ALP")
            inner = await solar_systems.search(session, save.id, request, name="pha")
            literal = await solar_systems.search(session, save.id, request, name="epsilon_")
            wildcard = await solar_systems.search(session, save.id, request, name="%")
        return everything, alpha, inner, literal, wildcard

    everything, alpha, inner, literal, wildcard = run_db(scenario)
    assert everything.metadata.total_results == 5
    assert [s.name for s in alpha.data] == ["Alpha Centauri", "Alphard", "Sirius Alpha"]
    assert alpha.metadata.total_results == 3
    assert inner.data == []
    assert [s.name for s in literal.data] == ["Epsilon_Eridani"]
    assert wildcard.data == []


def test_search_page_converts_to_read_model(run_db):
    async def scenario():
        save = await _create_save()
        await _create_system(save.id, "Sol")
        async with session_scope() as session:
            return await solar_systems.search(session, save.id, solar_systems.parse_page_request())

    page = run_db(scenario)
    body = PageRead.from_page(page, SolarSystemRead).model_dump(mode="json")
    assert body["metadata"] == {
        "total_results": 1,
        "total_pages": 1,
        "current_page": 1,
        "next_page": None,
        "prev_page": None,
    }
    assert body["data"][0]["name"] == "Sol"
    assert body["data"][0]["version"] == 0


def test_name_filter_matches_after_any_whitespace(run_db):
    async def scenario():
        save = await _create_save()
        for name in ("Alpha\tCentauri", "Beta\nCeti", "Procyon"):
            await _create_system(save.id, name)
        async with session_scope() as session:
            request = solar_systems.parse_page_request(sorts=["name"])
            cen = await solar_systems.search(session, save.id, request, name="cen")
            dotted = await solar_systems.search(session, save.id, request, name="c.")
        return cen, dotted

    cen, dotted = run_db(scenario)
    assert [s.name for s in cen.data] == ["Alpha\tCentauri"]
    assert cen.metadata.total_results == 1
    # Regex metacharacters in the query are matched literally
    assert dotted.data == []


def test_search_sorts_by_save_fields(run_db):
    async def scenario():
        save = await _create_save("Main")
        for name in ("Sol", "Alpha", "Vega"):
            await _create_system(save.id, name)
        async with session_scope() as session:
            request = solar_systems.parse_page_request(sorts=["save.name", "SAVE.mining_speed:desc", "name:desc"])
            page = await solar_systems.search(session, save.id, request)
        return request, page

    request, page = run_db(scenario)
    assert [s.field for s in request.sorts] == ["save.name", "save.mining_speed", "name"]
    assert [s.name for s in page.data] == ["Vega", "Sol", "Alpha"]
    assert page.metadata.total_results == 3


def test_unknown_save_sort_field_is_rejected():
    with pytest.raises(InvalidFieldValueError) as exc_info:
        solar_systems.parse_page_request(sorts=["save.version"])
    assert exc_info.value.field.name == "sort:field"
    assert "save.mining_speed" in exc_info.value.allowed_values.values
