"""Tests for SqlUnitOfWork and the get_unit_of_work() factory."""

from unittest.mock import AsyncMock

import pytest

from repokit.domain.exceptions import RepositoryNotRegisteredError
from repokit.domain.models import Sort
from repokit.infrastructure.persistence.repositories import SqlRepository
from repokit.infrastructure.persistence.unit_of_work import SqlUnitOfWork, get_unit_of_work


@pytest.fixture
def uow(session, models):
    return get_unit_of_work(session, [models.Country, models.City, models.Customer])


# --- registry ---

def test_repositories_built_for_every_entity(uow, models):
    assert set(uow.repositories) == {models.Country, models.City, models.Customer}
    assert all(isinstance(r, SqlRepository) for r in uow.repositories.values())


def test_get_repository_returns_the_same_instance(uow, models):
    assert uow.get_repository(models.City) is uow.get_repository(models.City)


def test_get_repository_for_unregistered_type_raises(uow, models):
    with pytest.raises(RepositoryNotRegisteredError) as excinfo:
        uow.get_repository(models.Town)
    assert excinfo.value.entity_type is models.Town


def test_unregistered_type_error_is_a_lookup_error(uow, models):
    with pytest.raises(LookupError):
        uow.get_repository(models.Route)


def test_registry_is_read_only(uow, models):
    with pytest.raises(TypeError):
        uow.repositories[models.Town] = object()  # type: ignore[index]


def test_custom_repository_factory(session, models):
    class CityRepository(SqlRepository):
        model = models.City

    uow = get_unit_of_work(session, [models.Country], {models.City: CityRepository})
    assert isinstance(uow.get_repository(models.City), CityRepository)
    assert type(uow.get_repository(models.Country)) is SqlRepository


def test_plain_iterable_of_entity_types(session, models):
    uow = SqlUnitOfWork(session, [models.Town])
    assert uow.get_repository(models.Town).model is models.Town


def test_repositories_share_the_unit_of_work_session(uow, session):
    assert uow.session is session
    assert all(r._session is session for r in uow.repositories.values())


# --- save_changes ---

async def test_save_changes_persists_inserts(uow, session_factory, models):
    countries = uow.get_repository(models.Country)
    await countries.insert(
        models.Country(id=100, name="Country 100"),
        models.Country(id=101, name="Country 101"),
        models.Country(id=102, name="Country 102"),
    )
    assert await uow.save_changes() == 3

    async with session_factory() as other:
        assert await SqlRepository(other, models.Country).count() == 5


async def test_save_changes_with_mixed_operations(uow, session_factory, models):
    customers = uow.get_repository(models.Customer)
    existing = await customers.get_all(order=Sort.by("id"))
    existing[0].name = "Customer 1"
    await customers.insert(models.Customer(name="G", age=6), models.Customer(name="H", age=7))
    await customers.update(existing[0])
    await customers.delete_by_id(existing[-1].id)
    await uow.save_changes()

    async with session_factory() as other:
        repo = SqlRepository(other, models.Customer)
        names = [c.name for c in await repo.get_all(order=Sort.by("id"))]
    assert names == ["Customer 1", "B", "C", "D", "E", "G", "H"]


async def test_rollback_discards_staged_changes(uow, models):
    countries = uow.get_repository(models.Country)
    await countries.insert(models.Country(id=200, name="Temporary"))
    await uow.rollback()
    assert await countries.count() == 2


async def test_save_changes_with_commits_every_unit(session_factory, models):
    async with session_factory() as first_session, session_factory() as second_session:
        first = get_unit_of_work(first_session, [models.Country])
        second = get_unit_of_work(second_session, [models.Customer])
        await first.get_repository(models.Country).insert(models.Country(id=300, name="X"))
        await second.get_repository(models.Customer).insert(models.Customer(name="Z", age=9))

        assert await first.save_changes_with(second) == 2

    async with session_factory() as check:
        assert await SqlRepository(check, models.Country).count() == 3
        assert await SqlRepository(check, models.Customer).count() == 7


async def test_save_changes_with_rolls_back_when_a_flush_fails(models):
    failing = SqlUnitOfWork(_mock_session(flush_error=RuntimeError("constraint")), [])
    healthy_session = _mock_session()
    healthy = SqlUnitOfWork(healthy_session, [])

    with pytest.raises(RuntimeError, match="constraint"):
        await healthy.save_changes_with(failing)

    healthy_session.commit.assert_not_awaited()
    healthy_session.rollback.assert_awaited_once()


async def test_save_changes_with_only_rolls_back_uncommitted_units():
    committed_session = _mock_session()
    failing_session = _mock_session(commit_error=RuntimeError("lost connection"))
    committed = SqlUnitOfWork(committed_session, [])
    failing = SqlUnitOfWork(failing_session, [])

    with pytest.raises(RuntimeError):
        await failing.save_changes_with(committed)

    committed_session.rollback.assert_not_awaited()
    failing_session.rollback.assert_awaited_once()


async def test_save_changes_with_keeps_rolling_back_when_a_rollback_fails():
    failing = SqlUnitOfWork(_mock_session(flush_error=RuntimeError("constraint")), [])
    broken_session = _mock_session()
    broken_session.rollback.side_effect = OSError("connection gone")
    broken = SqlUnitOfWork(broken_session, [])
    healthy_session = _mock_session()
    healthy = SqlUnitOfWork(healthy_session, [])

    with pytest.raises(RuntimeError, match="constraint"):
        await healthy.save_changes_with(failing, broken)

    broken_session.rollback.assert_awaited_once()
    healthy_session.rollback.assert_awaited_once()


def _mock_session(flush_error=None, commit_error=None):
    session = AsyncMock()
    session.new, session.dirty, session.deleted = [object()], [], []
    if flush_error is not None:
        session.flush.side_effect = flush_error
    if commit_error is not None:
        session.commit.side_effect = commit_error
    return session


# --- transactions and raw SQL ---

async def test_begin_transaction_commits_on_success(session_factory, models):
    async with session_factory() as session:
        uow = get_unit_of_work(session, [models.Country])
        async with uow.begin_transaction():
            await uow.get_repository(models.Country).insert(models.Country(id=400, name="T"))

    async with session_factory() as check:
        assert await SqlRepository(check, models.Country).find(400) is not None


async def test_begin_transaction_rolls_back_on_error(session_factory, models):
    async with session_factory() as session:
        uow = get_unit_of_work(session, [models.Country])
        with pytest.raises(ValueError):
            async with uow.begin_transaction():
                await uow.get_repository(models.Country).insert(models.Country(id=401, name="T"))
                await session.flush()
                raise ValueError("abort")

    async with session_factory() as check:
        assert await SqlRepository(check, models.Country).find(401) is None


async def test_begin_transaction_after_a_read_commits(session_factory, models):
    async with session_factory() as session:
        uow = get_unit_of_work(session, [models.Country])
        countries = uow.get_repository(models.Country)
        assert await countries.count() == 2
        async with uow.begin_transaction():
            await countries.insert(models.Country(id=402, name="T"))
            assert await countries.count() == 3
        assert not session.in_transaction()

    async with session_factory() as check:
        assert await SqlRepository(check, models.Country).find(402) is not None


async def test_begin_transaction_after_a_read_rolls_back_on_error(session_factory, models):
    async with session_factory() as session:
        uow = get_unit_of_work(session, [models.Country])
        countries = uow.get_repository(models.Country)
        await countries.count()
        with pytest.raises(ValueError):
            async with uow.begin_transaction():
                await countries.insert(models.Country(id=403, name="T"))
                await session.flush()
                raise ValueError("abort")

    async with session_factory() as check:
        assert await SqlRepository(check, models.Country).find(403) is None


async def test_paging_inside_transaction_is_consistent(session_factory, models):
    async with session_factory() as session:
        uow = get_unit_of_work(session, [models.Customer])
        async with uow.begin_transaction():
            page = await uow.get_repository(models.Customer).get_paged_list(
                order=Sort.by("id"), page_index=1, page_size=4
            )
    assert page.total_count == 6
    assert len(page.items) == 2


async def test_execute_sql_command_returns_rowcount(uow, models):
    affected = await uow.execute_sql_command("UPDATE customers SET age = age + 1 WHERE age > :age", age=2)
    assert affected == 3


async def test_from_sql_through_registered_repository(uow, models):
    rows = await uow.from_sql(models.Country, "SELECT * FROM countries WHERE name = :name", name="B")
    assert [c.id for c in rows] == [2]


async def test_from_sql_for_unregistered_type_raises(uow, models):
    with pytest.raises(RepositoryNotRegisteredError):
        await uow.from_sql(models.Town, "SELECT * FROM towns")


# --- lifecycle ---

async def test_context_manager_closes_session(models):
    session = _mock_session()
    async with SqlUnitOfWork(session, []) as uow:
        pass
    session.close.assert_awaited_once()
    assert dict(uow.repositories) == {}


async def test_close_is_idempotent():
    session = _mock_session()
    uow = SqlUnitOfWork(session, [])
    await uow.close()
    await uow.close()
    session.close.assert_awaited_once()
