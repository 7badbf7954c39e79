"""Shared fixtures: a small country/city/town model on in-memory SQLite."""

from types import SimpleNamespace

import pytest
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.pool import StaticPool

from repokit.infrastructure.database import Base


class Country(Base):
    __tablename__ = "countries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50))

    cities: Mapped[list["City"]] = relationship(back_populates="country")


class City(Base):
    __tablename__ = "cities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    country_id: Mapped[int] = mapped_column(ForeignKey("countries.id"))

    country: Mapped["Country"] = relationship(back_populates="cities")
    towns: Mapped[list["Town"]] = relationship(back_populates="city")


class Town(Base):
    __tablename__ = "towns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    city_id: Mapped[int] = mapped_column(ForeignKey("cities.id"))

    city: Mapped["City"] = relationship(back_populates="towns")


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50))
    age: Mapped[int] = mapped_column(Integer)


class Route(Base):
    """Composite primary key."""

    __tablename__ = "routes"

    origin_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    destination_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    distance: Mapped[int] = mapped_column(Integer)


def _seed():
    countries = [Country(id=1, name="A"), Country(id=2, name="B")]
    cities = [
        City(id=i, name=name, country_id=country_id)
        for i, (name, country_id) in enumerate(
            [("A", 1), ("B", 2), ("C", 1), ("D", 2), ("E", 1), ("F", 2)], start=1
        )
    ]
    towns = [Town(id=i, name=name, city_id=i) for i, name in enumerate("ABCDEF", start=1)]
    customers = [
        Customer(name=name, age=age)
        for name, age in [("A", 1), ("B", 1), ("C", 2), ("D", 3), ("E", 4), ("F", 5)]
    ]
    routes = [
        Route(origin_id=1, destination_id=2, distance=10),
        Route(origin_id=1, destination_id=3, distance=25),
        Route(origin_id=2, destination_id=1, distance=10),
    ]
    return [*countries, *cities, *towns, *customers, *routes]


@pytest.fixture
def models():
    return SimpleNamespace(Country=Country, City=City, Town=Town, Customer=Customer, Route=Route)


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all(_seed())
        await session.commit()
    return factory


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
