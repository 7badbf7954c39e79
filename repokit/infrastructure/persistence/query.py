"""SQLAlchemy compilation of query descriptions and the SQL-backed PageSource."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, and_, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.domain.exceptions import InvalidArgumentError
from repokit.domain.models.query import KeyField, KeySchema, Sort


def key_schema_for(model: type) -> KeySchema:
    """Describe the mapped primary key of model, in column order."""
    mapper = inspect(model)
    columns = []
    for column in mapper.primary_key:
        try:
            python_type: type | None = column.type.python_type
        except NotImplementedError:
            python_type = None
        name = mapper.get_property_by_column(column).key
        columns.append(KeyField(name=name, python_type=python_type))
    return KeySchema(columns=tuple(columns))


def key_predicate(model: type, schema: KeySchema, key_values: Sequence[Any]) -> Any:
    """AND of column == value for every primary-key column."""
    values = schema.check_arity(key_values)
    return and_(*(getattr(model, name) == value for name, value in zip(schema.names, values)))


def _column_for(model: type, field: Any) -> Any:
    if not isinstance(field, str):
        return field
    if "." in field:
        raise InvalidArgumentError(
            f"Cannot order {model.__name__} by related attribute {field!r}; pass the column instead"
        )
    column = getattr(model, field, None)
    if column is None:
        raise InvalidArgumentError(f"{model.__name__} has no attribute {field!r}")
    return column


def build_order_by(model: type, sort: Sort | None) -> list[Any]:
    """ORDER BY clauses for sort, in priority order; empty when sort is empty."""
    if not sort:
        return []
    clauses = []
    for key in sort.keys:
        column = _column_for(model, key.field)
        clauses.append(column.desc() if key.descending else column.asc())
    return clauses


def apply_criteria(
    stmt: Select[Any],
    model: type,
    predicate: Any = None,
    order: Sort | None = None,
) -> Select[Any]:
    """Add WHERE and ORDER BY to stmt.

    predicate is a boolean SQL expression or a sequence of them (AND-ed).
    """
    if predicate is not None:
        if isinstance(predicate, (list, tuple)):
            stmt = stmt.where(*predicate)
        else:
            stmt = stmt.where(predicate)
    clauses = build_order_by(model, order)
    if clauses:
        stmt = stmt.order_by(*clauses)
    return stmt


class SqlPageSource:
    """PageSource backed by a SELECT executed on an AsyncSession.

    Loader options (include hints) are attached to row-fetching queries only;
    the COUNT runs over the bare filtered statement so eager joins cannot
    change the total.
    """

    def __init__(
        self,
        session: AsyncSession,
        stmt: Select[Any],
        include: Sequence[Any] = (),
    ) -> None:
        self._session = session
        self._stmt = stmt
        self._include = tuple(include)

    @property
    def statement(self) -> Select[Any]:
        return self._stmt

    def _rows_statement(self) -> Select[Any]:
        if self._include:
            return self._stmt.options(*self._include)
        return self._stmt

    async def _materialize(self, stmt: Select[Any]) -> list[Any]:
        result = await self._session.execute(stmt)
        # one entry per selected ORM entity or column expression
        if len(stmt.column_descriptions) != 1:
            return list(result.all())
        scalars = result.scalars()
        # joined eager loads of collections repeat the parent row
        if self._include:
            scalars = scalars.unique()
        return list(scalars.all())

    async def count(self) -> int:
        count_stmt = select(func.count()).select_from(self._stmt.order_by(None).subquery())
        result = await self._session.execute(count_stmt)
        return result.scalar_one()

    async def fetch(self, offset: int, limit: int) -> list[Any]:
        return await self._materialize(self._rows_statement().offset(offset).limit(limit))

    async def all(self) -> list[Any]:
        return await self._materialize(self._rows_statement())
