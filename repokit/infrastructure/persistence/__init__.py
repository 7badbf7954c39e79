"""SQLAlchemy persistence: page source, generic repository and unit of work."""

from .query import SqlPageSource, apply_criteria, build_order_by, key_predicate, key_schema_for
from .repositories import SqlRepository
from .unit_of_work import SqlUnitOfWork, get_unit_of_work

__all__ = [
    "SqlPageSource",
    "SqlRepository",
    "SqlUnitOfWork",
    "apply_criteria",
    "build_order_by",
    "get_unit_of_work",
    "key_predicate",
    "key_schema_for",
]
