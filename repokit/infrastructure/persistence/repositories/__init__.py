"""Concrete SQLAlchemy repository implementations."""

from .base import SqlRepository

__all__ = ["SqlRepository"]
