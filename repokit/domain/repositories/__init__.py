"""Domain repository interfaces.

Both abstractions are defined with abc.ABC and @abstractmethod.  The
SQLAlchemy implementations live in repokit/infrastructure/persistence/.
"""

from .base import Repository
from .unit_of_work import UnitOfWork

__all__ = ["Repository", "UnitOfWork"]
