"""Generic repository interface.

``IRepository[T]`` is the base contract every module's repository
interface extends.  Services depend on these abstractions and receive the
Django implementations through their constructors, which keeps them
testable with ``MagicMock`` stand-ins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

from django.db import models

T = TypeVar("T", bound=models.Model)


class IRepository(ABC, Generic[T]):
    """Base repository contract.

    ``T`` is the aggregate root the repository manages (``Product``,
    ``Order``).  Aggregates in this system are never hard-deleted, so the
    contract has no ``delete``.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Return the entity or ``None`` for unknown or malformed ids."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[T]":
        """Return a lazily evaluated queryset, optionally filtered."""

    @abstractmethod
    def save(self, entity: T, update_fields: Optional[List[str]] = None) -> T:
        """Persist (create or update) an entity.

        ``update_fields`` limits an update to the named columns, leaving
        concurrent writes to the others intact.
        """
