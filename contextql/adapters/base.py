from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..core.types import ColumnDescriptor, RelationshipDescriptor

Condition = Callable[[Any], Any]
ColumnPath = Tuple[str, ...]


class DataContext(ABC):
    """Handle on one table that the resolvers drive.

    Builder methods (``where``, ``include``, ``skip``, ``take``) must return a
    new context and leave the receiver untouched; the registered context is
    shared by every request.
    """

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Name of the underlying table."""

    @abstractmethod
    def get_schema(self) -> List[ColumnDescriptor]:
        """Describe the table's columns."""

    @abstractmethod
    def get_relationships(self) -> List[RelationshipDescriptor]:
        """Describe the declared relationship tree."""

    @abstractmethod
    def where(self, condition: Condition) -> 'DataContext':
        """Add ``condition(model)``; conditions are conjoined."""

    @abstractmethod
    def include(self, path: Sequence[str]) -> 'DataContext':
        """Load the relation chain ``path`` (e.g. ``("UserRoles", "Role")``)."""

    @abstractmethod
    def skip(self, count: int) -> 'DataContext':
        pass

    @abstractmethod
    def take(self, count: int) -> 'DataContext':
        pass

    @abstractmethod
    async def select(self, columns: Sequence[ColumnPath]) -> List[Dict[str, Any]]:
        """Fetch rows projected to ``columns``; relations nest as lists or dicts."""

    @abstractmethod
    async def insert(self, record: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Insert one record and return the stored row(s)."""

    @abstractmethod
    async def update(self, values: Dict[str, Any]) -> int:
        """Set ``values`` on every row matching the conditions; return the count."""

    @abstractmethod
    async def delete(self) -> int:
        """Delete every row matching the conditions; return the count."""
