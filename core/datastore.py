"""
Datastore Contract

Row-oriented CRUD contract every repository depends on. The concrete
PostgreSQL implementation lives in ``core.postgres_client``; tests substitute
an in-memory implementation.

NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

Row = Dict[str, Any]


class DatastoreError(Exception):
    """Datastore rejected the operation (connectivity, constraint, syntax)"""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class UniqueViolationError(DatastoreError):
    """A unique constraint rejected the write"""
    pass


def matches_filters(row: Optional[Row], filters: Optional[Dict[str, Any]]) -> bool:
    """
    Equality filter semantics shared by all datastore implementations.

    A ``None`` filter value matches a NULL / missing column.
    """
    if not filters:
        return True
    if row is None:
        return False
    for column, expected in filters.items():
        if row.get(column) != expected:
            return False
    return True


@runtime_checkable
class DatastoreProtocol(Protocol):
    """
    Interface for the row-oriented datastore.

    Filters are column -> value equality maps combined with AND.
    """

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        *,
        columns: Optional[Sequence[str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Point and range reads"""
        ...

    async def select_one(self, table: str, filters: Dict[str, Any]) -> Optional[Row]:
        """Return the first matching row or None"""
        ...

    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored"""
        ...

    async def upsert(self, table: str, row: Row, conflict_columns: Sequence[str]) -> Row:
        """Insert or update on conflict and return the stored row"""
        ...

    async def update(self, table: str, filters: Dict[str, Any], patch: Row) -> List[Row]:
        """Apply a field-level patch and return the updated rows"""
        ...

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        """Delete matching rows and return the count"""
        ...


__all__ = [
    "Row",
    "DatastoreError",
    "UniqueViolationError",
    "DatastoreProtocol",
    "matches_filters",
]
