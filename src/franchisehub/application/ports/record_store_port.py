from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class RecordStorePort(Protocol):
    """
    Generic keyed record store (collaborator contract).

    Records are plain dicts keyed by their "id" field. Filters are equality matches;
    a list/tuple/set/frozenset value means "field IN values".

    Implementations raise:
    - UniqueViolationError when a unique constraint rejects an insert/update
    - DependencyFailureError when the backend is unavailable
    """

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record (an id is assigned when missing) and return the stored copy."""

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a record by id, or None."""

    def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query records. Without order_by, records come back in insertion order;
        with order_by, ties keep insertion order.
        """

    def update(
        self,
        table: str,
        record_id: str,
        values: Mapping[str, Any],
        *,
        where: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Single-record conditional update:
        "update <values> where id=<record_id> and <where...>".

        Returns the updated record, or None when zero rows matched.
        """

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record; True when a row was removed."""
