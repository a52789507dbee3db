"""
Database access for the Azik API.

Two interchangeable stores expose the same ``execute_query`` call:

* ``SupabaseDatabase`` talks to the Supabase (PostgREST) tables described in
  ``sql/schema.sql``.
* ``InMemoryDatabase`` keeps rows in dictionaries for development and tests and
  enforces the same unique constraints as the SQL schema.

Filters are a mapping of column to value. A plain value means equality; a
single-key dict selects an operator: ``{"in": [...]}``, ``{"neq": v}``,
``{"lt": v}`` or ``{"eq": v}``. Updates and deletes only touch rows matching
every filter and return the affected rows, so an update filtered on the
current status doubles as a compare-and-swap.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from postgrest.exceptions import APIError
from supabase import Client, create_client

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

UNIQUE_CONSTRAINTS: Dict[str, List[Tuple[str, ...]]] = {
    "users": [("email",), ("phone",)],
    "exchange_offers": [("listing_id", "offerer_id")],
    "email_verifications": [("token",)],
}


class DuplicateKeyError(Exception):
    """Raised when an insert would violate a unique constraint."""

    def __init__(self, table: str, columns: Iterable[str] = ()):
        self.table = table
        self.columns = tuple(columns)
        super().__init__(f"Duplicate key in {table} ({', '.join(self.columns) or 'unknown'})")


class Database(Protocol):
    """Interface shared by the Supabase and in-memory stores."""

    async def execute_query(
        self,
        table: str,
        query_type: str,
        data: Optional[Dict[str, Any]] = None,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Dict[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        ...


def _split_filter(value: Any) -> Tuple[str, Any]:
    if isinstance(value, dict):
        if len(value) != 1:
            raise ValueError(f"Filter operators must have exactly one key: {value}")
        return next(iter(value.items()))
    return "eq", value


def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    for key, value in (filters or {}).items():
        operator, operand = _split_filter(value)
        current = row.get(key)
        if operator == "eq":
            if current != operand:
                return False
        elif operator == "neq":
            if current == operand:
                return False
        elif operator == "in":
            if current not in operand:
                return False
        elif operator == "lt":
            if current is None or not current < operand:
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {operator}")
    return True


class InMemoryDatabase:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tables.clear()

    def _table(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self.tables.setdefault(name, {})

    def _check_unique(self, table: str, row: Dict[str, Any]) -> None:
        for columns in UNIQUE_CONSTRAINTS.get(table, []):
            values = tuple(row.get(column) for column in columns)
            if any(value is None for value in values):
                continue
            for existing in self._table(table).values():
                if existing["id"] == row["id"]:
                    continue
                if tuple(existing.get(column) for column in columns) == values:
                    raise DuplicateKeyError(table, columns)

    # Every branch runs without awaiting, so each call is atomic on the event loop.
    async def execute_query(
        self,
        table: str,
        query_type: str,
        data: Optional[Dict[str, Any]] = None,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Dict[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        rows = self._table(table)

        if query_type == "select":
            result = [dict(row) for row in rows.values() if _matches(row, filters)]
            for key, direction in reversed(list((order_by or {}).items())):
                result.sort(key=lambda item: item.get(key) or "", reverse=direction.lower() == "desc")
            result = result[offset:]
            if limit is not None:
                result = result[:limit]
            return result

        if query_type == "insert":
            if not data:
                raise ValueError("Data is required for insert operations")
            row = dict(data)
            row.setdefault("id", str(uuid.uuid4()))
            if row["id"] in rows:
                raise DuplicateKeyError(table, ("id",))
            self._check_unique(table, row)
            rows[row["id"]] = row
            return [dict(row)]

        if query_type == "update":
            if not data:
                raise ValueError("Data is required for update operations")
            if not filters:
                raise ValueError("Filters are required for update operations")
            matched = [row for row in rows.values() if _matches(row, filters)]
            for row in matched:
                self._check_unique(table, {**row, **data})
            for row in matched:
                row.update(data)
            return [dict(row) for row in matched]

        if query_type == "delete":
            if not filters:
                raise ValueError("Filters are required for delete operations")
            matched = [row_id for row_id, row in rows.items() if _matches(row, filters)]
            return [rows.pop(row_id) for row_id in matched]

        raise ValueError(f"Invalid query type: {query_type}")


class SupabaseDatabase:
    """Supabase-backed store using the PostgREST query builder."""

    def __init__(self, url: str, key: str):
        self.client: Client = create_client(url, key)
        logger.info("Supabase client created for %s", url)

    @staticmethod
    def _apply_filters(query, filters: Optional[Dict[str, Any]]):
        for key, value in (filters or {}).items():
            operator, operand = _split_filter(value)
            if operator == "eq":
                query = query.is_(key, "null") if operand is None else query.eq(key, operand)
            elif operator == "neq":
                query = query.neq(key, operand)
            elif operator == "in":
                query = query.in_(key, list(operand))
            elif operator == "lt":
                query = query.lt(key, operand)
            else:
                raise ValueError(f"Unsupported filter operator: {operator}")
        return query

    async def execute_query(
        self,
        table: str,
        query_type: str,
        data: Optional[Dict[str, Any]] = None,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Dict[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        logger.debug("Executing %s on table %s with filters %s", query_type, table, filters)
        query = self.client.table(table)

        try:
            if query_type == "select":
                # An empty "in" list matches nothing; PostgREST rejects "in.()"
                for value in (filters or {}).values():
                    operator, operand = _split_filter(value)
                    if operator == "in" and not operand:
                        return []
                query = self._apply_filters(query.select("*"), filters)
                for key, direction in (order_by or {}).items():
                    query = query.order(key, desc=direction.lower() == "desc")
                if limit is not None:
                    return query.range(offset, offset + limit - 1).execute().data
                return query.execute().data[offset:]

            if query_type == "insert":
                if not data:
                    raise ValueError("Data is required for insert operations")
                return query.insert(data).execute().data

            if query_type == "update":
                if not data:
                    raise ValueError("Data is required for update operations")
                if not filters:
                    raise ValueError("Filters are required for update operations")
                return self._apply_filters(query.update(data), filters).execute().data

            if query_type == "delete":
                if not filters:
                    raise ValueError("Filters are required for delete operations")
                return self._apply_filters(query.delete(), filters).execute().data

        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateKeyError(table) from e
            logger.error("Error executing %s on table %s: %s", query_type, table, e.message)
            raise

        raise ValueError(f"Invalid query type: {query_type}")


def build_database(settings) -> Database:
    """Pick the Supabase store when credentials are configured, else the in-memory one."""
    if settings.use_supabase:
        return SupabaseDatabase(settings.supabase_url, settings.supabase_key)
    logger.warning("Supabase credentials not set - using the in-memory database")
    return InMemoryDatabase()
