"""In-process store speaking the supabase-py query builder dialect.

Used when STORE_BACKEND=memory (local development and the test-suite). It
covers the subset of PostgREST behaviour the services rely on: filtered
selects with ordering, inserts/updates/deletes that return the
affected rows, column defaults, unique constraints, and the `maybe_single()`
contract. Errors are raised as postgrest `APIError` so the
services handle both backends the same way.
"""
import copy
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from postgrest.exceptions import APIError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
NO_SINGLE_ROW = "PGRST116"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# Applied on insert when the column is absent; "*" applies to every table
COLUMN_DEFAULTS: Dict[str, Dict[str, Callable[[], Any]]] = {
    "*": {
        "id": lambda: str(uuid.uuid4()),
        "created_at": utcnow_iso,
    },
    "competition_participants": {
        "joined_at": utcnow_iso,
    },
}

UNIQUE_CONSTRAINTS: Dict[str, List[Tuple[str, ...]]] = {
    "users": [("email",)],
    "competition_participants": [("user_id", "competition_id")],
}


def _api_error(code: str, message: str, details: Optional[str] = None) -> APIError:
    return APIError({"code": code, "message": message, "details": details, "hint": None})


@dataclass
class MemoryResponse:
    data: Any
    count: Optional[int] = None


class MemoryQuery:
    """One chained request against a table; nothing happens until execute()"""

    def __init__(self, store: "InMemoryStore", table: str):
        self._store = store
        self._table = table
        self._action = "select"
        self._columns: Optional[List[str]] = None
        self._payload: Any = None
        self._filters: List[Tuple[str, str, Any]] = []
        self._order: List[Tuple[str, bool]] = []
        self._maybe_single = False

    # -- actions --------------------------------------------------------

    def select(self, *columns: str, count: Optional[str] = None) -> "MemoryQuery":
        self._action = "select"
        spec = ",".join(columns) if columns else "*"
        if "(" in spec:
            raise ValueError("Embedded resources are not supported by the memory store")
        names = [c.strip() for c in spec.split(",") if c.strip()]
        self._columns = None if "*" in names else names
        return self

    def insert(self, payload: Any) -> "MemoryQuery":
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, values: Dict[str, Any]) -> "MemoryQuery":
        self._action = "update"
        self._payload = values
        return self

    def delete(self) -> "MemoryQuery":
        self._action = "delete"
        return self

    # -- filters and modifiers -----------------------------------------

    def eq(self, column: str, value: Any) -> "MemoryQuery":
        self._filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "MemoryQuery":
        self._filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, desc: bool = False) -> "MemoryQuery":
        self._order.append((column, desc))
        return self

    def maybe_single(self) -> "MemoryQuery":
        self._maybe_single = True
        return self

    def execute(self) -> Optional[MemoryResponse]:
        return self._store._execute(self)

    # -- evaluation helpers --------------------------------------------

    def _matches(self, row: Dict[str, Any]) -> bool:
        for op, column, value in self._filters:
            current = row.get(column)
            if op == "eq" and current != value:
                return False
            if op == "in" and current not in value:
                return False
        return True

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self._columns is None:
            return copy.deepcopy(row)
        return {c: copy.deepcopy(row.get(c)) for c in self._columns}


class InMemoryStore:
    """Thread-safe dict-of-tables store"""

    def __init__(
        self,
        unique_constraints: Optional[Dict[str, List[Tuple[str, ...]]]] = None,
        column_defaults: Optional[Dict[str, Dict[str, Callable[[], Any]]]] = None,
    ):
        self._lock = threading.RLock()
        self._tables: Dict[str, List[Dict[str, Any]]] = {}
        self._unique = UNIQUE_CONSTRAINTS if unique_constraints is None else unique_constraints
        self._defaults = COLUMN_DEFAULTS if column_defaults is None else column_defaults

    def table(self, name: str) -> MemoryQuery:
        return MemoryQuery(self, name)

    # supabase-py exposes both spellings
    from_ = table

    def rows(self, name: str) -> List[Dict[str, Any]]:
        """Snapshot of a table, for assertions and scripts"""
        with self._lock:
            return copy.deepcopy(self._tables.get(name, []))

    def reset(self) -> None:
        with self._lock:
            self._tables.clear()

    # -- execution ------------------------------------------------------

    def _execute(self, query: MemoryQuery) -> Optional[MemoryResponse]:
        with self._lock:
            rows = self._tables.setdefault(query._table, [])
            if query._action == "insert":
                return MemoryResponse(data=self._insert(query._table, rows, query._payload))
            if query._action == "update":
                return MemoryResponse(data=self._update(rows, query))
            if query._action == "delete":
                removed = [r for r in rows if query._matches(r)]
                rows[:] = [r for r in rows if not query._matches(r)]
                return MemoryResponse(data=copy.deepcopy(removed))
            return self._select(rows, query)

    def _select(self, rows: List[Dict[str, Any]], query: MemoryQuery) -> Optional[MemoryResponse]:
        selected = [r for r in rows if query._matches(r)]
        for column, desc in reversed(query._order):
            present = [r for r in selected if r.get(column) is not None]
            missing = [r for r in selected if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            # PostgreSQL puts NULLs last ascending, first descending
            selected = missing + present if desc else present + missing
        data = [query._project(r) for r in selected]

        if query._maybe_single:
            if len(data) == 1:
                return MemoryResponse(data=data[0])
            if not data:
                return None
            raise _api_error(
                NO_SINGLE_ROW,
                "JSON object requested, multiple (or no) rows returned",
                f"The result contains {len(data)} rows",
            )
        return MemoryResponse(data=data, count=len(data))

    def _insert(self, table: str, rows: List[Dict[str, Any]], payload: Any) -> List[Dict[str, Any]]:
        records = payload if isinstance(payload, list) else [payload]
        prepared = []
        for record in records:
            row = dict(record)
            for defaults in (self._defaults.get("*", {}), self._defaults.get(table, {})):
                for column, factory in defaults.items():
                    if row.get(column) is None:
                        row[column] = factory()
            self._check_unique(table, rows + prepared, row)
            prepared.append(row)
        rows.extend(prepared)
        return copy.deepcopy(prepared)

    def _update(self, rows: List[Dict[str, Any]], query: MemoryQuery) -> List[Dict[str, Any]]:
        updated = []
        for row in rows:
            if query._matches(row):
                row.update(copy.deepcopy(query._payload))
                updated.append(copy.deepcopy(row))
        return updated

    def _check_unique(self, table: str, existing: Sequence[Dict[str, Any]], row: Dict[str, Any]) -> None:
        constraints = [("id",)] + list(self._unique.get(table, []))
        for columns in constraints:
            key = tuple(row.get(c) for c in columns)
            if any(v is None for v in key):
                continue
            if any(tuple(other.get(c) for c in columns) == key for other in existing):
                logger.debug(f"Unique violation on {table}{columns}")
                raise _api_error(
                    UNIQUE_VIOLATION,
                    f'duplicate key value violates unique constraint "{table}_{"_".join(columns)}_key"',
                    f"Key ({', '.join(columns)})=({', '.join(str(v) for v in key)}) already exists.",
                )
