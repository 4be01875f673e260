"""Fake in-memory Supabase client for session and API testing.

Implements the slice of the query builder the table modules use
(select / eq / order / limit / insert / update / execute). Writes publish
change events to an optional in-process feed the way Supabase realtime would.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from app.core.realtime import ChangeEvent, InMemoryChangeFeed

_CLOCK_START = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@dataclass
class FakeResult:
    data: List[Dict[str, Any]] = field(default_factory=list)


def _same(left: Any, right: Any) -> bool:
    return left == right or str(left) == str(right)


class FakeQuery:
    """One chained query against a table."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.filters: List[tuple[str, Any]] = []
        self.ordering: List[tuple[str, bool]] = []
        self.row_limit: int | None = None
        self.operation = "select"
        self.payload: Any = None

    def select(self, *columns: str) -> "FakeQuery":
        self.operation = "select"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.ordering.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.row_limit = count
        return self

    def insert(self, payload: Dict[str, Any] | List[Dict[str, Any]]) -> "FakeQuery":
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, patch: Dict[str, Any]) -> "FakeQuery":
        self.operation = "update"
        self.payload = patch
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [r for r in rows if all(_same(r.get(c), v) for c, v in self.filters)]

    def execute(self) -> FakeResult:
        if self.table_name in self.db.failing_tables:
            raise RuntimeError(f"{self.table_name} unavailable")

        if self.operation == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResult(data=[self.db.insert_row(self.table_name, row) for row in payload])

        if self.operation == "update":
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
                self.db.publish(self.table_name, "UPDATE", row)
            return FakeResult(data=updated)

        rows = [dict(r) for r in self._matching()]
        for column, desc in reversed(self.ordering):
            rows.sort(key=lambda r: (r.get(column) is not None, r.get(column) or ""), reverse=desc)
        if self.row_limit is not None:
            rows = rows[: self.row_limit]
        return FakeResult(data=rows)


class FakeSupabase:
    """In-memory stand-in for the Supabase client."""

    def __init__(self, feed: InMemoryChangeFeed | None = None):
        self.feed = feed
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_tables: set[str] = set()
        self._next_ids: Dict[str, int] = {}
        self._ticks = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def now(self) -> str:
        """Monotonic fake clock so created_at ordering is deterministic."""
        self._ticks += 1
        return (_CLOCK_START + timedelta(seconds=self._ticks)).isoformat()

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        next_id = self._next_ids.get(table, 0) + 1
        self._next_ids[table] = next_id
        stored.setdefault("id", next_id)
        stored.setdefault("created_at", self.now())
        if table == "documents":
            stored.setdefault("updated_at", stored["created_at"])
        self.tables.setdefault(table, []).append(stored)
        self.publish(table, "INSERT", stored)
        return dict(stored)

    def seed(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row without publishing a change event."""
        feed, self.feed = self.feed, None
        try:
            return self.insert_row(table, row)
        finally:
            self.feed = feed

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def get(self, table: str, row_id: Any) -> Dict[str, Any] | None:
        return next((r for r in self.rows(table) if _same(r.get("id"), row_id)), None)

    def publish(self, table: str, event_type: str, row: Dict[str, Any]) -> None:
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table=table, event_type=event_type, record=dict(row)))
