"""Test configuration: an in-memory ContentStore and seeded content factories."""

import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from moderation.errors import StoreError
from moderation.logging_config import configure_logging
from moderation.service import ModerationService


def pytest_configure(config: pytest.Config) -> None:
    configure_logging(testing=True)


class InMemoryStore:
    """
    Dict-backed ContentStore.

    fail(op, table) makes every later call of that operation on that table
    raise StoreError; table "*" matches any table.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.failures: Dict[Tuple[str, str], str] = {}
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def fail(self, op: str, table: str, message: str = "store unavailable") -> None:
        self.failures[(op, table)] = message

    def heal(self) -> None:
        self.failures.clear()

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return [dict(r) for r in self.tables[table].values()]

    @property
    def mutations(self) -> List[Tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("insert", "update")]

    def _enter(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        message = self.failures.get((op, table)) or self.failures.get((op, "*"))
        if message:
            raise StoreError(message)

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        for col, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set, frozenset)):
                if row.get(col) not in value:
                    return False
            elif row.get(col) != value:
                return False
        return True

    def get_one(self, table, row_id):
        with self._lock:
            self._enter("get_one", table)
            row = self.tables[table].get(row_id)
            return dict(row) if row is not None else None

    def insert(self, table, record):
        with self._lock:
            self._enter("insert", table)
            row = dict(record)
            self.tables[table][row["id"]] = row
            return dict(row)

    def update(self, table, row_id, changes):
        with self._lock:
            self._enter("update", table)
            row = self.tables[table].get(row_id)
            if row is None:
                return None
            row.update(changes)
            return dict(row)

    def query(self, table, filters=None, order_by=None, limit=None):
        with self._lock:
            self._enter("query", table)
            rows = [dict(r) for r in self.tables[table].values() if self._matches(r, filters)]
        if order_by:
            token = order_by.lower()
            desc = token.endswith("_desc")
            col = token.rsplit("_", 1)[0]
            present = [r for r in rows if r.get(col) is not None]
            missing = [r for r in rows if r.get(col) is None]
            rows = sorted(present, key=lambda r: r[col], reverse=desc) + missing
        if limit is not None:
            rows = rows[:limit]
        return rows

    def count(self, table, filters=None):
        with self._lock:
            self._enter("count", table)
            return sum(1 for r in self.tables[table].values() if self._matches(r, filters))


def _ts(day: int) -> datetime:
    return datetime(2025, 8, day, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def service(store: InMemoryStore) -> ModerationService:
    return ModerationService(store)


@pytest.fixture
def make_event(store: InMemoryStore) -> Callable[..., Dict[str, Any]]:
    def factory(content_id: str = "evt-1", **overrides: Any) -> Dict[str, Any]:
        row = {
            "id": content_id,
            "title": "Block Party",
            "description": "Music and food on Elm Street",
            "event_date": datetime(2025, 9, 1, 18, 0, tzinfo=timezone.utc),
            "location": "Elm Street",
            "organizer": "Elm Street Association",
            "status": "pending",
            "priority": "medium",
            "source": "community_submission",
            "created_at": _ts(1),
            "updated_at": _ts(1),
        }
        row.update(overrides)
        store.tables["events"][content_id] = row
        return dict(row)

    return factory


@pytest.fixture
def make_article(store: InMemoryStore) -> Callable[..., Dict[str, Any]]:
    def factory(content_id: str = "art-1", **overrides: Any) -> Dict[str, Any]:
        row = {
            "id": content_id,
            "title": "Library reopens",
            "content": "The branch library reopens on Monday.",
            "author": "R. Reporter",
            "status": "pending",
            "priority": "low",
            "source": "community_submission",
            "created_at": _ts(2),
            "updated_at": _ts(2),
        }
        row.update(overrides)
        store.tables["newsroom_articles"][content_id] = row
        return dict(row)

    return factory
