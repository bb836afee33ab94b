from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from moderation.errors import StoreError


class ContentStore(Protocol):
    """
    Minimal tabular capability the moderation core depends on.

    "No row" is never an error: get_one/update return None, query returns [].
    Any other failure raises StoreError.
    """

    def get_one(self, table: str, row_id: str) -> Optional[Dict[str, Any]]: ...

    def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]: ...

    def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Optional[Dict[str, Any]]: ...

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...

    def count(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> int: ...


# ----------------------------
# Schema allow-list (identifiers are never taken from callers verbatim)
# ----------------------------

_WORKFLOW_COLUMNS = (
    "id",
    "title",
    "status",
    "priority",
    "source",
    "source_url",
    "approved_by",
    "approved_at",
    "rejected_by",
    "rejected_at",
    "rejection_reason",
    "created_at",
    "updated_at",
)

_PUBLISHED_COLUMNS = (
    "id",
    "title",
    "content",
    "author",
    "published_at",
    "status",
    "source",
    "approved_by",
    "original_event_id",
    "original_article_id",
    "event_date",
    "location",
    "metadata",
    "updated_at",
)

TABLE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "events": _WORKFLOW_COLUMNS + ("description", "event_date", "location", "organizer"),
    "newsroom_articles": _WORKFLOW_COLUMNS + ("content", "author"),
    "published_events": _PUBLISHED_COLUMNS,
    "published_news": _PUBLISHED_COLUMNS,
    "published_articles": _PUBLISHED_COLUMNS,
    "moderation_log": ("id", "content_id", "content_table", "action", "moderator_id", "reason", "timestamp"),
    "publication_log": (
        "id",
        "published_id",
        "published_table",
        "original_id",
        "original_table",
        "approved_by",
        "published_at",
    ),
}

JSON_COLUMNS = frozenset({"metadata"})


def _columns(table: str) -> Tuple[str, ...]:
    try:
        return TABLE_COLUMNS[table]
    except KeyError:
        raise StoreError(f"Unknown table: {table!r}")


def _check_columns(table: str, names: Sequence[str]) -> None:
    allowed = _columns(table)
    unknown = [n for n in names if n not in allowed]
    if unknown:
        raise StoreError(f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}")


def _sort_to_order_by(table: str, sort: Optional[str]) -> str:
    """
    Sort tokens look like "<column>_desc" or "<column>_asc" (e.g. created_at_desc).
    The column must exist on the table.
    """
    s = (sort or "").strip().lower()
    if not s:
        return ""
    direction = "DESC"
    if s.endswith("_desc"):
        s = s[: -len("_desc")]
    elif s.endswith("_asc"):
        s = s[: -len("_asc")]
        direction = "ASC"
    _check_columns(table, [s])
    return f' ORDER BY "{s}" {direction}'


def _where(filters: Optional[Mapping[str, Any]]) -> Tuple[str, Dict[str, Any]]:
    if not filters:
        return "", {}

    parts: List[str] = []
    params: Dict[str, Any] = {}
    for i, (col, value) in enumerate(filters.items()):
        if isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                parts.append("1 = 0")
                continue
            names = []
            for j, v in enumerate(values):
                key = f"f{i}_{j}"
                params[key] = v
                names.append(f":{key}")
            parts.append(f'"{col}" IN ({", ".join(names)})')
        elif value is None:
            parts.append(f'"{col}" IS NULL')
        else:
            key = f"f{i}"
            params[key] = value
            parts.append(f'"{col}" = :{key}')

    return " WHERE " + " AND ".join(parts), params


def _encode(record: Mapping[str, Any], iso_datetimes: bool = False) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in record.items():
        if k in JSON_COLUMNS and v is not None:
            v = json.dumps(v)
        elif iso_datetimes and isinstance(v, datetime):
            v = v.isoformat()
        out[k] = v
    return out


def _decode(row: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    for k in JSON_COLUMNS:
        if isinstance(out.get(k), str):
            out[k] = json.loads(out[k])
    return out


class SqlContentStore:
    """ContentStore over a SQLAlchemy engine, one transaction per call."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        # SQLite has no native timestamp type; store ISO-8601 text there.
        self.iso_datetimes = engine.dialect.name == "sqlite"

    def get_one(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        _columns(table)
        sql = text(f'SELECT * FROM "{table}" WHERE id = :id LIMIT 1')
        try:
            with self.engine.begin() as conn:
                row = conn.execute(sql, {"id": str(row_id)}).mappings().first()
        except SQLAlchemyError as e:
            raise StoreError(f"get_one({table}) failed: {e}") from e
        return _decode(row) if row else None

    def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        if not record:
            raise StoreError(f"insert({table}) needs at least one column")
        _check_columns(table, list(record))

        cols = list(record)
        sql = text(f"""
            INSERT INTO "{table}" ({", ".join(f'"{c}"' for c in cols)})
            VALUES ({", ".join(f":{c}" for c in cols)})
            RETURNING *
        """)
        try:
            with self.engine.begin() as conn:
                row = conn.execute(sql, _encode(record, self.iso_datetimes)).mappings().one()
        except SQLAlchemyError as e:
            raise StoreError(f"insert({table}) failed: {e}") from e
        return _decode(row)

    def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        if not changes:
            raise StoreError(f"update({table}) needs at least one column")
        _check_columns(table, list(changes))
        if "id" in changes:
            raise StoreError("id cannot be updated")

        assignments = ", ".join(f'"{c}" = :{c}' for c in changes)
        sql = text(f'UPDATE "{table}" SET {assignments} WHERE id = :__row_id RETURNING *')
        params = _encode(changes, self.iso_datetimes)
        params["__row_id"] = str(row_id)
        try:
            with self.engine.begin() as conn:
                row = conn.execute(sql, params).mappings().first()
        except SQLAlchemyError as e:
            raise StoreError(f"update({table}) failed: {e}") from e
        return _decode(row) if row else None

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        if filters:
            _check_columns(table, list(filters))
        else:
            _columns(table)

        where_sql, params = _where(filters)
        sql_str = f'SELECT * FROM "{table}"{where_sql}{_sort_to_order_by(table, order_by)}'
        if limit is not None:
            sql_str += " LIMIT :limit"
            params["limit"] = int(limit)

        try:
            with self.engine.begin() as conn:
                rows = conn.execute(text(sql_str), params).mappings().all()
        except SQLAlchemyError as e:
            raise StoreError(f"query({table}) failed: {e}") from e
        return [_decode(r) for r in rows]

    def count(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> int:
        if filters:
            _check_columns(table, list(filters))
        else:
            _columns(table)

        where_sql, params = _where(filters)
        sql = text(f'SELECT COUNT(*) AS total FROM "{table}"{where_sql}')
        try:
            with self.engine.begin() as conn:
                total = conn.execute(sql, params).mappings().one()["total"]
        except SQLAlchemyError as e:
            raise StoreError(f"count({table}) failed: {e}") from e
        return int(total)
