from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError as SchemaError

from moderation.errors import StoreError, ValidationError
from moderation.logging_config import get_logger
from moderation.metrics import READ_FAILURES
from moderation.models import COLLECTIONS, ContentBase, parse_item, source_table
from moderation.store import ContentStore

logger = get_logger(__name__)

QUEUE_STATUSES = ("pending", "rejected")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _sort_key(item: ContentBase) -> datetime:
    ts = item.created_at
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


class QueueReader:
    """Dashboard reads: the moderation queue and the pending badge count."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    def _collections(self, collection: Optional[str]) -> List[str]:
        if collection is None:
            return list(COLLECTIONS)
        if collection not in COLLECTIONS:
            raise ValidationError(f"collection must be one of: {', '.join(COLLECTIONS)}")
        return [collection]

    def get_moderation_queue(self, collection: Optional[str] = None) -> List[ContentBase]:
        items: List[ContentBase] = []
        for c in self._collections(collection):
            table = source_table(c)
            try:
                rows = self.store.query(table, {"status": list(QUEUE_STATUSES)}, order_by="created_at_desc")
            except StoreError as e:
                READ_FAILURES.labels(operation="moderation_queue", table=table).inc()
                logger.error("moderation_queue_read_failed", table=table, error=str(e))
                continue

            for row in rows:
                try:
                    items.append(parse_item(row, c))
                except SchemaError as e:
                    logger.warning("moderation_queue_row_skipped", table=table, content_id=row.get("id"), error=str(e))

        return sorted(items, key=_sort_key, reverse=True)

    def get_pending_count(self, collection: Optional[str] = None) -> int:
        total = 0
        for c in self._collections(collection):
            table = source_table(c)
            try:
                total += self.store.count(table, {"status": "pending"})
            except StoreError as e:
                READ_FAILURES.labels(operation="pending_count", table=table).inc()
                logger.error("pending_count_failed", table=table, error=str(e))
        return total
