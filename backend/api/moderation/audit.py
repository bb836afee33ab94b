"""Append-only audit trail for moderation and publication actions.

Audit writes are a side channel: a failed write is logged and counted in
AUDIT_WRITE_FAILURES, and the action that triggered it carries on.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from moderation.errors import StoreError
from moderation.logging_config import get_logger
from moderation.metrics import AUDIT_WRITE_FAILURES
from moderation.models import (
    MODERATION_LOG_TABLE,
    PUBLICATION_LOG_TABLE,
    ModerationLogEntry,
    source_table,
)
from moderation.store import ContentStore

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AuditLogger:
    def __init__(self, store: ContentStore) -> None:
        self.store = store

    def log_moderation(
        self,
        content_id: str,
        collection: str,
        action: str,
        moderator_id: str,
        reason: Optional[str] = None,
    ) -> bool:
        record = {
            "id": str(uuid.uuid4()),
            "content_id": content_id,
            "content_table": source_table(collection),
            "action": action,
            "moderator_id": moderator_id,
            "reason": reason,
            "timestamp": _now(),
        }
        return self._append(MODERATION_LOG_TABLE, record)

    def log_publication(
        self,
        published_id: str,
        published_table: str,
        original_id: str,
        original_collection: str,
        approver_id: Optional[str] = None,
    ) -> bool:
        record = {
            "id": str(uuid.uuid4()),
            "published_id": published_id,
            "published_table": published_table,
            "original_id": original_id,
            "original_table": source_table(original_collection),
            "approved_by": approver_id,
            "published_at": _now(),
        }
        return self._append(PUBLICATION_LOG_TABLE, record)

    def history(self, content_id: str) -> List[ModerationLogEntry]:
        """Moderation log entries for one item, oldest first."""
        rows = self.store.query(MODERATION_LOG_TABLE, {"content_id": content_id}, order_by="timestamp_asc")
        return [ModerationLogEntry.model_validate(r) for r in rows]

    def _append(self, table: str, record: dict) -> bool:
        try:
            self.store.insert(table, record)
        except StoreError as e:
            AUDIT_WRITE_FAILURES.labels(log=table).inc()
            logger.error("audit_write_failed", table=table, record=record, error=str(e))
            return False
        return True
