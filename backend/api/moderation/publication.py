from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, get_args

from moderation.audit import AuditLogger
from moderation.errors import NotFoundError, PublicationError, StoreError, ValidationError
from moderation.logging_config import get_logger
from moderation.metrics import READ_FAILURES
from moderation.models import (
    PUBLISHED_KINDS,
    ContentBase,
    PublicationStatus,
    PublishedContent,
    published_table,
    source_table,
)
from moderation.store import ContentStore

logger = get_logger(__name__)

PUBLICATION_STATUSES = get_args(PublicationStatus)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class PublicationReplicator:
    """Copies approved items into the public store for their collection."""

    def __init__(self, store: ContentStore, audit: AuditLogger, feed_limit: int = 50) -> None:
        self.store = store
        self.audit = audit
        self.feed_limit = feed_limit

    def build_record(self, item: ContentBase, approver_id: str) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "title": item.title,
            "content": item.body,
            "author": item.byline,
            "published_at": _now(),
            "status": "published",
            "source": item.source or "community_submission",
            "approved_by": approver_id,
            "metadata": {
                "original_table": source_table(item.collection),
                "priority": item.priority,
                "approved_at": _iso(item.approved_at),
            },
        }
        if item.collection == "event":
            record["original_event_id"] = item.id
            record["event_date"] = item.event_date
            record["location"] = item.location
        else:
            record["original_article_id"] = item.id
        return record

    def publish(self, item: ContentBase, approver_id: str) -> PublishedContent:
        """
        Insert the published copy, then log it and mark the source item published.

        Raises PublicationError if the insert is rejected. Once the copy exists
        nothing after it raises: a failed status write leaves the source item
        "approved" and is logged.
        """
        target = published_table(item.collection)
        record = self.build_record(item, approver_id)

        try:
            row = self.store.insert(target, record)
        except StoreError as e:
            raise PublicationError(f"Failed to publish content to {target}: {e.message}") from e

        published = PublishedContent.model_validate(row)

        self.audit.log_publication(published.id, target, item.id, item.collection, approver_id)

        table = source_table(item.collection)
        try:
            self.store.update(table, item.id, {"status": "published", "updated_at": _now()})
        except StoreError as e:
            logger.error(
                "published_status_write_failed",
                content_id=item.id,
                table=table,
                published_id=published.id,
                error=str(e),
            )

        logger.info("content_published", content_id=item.id, published_id=published.id, table=target)
        return published

    def update_publication_status(self, published_id: str, status: str) -> PublishedContent:
        """Set the archival status of a published row, wherever it lives."""
        if status not in PUBLICATION_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PUBLICATION_STATUSES)}")

        updated: Optional[PublishedContent] = None
        failures: List[str] = []
        for table in PUBLISHED_KINDS.values():
            try:
                row = self.store.update(table, published_id, {"status": status, "updated_at": _now()})
            except StoreError as e:
                logger.error("publication_status_update_failed", table=table, published_id=published_id, error=str(e))
                failures.append(table)
                continue
            if row is not None:
                updated = PublishedContent.model_validate(row)

        if updated is None:
            if failures:
                raise StoreError(f"Failed to update publication status in: {', '.join(failures)}")
            raise NotFoundError(f"Published content {published_id} not found")
        return updated

    def get_published_content(self, kind: Optional[str] = None) -> List[PublishedContent]:
        if kind is not None and kind not in PUBLISHED_KINDS:
            raise ValidationError(f"kind must be one of: {', '.join(PUBLISHED_KINDS)}")

        tables = [PUBLISHED_KINDS[kind]] if kind else list(PUBLISHED_KINDS.values())
        items: List[PublishedContent] = []
        for table in tables:
            try:
                rows = self.store.query(table, {"status": "published"}, order_by="published_at_desc", limit=self.feed_limit)
            except StoreError as e:
                READ_FAILURES.labels(operation="published_feed", table=table).inc()
                logger.error("published_feed_read_failed", table=table, error=str(e))
                continue
            items.extend(PublishedContent.model_validate(r) for r in rows)

        return sorted(items, key=lambda p: p.published_at, reverse=True)
