from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError as SchemaError

from moderation.audit import AuditLogger
from moderation.batch import BatchCoordinator
from moderation.config import Settings
from moderation.errors import ValidationError
from moderation.logging_config import get_logger
from moderation.models import (
    COLLECTIONS,
    VARIANTS,
    BatchResult,
    ContentBase,
    ModerationLogEntry,
    PublishedContent,
    source_table,
)
from moderation.publication import PublicationReplicator
from moderation.queue_reader import QueueReader
from moderation.resolver import ContentTypeResolver
from moderation.store import ContentStore
from moderation.workflow import ModerationWorkflow, schema_message

logger = get_logger(__name__)


class ModerationService:
    """
    The moderation pipeline wired around one store.

    Construct one per store; nothing here is module-global, so tests pass
    their own store (and settings) in.
    """

    def __init__(self, store: ContentStore, settings: Optional[Settings] = None) -> None:
        self.store = store
        self.settings = settings or Settings(database_url=None)

        self.audit = AuditLogger(store)
        self.resolver = ContentTypeResolver(store)
        self.replicator = PublicationReplicator(store, self.audit, feed_limit=self.settings.published_feed_limit)
        self.workflow = ModerationWorkflow(store, self.resolver, self.replicator, self.audit)
        self.batch = BatchCoordinator(self.workflow, self.resolver, max_workers=self.settings.batch_max_workers)
        self.queue = QueueReader(store)

    # ----------------------------
    # Submission + reads
    # ----------------------------

    def submit(self, collection: str, fields: Mapping[str, Any]) -> ContentBase:
        """Store a new community submission in the "pending" state."""
        if collection not in COLLECTIONS:
            raise ValidationError(f"collection must be one of: {', '.join(COLLECTIONS)}")

        variant = VARIANTS[collection]
        unknown = sorted(set(fields) - variant.EDITABLE)
        if unknown:
            raise ValidationError(f"Unknown fields for {collection}: {', '.join(unknown)}")

        now = datetime.now(timezone.utc)
        candidate = {
            **fields,
            "id": str(uuid.uuid4()),
            "collection": collection,
            "status": "pending",
            "source": "community_submission",
            "created_at": now,
            "updated_at": now,
        }
        try:
            item = variant.model_validate(candidate)
        except SchemaError as e:
            raise ValidationError(f"Invalid submission: {schema_message(e)}") from e

        row = self.store.insert(source_table(collection), item.to_record())
        logger.info("content_submitted", content_id=item.id, collection=collection)
        return self.workflow.parse_row(row, collection)

    def get_content(self, content_id: str) -> ContentBase:
        return self.workflow.load(content_id)

    def history(self, content_id: str) -> List[ModerationLogEntry]:
        self.resolver.resolve(content_id)
        return self.audit.history(content_id)

    # ----------------------------
    # Moderation
    # ----------------------------

    def approve(self, content_id: str, moderator_id: str, collection: Optional[str] = None) -> PublishedContent:
        return self.workflow.approve(content_id, moderator_id, collection)

    def reject(self, content_id: str, moderator_id: str, reason: Optional[str], collection: Optional[str] = None) -> None:
        self.workflow.reject(content_id, moderator_id, reason, collection)

    def edit(
        self,
        content_id: str,
        moderator_id: str,
        edits: Optional[Mapping[str, Any]],
        collection: Optional[str] = None,
    ) -> ContentBase:
        return self.workflow.edit(content_id, moderator_id, edits, collection)

    def batch_action(
        self,
        content_ids: Iterable[str],
        action: str,
        moderator_id: str,
        reason: Optional[str] = None,
    ) -> BatchResult:
        return self.batch.batch_action(content_ids, action, moderator_id, reason)

    # ----------------------------
    # Dashboard + published reads
    # ----------------------------

    def get_moderation_queue(self, collection: Optional[str] = None) -> List[ContentBase]:
        return self.queue.get_moderation_queue(collection)

    def get_pending_count(self, collection: Optional[str] = None) -> int:
        return self.queue.get_pending_count(collection)

    def get_published_content(self, kind: Optional[str] = None) -> List[PublishedContent]:
        return self.replicator.get_published_content(kind)

    def update_publication_status(self, published_id: str, status: str) -> PublishedContent:
        return self.replicator.update_publication_status(published_id, status)
