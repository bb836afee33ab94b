from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional

from pydantic import ValidationError as SchemaError

from moderation.audit import AuditLogger
from moderation.errors import ModerationError, NotFoundError, PublicationError, StoreError, ValidationError, WorkflowError
from moderation.logging_config import get_logger
from moderation.metrics import MODERATION_ACTIONS
from moderation.models import ContentBase, PublishedContent, parse_item, source_table
from moderation.publication import PublicationReplicator
from moderation.resolver import ContentTypeResolver
from moderation.store import ContentStore

logger = get_logger(__name__)

STATES: list[str] = [
    "pending",
    "approved",
    "rejected",
    "published",
]


def list_states() -> list[str]:
    return list(STATES)


# Moderator-driven transitions. "approved -> published" happens inside approve().
# Edit is not listed: it returns any state to "pending".
_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["approved", "rejected"],
    "approved": ["published"],
    "rejected": [],
    "published": [],
}


def _normalize_state(state: str) -> str:
    if not state:
        return state
    return state.strip().lower()


def allowed_transitions(from_state: str) -> list[str]:
    s = _normalize_state(from_state)
    if s not in _TRANSITIONS:
        return []
    return list(_TRANSITIONS[s])


def validate_transition(from_state: str, to_state: str) -> None:
    """
    Raises WorkflowError if the transition is not permitted.
    """
    s_from = _normalize_state(from_state)
    s_to = _normalize_state(to_state)

    if s_from not in STATES:
        raise WorkflowError(f"Unknown from_state: {from_state}")

    if s_to not in STATES:
        raise WorkflowError(f"Unknown to_state: {to_state}")

    allowed = allowed_transitions(s_from)
    if s_to not in allowed:
        raise WorkflowError(f"Transition not allowed: {s_from} -> {s_to}. Allowed: {allowed}")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _tracked(action: str) -> Iterator[None]:
    try:
        yield
    except ModerationError:
        MODERATION_ACTIONS.labels(action=action, outcome="error").inc()
        raise
    MODERATION_ACTIONS.labels(action=action, outcome="ok").inc()


class ModerationWorkflow:
    """
    Approve / reject / edit for a single content item.

    Every operation resolves the item's collection unless the caller passes it.
    Audit writes never fail an operation.
    """

    def __init__(
        self,
        store: ContentStore,
        resolver: ContentTypeResolver,
        replicator: PublicationReplicator,
        audit: AuditLogger,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.replicator = replicator
        self.audit = audit

    def load(self, content_id: str, collection: Optional[str] = None) -> ContentBase:
        collection = collection or self.resolver.resolve(content_id)
        table = source_table(collection)
        row = self.store.get_one(table, content_id)
        if row is None:
            raise NotFoundError(f"Content {content_id} not found in {table}")
        return self.parse_row(row, collection)

    def approve(self, content_id: str, moderator_id: str, collection: Optional[str] = None) -> PublishedContent:
        with _tracked("approve"):
            item = self.load(content_id, collection)
            validate_transition(item.status, "approved")

            now = _now()
            row = self.store.update(
                source_table(item.collection),
                content_id,
                {"status": "approved", "approved_by": moderator_id, "approved_at": now, "updated_at": now},
            )
            if row is None:
                raise NotFoundError(f"Content {content_id} disappeared before approval")
            approved = self.parse_row(row, item.collection)

            try:
                published = self.replicator.publish(approved, moderator_id)
            except PublicationError:
                self._rollback_approval(item)
                raise

            self.audit.log_moderation(content_id, item.collection, "approved", moderator_id)
            logger.info(
                "content_approved",
                content_id=content_id,
                collection=item.collection,
                moderator_id=moderator_id,
                published_id=published.id,
            )
            return published

    def reject(
        self,
        content_id: str,
        moderator_id: str,
        reason: Optional[str],
        collection: Optional[str] = None,
    ) -> None:
        with _tracked("reject"):
            if not (reason or "").strip():
                raise ValidationError("reason is required for rejection")

            item = self.load(content_id, collection)
            validate_transition(item.status, "rejected")

            now = _now()
            row = self.store.update(
                source_table(item.collection),
                content_id,
                {
                    "status": "rejected",
                    "rejected_by": moderator_id,
                    "rejection_reason": reason,
                    "rejected_at": now,
                    "updated_at": now,
                },
            )
            if row is None:
                raise NotFoundError(f"Content {content_id} disappeared before rejection")

            self.audit.log_moderation(content_id, item.collection, "rejected", moderator_id, reason)
            logger.info("content_rejected", content_id=content_id, collection=item.collection, moderator_id=moderator_id)

    def edit(
        self,
        content_id: str,
        moderator_id: str,
        edits: Optional[Mapping[str, Any]],
        collection: Optional[str] = None,
    ) -> ContentBase:
        """Apply field edits and send the item back to "pending" for re-review."""
        with _tracked("edit"):
            if not edits:
                raise ValidationError("edits object is required for edit action")

            item = self.load(content_id, collection)
            variant = type(item)

            blocked = sorted(set(edits) - variant.EDITABLE)
            if blocked:
                raise ValidationError(f"Fields cannot be edited: {', '.join(blocked)}")

            now = _now()
            candidate = {**item.model_dump(), **edits, "status": "pending", "rejection_reason": None, "updated_at": now}
            try:
                validated = variant.model_validate(candidate)
            except SchemaError as e:
                raise ValidationError(f"Invalid edits: {schema_message(e)}") from e

            changes: Dict[str, Any] = {k: getattr(validated, k) for k in edits}
            changes.update(status="pending", rejection_reason=None, updated_at=now)

            row = self.store.update(source_table(item.collection), content_id, changes)
            if row is None:
                raise NotFoundError(f"Content {content_id} disappeared before edit")
            updated = self.parse_row(row, item.collection)

            self.audit.log_moderation(
                content_id,
                item.collection,
                "edited",
                moderator_id,
                f"Edited fields: {', '.join(edits)}",
            )
            logger.info(
                "content_edited",
                content_id=content_id,
                collection=item.collection,
                moderator_id=moderator_id,
                previous_status=item.status,
                fields=list(edits),
            )
            return updated

    def _rollback_approval(self, previous: ContentBase) -> None:
        """Undo the approval status write after a failed publication."""
        try:
            self.store.update(
                source_table(previous.collection),
                previous.id,
                {
                    "status": previous.status,
                    "approved_by": previous.approved_by,
                    "approved_at": previous.approved_at,
                    "updated_at": _now(),
                },
            )
        except StoreError as e:
            logger.error("approval_rollback_failed", content_id=previous.id, error=str(e))
            return
        logger.warning("approval_rolled_back", content_id=previous.id, restored_status=previous.status)

    @staticmethod
    def parse_row(row: Mapping[str, Any], collection: str) -> ContentBase:
        try:
            return parse_item(row, collection)
        except SchemaError as e:
            raise StoreError(f"Stored {collection} {row.get('id')} is malformed: {schema_message(e)}") from e


def schema_message(e: SchemaError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'item'}: {err['msg']}" for err in e.errors()
    )
