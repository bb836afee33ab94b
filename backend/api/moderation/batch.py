from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import partial, reduce
from typing import Iterable, Optional

from moderation.errors import ValidationError
from moderation.logging_config import get_logger
from moderation.models import BatchItemOutcome, BatchResult
from moderation.resolver import ContentTypeResolver
from moderation.workflow import ModerationWorkflow

logger = get_logger(__name__)

BATCH_ACTIONS = ("approve", "reject")


class BatchCoordinator:
    """
    Applies one moderator decision to many ids.

    Each id is turned into a BatchItemOutcome (errors included) and the
    outcomes are folded into a BatchResult in input order. With
    max_workers > 1 items run on a bounded thread pool; results keep input
    order and a failing item never cancels the others.
    """

    def __init__(self, workflow: ModerationWorkflow, resolver: ContentTypeResolver, max_workers: int = 1) -> None:
        self.workflow = workflow
        self.resolver = resolver
        self.max_workers = max(1, int(max_workers))

    def batch_action(
        self,
        content_ids: Iterable[str],
        action: str,
        moderator_id: str,
        reason: Optional[str] = None,
    ) -> BatchResult:
        if action not in BATCH_ACTIONS:
            raise ValidationError(f"action must be one of: {', '.join(BATCH_ACTIONS)}")
        if not moderator_id:
            raise ValidationError("moderatorId is required")

        ids = list(content_ids)
        step = partial(self._process_one, action=action, moderator_id=moderator_id, reason=reason)

        if self.max_workers > 1 and len(ids) > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(ids))) as pool:
                outcomes = list(pool.map(step, ids))
        else:
            outcomes = map(step, ids)

        result = reduce(BatchResult.record, outcomes, BatchResult())
        logger.info(
            "batch_processed",
            action=action,
            moderator_id=moderator_id,
            total=len(ids),
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return result

    def _process_one(
        self,
        content_id: str,
        action: str,
        moderator_id: str,
        reason: Optional[str],
    ) -> BatchItemOutcome:
        try:
            if action == "reject" and not (reason or "").strip():
                raise ValidationError("Reason required for rejection")

            collection = self.resolver.resolve(content_id)

            if action == "approve":
                published = self.workflow.approve(content_id, moderator_id, collection)
                return BatchItemOutcome(content_id=content_id, status="approved", data=published)

            self.workflow.reject(content_id, moderator_id, reason, collection)
            return BatchItemOutcome(content_id=content_id, status="rejected", reason=reason)

        # Any failure belongs to this item only.
        except Exception as e:
            logger.warning("batch_item_failed", action=action, content_id=content_id, error=str(e))
            return BatchItemOutcome(content_id=content_id, status="failed", error=str(e) or e.__class__.__name__)
