from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from moderation.logging_config import get_logger
from moderation.service import ModerationService

logger = get_logger(__name__)


@dataclass(frozen=True)
class PendingSnapshot:
    pending_count: int
    last_checked: datetime
    has_new_content: bool
    error: Optional[str] = None


class PendingWatcher:
    """
    Polls the pending count and flags content that arrived since the last
    time a moderator looked (mark_viewed).
    """

    def __init__(self, service: ModerationService, collection: Optional[str] = None) -> None:
        self.service = service
        self.collection = collection
        self.last_viewed_count = 0
        self.snapshot = PendingSnapshot(
            pending_count=0,
            last_checked=datetime.now(timezone.utc),
            has_new_content=False,
        )

    def poll(self) -> PendingSnapshot:
        now = datetime.now(timezone.utc)
        try:
            count = self.service.get_pending_count(self.collection)
        except Exception as e:
            logger.error("pending_poll_failed", error=str(e))
            self.snapshot = PendingSnapshot(
                pending_count=self.snapshot.pending_count,
                last_checked=now,
                has_new_content=self.snapshot.has_new_content,
                error="Failed to fetch notification count",
            )
            return self.snapshot

        self.snapshot = PendingSnapshot(
            pending_count=count,
            last_checked=now,
            has_new_content=count > self.last_viewed_count,
        )
        return self.snapshot

    def mark_viewed(self) -> PendingSnapshot:
        self.last_viewed_count = self.snapshot.pending_count
        self.snapshot = PendingSnapshot(
            pending_count=self.snapshot.pending_count,
            last_checked=self.snapshot.last_checked,
            has_new_content=False,
        )
        return self.snapshot
