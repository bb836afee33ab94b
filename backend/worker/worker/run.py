"""Pending-content watcher.

Polls the moderation pending count on a fixed interval (the same cadence the
dashboard badge uses) and logs whenever new submissions are waiting.
"""

import time

from moderation.config import load_settings
from moderation.db import get_engine
from moderation.logging_config import configure_logging, get_logger
from moderation.notifications import PendingWatcher
from moderation.service import ModerationService
from moderation.store import SqlContentStore

logger = get_logger(__name__)


def run_once(watcher: PendingWatcher) -> None:
    snapshot = watcher.poll()
    if snapshot.error:
        return
    if snapshot.has_new_content:
        logger.info(
            "pending_content_waiting",
            pending_count=snapshot.pending_count,
            previously_seen=watcher.last_viewed_count,
        )
        watcher.mark_viewed()


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json)

    service = ModerationService(SqlContentStore(get_engine()), settings)
    watcher = PendingWatcher(service)

    logger.info("worker_started", poll_interval_seconds=settings.poll_interval_seconds)
    while True:
        run_once(watcher)
        time.sleep(settings.poll_interval_seconds)


if __name__ == "__main__":
    main()
