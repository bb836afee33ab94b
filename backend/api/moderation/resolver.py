from __future__ import annotations

from typing import List, Sequence

from moderation.errors import NotFoundError
from moderation.logging_config import get_logger
from moderation.models import COLLECTIONS, source_table
from moderation.store import ContentStore

logger = get_logger(__name__)


class ContentTypeResolver:
    """
    Maps an opaque content id to the collection that owns it.

    Collections are probed in priority order (events before articles), so an
    id stored in both always resolves to "event". Nothing enforces uniqueness
    across the two tables; collections_for() exposes collisions.
    """

    def __init__(self, store: ContentStore, priority: Sequence[str] = COLLECTIONS) -> None:
        self.store = store
        self.priority = tuple(priority)

    def resolve(self, content_id: str) -> str:
        for collection in self.priority:
            if self.store.get_one(source_table(collection), content_id) is not None:
                return collection
        raise NotFoundError(f"Content {content_id} not found in any collection")

    def collections_for(self, content_id: str) -> List[str]:
        found = [c for c in self.priority if self.store.get_one(source_table(c), content_id) is not None]
        if len(found) > 1:
            logger.warning("content_id_collision", content_id=content_id, collections=found)
        return found
