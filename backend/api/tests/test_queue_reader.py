from datetime import datetime, timezone

import pytest

from moderation.errors import ValidationError
from moderation.queue_reader import QueueReader


def test_pending_count_sums_collections(store, make_event, make_article):
    for i in range(5):
        make_event(f"evt-{i}")
    for i in range(3):
        make_article(f"art-{i}")
    make_event("evt-done", status="published")

    assert QueueReader(store).get_pending_count() == 8
    assert QueueReader(store).get_pending_count("event") == 5


def test_pending_count_tolerates_a_failing_collection(store, make_event, make_article):
    for i in range(5):
        make_event(f"evt-{i}")
    for i in range(3):
        make_article(f"art-{i}")
    store.fail("count", "events")

    assert QueueReader(store).get_pending_count() == 3


def test_queue_merges_sorts_and_filters(store, make_event, make_article):
    make_event("old-evt", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
    make_article("new-art", created_at=datetime(2025, 6, 1, tzinfo=timezone.utc))
    make_article(
        "rejected-art",
        status="rejected",
        rejection_reason="spam",
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )
    make_event("undated", created_at=None)
    make_event("approved-evt", status="approved")

    queue = QueueReader(store).get_moderation_queue()

    assert [i.id for i in queue] == ["new-art", "rejected-art", "old-evt", "undated"]
    assert [i.collection for i in queue] == ["article", "article", "event", "event"]


def test_queue_for_one_collection(store, make_event, make_article):
    make_event("evt-1")
    make_article("art-1")
    assert [i.id for i in QueueReader(store).get_moderation_queue("article")] == ["art-1"]


def test_queue_skips_failing_collection(store, make_event, make_article):
    make_event("evt-1")
    make_article("art-1")
    store.fail("query", "newsroom_articles")
    assert [i.id for i in QueueReader(store).get_moderation_queue()] == ["evt-1"]


def test_unknown_collection(store):
    with pytest.raises(ValidationError):
        QueueReader(store).get_pending_count("podcast")
