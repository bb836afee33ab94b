import pytest

from moderation.config import Settings
from moderation.errors import ValidationError
from moderation.service import ModerationService


def test_partial_failure_keeps_input_order(service, store, make_event, make_article):
    make_event("A")
    make_article("C")

    result = service.batch_action(["A", "B", "C"], "approve", "mod-1")

    assert result.successful == ("A", "C")
    assert result.failed == ("B",)
    assert [o.content_id for o in result.results] == ["A", "B", "C"]
    assert [o.status for o in result.results] == ["approved", "failed", "approved"]
    assert "B not found" in result.results[1].error
    assert result.results[0].data.original_event_id == "A"
    assert result.results[2].data.original_article_id == "C"


def test_batch_mixes_collections_for_reject(service, store, make_event, make_article):
    make_event("evt-1")
    make_article("art-1")

    result = service.batch_action(["art-1", "evt-1"], "reject", "mod-2", "duplicate")

    assert result.successful == ("art-1", "evt-1")
    assert all(o.reason == "duplicate" for o in result.results)
    assert store.tables["events"]["evt-1"]["status"] == "rejected"
    assert store.tables["newsroom_articles"]["art-1"]["status"] == "rejected"


def test_reject_without_reason_fails_every_item(service, store, make_event):
    make_event("evt-1")
    make_event("evt-2")

    result = service.batch_action(["evt-1", "evt-2"], "reject", "mod-2")

    assert result.successful == ()
    assert result.failed == ("evt-1", "evt-2")
    assert all("Reason required" in o.error for o in result.results)
    assert store.calls == []


def test_total_failure_does_not_raise(service, store):
    store.fail("get_one", "*", "connection reset")
    result = service.batch_action(["a", "b"], "approve", "mod-1")
    assert result.successful == ()
    assert result.failed == ("a", "b")
    assert result.results[0].error == "connection reset"


def test_store_failure_on_one_item_continues(service, store, make_event):
    make_event("evt-1")
    make_event("evt-2")
    make_event("evt-3")
    original_update = store.update

    def update(table, row_id, changes):
        if row_id == "evt-2":
            raise RuntimeError("unexpected driver error")
        return original_update(table, row_id, changes)

    store.update = update
    result = service.batch_action(["evt-1", "evt-2", "evt-3"], "approve", "mod-1")

    assert result.successful == ("evt-1", "evt-3")
    assert result.failed == ("evt-2",)
    assert result.results[1].error == "unexpected driver error"


def test_duplicate_ids_second_approval_fails(service, make_event):
    make_event("evt-1")
    result = service.batch_action(["evt-1", "evt-1"], "approve", "mod-1")
    assert result.successful == ("evt-1",)
    assert result.failed == ("evt-1",)


def test_empty_batch(service):
    result = service.batch_action([], "approve", "mod-1")
    assert result.successful == () and result.failed == () and result.results == ()


@pytest.mark.parametrize("action", ["edit", "publish", ""])
def test_unknown_action_is_rejected_up_front(service, store, action):
    with pytest.raises(ValidationError):
        service.batch_action(["a"], action, "mod-1")
    assert store.calls == []


def test_worker_pool_preserves_order(store, make_event, make_article):
    for i in range(6):
        make_event(f"evt-{i}")
    make_article("art-x")
    service = ModerationService(store, Settings(database_url=None, batch_max_workers=4))

    ids = ["evt-0", "missing", "evt-1", "art-x", "evt-2", "evt-3", "evt-4", "evt-5"]
    result = service.batch_action(ids, "approve", "mod-1")

    assert [o.content_id for o in result.results] == ids
    assert result.failed == ("missing",)
    assert len(store.rows("published_events")) == 6
