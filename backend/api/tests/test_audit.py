from prometheus_client import REGISTRY

from moderation.audit import AuditLogger


def _failures(log):
    return REGISTRY.get_sample_value("moderation_audit_write_failures_total", {"log": log}) or 0.0


def test_log_moderation_appends(store):
    audit = AuditLogger(store)
    assert audit.log_moderation("evt-1", "event", "rejected", "mod-2", "spam") is True

    [entry] = store.rows("moderation_log")
    assert entry["content_id"] == "evt-1"
    assert entry["content_table"] == "events"
    assert entry["action"] == "rejected"
    assert entry["reason"] == "spam"
    assert entry["timestamp"].tzinfo is not None


def test_failures_are_swallowed_and_counted(store):
    store.fail("insert", "moderation_log")
    store.fail("insert", "publication_log")
    before_mod = _failures("moderation_log")
    before_pub = _failures("publication_log")

    audit = AuditLogger(store)
    assert audit.log_moderation("evt-1", "event", "approved", "mod-1") is False
    assert audit.log_publication("p-1", "published_events", "evt-1", "event", "mod-1") is False

    assert _failures("moderation_log") == before_mod + 1
    assert _failures("publication_log") == before_pub + 1


def test_history_is_oldest_first(store, service, make_article):
    make_article("art-1")
    service.edit("art-1", "mod-3", {"title": "Second draft"})
    service.reject("art-1", "mod-2", "still off-topic")
    service.edit("art-1", "mod-3", {"content": "Rewritten"})

    history = service.history("art-1")
    assert [e.action for e in history] == ["edited", "rejected", "edited"]
    assert history[1].reason == "still off-topic"
    assert history[2].reason == "Edited fields: content"
