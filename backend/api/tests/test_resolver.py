import pytest

from moderation.errors import NotFoundError, StoreError
from moderation.resolver import ContentTypeResolver


def test_resolves_event(store, make_event):
    make_event("evt-1")
    assert ContentTypeResolver(store).resolve("evt-1") == "event"


def test_resolves_article_after_probing_events(store, make_article):
    make_article("art-1")
    assert ContentTypeResolver(store).resolve("art-1") == "article"
    assert [c for c in store.calls if c[0] == "get_one"] == [
        ("get_one", "events"),
        ("get_one", "newsroom_articles"),
    ]


def test_unknown_id_is_not_found(store):
    with pytest.raises(NotFoundError, match="ghost not found"):
        ContentTypeResolver(store).resolve("ghost")


def test_id_in_both_collections_prefers_events(store, make_event, make_article):
    make_event("dup")
    make_article("dup")
    resolver = ContentTypeResolver(store)

    assert resolver.resolve("dup") == "event"
    assert resolver.collections_for("dup") == ["event", "article"]


def test_store_failure_propagates(store, make_article):
    make_article("art-1")
    store.fail("get_one", "events")
    with pytest.raises(StoreError):
        ContentTypeResolver(store).resolve("art-1")


def test_resolve_is_read_only(store, make_event):
    make_event("evt-1")
    ContentTypeResolver(store).resolve("evt-1")
    assert store.mutations == []
