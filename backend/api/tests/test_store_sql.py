"""SqlContentStore against a throwaway SQLite database."""

import pytest
from sqlalchemy import create_engine, text

from moderation.errors import StoreError
from moderation.service import ModerationService
from moderation.store import TABLE_COLUMNS, SqlContentStore, _sort_to_order_by


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'moderation.db'}", future=True)
    with engine.begin() as conn:
        for table, columns in TABLE_COLUMNS.items():
            cols = ", ".join(f'"{c}" TEXT PRIMARY KEY' if c == "id" else f'"{c}" TEXT' for c in columns)
            conn.execute(text(f'CREATE TABLE "{table}" ({cols})'))
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(engine):
    return SqlContentStore(engine)


def _article(content_id, status="pending", created_at="2025-08-02T12:00:00+00:00"):
    return {
        "id": content_id,
        "title": f"Article {content_id}",
        "content": "Body",
        "status": status,
        "priority": "medium",
        "source": "community_submission",
        "created_at": created_at,
        "updated_at": created_at,
    }


def test_crud_round_trip(sql_store):
    inserted = sql_store.insert("newsroom_articles", _article("a1"))
    assert inserted["id"] == "a1"

    assert sql_store.get_one("newsroom_articles", "a1")["title"] == "Article a1"
    assert sql_store.get_one("newsroom_articles", "missing") is None

    updated = sql_store.update("newsroom_articles", "a1", {"status": "rejected", "rejection_reason": "spam"})
    assert updated["status"] == "rejected"
    assert sql_store.update("newsroom_articles", "missing", {"status": "pending"}) is None


def test_query_filters_order_and_limit(sql_store):
    sql_store.insert("newsroom_articles", _article("old", created_at="2025-01-01T00:00:00+00:00"))
    sql_store.insert("newsroom_articles", _article("new", created_at="2025-06-01T00:00:00+00:00"))
    sql_store.insert("newsroom_articles", _article("mid", status="rejected", created_at="2025-03-01T00:00:00+00:00"))
    sql_store.insert("newsroom_articles", _article("done", status="published"))

    rows = sql_store.query("newsroom_articles", {"status": ["pending", "rejected"]}, order_by="created_at_desc")
    assert [r["id"] for r in rows] == ["new", "mid", "old"]

    rows = sql_store.query("newsroom_articles", {"status": "pending"}, order_by="created_at_asc", limit=1)
    assert [r["id"] for r in rows] == ["old"]

    assert sql_store.query("newsroom_articles", {"status": []}) == []
    assert sql_store.count("newsroom_articles", {"status": "pending"}) == 2
    assert sql_store.count("newsroom_articles") == 4


def test_json_metadata_round_trip(sql_store):
    sql_store.insert(
        "published_news",
        {"id": "p1", "title": "t", "published_at": "2025-09-01T00:00:00+00:00", "metadata": {"priority": "high"}},
    )
    assert sql_store.get_one("published_news", "p1")["metadata"] == {"priority": "high"}


def test_identifiers_are_allow_listed(sql_store):
    with pytest.raises(StoreError, match="Unknown table"):
        sql_store.get_one("users; DROP TABLE events", "x")
    with pytest.raises(StoreError, match="Unknown column"):
        sql_store.insert("events", {"id": "x", "is_admin": True})
    with pytest.raises(StoreError, match="Unknown column"):
        _sort_to_order_by("events", "password_desc")
    with pytest.raises(StoreError):
        sql_store.update("events", "x", {"id": "y"})


def test_database_errors_become_store_errors(sql_store, engine):
    with engine.begin() as conn:
        conn.execute(text('DROP TABLE "moderation_log"'))
    with pytest.raises(StoreError, match="insert\\(moderation_log\\) failed"):
        sql_store.insert("moderation_log", {"id": "l1", "content_id": "x"})


def test_pipeline_on_sql_store(sql_store):
    service = ModerationService(sql_store)
    event = service.submit(
        "event",
        {"title": "Block Party", "description": "Bring chairs", "event_date": "2025-09-01T18:00:00Z"},
    )
    article = service.submit("article", {"title": "Spam", "content": "Buy now"})
    assert service.get_pending_count() == 2

    published = service.approve(event.id, "mod-1")
    service.reject(article.id, "mod-2", "spam")

    assert published.original_event_id == event.id
    assert published.metadata["original_table"] == "events"
    assert service.get_content(event.id).status == "published"
    assert service.get_content(article.id).rejection_reason == "spam"
    assert service.get_pending_count() == 0
    assert [i.id for i in service.get_moderation_queue()] == [article.id]
    assert [p.id for p in service.get_published_content("events")] == [published.id]
    assert [e.action for e in service.history(article.id)] == ["rejected"]
