"""Moderation baseline: source tables, published tables, audit logs

- events / newsroom_articles (moderation workroom)
- published_events / published_news / published_articles (write-once copies)
- moderation_log / publication_log (append-only)

Idempotent.
"""

from __future__ import annotations

from alembic import op

revision = "20261017_0001_moderation_schema"
down_revision = None
branch_labels = None
depends_on = None

_WORKFLOW_COLUMNS = """
    status text NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'rejected', 'published')),
    priority text NOT NULL DEFAULT 'medium'
        CHECK (priority IN ('low', 'medium', 'high')),
    source text NOT NULL DEFAULT 'community_submission',
    source_url text,
    approved_by text,
    approved_at timestamptz,
    rejected_by text,
    rejected_at timestamptz,
    rejection_reason text,
    created_at timestamptz NOT NULL DEFAULT NOW(),
    updated_at timestamptz NOT NULL DEFAULT NOW(),
    CHECK (status <> 'rejected' OR COALESCE(btrim(rejection_reason), '') <> '')
"""

_PUBLISHED_COLUMNS = """
    id text PRIMARY KEY,
    title text NOT NULL,
    content text,
    author text,
    published_at timestamptz NOT NULL DEFAULT NOW(),
    status text NOT NULL DEFAULT 'published'
        CHECK (status IN ('published', 'draft', 'archived')),
    source text,
    approved_by text,
    original_event_id text,
    original_article_id text,
    event_date timestamptz,
    location text,
    metadata jsonb NOT NULL DEFAULT '{}'::jsonb,
    updated_at timestamptz
"""


def upgrade() -> None:
    op.execute(f"""
    CREATE TABLE IF NOT EXISTS public.events (
        id text PRIMARY KEY,
        title text NOT NULL CHECK (btrim(title) <> ''),
        description text NOT NULL,
        event_date timestamptz NOT NULL,
        location text,
        organizer text,
        {_WORKFLOW_COLUMNS}
    );
    """)
    op.execute(f"""
    CREATE TABLE IF NOT EXISTS public.newsroom_articles (
        id text PRIMARY KEY,
        title text NOT NULL CHECK (btrim(title) <> ''),
        content text NOT NULL,
        author text,
        {_WORKFLOW_COLUMNS}
    );
    """)

    for table in ("published_events", "published_news", "published_articles"):
        op.execute(f"""
        CREATE TABLE IF NOT EXISTS public.{table} (
            {_PUBLISHED_COLUMNS}
        );
        """)

    op.execute("""
    CREATE TABLE IF NOT EXISTS public.moderation_log (
        id text PRIMARY KEY,
        content_id text NOT NULL,
        content_table text NOT NULL,
        action text NOT NULL CHECK (action IN ('approved', 'rejected', 'edited')),
        moderator_id text NOT NULL,
        reason text,
        "timestamp" timestamptz NOT NULL DEFAULT NOW()
    );
    """)
    op.execute("""
    CREATE TABLE IF NOT EXISTS public.publication_log (
        id text PRIMARY KEY,
        published_id text NOT NULL,
        published_table text NOT NULL,
        original_id text NOT NULL,
        original_table text NOT NULL,
        approved_by text,
        published_at timestamptz NOT NULL DEFAULT NOW()
    );
    """)

    # Queue and badge reads filter on status and sort by created_at.
    op.execute("CREATE INDEX IF NOT EXISTS ix_events_status_created ON public.events (status, created_at DESC);")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_newsroom_articles_status_created "
        "ON public.newsroom_articles (status, created_at DESC);"
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_moderation_log_content ON public.moderation_log (content_id, \"timestamp\");")


def downgrade() -> None:
    raise NotImplementedError("Downgrades are not supported for the moderation baseline.")
