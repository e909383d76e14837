"""Postgres schema management for Cardinal News.

Creates the tables backing the newsroom pipeline, the community features and the
automation log. Schema creation stays idempotent (CREATE IF NOT EXISTS) so it can
run on every service start.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


ARTICLE_STATUSES = ("draft", "pending_review", "published", "archived", "rejected")
NEWS_CATEGORIES = (
    "world",
    "business",
    "technology",
    "sports",
    "entertainment",
    "science",
    "politics",
    "ai_innovation",
    "lifestyle",
)

SCHEMA_STATEMENTS: list[str] = [
    # gen_random_uuid() lives in pgcrypto before Postgres 13
    "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
    # Trending topics (Google Trends RSS + curated seeds)
    """
    CREATE TABLE IF NOT EXISTS trending_topics (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      topic TEXT NOT NULL,
      category TEXT NOT NULL DEFAULT 'world',
      trend_strength INTEGER NOT NULL DEFAULT 50,
      region TEXT,
      search_volume BIGINT,
      keywords TEXT[] NOT NULL DEFAULT '{}',
      related_queries TEXT[] NOT NULL DEFAULT '{}',
      source_url TEXT,
      trend_data JSONB,
      processed BOOLEAN NOT NULL DEFAULT FALSE,
      fetched_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_trending_topics_fetched_at ON trending_topics (fetched_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_trending_topics_strength ON trending_topics (processed, trend_strength DESC);",
    # Articles (HTML content; draft until verified)
    """
    CREATE TABLE IF NOT EXISTS articles (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      title TEXT NOT NULL,
      slug TEXT NOT NULL UNIQUE,
      excerpt TEXT,
      content TEXT NOT NULL DEFAULT '',
      category TEXT NOT NULL DEFAULT 'world',
      author TEXT,
      tags TEXT[] NOT NULL DEFAULT '{}',
      meta_title TEXT,
      meta_description TEXT,
      meta_keywords TEXT[] NOT NULL DEFAULT '{}',
      news_keywords TEXT[] NOT NULL DEFAULT '{}',
      schema_markup JSONB,
      og_title TEXT,
      og_description TEXT,
      og_image TEXT,
      featured_image TEXT,
      image_url TEXT,
      image_credit TEXT,
      sources JSONB NOT NULL DEFAULT '[]'::jsonb,
      trending_topic_id UUID REFERENCES trending_topics(id) ON DELETE SET NULL,
      status TEXT NOT NULL DEFAULT 'draft',
      read_time TEXT,
      word_count INTEGER NOT NULL DEFAULT 0,
      views_count INTEGER NOT NULL DEFAULT 0,
      verification_score REAL,
      verification_status TEXT,
      rejection_reason TEXT,
      publish_at TIMESTAMPTZ,
      published_at TIMESTAMPTZ,
      date_modified TIMESTAMPTZ,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_articles_created_at ON articles (created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_articles_status_published ON articles (status, published_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_articles_category ON articles (category);",
    "CREATE INDEX IF NOT EXISTS idx_articles_topic ON articles (trending_topic_id);",
    "CREATE INDEX IF NOT EXISTS idx_articles_image_url ON articles (image_url);",
    # Fact-check / verification history
    """
    CREATE TABLE IF NOT EXISTS article_verifications (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      article_id UUID NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
      verification_type TEXT NOT NULL DEFAULT 'verify_and_publish',
      accuracy_score REAL,
      verification_status TEXT,
      is_fabricated BOOLEAN NOT NULL DEFAULT FALSE,
      legal_risk_assessment TEXT,
      real_news_confidence INTEGER NOT NULL DEFAULT 0,
      fact_check_results JSONB NOT NULL DEFAULT '[]'::jsonb,
      source_credibility JSONB,
      recommendations JSONB NOT NULL DEFAULT '[]'::jsonb,
      verification_data JSONB,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_article_verifications_article ON article_verifications (article_id, created_at DESC);",
    # Scheduled publication
    """
    CREATE TABLE IF NOT EXISTS publication_queue (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      article_id UUID NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
      scheduled_for TIMESTAMPTZ NOT NULL,
      published BOOLEAN NOT NULL DEFAULT FALSE,
      error_message TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_publication_queue_due ON publication_queue (published, scheduled_for);",
    # Automation job log
    """
    CREATE TABLE IF NOT EXISTS jobs (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      type TEXT NOT NULL,
      status TEXT NOT NULL DEFAULT 'running',
      payload JSONB,
      error_message TEXT,
      started_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      completed_at TIMESTAMPTZ,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_jobs_created_at ON jobs (created_at DESC);",
    # Runtime settings edited from the admin panel
    """
    CREATE TABLE IF NOT EXISTS settings (
      key TEXT PRIMARY KEY,
      value JSONB,
      description TEXT,
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    # Weather snapshots for the 15-city widget
    """
    CREATE TABLE IF NOT EXISTS weather_data (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      data JSONB NOT NULL,
      fetched_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_weather_data_fetched_at ON weather_data (fetched_at DESC);",
    # Community
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
      user_id UUID PRIMARY KEY,
      display_name TEXT,
      avatar_url TEXT,
      reputation_points INTEGER NOT NULL DEFAULT 0,
      total_comments INTEGER NOT NULL DEFAULT 0,
      total_likes INTEGER NOT NULL DEFAULT 0,
      total_shares INTEGER NOT NULL DEFAULT 0,
      badges TEXT[] NOT NULL DEFAULT '{}',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      user_id UUID NOT NULL,
      role TEXT NOT NULL DEFAULT 'user',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (user_id, role)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS article_comments (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      article_id UUID NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
      user_id UUID NOT NULL,
      content TEXT NOT NULL,
      parent_comment_id UUID REFERENCES article_comments(id) ON DELETE CASCADE,
      likes_count INTEGER NOT NULL DEFAULT 0,
      is_flagged BOOLEAN NOT NULL DEFAULT FALSE,
      is_pinned BOOLEAN NOT NULL DEFAULT FALSE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_article_comments_article ON article_comments (article_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS comment_likes (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      comment_id UUID NOT NULL REFERENCES article_comments(id) ON DELETE CASCADE,
      user_id UUID NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (comment_id, user_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS newsletter_subscribers (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      email TEXT NOT NULL UNIQUE,
      is_active BOOLEAN NOT NULL DEFAULT TRUE,
      subscribed_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE OR REPLACE VIEW community_leaderboard AS
    SELECT user_id, display_name, avatar_url, reputation_points,
           total_comments, total_likes, total_shares, badges,
           RANK() OVER (ORDER BY reputation_points DESC) AS rank
    FROM user_profiles
    ORDER BY reputation_points DESC;
    """,
    # Default automation settings (kept if already edited)
    """
    INSERT INTO settings (key, value, description) VALUES
      ('default_region', '"global"'::jsonb, 'Region used by scheduled trend fetches'),
      ('max_articles_per_run', '5'::jsonb, 'Articles generated per automation run'),
      ('autopublish_enabled', 'true'::jsonb, 'Run verification and auto-publish after generation')
    ON CONFLICT (key) DO NOTHING;
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
