"""SQL DDL for each logical database.

Every statement is idempotent so schema initialization can run on every
first connection.  Timestamps are ``YYYY-MM-DD HH:MM:SS`` text, which sorts
lexicographically in time order.
"""

from __future__ import annotations

CONTENT_INDEX = "content-index"
ACCOUNTS = "accounts"
AUDIT = "audit"

# ---------------------------------------------------------------------------
# content-index: searchable mirror of file-backed content metadata
# ---------------------------------------------------------------------------

CONTENT_INDEX_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS articles_index (
    slug            TEXT PRIMARY KEY,
    title           TEXT    NOT NULL,
    author          TEXT    NOT NULL DEFAULT '',
    category        TEXT,
    tags            TEXT    NOT NULL DEFAULT '[]',   -- JSON array
    published       INTEGER NOT NULL DEFAULT 0,
    published_at    TEXT,
    featured        INTEGER NOT NULL DEFAULT 0,
    reading_time    INTEGER NOT NULL DEFAULT 1,
    file_mtime      REAL,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS article_tags (
    slug            TEXT NOT NULL REFERENCES articles_index(slug) ON DELETE CASCADE,
    tag             TEXT NOT NULL,
    PRIMARY KEY (slug, tag)
);

CREATE INDEX IF NOT EXISTS idx_articles_category  ON articles_index(category);
CREATE INDEX IF NOT EXISTS idx_articles_published ON articles_index(published, published_at);
CREATE INDEX IF NOT EXISTS idx_article_tags_tag   ON article_tags(tag);
"""

# ---------------------------------------------------------------------------
# accounts: user records
# ---------------------------------------------------------------------------

ACCOUNTS_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    username        TEXT PRIMARY KEY,
    email           TEXT    NOT NULL UNIQUE,
    password_hash   TEXT    NOT NULL DEFAULT '',
    display_name    TEXT    NOT NULL DEFAULT '',
    role            TEXT    NOT NULL DEFAULT 'user',
    status          TEXT    NOT NULL DEFAULT 'active',
    login_count     INTEGER NOT NULL DEFAULT 0,
    last_login_at   TEXT,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_role   ON users(role);
CREATE INDEX IF NOT EXISTS idx_users_status ON users(status);
"""

# ---------------------------------------------------------------------------
# audit: append-only action trail
# ---------------------------------------------------------------------------

AUDIT_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    username        TEXT    NOT NULL,
    action          TEXT    NOT NULL,
    resource_type   TEXT,
    resource_id     TEXT,
    details         TEXT    NOT NULL DEFAULT '{}',   -- JSON object
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_created  ON audit_log(created_at);
CREATE INDEX IF NOT EXISTS idx_audit_username ON audit_log(username);
CREATE INDEX IF NOT EXISTS idx_audit_action   ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_resource ON audit_log(resource_type, resource_id);
"""

SCHEMAS: dict[str, str] = {
    CONTENT_INDEX: CONTENT_INDEX_SCHEMA_SQL,
    ACCOUNTS: ACCOUNTS_SCHEMA_SQL,
    AUDIT: AUDIT_SCHEMA_SQL,
}
