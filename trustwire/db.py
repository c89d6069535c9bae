"""SQLite article store: schema, full-text index and query helpers."""

from __future__ import annotations

import json
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np

from trustwire.models import (
    ENGAGEMENT_FIELDS,
    Article,
    CredibilityEvaluation,
    Insights,
    PipelineRun,
    SearchFilters,
    SourceInfo,
    TrustScore,
    canonical_url,
    utcnow,
)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    summary TEXT,
    source_name TEXT NOT NULL,
    source_type TEXT NOT NULL DEFAULT 'rss-feed',
    source_feed_url TEXT NOT NULL DEFAULT '',
    source_logo TEXT NOT NULL DEFAULT '',
    author TEXT,
    published_at TEXT NOT NULL,
    ingested_at TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'other',
    tags TEXT NOT NULL DEFAULT '[]',
    relevant_companies TEXT NOT NULL DEFAULT '[]',
    relevant_industries TEXT NOT NULL DEFAULT '[]',
    trust_source_reputation REAL NOT NULL DEFAULT 50,
    trust_content_quality REAL NOT NULL DEFAULT 50,
    trust_author_expertise REAL NOT NULL DEFAULT 50,
    trust_recency REAL NOT NULL DEFAULT 50,
    trust_consensus REAL NOT NULL DEFAULT 50,
    trust_citation_references REAL NOT NULL DEFAULT 50,
    trust_overall INTEGER NOT NULL DEFAULT 50,
    credibility TEXT NOT NULL DEFAULT '{}',
    insights TEXT NOT NULL DEFAULT '{}',
    sentiment TEXT NOT NULL DEFAULT 'neutral',
    embedding BLOB,
    views INTEGER NOT NULL DEFAULT 0,
    saves INTEGER NOT NULL DEFAULT 0,
    shares INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    is_featured INTEGER NOT NULL DEFAULT 0,
    is_verified INTEGER NOT NULL DEFAULT 0,
    duplicate_of INTEGER REFERENCES articles(id) ON DELETE SET NULL,
    CHECK (duplicate_of IS NULL OR is_active = 0)
);

CREATE VIRTUAL TABLE IF NOT EXISTS articles_fts USING fts5(
    title, content, tags,
    content='articles', content_rowid='id',
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS articles_fts_insert AFTER INSERT ON articles BEGIN
    INSERT INTO articles_fts(rowid, title, content, tags)
    VALUES (new.id, new.title, new.content, new.tags);
END;

CREATE TRIGGER IF NOT EXISTS articles_fts_delete AFTER DELETE ON articles BEGIN
    INSERT INTO articles_fts(articles_fts, rowid, title, content, tags)
    VALUES ('delete', old.id, old.title, old.content, old.tags);
END;

CREATE TRIGGER IF NOT EXISTS articles_fts_update
AFTER UPDATE OF title, content, tags ON articles BEGIN
    INSERT INTO articles_fts(articles_fts, rowid, title, content, tags)
    VALUES ('delete', old.id, old.title, old.content, old.tags);
    INSERT INTO articles_fts(rowid, title, content, tags)
    VALUES (new.id, new.title, new.content, new.tags);
END;

CREATE TABLE IF NOT EXISTS pipeline_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    finished_at TEXT,
    status TEXT NOT NULL DEFAULT 'running',
    articles_fetched INTEGER NOT NULL DEFAULT 0,
    articles_stored INTEGER NOT NULL DEFAULT 0,
    articles_skipped INTEGER NOT NULL DEFAULT 0,
    articles_failed INTEGER NOT NULL DEFAULT 0,
    duplicates_marked INTEGER NOT NULL DEFAULT 0,
    articles_deleted INTEGER NOT NULL DEFAULT 0,
    llm_tokens_used INTEGER NOT NULL DEFAULT 0,
    llm_cost_usd REAL NOT NULL DEFAULT 0.0
);

CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_at DESC);
CREATE INDEX IF NOT EXISTS idx_articles_category_active ON articles(category, is_active);
CREATE INDEX IF NOT EXISTS idx_articles_trust_active ON articles(trust_overall DESC, is_active);
CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_name, ingested_at DESC);
"""

_ARTICLE_COLUMNS = (
    "url", "title", "content", "summary",
    "source_name", "source_type", "source_feed_url", "source_logo",
    "author", "published_at", "ingested_at",
    "category", "tags", "relevant_companies", "relevant_industries",
    "trust_source_reputation", "trust_content_quality", "trust_author_expertise",
    "trust_recency", "trust_consensus", "trust_citation_references", "trust_overall",
    "credibility", "insights", "sentiment", "embedding",
    "views", "saves", "shares",
    "is_active", "is_featured", "is_verified", "duplicate_of",
)


def get_connection(db_path: str) -> sqlite3.Connection:
    """Get a SQLite connection with WAL mode enabled."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create all tables, indexes and triggers and set schema version."""
    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()
    finally:
        conn.close()


def _dt_str(dt: datetime | None) -> str | None:
    """ISO string in UTC so lexical order matches time order."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_dt(s: str | None) -> datetime | None:
    if s is None:
        return None
    return datetime.fromisoformat(s)


def _embedding_blob(embedding: list[float] | None) -> bytes | None:
    if embedding is None:
        return None
    return np.asarray(embedding, dtype=np.float32).tobytes()


def _article_values(article: Article) -> tuple:
    trust = article.trust_score
    credibility = {
        "quality": article.credibility.quality,
        "author_expertise": article.credibility.author_expertise,
        "citations": article.credibility.citations,
        "warnings": article.credibility.warnings,
    }
    insights = {
        "key_insights": article.insights.key_insights,
        "risk_factors": article.insights.risk_factors,
        "opportunities": article.insights.opportunities,
    }
    return (
        canonical_url(article.url),
        article.title,
        article.content,
        article.summary,
        article.source.name,
        article.source.type,
        article.source.feed_url,
        article.source.logo,
        article.author,
        _dt_str(article.published_at),
        _dt_str(article.ingested_at),
        article.category,
        json.dumps(article.tags),
        json.dumps(article.relevant_companies),
        json.dumps(article.relevant_industries),
        trust.source_reputation,
        trust.content_quality,
        trust.author_expertise,
        trust.recency,
        trust.consensus,
        trust.citation_references,
        trust.overall,
        json.dumps(credibility),
        json.dumps(insights),
        article.insights.sentiment,
        _embedding_blob(article.embedding),
        article.views,
        article.saves,
        article.shares,
        int(article.is_active),
        int(article.is_featured),
        int(article.is_verified),
        article.duplicate_of,
    )


def _row_to_article(row: sqlite3.Row) -> Article:
    credibility = json.loads(row["credibility"])
    insights = json.loads(row["insights"])
    blob = row["embedding"]
    return Article(
        id=row["id"],
        url=row["url"],
        title=row["title"],
        content=row["content"],
        summary=row["summary"],
        source=SourceInfo(
            name=row["source_name"],
            type=row["source_type"],
            feed_url=row["source_feed_url"],
            logo=row["source_logo"],
        ),
        author=row["author"],
        published_at=_parse_dt(row["published_at"]),
        ingested_at=_parse_dt(row["ingested_at"]),
        category=row["category"],
        tags=json.loads(row["tags"]),
        relevant_companies=json.loads(row["relevant_companies"]),
        relevant_industries=json.loads(row["relevant_industries"]),
        trust_score=TrustScore(
            source_reputation=row["trust_source_reputation"],
            content_quality=row["trust_content_quality"],
            author_expertise=row["trust_author_expertise"],
            recency=row["trust_recency"],
            consensus=row["trust_consensus"],
            citation_references=row["trust_citation_references"],
        ),
        credibility=CredibilityEvaluation(
            quality=credibility.get("quality"),
            author_expertise=credibility.get("author_expertise"),
            citations=credibility.get("citations"),
            warnings=credibility.get("warnings", []),
        ),
        insights=Insights(
            key_insights=insights.get("key_insights", []),
            risk_factors=insights.get("risk_factors", []),
            opportunities=insights.get("opportunities", []),
            sentiment=row["sentiment"],
        ),
        embedding=np.frombuffer(blob, dtype=np.float32).tolist() if blob else None,
        views=row["views"],
        saves=row["saves"],
        shares=row["shares"],
        is_active=bool(row["is_active"]),
        is_featured=bool(row["is_featured"]),
        is_verified=bool(row["is_verified"]),
        duplicate_of=row["duplicate_of"],
    )


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


def _json_overlap(column: str, values: list) -> str:
    return (
        f"EXISTS (SELECT 1 FROM json_each({column}) "
        f"WHERE json_each.value IN ({_placeholders(values)}))"
    )


def build_filter_clause(
    filters: SearchFilters | None, alias: str = "a"
) -> tuple[list[str], list]:
    """Translate structured filters into SQL conditions and parameters."""
    clauses: list[str] = []
    params: list = []
    if filters is None:
        return clauses, params

    if filters.categories:
        clauses.append(f"{alias}.category IN ({_placeholders(filters.categories)})")
        params.extend(filters.categories)
    if filters.sources:
        clauses.append(f"{alias}.source_name IN ({_placeholders(filters.sources)})")
        params.extend(filters.sources)
    if filters.companies:
        clauses.append(_json_overlap(f"{alias}.relevant_companies", filters.companies))
        params.extend(filters.companies)
    if filters.industries:
        clauses.append(_json_overlap(f"{alias}.relevant_industries", filters.industries))
        params.extend(filters.industries)
    if filters.date_from:
        clauses.append(f"{alias}.published_at >= ?")
        params.append(_dt_str(filters.date_from))
    if filters.date_to:
        clauses.append(f"{alias}.published_at <= ?")
        params.append(_dt_str(filters.date_to))
    if filters.min_trust_score is not None:
        clauses.append(f"{alias}.trust_overall >= ?")
        params.append(filters.min_trust_score)
    if filters.sentiment:
        clauses.append(f"{alias}.sentiment = ?")
        params.append(filters.sentiment)
    return clauses, params


def _select_articles(
    conn: sqlite3.Connection,
    where: list[str],
    params: list,
    order_by: str,
    limit: int | None = None,
    skip: int = 0,
) -> list[Article]:
    sql = "SELECT a.* FROM articles a"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += f" ORDER BY {order_by}"
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params = [*params, limit, skip]
    rows = conn.execute(sql, params).fetchall()
    return [_row_to_article(row) for row in rows]


# --- Article helpers ---


def insert_article(conn: sqlite3.Connection, article: Article) -> int:
    """Insert an article, returning its ID. A duplicate URL returns the existing ID."""
    sql = (
        f"INSERT INTO articles ({', '.join(_ARTICLE_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in _ARTICLE_COLUMNS)})"
    )
    try:
        cur = conn.execute(sql, _article_values(article))
        conn.commit()
        return cur.lastrowid
    except sqlite3.IntegrityError:
        row = conn.execute(
            "SELECT id FROM articles WHERE url = ?", (canonical_url(article.url),)
        ).fetchone()
        if row is None:
            raise
        return row["id"]


def article_exists(conn: sqlite3.Connection, url: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM articles WHERE url = ?", (canonical_url(url),)
    ).fetchone()
    return row is not None


def get_article(conn: sqlite3.Connection, article_id: int) -> Article | None:
    row = conn.execute("SELECT * FROM articles WHERE id = ?", (article_id,)).fetchone()
    return _row_to_article(row) if row else None


def get_active_articles(conn: sqlite3.Connection) -> list[Article]:
    """All active articles in insertion order."""
    return _select_articles(conn, ["a.is_active = 1"], [], "a.id")


def mark_duplicate(conn: sqlite3.Connection, article_id: int, canonical_id: int) -> None:
    """Deactivate an article and point it at the article it duplicates."""
    conn.execute(
        "UPDATE articles SET is_active = 0, duplicate_of = ? WHERE id = ?",
        (canonical_id, article_id),
    )
    conn.commit()


def set_featured(conn: sqlite3.Connection, article_id: int, featured: bool = True) -> None:
    conn.execute(
        "UPDATE articles SET is_featured = ? WHERE id = ?", (int(featured), article_id)
    )
    conn.commit()


def delete_old_articles(
    conn: sqlite3.Connection, days_cutoff: int = 90, now: datetime | None = None
) -> int:
    """Hard-delete articles published before the cutoff, keeping featured ones."""
    cutoff = (now or utcnow()) - timedelta(days=days_cutoff)
    cur = conn.execute(
        "DELETE FROM articles WHERE published_at < ? AND is_featured = 0",
        (_dt_str(cutoff),),
    )
    conn.commit()
    return cur.rowcount


def increment_engagement(conn: sqlite3.Connection, article_id: int, kind: str) -> bool:
    """Atomically bump the view/save/share counter. Returns False if no such article."""
    column = ENGAGEMENT_FIELDS.get(kind)
    if column is None:
        raise ValueError(f"Unknown engagement kind: {kind}")
    cur = conn.execute(
        f"UPDATE articles SET {column} = {column} + 1 WHERE id = ?", (article_id,)
    )
    conn.commit()
    return cur.rowcount > 0


# --- Search helpers ---


def _fts_query(query: str) -> str | None:
    """OR together the query's terms, quoted so FTS5 syntax is never interpreted."""
    terms = re.findall(r"\w+", query)
    if not terms:
        return None
    return " OR ".join(f'"{term}"' for term in terms)


def keyword_search(
    conn: sqlite3.Connection,
    query: str,
    limit: int = 50,
    min_trust_score: float = 0,
    filters: SearchFilters | None = None,
) -> list[Article]:
    """Full-text match over title/content/tags, best bm25 first."""
    match = _fts_query(query)
    if match is None:
        return []
    clauses, params = build_filter_clause(filters)
    where = ["articles_fts MATCH ?", "a.is_active = 1", "a.trust_overall >= ?", *clauses]
    sql = (
        "SELECT a.* FROM articles_fts JOIN articles a ON a.id = articles_fts.rowid"
        " WHERE " + " AND ".join(where) +
        " ORDER BY bm25(articles_fts) LIMIT ?"
    )
    rows = conn.execute(sql, [match, min_trust_score, *params, limit]).fetchall()
    return [_row_to_article(row) for row in rows]


def get_embedded_articles(
    conn: sqlite3.Connection,
    min_trust_score: float = 0,
    filters: SearchFilters | None = None,
) -> list[Article]:
    """Active, filtered articles that carry an embedding."""
    clauses, params = build_filter_clause(filters)
    where = ["a.is_active = 1", "a.trust_overall >= ?", "a.embedding IS NOT NULL", *clauses]
    return _select_articles(conn, where, [min_trust_score, *params], "a.id")


def get_trending_articles(
    conn: sqlite3.Connection,
    limit: int = 10,
    filters: SearchFilters | None = None,
    time_range_days: int = 7,
    min_trust_score: float = 60,
    now: datetime | None = None,
) -> list[Article]:
    cutoff = (now or utcnow()) - timedelta(days=time_range_days)
    clauses, params = build_filter_clause(filters)
    where = ["a.is_active = 1", "a.published_at >= ?", "a.trust_overall >= ?", *clauses]
    return _select_articles(
        conn,
        where,
        [_dt_str(cutoff), min_trust_score, *params],
        "a.trust_overall DESC, a.views DESC, a.shares DESC, a.published_at DESC",
        limit,
    )


def get_high_trust_articles(
    conn: sqlite3.Connection,
    limit: int = 20,
    filters: SearchFilters | None = None,
    min_trust_score: float = 75,
) -> list[Article]:
    clauses, params = build_filter_clause(filters)
    where = ["a.is_active = 1", "a.trust_overall >= ?", *clauses]
    return _select_articles(
        conn,
        where,
        [min_trust_score, *params],
        "a.trust_overall DESC, a.published_at DESC",
        limit,
    )


def get_related_articles(
    conn: sqlite3.Connection, article: Article, limit: int = 5
) -> list[Article]:
    """Active articles sharing a tag, category, company or industry with ``article``."""
    signals = ["a.category = ?"]
    params: list = [article.category]
    for column, values in (
        ("a.tags", article.tags),
        ("a.relevant_companies", article.relevant_companies),
        ("a.relevant_industries", article.relevant_industries),
    ):
        if values:
            signals.append(_json_overlap(column, values))
            params.extend(values)
    where = ["a.id != ?", "a.is_active = 1", "(" + " OR ".join(signals) + ")"]
    return _select_articles(
        conn, where, [article.id, *params], "a.published_at DESC", limit
    )


def get_articles_by_company(
    conn: sqlite3.Connection, company: str, limit: int = 20, skip: int = 0
) -> tuple[list[Article], int]:
    where = ["a.is_active = 1", _json_overlap("a.relevant_companies", [company])]
    results = _select_articles(conn, where, [company], "a.published_at DESC", limit, skip)
    total = conn.execute(
        "SELECT COUNT(*) FROM articles a WHERE " + " AND ".join(where), (company,)
    ).fetchone()[0]
    return results, total


def get_articles_by_category(
    conn: sqlite3.Connection, category: str, limit: int = 20, skip: int = 0
) -> tuple[list[Article], int]:
    where = ["a.is_active = 1", "a.category = ?"]
    results = _select_articles(conn, where, [category], "a.published_at DESC", limit, skip)
    total = conn.execute(
        "SELECT COUNT(*) FROM articles a WHERE " + " AND ".join(where), (category,)
    ).fetchone()[0]
    return results, total


def distinct_values(conn: sqlite3.Connection, field: str, needle: str) -> list[str]:
    """Distinct tags/companies/categories of active articles containing ``needle``."""
    if field == "category":
        sql = (
            "SELECT DISTINCT category AS value FROM articles"
            " WHERE is_active = 1 AND instr(lower(category), lower(?)) > 0"
            " ORDER BY value"
        )
    elif field in ("tags", "relevant_companies", "relevant_industries"):
        sql = (
            f"SELECT DISTINCT j.value AS value FROM articles, json_each(articles.{field}) j"
            " WHERE articles.is_active = 1 AND instr(lower(j.value), lower(?)) > 0"
            " ORDER BY value"
        )
    else:
        raise ValueError(f"Unsupported field: {field}")
    return [row["value"] for row in conn.execute(sql, (needle,)).fetchall()]


def count_by_category(conn: sqlite3.Connection) -> dict[str, int]:
    rows = conn.execute(
        "SELECT category, COUNT(*) AS n FROM articles WHERE is_active = 1"
        " GROUP BY category ORDER BY n DESC, category"
    ).fetchall()
    return {row["category"]: row["n"] for row in rows}


# --- PipelineRun helpers ---


def insert_run(conn: sqlite3.Connection, run: PipelineRun) -> int:
    cur = conn.execute(
        "INSERT INTO pipeline_runs (started_at, status) VALUES (?, ?)",
        (_dt_str(run.started_at), run.status),
    )
    conn.commit()
    return cur.lastrowid


def finish_run(conn: sqlite3.Connection, run_id: int, run: PipelineRun) -> None:
    conn.execute(
        """UPDATE pipeline_runs SET
           finished_at = ?, status = ?, articles_fetched = ?,
           articles_stored = ?, articles_skipped = ?, articles_failed = ?,
           duplicates_marked = ?, articles_deleted = ?,
           llm_tokens_used = ?, llm_cost_usd = ?
           WHERE id = ?""",
        (
            _dt_str(run.finished_at),
            run.status,
            run.articles_fetched,
            run.articles_stored,
            run.articles_skipped,
            run.articles_failed,
            run.duplicates_marked,
            run.articles_deleted,
            run.llm_tokens_used,
            run.llm_cost_usd,
            run_id,
        ),
    )
    conn.commit()


def get_recent_runs(conn: sqlite3.Connection, limit: int = 10) -> list[dict]:
    """Fetch recent pipeline runs for stats display."""
    rows = conn.execute(
        "SELECT * FROM pipeline_runs ORDER BY started_at DESC, id DESC LIMIT ?", (limit,)
    ).fetchall()
    return [dict(row) for row in rows]
