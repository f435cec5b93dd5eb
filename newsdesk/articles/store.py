"""Article persistence: keyed upserts plus the read/summary/engagement writers.

Each writer touches its own set of columns, so a refresh upsert, a summary save
and a lazy engagement update on the same row can interleave without
read-modify-write: the last writer of a column wins and nothing else is lost.
"""

import logging
from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from newsdesk.db.models import Article
from newsdesk.db.session import get_session
from newsdesk.sources.adapters.base import ArticleDraft

logger = logging.getLogger(__name__)

SORTS = ("recent", "top")

PERIODS = {
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "year": relativedelta(years=1),
    "all": None,
}


def period_start(period: str | None, now: datetime | None = None) -> datetime | None:
    """Start of the trailing window for `period`, or None for no restriction."""
    if period is None:
        return None
    if period not in PERIODS:
        raise ValueError(f"Invalid period: {period} (expected one of {list(PERIODS)})")
    delta = PERIODS[period]
    if delta is None:
        return None
    return (now or datetime.now(timezone.utc)) - delta


def _upsert_statement(draft: ArticleDraft):
    values = {
        "id": draft.id,
        "source_type": draft.source_type,
        "source_name": draft.source_name,
        "title": draft.title,
        "url": draft.url,
        "content": draft.content,
        "author": draft.author,
        "published_at": draft.published_at,
        "fetched_at": draft.fetched_at,
        "is_read": False,
    }
    if draft.engagement is not None:
        values.update(
            engagement_score=draft.engagement.score,
            engagement_raw=draft.engagement.raw,
            engagement_type=draft.engagement.type,
            engagement_fetched_at=draft.engagement.fetched_at or draft.fetched_at,
        )

    stmt = sqlite_insert(Article).values(**values)
    # is_read and summary belong to the user and the summarizer; never touch them here.
    updates = {"fetched_at": stmt.excluded.fetched_at}
    if draft.engagement is not None:
        updates.update(
            engagement_score=stmt.excluded.engagement_score,
            engagement_raw=stmt.excluded.engagement_raw,
            engagement_type=stmt.excluded.engagement_type,
            engagement_fetched_at=stmt.excluded.engagement_fetched_at,
        )
    return stmt.on_conflict_do_update(index_elements=["id"], set_=updates)


def upsert_articles(drafts: list[ArticleDraft]) -> int:
    """Insert new articles and refresh fetch/engagement fields of known ones."""
    if not drafts:
        return 0
    session = get_session()
    try:
        for draft in drafts:
            session.execute(_upsert_statement(draft))
        session.commit()
        return len(drafts)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def upsert_article(draft: ArticleDraft) -> None:
    upsert_articles([draft])


def list_articles(
    source_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
    sort: str = "recent",
    period: str | None = None,
) -> list[Article]:
    """Filtered, sorted page of articles.

    recent: published_at desc, undated last.
    top: engagement score desc (missing counts as 0), then published_at desc,
    restricted to the trailing `period` window. recent ignores `period`.
    """
    if sort not in SORTS:
        raise ValueError(f"Invalid sort: {sort} (expected one of {list(SORTS)})")
    cutoff = period_start(period)

    session = get_session()
    try:
        query = session.query(Article)
        if source_type:
            query = query.filter(Article.source_type == source_type)
        if sort == "top" and cutoff is not None:
            query = query.filter(Article.published_at >= cutoff)

        if sort == "top":
            query = query.order_by(
                func.coalesce(Article.engagement_score, 0).desc(),
                Article.published_at.desc().nullslast(),
                Article.id,
            )
        else:
            query = query.order_by(Article.published_at.desc().nullslast(), Article.id)

        return query.offset(offset).limit(limit).all()
    finally:
        session.close()


def get_article(article_id: str) -> Article | None:
    session = get_session()
    try:
        return session.get(Article, article_id)
    finally:
        session.close()


def _set_fields(article_id: str, **fields) -> bool:
    session = get_session()
    try:
        article = session.get(Article, article_id)
        if article is None:
            return False
        for name, value in fields.items():
            setattr(article, name, value)
        session.commit()
        return True
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def mark_read(article_id: str) -> bool:
    """Idempotent. Returns False when the article does not exist."""
    return _set_fields(article_id, is_read=True)


def mark_unread(article_id: str) -> bool:
    return _set_fields(article_id, is_read=False)


def save_summary(article_id: str, text: str) -> bool:
    """Set the summary once. False when the article is unknown or already summarized."""
    session = get_session()
    try:
        updated = (
            session.query(Article)
            .filter(Article.id == article_id, Article.summary.is_(None))
            .update({Article.summary: text}, synchronize_session=False)
        )
        session.commit()
        return updated == 1
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def update_engagement(article_id: str, score: int, raw: str, engagement_type: str) -> bool:
    if not 0 <= score <= 100:
        raise ValueError(f"Engagement score must be within 0..100, got {score}")
    return _set_fields(
        article_id,
        engagement_score=score,
        engagement_raw=raw,
        engagement_type=engagement_type,
        engagement_fetched_at=datetime.now(timezone.utc),
    )


def count_engaged_since(since: datetime) -> tuple[int, int]:
    """(articles with an engagement score, all articles) fetched at or after `since`."""
    session = get_session()
    try:
        touched = session.query(Article).filter(Article.fetched_at >= since)
        total = touched.count()
        engaged = touched.filter(Article.engagement_score.isnot(None)).count()
        return engaged, total
    finally:
        session.close()
