import logging
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, HTTPException, Query

from newsdesk.articles import store
from newsdesk.articles.schemas import ArticleResponse
from newsdesk.config import ENGAGEMENT_CACHE_TTL
from newsdesk.engagement.extractor import fetch_engagement_for_article

logger = logging.getLogger(__name__)

router = APIRouter()


def _engagement_payload(score, raw, engagement_type, cached: bool) -> dict:
    return {
        "engagement_score": score,
        "engagement_raw": raw,
        "engagement_type": engagement_type,
        "cached": cached,
    }


@router.get("", response_model=list[ArticleResponse])
def list_articles(
    source: str | None = Query(None, description="Filter by source type"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    sort: Literal["recent", "top"] = Query("recent"),
    period: Literal["day", "week", "month", "year", "all"] = Query("all"),
):
    articles = store.list_articles(source_type=source, limit=limit, offset=offset, sort=sort, period=period)
    return [ArticleResponse.from_article(a) for a in articles]


@router.get("/{article_id}", response_model=ArticleResponse)
def get_article(article_id: str):
    a = store.get_article(article_id)
    if not a:
        raise HTTPException(status_code=404, detail="Article not found")
    return ArticleResponse.from_article(a)


@router.post("/{article_id}/read")
def mark_read(article_id: str):
    if not store.mark_read(article_id):
        raise HTTPException(status_code=404, detail="Article not found")
    return {"success": True}


@router.post("/{article_id}/unread")
def mark_unread(article_id: str):
    if not store.mark_unread(article_id):
        raise HTTPException(status_code=404, detail="Article not found")
    return {"success": True}


@router.post("/{article_id}/fetch-engagement")
def fetch_engagement(article_id: str):
    """Look up engagement for one article, reusing a value fetched within the last hour."""
    a = store.get_article(article_id)
    if not a:
        raise HTTPException(status_code=404, detail="Article not found")

    if a.engagement_fetched_at is not None:
        fetched_at = a.engagement_fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - fetched_at < ENGAGEMENT_CACHE_TTL:
            return _engagement_payload(a.engagement_score, a.engagement_raw, a.engagement_type, cached=True)

    try:
        engagement = fetch_engagement_for_article(a.url, a.source_type)
        if engagement is None:
            return _engagement_payload(None, None, None, cached=False)
        store.update_engagement(article_id, engagement.score, engagement.raw, engagement.type)
    except Exception as e:
        logger.exception("Error fetching engagement for %s", article_id)
        raise HTTPException(status_code=500, detail="Failed to fetch engagement") from e

    return _engagement_payload(engagement.score, engagement.raw, engagement.type, cached=False)
