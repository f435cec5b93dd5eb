import logging

from fastapi import FastAPI
from sqlalchemy import func

from newsdesk.api.routers import articles, refresh, sources, summarize
from newsdesk.config import SOURCES_PATH
from newsdesk.db.models import Article, Source
from newsdesk.db.session import get_session, init_db
from newsdesk.sources.manager import seed_sources

logger = logging.getLogger(__name__)

app = FastAPI(title="newsdesk", version="0.1.0")

app.include_router(articles.router, prefix="/api/articles", tags=["articles"])
app.include_router(refresh.router, prefix="/api", tags=["refresh"])
app.include_router(summarize.router, prefix="/api/summarize", tags=["summarize"])
app.include_router(sources.router, prefix="/api/sources", tags=["sources"])


@app.on_event("startup")
def startup():
    init_db()
    seed_sources(SOURCES_PATH)


@app.get("/api/stats")
def get_stats():
    session = get_session()
    try:
        by_type = dict(session.query(Article.source_type, func.count(Article.id)).group_by(Article.source_type).all())
        return {
            "sources": session.query(Source).count(),
            "sources_enabled": session.query(Source).filter(Source.enabled.is_(True)).count(),
            "articles": session.query(Article).count(),
            "unread": session.query(Article).filter(Article.is_read.is_(False)).count(),
            "summarized": session.query(Article).filter(Article.summary.isnot(None)).count(),
            "engaged": session.query(Article).filter(Article.engagement_score.isnot(None)).count(),
            "by_source_type": by_type,
        }
    finally:
        session.close()
