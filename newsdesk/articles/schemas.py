from datetime import datetime, timezone

from pydantic import BaseModel

from newsdesk.db.models import Article


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class EngagementOut(BaseModel):
    score: int
    raw: str
    type: str
    fetched_at: str | None = None


class ArticleResponse(BaseModel):
    id: str
    source_type: str
    source_name: str
    title: str
    url: str
    content: str | None = None
    author: str | None = None
    published_at: str | None = None
    fetched_at: str | None = None
    is_read: bool = False
    summary: str | None = None
    engagement: EngagementOut | None = None

    @classmethod
    def from_article(cls, a: Article) -> "ArticleResponse":
        engagement = None
        if a.engagement is not None:
            engagement = EngagementOut(
                score=a.engagement.score,
                raw=a.engagement.raw,
                type=a.engagement.type,
                fetched_at=_iso(a.engagement.fetched_at),
            )
        return cls(
            id=a.id,
            source_type=a.source_type,
            source_name=a.source_name,
            title=a.title,
            url=a.url,
            content=a.content,
            author=a.author,
            published_at=_iso(a.published_at),
            fetched_at=_iso(a.fetched_at),
            is_read=bool(a.is_read),
            summary=a.summary,
            engagement=engagement,
        )
