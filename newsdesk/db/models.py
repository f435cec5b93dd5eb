import enum
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class SourceType(str, enum.Enum):
    RSS = "rss"
    PODCAST = "podcast"
    REDDIT = "reddit"
    YOUTUBE = "youtube"
    HACKERNEWS = "hackernews"


@dataclass(frozen=True)
class Engagement:
    """Cross-source popularity: score is 0-100, raw/type keep the native metric."""

    score: int
    raw: str
    type: str
    fetched_at: datetime | None = None


class Article(Base):
    __tablename__ = "articles"

    id = Column(String, primary_key=True)
    source_type = Column(String, nullable=False)
    source_name = Column(String, nullable=False)
    title = Column(String, nullable=False)
    url = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    author = Column(String, nullable=True)
    published_at = Column(DateTime, nullable=True)
    fetched_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    is_read = Column(Boolean, nullable=False, default=False)
    summary = Column(Text, nullable=True)
    engagement_score = Column(Integer, nullable=True)
    engagement_raw = Column(String, nullable=True)
    engagement_type = Column(String, nullable=True)
    engagement_fetched_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_articles_source", "source_type", "source_name"),
        Index("idx_articles_published", "published_at"),
        Index("idx_articles_read", "is_read"),
        Index("idx_articles_engagement", "engagement_score"),
    )

    @property
    def engagement(self) -> Engagement | None:
        if self.engagement_score is None:
            return None
        return Engagement(
            score=self.engagement_score,
            raw=self.engagement_raw or "",
            type=self.engagement_type or "",
            fetched_at=self.engagement_fetched_at,
        )


class Source(Base):
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True)
    type = Column(String, nullable=False)
    name = Column(String, nullable=False)
    value = Column(String, nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_sources_type", "type"),
        Index("idx_sources_enabled", "enabled"),
    )
