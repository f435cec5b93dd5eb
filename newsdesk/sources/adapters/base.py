import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from newsdesk.config import FETCH_TIMEOUT, USER_AGENT
from newsdesk.db.models import Engagement, Source

logger = logging.getLogger(__name__)


@dataclass
class ArticleDraft:
    """An item mapped into the canonical article shape, not yet stored."""

    id: str
    source_type: str
    source_name: str
    title: str
    url: str
    content: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    engagement: Engagement | None = None


@dataclass
class FetchResult:
    source: str
    drafts: list[ArticleDraft] = field(default_factory=list)
    error: str | None = None

    @property
    def count(self) -> int:
        return 0 if self.error else len(self.drafts)

    def as_dict(self) -> dict:
        data = {"source": self.source, "count": self.count}
        if self.error:
            data["error"] = self.error
        return data


def make_article_id(prefix: str, url: str, title: str) -> str:
    """Deterministic id for items without a stable native id."""
    digest = hashlib.sha256(f"{url}-{title}".encode()).hexdigest()[:16]
    return f"{prefix}-{digest}"


def http_client(timeout: float = FETCH_TIMEOUT) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def from_timestamp(value) -> datetime | None:
    """Unix seconds to an aware UTC datetime; None for missing or bad values."""
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class SourceAdapter:
    """Fetches one kind of source and maps it into ArticleDrafts.

    Subclasses implement `_fetch`, which may raise; `fetch` turns every
    failure into a FetchResult carrying the error so one broken source never
    blocks the others.
    """

    source_type: str = ""

    def __init__(self, client: httpx.Client | None = None):
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = http_client()
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def label(self, source: Source) -> str:
        return source.name or source.value

    def fetch(self, source: Source) -> FetchResult:
        return self._guarded(self.label(source), self._fetch, source)

    def _guarded(self, label: str, fetch, *args) -> FetchResult:
        """Run a fetch callable, turning any failure into an error result for `label`."""
        try:
            drafts = fetch(*args)
        except httpx.HTTPStatusError as e:
            logger.warning("Source '%s': HTTP %d", label, e.response.status_code)
            return FetchResult(source=label, error=f"HTTP {e.response.status_code} from {e.request.url}")
        except httpx.HTTPError as e:
            logger.warning("Source '%s': %s", label, e)
            return FetchResult(source=label, error=f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.exception("Source '%s': unexpected error", label)
            return FetchResult(source=label, error=f"{type(e).__name__}: {e}")

        logger.info("Source '%s': %d items", label, len(drafts))
        return FetchResult(source=label, drafts=drafts)

    def fetch_all(self, sources: list[Source]) -> list[FetchResult]:
        return [self.fetch(source) for source in sources]

    def _fetch(self, source: Source) -> list[ArticleDraft]:
        raise NotImplementedError

    def _map_items(self, items, mapper) -> list[ArticleDraft]:
        """Apply mapper to each raw item, dropping items that fail to map."""
        drafts = []
        for item in items:
            try:
                draft = mapper(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.debug("Dropping unmappable %s item: %s", self.source_type, e)
                continue
            if draft is not None and draft.title and draft.url:
                drafts.append(draft)
        return drafts
