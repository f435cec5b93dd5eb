import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import httpx

from newsdesk.db.models import Engagement, Source
from newsdesk.engagement.normalizer import normalize
from newsdesk.sources.adapters.base import ArticleDraft, FetchResult, SourceAdapter, from_timestamp

logger = logging.getLogger(__name__)

HN_API = "https://hacker-news.firebaseio.com/v0"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={}"
SOURCE_NAME = "Hacker News"


def matches_keywords(title: str, keywords: list[str]) -> bool:
    lower = title.lower()
    return any(kw.lower() in lower for kw in keywords if kw)


class HackerNewsAdapter(SourceAdapter):
    """Top stories filtered by a keyword allow-list.

    Each enabled hackernews source contributes one keyword (its `value`). All
    keywords are matched in a single pass over the top stories, so the adapter
    reports one combined result rather than one per keyword.
    """

    source_type = "hackernews"
    max_stories = 100
    workers = 10

    def label(self, source: Source) -> str:
        return SOURCE_NAME

    def fetch_all(self, sources: list[Source]) -> list[FetchResult]:
        if not sources:
            return []
        keywords = [s.value.strip() for s in sources if s.value and s.value.strip()]
        return [self._guarded(SOURCE_NAME, self._fetch_matching, keywords)]

    def _fetch(self, source: Source) -> list[ArticleDraft]:
        return self._fetch_matching([(source.value or "").strip()])

    def _fetch_matching(self, keywords: list[str]) -> list[ArticleDraft]:
        keywords = [kw for kw in keywords if kw]
        if not keywords:
            return []

        resp = self.client.get(f"{HN_API}/topstories.json")
        resp.raise_for_status()
        story_ids = resp.json()[: self.max_stories]

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            items = list(pool.map(self._fetch_item, story_ids))

        now = datetime.now(timezone.utc)
        stories = [
            item
            for item in items
            if item and item.get("type") == "story" and item.get("title") and matches_keywords(item["title"], keywords)
        ]
        return self._map_items(stories, lambda item: self._to_draft(item, now))

    def _fetch_item(self, item_id) -> dict | None:
        try:
            resp = self.client.get(f"{HN_API}/item/{item_id}.json")
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Skipping HN item %s: %s", item_id, e)
            return None

    def _to_draft(self, item: dict, now: datetime) -> ArticleDraft:
        points = int(item.get("score") or 0)
        return ArticleDraft(
            id=f"hn-{item['id']}",
            source_type=self.source_type,
            source_name=SOURCE_NAME,
            title=item["title"].strip(),
            url=item.get("url") or HN_ITEM_URL.format(item["id"]),
            content=item.get("text") or None,
            author=item.get("by") or None,
            published_at=from_timestamp(item.get("time")),
            fetched_at=now,
            engagement=Engagement(
                score=normalize(points, self.source_type),
                raw=str(points),
                type="points",
                fetched_at=now,
            ),
        )
