from datetime import datetime, timezone

from newsdesk.db.models import Engagement, Source
from newsdesk.engagement.normalizer import normalize
from newsdesk.sources.adapters.base import ArticleDraft, SourceAdapter, from_timestamp

REDDIT_BASE = "https://www.reddit.com"


class RedditAdapter(SourceAdapter):
    """Hot posts of a subreddit. `value` is the subreddit name without r/."""

    source_type = "reddit"
    max_items = 25

    def label(self, source: Source) -> str:
        return source.name or f"r/{source.value.strip().removeprefix('r/')}"

    def _fetch(self, source: Source) -> list[ArticleDraft]:
        subreddit = source.value.strip().removeprefix("r/")
        resp = self.client.get(
            f"{REDDIT_BASE}/r/{subreddit}/hot.json",
            params={"limit": self.max_items},
        )
        resp.raise_for_status()
        payload = resp.json()
        children = payload["data"]["children"]
        now = datetime.now(timezone.utc)
        return self._map_items(children[: self.max_items], lambda c: self._to_draft(c["data"], source, now))

    def _to_draft(self, post: dict, source: Source, now: datetime) -> ArticleDraft:
        url = post.get("url") or post.get("permalink") or ""
        if url.startswith("/r/"):
            url = f"{REDDIT_BASE}{url}"

        score = int(post.get("score") or 0)
        return ArticleDraft(
            id=f"reddit-{post['id']}",
            source_type=self.source_type,
            source_name=f"r/{post['subreddit']}" if post.get("subreddit") else self.label(source),
            title=(post.get("title") or "").strip(),
            url=url,
            content=post.get("selftext") or None,
            author=post.get("author") or None,
            published_at=from_timestamp(post.get("created_utc")),
            fetched_at=now,
            engagement=Engagement(
                score=normalize(score, self.source_type),
                raw=str(score),
                type="upvotes",
                fetched_at=now,
            ),
        )
