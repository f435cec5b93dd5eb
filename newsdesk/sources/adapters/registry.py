from newsdesk.sources.adapters.base import SourceAdapter
from newsdesk.sources.adapters.feeds import FeedAdapter, PodcastAdapter
from newsdesk.sources.adapters.hackernews import HackerNewsAdapter
from newsdesk.sources.adapters.reddit import RedditAdapter
from newsdesk.sources.adapters.youtube import YouTubeAdapter

ADAPTERS: dict[str, type[SourceAdapter]] = {
    "rss": FeedAdapter,
    "podcast": PodcastAdapter,
    "reddit": RedditAdapter,
    "hackernews": HackerNewsAdapter,
    "youtube": YouTubeAdapter,
}


def build_adapter(source_type: str, *, skip_engagement: bool = False, client=None) -> SourceAdapter:
    try:
        adapter_cls = ADAPTERS[source_type]
    except KeyError:
        raise ValueError(f"Unknown source type: {source_type}") from None
    if adapter_cls is YouTubeAdapter:
        return YouTubeAdapter(client, skip_engagement=skip_engagement)
    return adapter_cls(client)
