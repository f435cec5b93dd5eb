"""HTTP API against a seeded temp database.

Tests verify:
1. Article listing filters, sorts and serializes engagement
2. read/unread are idempotent and 404 on unknown ids
3. Summaries are generated once and then served from the database
4. Lazy engagement respects the one-hour cache
5. Source CRUD and the refresh endpoints, including the SSE stream
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from newsdesk.api.main import app
from newsdesk.articles import store
from newsdesk.db.models import Engagement
from newsdesk.refresh.events import parse_sse_line
from newsdesk.refresh.orchestrator import STEP_ORDER, RefreshStep
from newsdesk.sources import manager
from newsdesk.sources.adapters.base import ArticleDraft, SourceAdapter
from newsdesk.summarize.ollama import SummarizationError, get_gateway

NOW = datetime.now(timezone.utc)


class FakeGateway:
    def __init__(self, reply="A short summary.", error=None, healthy=True):
        self.reply = reply
        self.error = error
        self.healthy = healthy
        self.calls = 0

    def summarize(self, title, content):
        self.calls += 1
        if self.error:
            raise self.error
        return self.reply

    def health_check(self):
        return self.healthy

    def list_models(self):
        return ["llama3.2:latest"]


class StaticAdapter(SourceAdapter):
    """Returns one item per source without touching the network."""

    def __init__(self, source_type):
        super().__init__(client=None)
        self.source_type = source_type

    def _fetch(self, source):
        return [
            ArticleDraft(
                id=f"{self.source_type}-{source.id}",
                source_type=self.source_type,
                source_name=source.name,
                title=f"From {source.name}",
                url=f"https://example.com/{self.source_type}/{source.id}",
                published_at=NOW,
            )
        ]


@pytest.fixture()
def client(db_session):
    store.upsert_articles(
        [
            ArticleDraft(
                id="rss-old",
                source_type="rss",
                source_name="Blog",
                title="Old post",
                url="https://example.com/old",
                content="Old content",
                published_at=NOW - timedelta(days=10),
            ),
            ArticleDraft(
                id="hn-1",
                source_type="hackernews",
                source_name="Hacker News",
                title="Popular story",
                url="https://example.com/hn",
                published_at=NOW - timedelta(hours=5),
                engagement=Engagement(score=90, raw="400", type="points", fetched_at=NOW),
            ),
            ArticleDraft(
                id="reddit-1",
                source_type="reddit",
                source_name="r/MachineLearning",
                title="Fresh post",
                url="https://example.com/reddit",
                content="Some text",
                published_at=NOW - timedelta(hours=1),
                engagement=Engagement(score=40, raw="150", type="upvotes", fetched_at=NOW),
            ),
        ]
    )
    manager.add_source("rss", "Blog", "https://example.com/feed.xml")
    manager.add_source("reddit", "r/MachineLearning", "MachineLearning")

    gateway = FakeGateway()
    app.dependency_overrides[get_gateway] = lambda: gateway
    with patch("newsdesk.api.main.get_session", side_effect=db_session):
        tc = TestClient(app, raise_server_exceptions=False)
        yield {"client": tc, "gateway": gateway}
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


def test_list_recent(client):
    resp = client["client"].get("/api/articles")
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == ["reddit-1", "hn-1", "rss-old"]


def test_list_top_with_period(client):
    resp = client["client"].get("/api/articles?sort=top&period=week")
    assert resp.status_code == 200
    body = resp.json()
    assert [a["id"] for a in body] == ["hn-1", "reddit-1"]
    assert body[0]["engagement"]["score"] == 90
    assert body[0]["engagement"]["raw"] == "400"
    assert body[0]["engagement"]["type"] == "points"


def test_list_recent_ignores_period(client):
    resp = client["client"].get("/api/articles?sort=recent&period=day")
    assert [a["id"] for a in resp.json()] == ["reddit-1", "hn-1", "rss-old"]


def test_list_by_source_and_bad_sort(client):
    resp = client["client"].get("/api/articles?source=rss")
    assert [a["id"] for a in resp.json()] == ["rss-old"]
    assert resp.json()[0]["engagement"] is None

    assert client["client"].get("/api/articles?sort=popular").status_code == 422


def test_get_article(client):
    resp = client["client"].get("/api/articles/hn-1")
    assert resp.status_code == 200
    assert resp.json()["title"] == "Popular story"
    assert resp.json()["published_at"].endswith("+00:00")
    assert client["client"].get("/api/articles/nope").status_code == 404


def test_read_unread(client):
    tc = client["client"]
    assert tc.post("/api/articles/hn-1/read").json() == {"success": True}
    assert tc.post("/api/articles/hn-1/read").status_code == 200
    assert tc.get("/api/articles/hn-1").json()["is_read"] is True

    assert tc.post("/api/articles/hn-1/unread").status_code == 200
    assert tc.get("/api/articles/hn-1").json()["is_read"] is False

    assert tc.post("/api/articles/nope/read").status_code == 404
    assert tc.post("/api/articles/nope/unread").status_code == 404


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def test_summarize_then_cached(client):
    tc = client["client"]
    first = tc.post("/api/summarize/reddit-1")
    assert first.status_code == 200
    assert first.json() == {"summary": "A short summary.", "cached": False}

    second = tc.post("/api/summarize/reddit-1")
    assert second.json() == {"summary": "A short summary.", "cached": True}
    assert client["gateway"].calls == 1
    assert tc.get("/api/articles/reddit-1").json()["summary"] == "A short summary."


def test_summarize_failure_is_502_and_not_saved(client):
    client["gateway"].error = SummarizationError("Ollama request timed out after 60s")
    resp = client["client"].post("/api/summarize/reddit-1")
    assert resp.status_code == 502
    assert "timed out" in resp.json()["detail"]
    assert store.get_article("reddit-1").summary is None


def test_summarize_keeps_the_first_stored_summary(client):
    class RacingGateway(FakeGateway):
        def summarize(self, title, content):
            store.save_summary("reddit-1", "Stored by another request.")
            return super().summarize(title, content)

    app.dependency_overrides[get_gateway] = lambda: RacingGateway()
    resp = client["client"].post("/api/summarize/reddit-1")
    assert resp.json() == {"summary": "Stored by another request.", "cached": True}
    assert store.get_article("reddit-1").summary == "Stored by another request."


def test_summarize_unknown_article(client):
    assert client["client"].post("/api/summarize/nope").status_code == 404
    assert client["gateway"].calls == 0


def test_summarizer_health(client):
    body = client["client"].get("/api/summarize/health").json()
    assert body["healthy"] is True
    assert body["models"] == ["llama3.2:latest"]

    client["gateway"].healthy = False
    body = client["client"].get("/api/summarize/health").json()
    assert body == {"healthy": False, "models": [], "message": "Ollama is not available"}


# ---------------------------------------------------------------------------
# Lazy engagement
# ---------------------------------------------------------------------------


def test_fetch_engagement_cached_within_an_hour(client):
    with patch("newsdesk.api.routers.articles.fetch_engagement_for_article") as fetch:
        resp = client["client"].post("/api/articles/hn-1/fetch-engagement")
    assert resp.json() == {"engagement_score": 90, "engagement_raw": "400", "engagement_type": "points", "cached": True}
    fetch.assert_not_called()


def test_fetch_engagement_computes_and_stores(client):
    found = Engagement(score=33, raw="45", type="comments")
    with patch("newsdesk.api.routers.articles.fetch_engagement_for_article", return_value=found):
        resp = client["client"].post("/api/articles/rss-old/fetch-engagement")
    assert resp.json() == {"engagement_score": 33, "engagement_raw": "45", "engagement_type": "comments", "cached": False}
    assert store.get_article("rss-old").engagement.score == 33


def test_fetch_engagement_none_found(client):
    with patch("newsdesk.api.routers.articles.fetch_engagement_for_article", return_value=None):
        resp = client["client"].post("/api/articles/rss-old/fetch-engagement")
    assert resp.status_code == 200
    assert resp.json()["engagement_score"] is None
    assert resp.json()["cached"] is False


def test_fetch_engagement_stale_cache_refetches(client):
    stale = NOW - timedelta(hours=2)
    assert store._set_fields(
        "rss-old", engagement_score=10, engagement_raw="5", engagement_type="shares", engagement_fetched_at=stale
    )

    found = Engagement(score=60, raw="900", type="shares")
    with patch("newsdesk.api.routers.articles.fetch_engagement_for_article", return_value=found) as fetch:
        resp = client["client"].post("/api/articles/rss-old/fetch-engagement")
    fetch.assert_called_once()
    assert resp.json()["engagement_score"] == 60
    assert resp.json()["cached"] is False


def test_fetch_engagement_unknown(client):
    assert client["client"].post("/api/articles/nope/fetch-engagement").status_code == 404


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def test_sources_crud(client):
    tc = client["client"]
    created = tc.post("/api/sources", json={"type": "youtube", "name": "Chan", "value": "UC123"})
    assert created.status_code == 201
    source_id = created.json()["id"]

    grouped = tc.get("/api/sources").json()
    assert set(grouped) == {"rss", "reddit", "youtube"}
    assert tc.get("/api/sources/youtube").json()[0]["name"] == "Chan"

    assert tc.put(f"/api/sources/{source_id}", json={"name": "Channel"}).status_code == 200
    toggled = tc.post(f"/api/sources/{source_id}/toggle")
    assert toggled.status_code == 200
    assert tc.get("/api/sources/youtube").json()[0] == {
        "id": source_id,
        "type": "youtube",
        "name": "Channel",
        "value": "UC123",
        "enabled": False,
    }

    assert tc.delete(f"/api/sources/{source_id}").status_code == 204
    assert tc.get("/api/sources/youtube").json() == []


def test_sources_errors(client):
    tc = client["client"]
    assert tc.post("/api/sources", json={"type": "gopher", "name": "x", "value": "y"}).status_code == 400
    assert tc.put("/api/sources/999", json={"name": "x"}).status_code == 404
    assert tc.post("/api/sources/999/toggle").status_code == 404
    assert tc.delete("/api/sources/999").status_code == 404


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


def _static_steps(**kwargs):
    return [RefreshStep(key, label, source_type, StaticAdapter(source_type)) for key, label, source_type in STEP_ORDER]


def test_refresh_all_stores_items(client):
    with patch("newsdesk.refresh.orchestrator.default_steps", side_effect=_static_steps):
        resp = client["client"].post("/api/refresh-all")
    assert resp.status_code == 200
    body = resp.json()
    assert list(body) == ["feeds", "podcasts", "reddit", "hackernews", "youtube"]
    assert body["feeds"]["count"] == 1
    assert body["reddit"]["count"] == 1
    assert body["podcasts"] == {"success": True, "count": 0, "results": []}
    assert len(store.list_articles()) == 5


def test_refresh_all_stream(client):
    with patch("newsdesk.refresh.orchestrator.default_steps", side_effect=_static_steps):
        resp = client["client"].post("/api/refresh-all-stream")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    events = [parse_sse_line(line) for line in resp.text.splitlines() if line]
    assert [e.type for e in events] == ["progress", "complete"] * 5 + ["engagement", "engagement", "done"]


def test_refresh_single_type(client):
    def build(source_type, **kwargs):
        return StaticAdapter(source_type)

    with patch("newsdesk.refresh.orchestrator.build_adapter", side_effect=build):
        resp = client["client"].post("/api/refresh/rss")
    assert resp.json()["count"] == 1
    assert resp.json()["results"][0]["source"] == "Blog"

    assert client["client"].post("/api/refresh/gopher").status_code == 400


def test_stats(client):
    body = client["client"].get("/api/stats").json()
    assert body["articles"] == 3
    assert body["engaged"] == 2
    assert body["sources"] == 2
    assert body["by_source_type"] == {"rss": 1, "hackernews": 1, "reddit": 1}
