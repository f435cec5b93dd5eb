"""Refresh orchestration and its event stream.

Tests verify:
1. Steps run in order with progress then complete/error per step
2. Failing steps are reported and never stop the run
3. The engagement phase and done close every run, done last
4. refresh_all returns the same outcomes as the streamed run
5. SSE framing round-trips through parse_sse_line
"""

from datetime import datetime, timezone

import pytest

from newsdesk.db.models import Source
from newsdesk.refresh.events import CompleteEvent, DoneEvent, EngagementEvent, ErrorEvent, ProgressEvent, parse_sse_line
from newsdesk.refresh.orchestrator import (
    STEP_LABELS,
    STEP_ORDER,
    RefreshRun,
    RefreshStep,
    RunState,
    refresh_all,
    sse_stream,
)
from newsdesk.sources.adapters.base import ArticleDraft, SourceAdapter


class FakeAdapter(SourceAdapter):
    def __init__(self, source_type, items=2, fail=False, fail_sources=()):
        super().__init__(client=None)
        self.source_type = source_type
        self.items = items
        self.fail = fail
        self.fail_sources = set(fail_sources)
        self.closed = False

    def _fetch(self, source):
        if self.fail or source.name in self.fail_sources:
            raise RuntimeError(f"{source.name} unreachable")
        return [
            ArticleDraft(
                id=f"{self.source_type}-{source.name}-{i}",
                source_type=self.source_type,
                source_name=source.name,
                title=f"Item {i}",
                url=f"https://example.com/{source.name}/{i}",
                published_at=datetime.now(timezone.utc),
            )
            for i in range(self.items)
        ]

    def close(self):
        self.closed = True


def _steps(failing=()):
    return [
        RefreshStep(key, label, source_type, FakeAdapter(source_type, fail=key in failing))
        for key, label, source_type in STEP_ORDER
    ]


def _one_source(source_type):
    return [Source(type=source_type, name=f"{source_type}-src", value="x")]


def _run(steps, stored=None, **kwargs):
    kwargs.setdefault("list_sources", _one_source)
    kwargs.setdefault("store_drafts", (stored if stored is not None else []).extend)
    kwargs.setdefault("engagement_stats", lambda since: (0, 0))
    return RefreshRun(steps, **kwargs)


# ---------------------------------------------------------------------------
# Event order
# ---------------------------------------------------------------------------


def test_all_steps_succeed():
    stored = []
    run = _run(_steps(), stored)
    events = list(run.events())

    kinds = [e.type for e in events]
    assert kinds == ["progress", "complete"] * 5 + ["engagement", "engagement", "done"]
    assert [e.source for e in events if isinstance(e, ProgressEvent)] == STEP_LABELS
    assert all(e.count == 2 for e in events if isinstance(e, CompleteEvent))
    assert len(stored) == 10
    assert run.state is RunState.DONE


def test_failing_steps_do_not_stop_the_run():
    run = _run(_steps(failing={"podcasts", "hackernews"}))
    events = list(run.events())

    kinds = [e.type for e in events]
    assert kinds == [
        "progress", "complete",
        "progress", "error",
        "progress", "complete",
        "progress", "error",
        "progress", "complete",
        "engagement", "engagement", "done",
    ]  # fmt: skip

    errors = [e for e in events if isinstance(e, ErrorEvent)]
    assert [(e.source, e.index, e.total) for e in errors] == [("Podcasts", 1, 5), ("Hacker News", 3, 5)]
    assert "unreachable" in errors[0].error

    engagement = [e.status for e in events if isinstance(e, EngagementEvent)]
    assert engagement == ["calculating", "complete"]
    assert isinstance(events[-1], DoneEvent)


def test_indices_and_totals():
    events = list(_run(_steps()).events())
    progress = [e for e in events if isinstance(e, ProgressEvent)]
    assert [(e.index, e.total) for e in progress] == [(i, 5) for i in range(5)]


def test_partial_source_failure_is_still_complete():
    adapter = FakeAdapter("rss", items=3, fail_sources={"down"})
    step = RefreshStep("feeds", "RSS Feeds", "rss", adapter)
    sources = [Source(type="rss", name="up", value="a"), Source(type="rss", name="down", value="b")]

    outcome = _run([step], list_sources=lambda t: sources).run_step(step)

    assert outcome.error is None
    assert outcome.count == 3
    assert [r.error is None for r in outcome.results] == [True, False]


def test_step_without_sources_completes_with_zero():
    step = RefreshStep("reddit", "Reddit", "reddit", FakeAdapter("reddit"))
    outcome = _run([step], list_sources=lambda t: []).run_step(step)
    assert outcome.error is None
    assert outcome.count == 0


def test_listing_sources_failure_is_step_error():
    def broken(source_type):
        raise RuntimeError("database is locked")

    events = list(_run(_steps(), list_sources=broken).events())
    errors = [e for e in events if isinstance(e, ErrorEvent)]
    assert len(errors) == 5
    assert all("database is locked" in e.error for e in errors)
    assert isinstance(events[-1], DoneEvent)


def test_store_failure_is_step_error():
    def broken_store(drafts):
        raise RuntimeError("disk full")

    step = RefreshStep("feeds", "RSS Feeds", "rss", FakeAdapter("rss"))
    outcome = _run([step], store_drafts=broken_store).run_step(step)
    assert outcome.count == 0
    assert "disk full" in outcome.error


def test_engagement_bookkeeping_failure_still_finishes():
    def broken_stats(since):
        raise RuntimeError("nope")

    events = list(_run(_steps(), engagement_stats=broken_stats).events())
    assert [e.type for e in events[-3:]] == ["engagement", "engagement", "done"]


def test_adapters_closed_after_run():
    steps = _steps()
    list(_run(steps).events())
    assert all(step.adapter.closed for step in steps)


def test_run_is_single_use():
    run = _run(_steps())
    list(run.events())
    with pytest.raises(RuntimeError):
        list(run.events())


# ---------------------------------------------------------------------------
# refresh_all
# ---------------------------------------------------------------------------


def test_refresh_all_returns_outcomes_by_step():
    results = refresh_all(
        _steps(failing={"youtube"}),
        list_sources=_one_source,
        store_drafts=lambda drafts: None,
        engagement_stats=lambda since: (0, 0),
    )

    assert list(results) == ["feeds", "podcasts", "reddit", "hackernews", "youtube"]
    assert results["feeds"]["success"] is True
    assert results["feeds"]["count"] == 2
    assert results["feeds"]["results"] == [{"source": "rss-src", "count": 2}]
    assert results["youtube"]["success"] is False
    assert "unreachable" in results["youtube"]["error"]


# ---------------------------------------------------------------------------
# SSE framing
# ---------------------------------------------------------------------------


def test_sse_stream_framing_round_trip():
    chunks = list(sse_stream(_run(_steps(failing={"reddit"}))))

    assert all(c.startswith("data: ") and c.endswith("\n\n") for c in chunks)
    events = [parse_sse_line(c.strip()) for c in chunks]
    assert None not in events
    assert events[0] == ProgressEvent(source="RSS Feeds", index=0, total=5)
    assert events[5] == ErrorEvent(source="Reddit", error=events[5].error, index=2, total=5)
    assert events[-1] == DoneEvent()


@pytest.mark.parametrize("line", ["", ": keep-alive", "event: progress", "data: {not json", 'data: {"type": "bogus"}'])
def test_parse_sse_line_ignores_noise(line):
    assert parse_sse_line(line) is None
