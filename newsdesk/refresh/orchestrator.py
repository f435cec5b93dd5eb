"""Multi-source refresh.

One run walks the refresh steps strictly in order (feeds, podcasts, reddit,
hackernews, youtube), one at a time, and yields progress events as it goes:

    per step:  progress(fetching) then complete or error
    then:      engagement(calculating), engagement(complete)
    finally:   done

A failing step is reported and skipped; it never stops the run. The event
generator is transport-agnostic: the API frames it as server-sent events, the
CLI prints it, `refresh_all` drains it into a result map.
"""

import enum
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone

from newsdesk.articles.store import count_engaged_since, upsert_articles
from newsdesk.refresh.events import (
    CompleteEvent,
    DoneEvent,
    EngagementEvent,
    ErrorEvent,
    ProgressEvent,
    RefreshEvent,
    to_sse,
)
from newsdesk.sources.adapters.base import FetchResult, SourceAdapter
from newsdesk.sources.adapters.registry import build_adapter
from newsdesk.sources.manager import list_enabled

logger = logging.getLogger(__name__)

# (key, label, source type) in refresh order
STEP_ORDER = [
    ("feeds", "RSS Feeds", "rss"),
    ("podcasts", "Podcasts", "podcast"),
    ("reddit", "Reddit", "reddit"),
    ("hackernews", "Hacker News", "hackernews"),
    ("youtube", "YouTube", "youtube"),
]
STEP_LABELS = [label for _, label, _ in STEP_ORDER]


class RunState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    ENGAGEMENT = "engagement"
    DONE = "done"


@dataclass
class RefreshStep:
    key: str
    label: str
    source_type: str
    adapter: SourceAdapter


@dataclass
class StepOutcome:
    key: str
    label: str
    results: list[FetchResult] = field(default_factory=list)
    error: str | None = None

    @property
    def count(self) -> int:
        return sum(r.count for r in self.results)

    def as_dict(self) -> dict:
        data = {
            "success": self.error is None,
            "count": self.count,
            "results": [r.as_dict() for r in self.results],
        }
        if self.error:
            data["error"] = self.error
        return data


def default_steps(skip_youtube_engagement: bool = True, client=None) -> list[RefreshStep]:
    """The five standard steps. YouTube view scraping is skipped by default to keep refresh fast."""
    return [
        RefreshStep(
            key=key,
            label=label,
            source_type=source_type,
            adapter=build_adapter(
                source_type,
                skip_engagement=skip_youtube_engagement and source_type == "youtube",
                client=client,
            ),
        )
        for key, label, source_type in STEP_ORDER
    ]


class RefreshRun:
    """A single pass over the refresh steps. Consume `events()` once."""

    def __init__(
        self,
        steps: list[RefreshStep] | None = None,
        *,
        list_sources: Callable = list_enabled,
        store_drafts: Callable = upsert_articles,
        engagement_stats: Callable = count_engaged_since,
    ):
        self.steps = steps if steps is not None else default_steps()
        self.state = RunState.IDLE
        self.current_index: int | None = None
        self.outcomes: dict[str, StepOutcome] = {}
        self._list_sources = list_sources
        self._store_drafts = store_drafts
        self._engagement_stats = engagement_stats

    def events(self) -> Iterator[RefreshEvent]:
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"Refresh run already {self.state.value}")

        started = datetime.now(timezone.utc)
        total = len(self.steps)
        self.state = RunState.RUNNING

        try:
            for index, step in enumerate(self.steps):
                self.current_index = index
                yield ProgressEvent(source=step.label, index=index, total=total)

                outcome = self.run_step(step)
                self.outcomes[step.key] = outcome
                if outcome.error:
                    yield ErrorEvent(source=step.label, error=outcome.error, index=index, total=total)
                else:
                    yield CompleteEvent(source=step.label, count=outcome.count, index=index, total=total)
        finally:
            for step in self.steps:
                step.adapter.close()

        self.current_index = None
        self.state = RunState.ENGAGEMENT
        yield EngagementEvent(status="calculating")
        self._finish_engagement(started)
        yield EngagementEvent(status="complete")

        self.state = RunState.DONE
        yield DoneEvent()

    def run_step(self, step: RefreshStep) -> StepOutcome:
        """Fetch and store one step. Errors become part of the outcome."""
        try:
            sources = self._list_sources(step.source_type)
            results = step.adapter.fetch_all(sources)
        except Exception as e:
            logger.exception("Refresh step '%s' failed", step.label)
            return StepOutcome(step.key, step.label, error=f"{type(e).__name__}: {e}")

        stored = []
        for result in results:
            if not result.error and result.drafts:
                try:
                    self._store_drafts(result.drafts)
                except Exception as e:
                    logger.exception("Storing items from '%s' failed", result.source)
                    result = FetchResult(source=result.source, error=f"store failed: {e}")
            stored.append(result)

        error = None
        failed = [r for r in stored if r.error]
        if stored and len(failed) == len(stored):
            error = "; ".join(f"{r.source}: {r.error}" for r in failed)
            logger.warning("Refresh step '%s': all %d sources failed", step.label, len(failed))
        else:
            logger.info(
                "Refresh step '%s': %d items from %d sources (%d failed)",
                step.label,
                sum(r.count for r in stored),
                len(stored),
                len(failed),
            )
        return StepOutcome(step.key, step.label, results=stored, error=error)

    def _finish_engagement(self, started: datetime) -> None:
        # Ranked sources score inline during fetch; here we only account for coverage.
        try:
            engaged, touched = self._engagement_stats(started)
        except Exception:
            logger.exception("Engagement bookkeeping failed")
            return
        logger.info("Engagement: %d of %d refreshed articles have a score", engaged, touched)


def sse_stream(run: RefreshRun) -> Iterator[str]:
    for event in run.events():
        yield to_sse(event)


def refresh_all(steps: list[RefreshStep] | None = None, **kwargs) -> dict[str, dict]:
    """Run every step to completion and return {step key: outcome}."""
    run = RefreshRun(steps, **kwargs)
    for _ in run.events():
        pass
    return {key: outcome.as_dict() for key, outcome in run.outcomes.items()}


def refresh_source_type(source_type: str, skip_engagement: bool = False, **kwargs) -> StepOutcome:
    """Refresh a single source type outside a full run."""
    key, label = next(((k, lbl) for k, lbl, t in STEP_ORDER if t == source_type), (source_type, source_type))
    step = RefreshStep(key, label, source_type, build_adapter(source_type, skip_engagement=skip_engagement))
    try:
        return RefreshRun([step], **kwargs).run_step(step)
    finally:
        step.adapter.close()
