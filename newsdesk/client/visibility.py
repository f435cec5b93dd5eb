"""Auto-summarize what the reader can see.

Two pieces:

VisibilityTracker is a standing map of rendered article elements and which of
them are on screen. It only changes through per-id events (register,
unregister, observe). In particular it is never reset when the article list
changes: a re-sort or re-fetch keeps the same elements on screen, and wiping
the set would leave it empty until the next scroll event, silently stopping
auto-summarization.

AutoSummarizer drains the visible, unsummarized, content-bearing articles one
at a time through an async `summarize(article_id)` callable. Only one drain
runs at a time; triggers that arrive mid-drain are dropped because the drain
recomputes its candidates after every request and picks new ones up itself.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.5


def compute_candidates(articles: Iterable, visible_ids, exclude=()) -> list:
    """Visible articles that have content and no summary, in list order."""
    return [
        a
        for a in articles
        if a.id in visible_ids and a.id not in exclude and a.summary is None and a.content
    ]


class VisibilityTracker:
    def __init__(self):
        self._elements: dict[str, object] = {}
        self._visible: set[str] = set()

    def register(self, article_id: str, element: object = None) -> None:
        self._elements[article_id] = element

    def unregister(self, article_id: str) -> None:
        """Element unmounted: forget it and its visibility."""
        self._elements.pop(article_id, None)
        self._visible.discard(article_id)

    def observe(self, article_id: str, intersecting: bool) -> None:
        if intersecting:
            self._visible.add(article_id)
        else:
            self._visible.discard(article_id)

    def is_registered(self, article_id: str) -> bool:
        return article_id in self._elements

    @property
    def visible_ids(self) -> frozenset[str]:
        return frozenset(self._visible)


@dataclass
class AutoSummarizeState:
    is_auto_summarizing: bool = False
    current_article_id: str | None = None
    current: int = 0
    total: int = 0

    @property
    def progress(self) -> dict:
        return {"current": self.current, "total": self.total}


class AutoSummarizer:
    """Serial summary queue driven by visibility and article-list changes.

    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        summarize: Callable[[str], Awaitable[str | None]],
        *,
        tracker: VisibilityTracker | None = None,
        debounce: float = DEFAULT_DEBOUNCE,
    ):
        self.summarize = summarize
        self.tracker = tracker or VisibilityTracker()
        self.debounce = debounce
        self.state = AutoSummarizeState()
        self._articles: list = []
        self._summarized: set[str] = set()
        self._processing = False
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None

    @property
    def articles(self) -> list:
        return list(self._articles)

    @property
    def is_processing(self) -> bool:
        return self._processing

    def set_articles(self, articles: Iterable) -> None:
        """Swap in a new article list and schedule a debounced drain.

        Visibility is left as is; newly mounted elements report in through
        `on_visibility` during the debounce window.
        """
        self._articles = list(articles)
        self._schedule()

    def register(self, article_id: str, element: object = None) -> None:
        self.tracker.register(article_id, element)

    def unregister(self, article_id: str) -> None:
        self.tracker.unregister(article_id)

    def on_visibility(self, article_id: str, intersecting: bool) -> None:
        self.tracker.observe(article_id, intersecting)
        self.trigger()

    def candidates(self, exclude=()) -> list:
        return compute_candidates(self._articles, self.tracker.visible_ids, self._summarized.union(exclude))

    def trigger(self) -> asyncio.Task | None:
        """Start a drain unless one is already running."""
        if self._processing or (self._task is not None and not self._task.done()):
            return None
        self._task = asyncio.get_running_loop().create_task(self.drain())
        return self._task

    def _schedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self.trigger()

    async def drain(self) -> int:
        """Summarize current candidates one by one. Returns how many succeeded."""
        if self._processing:
            return 0
        if not self.candidates():
            self.state = AutoSummarizeState()
            return 0

        self._processing = True
        attempted: set[str] = set()
        succeeded = 0
        try:
            while True:
                pending = self.candidates(exclude=attempted)
                if not pending:
                    break
                article = pending[0]
                total = len(attempted) + len(pending)
                self.state = AutoSummarizeState(True, article.id, len(attempted), total)
                attempted.add(article.id)

                try:
                    summary = await self.summarize(article.id)
                except Exception:
                    logger.exception("Failed to auto-summarize article %s", article.id)
                else:
                    if summary is None:
                        logger.warning("No summary returned for article %s", article.id)
                    else:
                        self._summarized.add(article.id)
                        succeeded += 1

                self.state = AutoSummarizeState(True, None, len(attempted), total)
        finally:
            self._processing = False
            self.state = AutoSummarizeState(False, None, self.state.current, self.state.total)
        return succeeded

    async def wait_idle(self) -> None:
        """Wait until no debounce is pending and no drain is running."""
        while True:
            if self._task is not None and not self._task.done():
                await self._task
            elif self._timer is not None:
                await asyncio.sleep(self.debounce / 2 or 0)
            else:
                return

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
