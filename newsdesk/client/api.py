"""Async HTTP client for the newsdesk API."""

import logging
from collections.abc import AsyncIterator

import httpx

from newsdesk.articles.schemas import ArticleResponse
from newsdesk.refresh.events import RefreshEvent, parse_sse_line

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
# Summaries and full refreshes are slow; only the connect phase is kept short.
DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=300.0)


class ApiError(RuntimeError):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.is_success:
        return
    try:
        detail = resp.json().get("detail", resp.text)
    except (ValueError, AttributeError):
        detail = resp.text
    raise ApiError(resp.status_code, str(detail))


class NewsClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, *, timeout=DEFAULT_TIMEOUT, transport=None):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "NewsClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_articles(
        self,
        source: str | None = None,
        limit: int = 100,
        offset: int = 0,
        sort: str = "recent",
        period: str = "all",
    ) -> list[ArticleResponse]:
        params = {"limit": limit, "offset": offset, "sort": sort, "period": period}
        if source:
            params["source"] = source
        resp = await self._client.get("/api/articles", params=params)
        _raise_for_status(resp)
        return [ArticleResponse.model_validate(item) for item in resp.json()]

    async def summarize(self, article_id: str) -> str:
        resp = await self._client.post(f"/api/summarize/{article_id}")
        _raise_for_status(resp)
        return resp.json()["summary"]

    async def mark_read(self, article_id: str) -> None:
        resp = await self._client.post(f"/api/articles/{article_id}/read")
        _raise_for_status(resp)

    async def refresh_stream(self) -> AsyncIterator[RefreshEvent]:
        """Start a full refresh and yield its events as they arrive."""
        async with self._client.stream("POST", "/api/refresh-all-stream") as resp:
            if not resp.is_success:
                await resp.aread()
                _raise_for_status(resp)
            async for line in resp.aiter_lines():
                event = parse_sse_line(line)
                if event is not None:
                    yield event
