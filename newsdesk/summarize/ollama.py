"""Summarization gateway backed by a local Ollama server.

The model is treated as an opaque text-in/text-out service. Local inference can
be slow, so every call carries an explicit timeout and any transport problem is
reported as SummarizationError instead of leaking httpx exceptions.
"""

import logging

import httpx

from newsdesk.config import OLLAMA_MODEL, OLLAMA_URL, SUMMARY_TIMEOUT

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 4000

SUMMARY_PROMPT = """Summarize this AI/ML news article in 2-3 sentences. Focus on key findings, announcements, or insights.

IMPORTANT: Output ONLY the summary text. Do NOT include any preamble like "Here is a summary" or "This article discusses". Do NOT say "Unfortunately" or comment on the content quality. Just write the summary directly.

Title: {title}

Content:
{content}

Summary:"""


class SummarizationError(RuntimeError):
    """The model could not be reached, timed out, or returned an error."""


class OllamaClient:
    def __init__(
        self,
        base_url: str = OLLAMA_URL,
        model: str = OLLAMA_MODEL,
        timeout: float = SUMMARY_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport)

    def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        num_predict: int = 200,
        timeout: float | None = None,
    ) -> str:
        """Run one non-streaming completion and return the stripped response text."""
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": num_predict},
        }
        try:
            with self._client(timeout or self.timeout) as client:
                resp = client.post("/api/generate", json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as e:
            raise SummarizationError(f"Ollama request timed out after {timeout or self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise SummarizationError(f"Ollama request failed: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise SummarizationError(f"Ollama request failed: {e}") from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise SummarizationError("Ollama response had no text")
        return text.strip()

    def summarize(self, title: str, content: str | None) -> str:
        prompt = SUMMARY_PROMPT.format(title=title, content=(content or title)[:MAX_CONTENT_CHARS])
        try:
            return self.generate(prompt, temperature=0.3, num_predict=200)
        except SummarizationError:
            logger.warning("Summarization failed for %r", title[:80])
            raise

    def health_check(self) -> bool:
        try:
            with self._client(5) as client:
                return client.get("/api/tags").is_success
        except httpx.HTTPError:
            return False

    def list_models(self) -> list[str]:
        try:
            with self._client(5) as client:
                resp = client.get("/api/tags")
                resp.raise_for_status()
                models = resp.json().get("models", [])
        except (httpx.HTTPError, ValueError):
            logger.warning("Could not list Ollama models at %s", self.base_url)
            return []
        return [m["name"] for m in models if isinstance(m, dict) and m.get("name")]


def get_gateway() -> OllamaClient:
    """FastAPI dependency and CLI entry point for the configured gateway."""
    return OllamaClient()
