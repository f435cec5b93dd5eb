"""Lazy, per-article engagement lookup.

Sources without a ranking number in their feed (YouTube views, arbitrary web
pages) get engagement on demand: scrape the page, then either read the view
count directly or ask the LLM to pull a metric out of the text. Everything here
returns None on failure so callers can treat "no engagement" uniformly.
"""

import json
import logging
import re
from datetime import datetime, timezone

import httpx
from lxml import etree
from lxml import html as lxml_html

from newsdesk.config import BROWSER_USER_AGENT, EXTRACTION_TIMEOUT, SCRAPE_TIMEOUT
from newsdesk.db.models import Engagement
from newsdesk.engagement.normalizer import normalize, parse_human_count
from newsdesk.summarize.ollama import OllamaClient, SummarizationError

logger = logging.getLogger(__name__)

MAX_PAGE_CHARS = 5000

_SCRAPE_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
_SPACE_RE = re.compile(r"\s+")
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_VIEW_COUNT_RE = re.compile(r'"viewCount"\s*:\s*"(\d+)"')
_VIEWS_TEXT_RE = re.compile(r"([\d][\d,.]*\s*[KMB]?)\s+views", re.IGNORECASE)

METRIC_HINTS = {
    "youtube": 'view count (e.g., "1.2M views", "15,234 views")',
    "reddit": 'upvotes or score (e.g., "1.2k upvotes", "Score: 500")',
    "hackernews": 'points (e.g., "342 points")',
    "rss": "any engagement metric like shares, comments, or views",
    "podcast": "listen count or downloads",
}

EXTRACTION_PROMPT = """Extract the primary engagement metric from this webpage content.

Source type: {source_type}
URL: {url}

Look for: {look_for}

Page content (excerpt):
{content}

IMPORTANT: Respond with ONLY a valid JSON object, no other text.
If you find an engagement metric, respond with:
{{"raw": "the exact number as shown", "type": "views|upvotes|points|likes|comments|shares", "found": true}}

If no engagement metric is found, respond with:
{{"found": false}}

JSON response:"""


def html_to_text(html: str) -> str:
    """Visible text of an HTML page or fragment, entities decoded, whitespace collapsed."""
    if not html or not html.strip():
        return ""
    try:
        doc = lxml_html.document_fromstring(html)
    except ValueError:
        # str input that still carries an XML encoding declaration
        doc = lxml_html.document_fromstring(html.encode("utf-8"))
    except etree.ParserError:
        return ""

    for node in doc.xpath("//script | //style | //comment()"):
        if node.getparent() is not None:
            node.drop_tree()
    return _SPACE_RE.sub(" ", " ".join(doc.itertext())).strip()


def _get_page(url: str, client: httpx.Client | None) -> str | None:
    try:
        if client is not None:
            resp = client.get(url, headers=_SCRAPE_HEADERS)
        else:
            resp = httpx.get(url, headers=_SCRAPE_HEADERS, timeout=SCRAPE_TIMEOUT, follow_redirects=True)
        resp.raise_for_status()
        return resp.text
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch %s: %s", url, e)
        return None


def scrape_page_text(url: str, client: httpx.Client | None = None) -> str | None:
    """Fetch a page and return its visible text, capped at MAX_PAGE_CHARS."""
    html = _get_page(url, client)
    if html is None:
        return None
    return html_to_text(html)[:MAX_PAGE_CHARS]


def extract_youtube_views(url: str, client: httpx.Client | None = None) -> Engagement | None:
    """Read the view count off a YouTube watch page."""
    html = _get_page(url, client)
    if html is None:
        return None

    match = _VIEW_COUNT_RE.search(html)
    if match:
        raw = match.group(1)
    else:
        match = _VIEWS_TEXT_RE.search(html_to_text(html))
        if not match:
            return None
        raw = match.group(1).strip()

    views = parse_human_count(raw)
    if views <= 0:
        return None
    return Engagement(
        score=normalize(views, "youtube"),
        raw=raw,
        type="views",
        fetched_at=datetime.now(timezone.utc),
    )


def parse_llm_engagement(reply: str, source_type: str) -> Engagement | None:
    """Turn the model's JSON reply into an Engagement, or None."""
    match = _JSON_OBJECT_RE.search(reply or "")
    if not match:
        logger.warning("No JSON found in LLM engagement reply: %r", (reply or "")[:200])
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("Malformed JSON in LLM engagement reply: %r", match.group(0)[:200])
        return None

    if not isinstance(parsed, dict) or not parsed.get("found") or not parsed.get("raw"):
        return None

    raw = str(parsed["raw"])
    count = parse_human_count(raw)
    if count == 0:
        return None
    return Engagement(
        score=normalize(count, source_type),
        raw=raw,
        type=parsed.get("type") or "unknown",
        fetched_at=datetime.now(timezone.utc),
    )


def extract_engagement_with_llm(
    content: str,
    source_type: str,
    url: str,
    gateway: OllamaClient | None = None,
) -> Engagement | None:
    gateway = gateway or OllamaClient()
    prompt = EXTRACTION_PROMPT.format(
        source_type=source_type,
        url=url,
        look_for=METRIC_HINTS.get(source_type, "any popularity or engagement metric"),
        content=content[:3000],
    )
    try:
        reply = gateway.generate(prompt, temperature=0.1, num_predict=100, timeout=EXTRACTION_TIMEOUT)
    except SummarizationError as e:
        logger.warning("LLM engagement extraction failed for %s: %s", url, e)
        return None
    return parse_llm_engagement(reply, source_type)


def fetch_engagement_for_article(
    url: str,
    source_type: str,
    gateway: OllamaClient | None = None,
) -> Engagement | None:
    """Best-effort engagement for one article. Never raises."""
    try:
        if source_type == "youtube":
            return extract_youtube_views(url)
        content = scrape_page_text(url)
        if not content:
            return None
        return extract_engagement_with_llm(content, source_type, url, gateway)
    except Exception:
        logger.exception("Engagement lookup failed for %s", url)
        return None
