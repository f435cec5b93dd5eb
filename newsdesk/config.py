import os
from datetime import timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DB_PATH = PROJECT_ROOT / "data" / "news.db"
DB_URL = os.environ.get("NEWSDESK_DB_URL", f"sqlite:///{DB_PATH}")
SOURCES_PATH = Path(os.environ.get("NEWSDESK_SOURCES", PROJECT_ROOT / "config" / "sources.yaml"))

# Local LLM used for summaries and engagement extraction
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434")
OLLAMA_MODEL = os.environ.get("OLLAMA_MODEL", "llama3.2")
SUMMARY_TIMEOUT = 60
EXTRACTION_TIMEOUT = 30

# Outbound requests to content sources
USER_AGENT = "newsdesk/1.0"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
FETCH_TIMEOUT = 20
SCRAPE_TIMEOUT = 15

ENGAGEMENT_CACHE_TTL = timedelta(hours=1)

# Ensure data directory exists
DB_PATH.parent.mkdir(parents=True, exist_ok=True)
