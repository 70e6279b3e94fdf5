import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "browser-proxy")
API_BASE_PATH = os.environ.get("API_BASE_PATH", "/api").rstrip("/")
PROXY_FETCH_PATH = API_BASE_PATH + "/proxy/fetch"

PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "30"))
PROXY_CONNECT_TIMEOUT = float(os.environ.get("PROXY_CONNECT_TIMEOUT", "10"))
PROXY_MAX_REDIRECTS = int(os.environ.get("PROXY_MAX_REDIRECTS", "20"))
PROXY_DISCONNECT_POLL_INTERVAL = float(
    os.environ.get("PROXY_DISCONNECT_POLL_INTERVAL", "0.5")
)
STRIP_HOP_BY_HOP_HEADERS = (
    os.environ.get("STRIP_HOP_BY_HOP_HEADERS", "true").lower() == "true"
)
SEARCH_FALLBACK_URL = os.environ.get(
    "SEARCH_FALLBACK_URL", "https://www.google.com/search?q={query}"
)

DATABASE_PATH = os.getenv("DATABASE_PATH", "data/browser.db")
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "100"))

LLM_URL = os.getenv("LLM_URL", "")
LLM_TOKEN = os.getenv("LLM_TOKEN", "")
SEARCH_MODEL = os.getenv("SEARCH_MODEL", "gpt-4o")
SEARCH_TIMEOUT = float(os.getenv("SEARCH_TIMEOUT", "60"))

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
