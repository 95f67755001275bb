import os

# Logging
LOG_LEVEL = os.getenv("AUDIT_LOG_LEVEL", "INFO").upper()

# Fetching
FETCH_TIMEOUT = float(os.getenv("AUDIT_FETCH_TIMEOUT", "12"))
MAX_HTML_BYTES = int(os.getenv("AUDIT_MAX_HTML_BYTES", str(2 * 1024 * 1024)))
MAX_REDIRECTS = int(os.getenv("AUDIT_MAX_REDIRECTS", "10"))
ALLOW_PRIVATE_TARGETS = os.getenv("AUDIT_ALLOW_PRIVATE_TARGETS") == "1"

# Identity used for the primary page + robots.txt fetch
DEFAULT_USER_AGENT = os.getenv(
    "AUDIT_DEFAULT_USER_AGENT",
    "Mozilla/5.0 (compatible; OAI-SearchBot/1.0; +https://openai.com/searchbot)",
)
DEFAULT_ROBOTS_TOKEN = os.getenv("AUDIT_DEFAULT_ROBOTS_TOKEN", "oai-searchbot")

# Static text gate (visible text / total HTML length)
TEXT_RATIO_MIN = float(os.getenv("AUDIT_TEXT_RATIO_MIN", "0.18"))
TEXT_RATIO_MIN_STRICT = float(os.getenv("AUDIT_TEXT_RATIO_MIN_STRICT", "0.22"))

# Batch output
DEFAULT_CAMPAIGN = os.getenv("AUDIT_DEFAULT_CAMPAIGN", "crawler-readiness")
REPORTS_DIR = os.getenv("AUDIT_REPORTS_DIR", "reports")

# Paths
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ASSETS_DIR = os.path.join(BASE_DIR, "assets")
FONTS_DIR = os.path.join(ASSETS_DIR, "fonts")
