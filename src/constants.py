"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.
"""

# =============================================================================
# Scraping Configuration
# =============================================================================

# Connect/read timeout for a single page fetch (seconds)
SCRAPE_TIMEOUT_SECONDS = 10.0

# Browser-like identity; many sites reject unidentified clients
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Maximum stored length of a media URL (matches the media_url column)
MAX_MEDIA_URL_LENGTH = 2048

# Content types accepted as markup; anything else is a fetch failure
HTML_CONTENT_TYPES = (
    "text/",
    "application/xhtml+xml",
    "application/xml",
)

# =============================================================================
# Pagination
# =============================================================================

DEFAULT_PAGE_SIZE = 20

MAX_PAGE_SIZE = 100

# =============================================================================
# Lifecycle
# =============================================================================

# Wait this long for in-flight scrape tasks before cancelling them (seconds)
GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS = 30.0

# Requests slower than this are logged by the timing middleware (ms)
SLOW_REQUEST_THRESHOLD_MS = 500.0

# =============================================================================
# Storage
# =============================================================================

MEDIA_ITEMS_TABLE = "media_items"
