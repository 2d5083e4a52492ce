"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Persistent entity stores
# ------------------------------------------------------------------

FAVORITES_STORAGE_KEY = "fc.favorites.v2"
HISTORY_STORAGE_KEY = "fc.history"
ENTITY_BLOB_VERSION = 2
MAX_HISTORY = 50

# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------

NAVIGATION_MAX_SIZE = 100
NAVIGATION_BLOB_VERSION = 1
MAX_TITLE_LENGTH = 200
MAX_ID_LENGTH = 100

# ------------------------------------------------------------------
# Health thresholds (metrics above these degrade a HEALTHY overall)
# ------------------------------------------------------------------

RESPONSE_TIME_THRESHOLD_MS = 1000.0
ERROR_RATE_THRESHOLD = 0.1
MEMORY_USAGE_THRESHOLD = 0.8

HEALTH_POLL_INTERVAL_S = 5.0
HEALTH_TIMEOUT_S = 4.0

# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------

SEARCH_DEBOUNCE_S = 0.3
HIGHLIGHT_OPEN = "<mark>"
HIGHLIGHT_CLOSE = "</mark>"

TITLE_WEIGHT = 5
DESCRIPTION_WEIGHT = 3
TAG_WEIGHT = 2
