# Verification policy knobs (defaults; overridable via config.json)
QUORUM_THRESHOLD = 3          # distinct reporters, not raw reports
PROXIMITY_RADIUS_M = 100      # co-located if closer than this
SIMILARITY_WINDOW_MIN = 60    # same live sighting if reported within this
RETENTION_HOURS = 24          # pending sightings older than this are swept

EARTH_RADIUS_M = 6371000.0

# Collections / singleton documents
SIGHTINGS = "sightings"
FEATURE_FLAGS = "featureFlags"
VENDOR_VERIFICATION_FLAG = "vendorVerification"
VENDORS = "vendors"

CUISINE_TYPES = (
    "Mexican",
    "Asian",
    "American",
    "Mediterranean",
    "Italian",
    "Korean",
    "Vietnamese",
    "Chinese",
    "Japanese",
    "Indian",
    "Middle Eastern",
    "Dessert",
    "Coffee",
    "Other",
)

# Marker palette, highest display priority first
MARKER_VENDOR = "vendor"
MARKER_BUSY = "Busy"
MARKER_MODERATE = "Moderate"
MARKER_LIGHT = "Light"
MARKER_UNKNOWN = "unknown"

MARKER_PRIORITY = (MARKER_VENDOR, MARKER_BUSY, MARKER_MODERATE, MARKER_LIGHT, MARKER_UNKNOWN)
MARKER_COLORS = {
    MARKER_VENDOR: "blue",
    MARKER_BUSY: "red",
    MARKER_MODERATE: "yellow",
    MARKER_LIGHT: "green",
    MARKER_UNKNOWN: "gray",
}

# Truck detail sheet
POPULAR_ITEMS_LIMIT = 8

# Timeouts
FIRESTORE_TIMEOUT_S = 25
FIRESTORE_PAGE_SIZE = 300
JSON_LOCK_TIMEOUT_S = 30      # wait for another process holding the JSON store lock
