"""Internal constants shared across the library."""

from datetime import timedelta

USER_AGENT = "pyarcsync"

#: Guard windows observed per call site.  The push path refreshes just in
#: time, the pull path refreshes well ahead of expiry.
PUSH_GUARD_WINDOW = timedelta(seconds=5)
PULL_GUARD_WINDOW = timedelta(hours=1)

#: Requested token lifetime in minutes (ArcGIS ``generateToken`` expiration).
DEFAULT_TOKEN_EXPIRATION_MIN = 1440

DEFAULT_PAGE_SIZE = 1000
DEFAULT_QUERY = "1=1"
DEFAULT_SOURCE_CRS = "EPSG:4326"
DEFAULT_TARGET_WKID = 3857
DEFAULT_CORRELATION_FIELD = "uid"

MULTI_PREFIX = "Multi"
DATETIME_FORMAT = "%Y-%m-%d %H:%M %Z"

# Threshold to distinguish seconds from milliseconds.
MS_THRESHOLD = 1_000_000_000_000
