"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DATE_KEY_FORMAT = "%Y-%m-%d"
DEFAULT_PUNCH_MAX_ATTEMPTS = 3
DEFAULT_RECORDS_PAGE_SIZE = 50
MAX_RECORDS_PAGE_SIZE = 500
DEFAULT_REPORT_DAYS = 7

# Client clocks further off than this are logged when a punch carries a timestamp.
CLIENT_SKEW_WARN_SECONDS = 120
