"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

FACE_CONFIDENCE_THRESHOLD = 0.85
DEFAULT_HISTORY_LIMIT = 1000
DEFAULT_LOCATION = "Office"
UNKNOWN_DEVICE = "Unknown"

# How many characters of a QR code end up in audit descriptions.
QR_CODE_AUDIT_PREFIX = 10

MYSQL_ERR_DUPLICATE_ENTRY = 1062
MYSQL_ERR_LOCK_WAIT_TIMEOUT = 1205
MYSQL_ERR_DEADLOCK = 1213
MYSQL_ERR_QUERY_TIMEOUT = 3024
