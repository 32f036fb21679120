import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_test"),
    "pool_size": 2,
    "acquire_timeout": 1.0,
    "statement_timeout_ms": 2000,
    "lock_wait_timeout": 2,
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

DEFAULT_LOCATION = "Office"
QR_REQUIRE_BOUND_TOKENS = False
REVEAL_INACTIVE_USERS = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
