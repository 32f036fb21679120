import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_db"),
    "pool_size": int(os.getenv("DB_POOL_SIZE", "20")),
    "acquire_timeout": float(os.getenv("DB_ACQUIRE_TIMEOUT", "5")),
    "statement_timeout_ms": int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000")),
    "lock_wait_timeout": int(os.getenv("DB_LOCK_WAIT_TIMEOUT", "5")),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_LOCATION = os.getenv("DEFAULT_LOCATION", "Office")
QR_REQUIRE_BOUND_TOKENS = bool(int(os.getenv("QR_REQUIRE_BOUND_TOKENS", "0")))
REVEAL_INACTIVE_USERS = bool(int(os.getenv("REVEAL_INACTIVE_USERS", "0")))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
