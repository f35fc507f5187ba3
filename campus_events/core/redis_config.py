import os

# Redis configuration
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Per-event lock: how long a holder may keep it, and how long a caller waits for it
LOCK_TIMEOUT = int(os.getenv("LOCK_TIMEOUT", "10"))
LOCK_BLOCKING_TIMEOUT = int(os.getenv("LOCK_BLOCKING_TIMEOUT", "5"))


def get_redis_url():
    return REDIS_URL
