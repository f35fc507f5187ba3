import logging
from contextlib import contextmanager
from typing import Iterator

import redis

from campus_events.core.redis_config import LOCK_BLOCKING_TIMEOUT, LOCK_TIMEOUT, get_redis_url
from campus_events.services.errors import EventBusyError

logger = logging.getLogger(__name__)


def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


@contextmanager
def redis_lock(key: str) -> Iterator[None]:
    """
    Hold a Redis lock for the duration of the block.

    Only one process can hold a given key at a time; callers waiting longer
    than LOCK_BLOCKING_TIMEOUT get EventBusyError.
    """
    redis_client = get_redis_client()
    lock = redis_client.lock(key, timeout=LOCK_TIMEOUT, blocking_timeout=LOCK_BLOCKING_TIMEOUT)

    try:
        acquired = lock.acquire(blocking=True, blocking_timeout=LOCK_BLOCKING_TIMEOUT)
    except redis.exceptions.LockError:
        raise EventBusyError()
    if not acquired:
        raise EventBusyError()

    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:
            # Lock expired while held; the transaction already finished
            logger.warning("Lock %s expired before release", key)


def event_lock(event_id: int):
    return redis_lock(f"event_lock:{event_id}")


def venue_lock(venue_id: int):
    return redis_lock(f"venue_lock:{venue_id}")
