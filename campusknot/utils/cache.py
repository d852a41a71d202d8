"""Redis access for state shared between CampusKnot instances."""

from typing import Optional, Type, TypeVar

import redis
import sentry_sdk
from pydantic import BaseModel

from campusknot.config import settings
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# Upper bound for any cached record
MAX_TTL_SECONDS = 24 * 3600


class RedisClient:
    """
    Process-wide Redis connection.

    Resolved lazily from ``REDIS_URL``. A missing URL or a pool that cannot
    be built disables Redis for the life of the process and callers keep
    their state in memory instead.
    """

    _instance: Optional[redis.Redis] = None
    _failed: bool = False

    @classmethod
    def get_client(cls) -> Optional[redis.Redis]:
        if cls._failed:
            return None
        if cls._instance is not None:
            return cls._instance

        if not settings.REDIS_URL:
            logger.info("Redis not configured, shared state stays in memory")
            cls._failed = True
            return None

        try:
            pool = redis.ConnectionPool.from_url(settings.REDIS_URL, max_connections=10, decode_responses=True)
        except Exception as e:
            logger.warning("Redis unavailable, shared state stays in memory", error=str(e))
            cls._failed = True
            return None

        cls._instance = redis.Redis(connection_pool=pool)
        logger.info("Redis client ready")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the client so the next call re-reads configuration."""
        cls._instance = None
        cls._failed = False


def store_model(key: str, record: BaseModel, ttl_seconds: int) -> bool:
    """
    Save a pydantic record under ``key`` with an expiry.

    Returns:
        bool: False when Redis is disabled and nothing was written.
    """
    ttl_seconds = min(max(ttl_seconds, 1), MAX_TTL_SECONDS)
    with sentry_sdk.start_span(op="cache.set", name=key) as span:
        client = RedisClient.get_client()
        if client is None:
            return False
        client.set(key, record.model_dump_json(), ex=ttl_seconds)
        span.set_data("ttl", ttl_seconds)
        return True


def load_model(key: str, model_class: Type[M]) -> Optional[M]:
    """Read a record saved by ``store_model``; unreadable entries count as missing."""
    with sentry_sdk.start_span(op="cache.get", name=key) as span:
        client = RedisClient.get_client()
        if client is None:
            return None
        raw = client.get(key)
        span.set_data("hit", bool(raw))

    if not raw:
        return None
    try:
        return model_class.model_validate_json(raw)
    except ValueError as e:
        logger.error("Discarding unreadable cache entry", key=key, model=model_class.__name__, error=str(e))
        return None


def evict(key: str) -> None:
    client = RedisClient.get_client()
    if client is not None:
        client.delete(key)
