"""Sliding-window rate limiting keyed by client and action."""

import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from campusknot.utils.cache import RedisClient
from campusknot.utils.errors import RateLimitError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

RATE_LIMIT_KEY_PREFIX = "rate_limit"

DEFAULT_LIMITS: Dict[str, Dict[str, int]] = {
    "api": {"count": 2000, "window": 900},  # 2000 requests per 15 minutes
    "auth": {"count": 100, "window": 900},  # 100 auth attempts per 15 minutes
    "otp": {"count": 20, "window": 900},  # 20 verification emails per 15 minutes
}


class RateLimiter:
    """Keeps recent action timestamps per (client, action) and rejects bursts.

    Timestamps live in Redis when it is configured, otherwise in this object.
    """

    def __init__(self, limits: Optional[Dict[str, Dict[str, int]]] = None) -> None:
        self.limits = limits or DEFAULT_LIMITS
        self._windows: Dict[str, List[datetime]] = {}

    def _load(self, key: str) -> List[datetime]:
        client = RedisClient.get_client()
        if client is None:
            return list(self._windows.get(key, []))

        raw = client.get(key)
        if not raw:
            return []
        timestamps = []
        for ts_iso in json.loads(raw):
            try:
                timestamps.append(datetime.fromisoformat(ts_iso))
            except ValueError:
                logger.warning("Skipping invalid timestamp in rate limit window", key=key, value=ts_iso)
        return timestamps

    def _store(self, key: str, timestamps: List[datetime], window_seconds: int) -> None:
        client = RedisClient.get_client()
        if client is None:
            if timestamps:
                self._windows[key] = timestamps
            else:
                self._windows.pop(key, None)
            return
        client.set(key, json.dumps([ts.isoformat() for ts in timestamps]), ex=window_seconds + 60)

    def check_rate_limit(self, client_key: str, action_type: str) -> Tuple[bool, Optional[int]]:
        """
        Record an action and report whether it is within limits.

        Args:
            client_key: Who is acting (client address or user id).
            action_type: Key of ``self.limits``.

        Returns:
            Tuple[bool, Optional[int]]: (is_allowed, seconds_until_reset)
        """
        if action_type not in self.limits:
            logger.warning("Unknown action type for rate limiting", action_type=action_type)
            return True, None

        limit_info = self.limits[action_type]
        window_seconds = limit_info["window"]
        limit_count = limit_info["count"]

        now = datetime.now(timezone.utc)
        window_start = now - timedelta(seconds=window_seconds)
        key = f"{RATE_LIMIT_KEY_PREFIX}:{client_key}:{action_type}"

        recent = [ts for ts in self._load(key) if ts >= window_start]

        if len(recent) >= limit_count:
            reset_time = min(recent) + timedelta(seconds=window_seconds)
            seconds_left = max(0, int((reset_time - now).total_seconds()))
            logger.info("Rate limit exceeded", key=key, reset_in=seconds_left)
            return False, seconds_left

        recent.append(now)
        self._store(key, recent, window_seconds)
        return True, None

    def enforce(self, client_key: str, action_type: str, message: str = "Too many requests") -> None:
        """Like ``check_rate_limit`` but raises ``RateLimitError`` when over the limit."""
        allowed, retry_after = self.check_rate_limit(client_key, action_type)
        if not allowed:
            raise RateLimitError(message, details={"action": action_type, "retry_after": retry_after})

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Forget in-process windows with no timestamp left inside them. Redis expires its own keys."""
        now = now or datetime.now(timezone.utc)
        stale = []
        for key, timestamps in self._windows.items():
            action_type = key.rsplit(":", 1)[-1]
            window_seconds = self.limits.get(action_type, {}).get("window", 0)
            if not timestamps or max(timestamps) < now - timedelta(seconds=window_seconds):
                stale.append(key)
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("Purged idle rate limit windows", count=len(stale))
        return len(stale)
