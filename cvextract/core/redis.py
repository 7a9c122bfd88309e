"""
Redis pub/sub for user-scoped events. With FF_USE_REDIS=false every publish is a no-op.

Channel: user:{user_id}
Payload: {"type": <event>, "data": <dict>}
"""

import json
import logging
from typing import Any, Optional

from .config import get_settings
from .flags import get_flags

logger = logging.getLogger(__name__)

_client = None


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


def _get_client():
    global _client
    if _client is None:
        import redis.asyncio as aioredis

        _client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
        )
    return _client


async def notify_user(user_id: str, event_type: str, data: Optional[dict[str, Any]] = None) -> bool:
    """Publish an event to the user's channel. Returns False when nothing was sent."""
    if not get_flags().use_redis:
        return False

    channel = user_channel(user_id)
    try:
        await _get_client().publish(channel, json.dumps({"type": event_type, "data": data}))
    except Exception as e:
        # Status events are advisory; the document row is the source of truth.
        logger.warning("Redis publish failed (channel=%s): %s", channel, e)
        return False
    return True


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis connection closed")
