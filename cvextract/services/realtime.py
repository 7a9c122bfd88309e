"""
Realtime notifications. Thin wrapper around core.redis.
"""

from ..core import redis as _redis


async def document_status(user_id: str, doc_id: str, status: str, error: str = None):
    data = {"document_id": doc_id, "status": status}
    if error:
        data["error"] = error
    await _redis.notify_user(user_id, "document.status", data)
