from __future__ import annotations

import redis
from rq import Queue

from app.core.config import settings


def get_queue(name: str | None = None) -> Queue:
    conn = redis.Redis.from_url(settings.redis_url, socket_connect_timeout=2, socket_timeout=2)
    eff = str(name or "").strip() or str(settings.rq_queue_default)
    return Queue(name=eff, connection=conn)
