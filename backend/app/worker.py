from __future__ import annotations

import logging
import os

import redis
from rq import Worker

from app.core.config import settings


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    conn = redis.Redis.from_url(settings.redis_url)
    raw = str(os.getenv("RQ_WORKER_QUEUES") or "").strip()
    if raw:
        queues = [q.strip() for q in raw.split(",") if q.strip()]
    else:
        queues = [str(settings.rq_queue_default)]
    worker = Worker(queues, connection=conn)
    worker.work()


if __name__ == "__main__":
    main()
