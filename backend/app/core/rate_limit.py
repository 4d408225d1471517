from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from app.core.config import settings
from app.core.redis_client import get_redis

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    key: str
    limit: int
    window_seconds: int


def client_ip(request: Request) -> str:
    if bool(settings.trust_proxy_headers):
        xri = str(request.headers.get("x-real-ip") or "").strip()
        if xri:
            return xri
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _subject(request: Request) -> str:
    # Authenticated callers are limited per user, anonymous ones per address.
    uid = getattr(getattr(request, "state", None), "user_id", None)
    return f"u:{uid}" if uid else f"ip:{client_ip(request)}"


def rate_limit(*, key_prefix: str, limit: int | None = None, window_seconds: int | None = None):
    eff_limit = int(limit if limit is not None else settings.submit_rate_limit)
    eff_window = int(window_seconds if window_seconds is not None else settings.submit_rate_window_seconds)

    async def _dep(request: Request) -> RateLimit:
        key = f"rl:{key_prefix}:{request.method}:{request.url.path}:{_subject(request)}"
        r = get_redis()

        try:
            current = r.incr(key)
            if current == 1:
                r.expire(key, eff_window)
        except Exception:
            log.warning("rate limiter unavailable, allowing request key=%s", key)
            return RateLimit(key=key, limit=eff_limit, window_seconds=eff_window)

        if int(current) > eff_limit:
            ttl = r.ttl(key)
            retry_after = int(ttl) if ttl and ttl > 0 else eff_window
            raise HTTPException(
                status_code=429,
                detail="rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

        return RateLimit(key=key, limit=eff_limit, window_seconds=eff_window)

    return Depends(_dep)
