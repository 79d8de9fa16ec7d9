from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Tuple

from fastapi import Depends, Request

from app.core.auth_deps import get_current_principal
from app.core.config import get_settings
from app.core.errors import RateLimitedError
from app.policies.rbac import Principal


@dataclass
class Bucket:
    tokens: float
    last_ts: float


class InMemoryRateLimiter:
    """
    Token bucket:
      capacity tokens; refill rate tokens/sec.

    Keyed by (user_id, route_key). Per-process only.
    """
    def __init__(self, capacity: int, refill_per_sec: float):
        self.capacity = float(capacity)
        self.refill_per_sec = float(refill_per_sec)
        self._buckets: Dict[Tuple[str, str], Bucket] = {}

    def allow(self, user_id: str, route_key: str, cost: float = 1.0) -> bool:
        now = time.monotonic()
        k = (user_id, route_key)
        b = self._buckets.get(k)
        if b is None:
            b = Bucket(tokens=self.capacity, last_ts=now)
            self._buckets[k] = b

        # refill
        elapsed = max(0.0, now - b.last_ts)
        b.tokens = min(self.capacity, b.tokens + elapsed * self.refill_per_sec)
        b.last_ts = now

        if b.tokens >= cost:
            b.tokens -= cost
            return True
        return False

    def reset(self) -> None:
        self._buckets.clear()


def _build_bid_limiter() -> InMemoryRateLimiter:
    settings = get_settings()
    return InMemoryRateLimiter(
        capacity=settings.bid_rate_limit_capacity,
        refill_per_sec=settings.bid_rate_limit_capacity / float(settings.bid_rate_limit_window_seconds),
    )


# 10 submissions per minute per merchant by default
BID_POST_LIMITER = _build_bid_limiter()


def enforce_bid_rate_limit(
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> None:
    if not BID_POST_LIMITER.allow(principal.user_id, "POST:bids"):
        raise RateLimitedError("Rate limit exceeded for bid submission.")
