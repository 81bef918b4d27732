"""Per-client token bucket rate limiting.

Notes:
- Per-process only: each worker keeps its own registry.
- One lock guards the whole registry, including the periodic sweep. It is
  never held across an ``await``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.errors import RateLimitExceededError
from app.core.exception_handlers import SERVER_ERROR_MESSAGE, error_response

logger = logging.getLogger(__name__)


class TokenBucket:
    """Holds up to ``burst`` tokens, refilled continuously at ``rate`` per second."""

    def __init__(self, rate: float, burst: int, now: float) -> None:
        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)
        self.updated_at = now

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.updated_at)
        self.tokens = min(float(self.burst), self.tokens + elapsed * self.rate)
        self.updated_at = now

    def allow(self, now: float) -> bool:
        self._refill(now)
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False


@dataclass
class _Client:
    bucket: TokenBucket
    last_seen: float


class RateLimiter:
    """Registry of token buckets keyed by client identity.

    Entries idle for longer than ``stale_after`` seconds are evicted by a
    background sweep running every ``sweep_interval`` seconds between
    :meth:`start` and :meth:`stop`.
    """

    def __init__(
        self,
        *,
        rate: float = 2,
        burst: int = 4,
        sweep_interval: float = 60,
        stale_after: float = 180,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError('rate must be > 0')
        if burst < 1:
            raise ValueError('burst must be >= 1')
        if sweep_interval <= 0 or stale_after <= 0:
            raise ValueError('sweep_interval and stale_after must be > 0')

        self.rate = rate
        self.burst = burst
        self.sweep_interval = sweep_interval
        self.stale_after = stale_after
        self._clock = clock
        self._lock = threading.Lock()
        self._clients: dict[str, _Client] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._clients

    def allow(self, identity: str) -> bool:
        """Consume one token for ``identity``; False means the request must be rejected."""
        if not identity:
            raise ValueError('identity must be a non-empty string')

        now = self._clock()
        with self._lock:
            client = self._clients.get(identity)
            if client is None:
                client = _Client(bucket=TokenBucket(self.rate, self.burst, now), last_seen=now)
                self._clients[identity] = client
            client.last_seen = now
            return client.bucket.allow(now)

    def sweep(self) -> int:
        """Evict identities idle for longer than ``stale_after``. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [
                identity for identity, client in self._clients.items()
                if now - client.last_seen > self.stale_after
            ]
            for identity in stale:
                del self._clients[identity]
        if stale:
            logger.info('rate_limit.sweep', extra={'evicted': len(stale)})
        return len(stale)

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        if self.running:
            return
        self._sweeper = asyncio.create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        # starlette already strips the port from the peer address
        identity = request.client.host if request.client else None
        if not identity:
            logger.error(
                'unable to determine client address',
                extra={'request_method': request.method, 'request_url': str(request.url)},
            )
            return error_response(500, SERVER_ERROR_MESSAGE)

        if not self.limiter.allow(identity):
            logger.warning(
                'rate_limit.exceeded',
                extra={'client_ip': identity, 'request_method': request.method, 'request_path': request.url.path},
            )
            return error_response(
                RateLimitExceededError.status_code,
                RateLimitExceededError.default_message,
                headers={'Retry-After': '1'},
            )

        return await call_next(request)
