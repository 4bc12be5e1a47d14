"""
Per-client request limiting over a sliding time window.
"""

from __future__ import annotations

import threading
import time
from collections import deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


class RequestLimiter:
    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, deque] = {}
        self._lock = threading.Lock()
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        """Number of clients currently tracked."""
        with self._lock:
            return len(self._hits)

    def _expire(self, hits: deque, now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        # Clients idle for a whole window hold no hits; forget them.
        for client in list(self._hits):
            self._expire(self._hits[client], now)
            if not self._hits[client]:
                del self._hits[client]
        self._last_sweep = now

    def allow(self, client: str, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._last_sweep is None:
                self._last_sweep = now
            elif now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits.setdefault(client, deque())
            self._expire(hits, now)
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RequestLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        if not self.limiter.allow(client):
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests from this IP, please try again later."},
            )
        return await call_next(request)
