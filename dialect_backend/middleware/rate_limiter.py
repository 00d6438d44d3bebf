"""
/**
 * @file dialect_backend/middleware/rate_limiter.py
 * @description 按客户端 IP 的固定窗口限流（/api/ 下生效，keep-alive 豁免）。
 */
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from dialect_backend.errors import RateLimitError
from dialect_backend.services.keep_alive_service import KEEP_ALIVE_PATH
from dialect_backend.utils.formatting import iso_now


@dataclass
class _Window:
    started_at: float
    calls: int = 0


class FixedWindowLimiter:
    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}

    def hit(self, key: str) -> bool:
        """Count one call for ``key``; False once the window is exhausted."""
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now)
            self._windows[key] = window
            self._evict(now)
        if window.calls >= self.max_requests:
            return False
        window.calls += 1
        return True

    def _evict(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for k in expired:
            del self._windows[k]


def is_rate_limited_path(path: str) -> bool:
    return path.startswith("/api/") and path != KEEP_ALIVE_PATH


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: FixedWindowLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        if is_rate_limited_path(request.url.path):
            client = request.client.host if request.client else "unknown"
            if not self.limiter.hit(client):
                body = RateLimitError().to_dict()
                body["timestamp"] = iso_now()
                return JSONResponse(status_code=RateLimitError.status_code, content=body)
        return await call_next(request)
