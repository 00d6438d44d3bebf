"""
/**
 * @file dialect_backend/middleware/activity.py
 * @description 请求日志 + 活动记录中间件（ActivityTracker 的唯一写入者）。
 */
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from dialect_backend.services.activity_service import ActivityTracker
from dialect_backend.services.keep_alive_service import KEEP_ALIVE_PATH


logger = logging.getLogger("request")


def is_self_ping(path: str) -> bool:
    return path.rstrip("/") == KEEP_ALIVE_PATH


class ActivityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, tracker: ActivityTracker):
        super().__init__(app)
        self.tracker = tracker

    async def dispatch(self, request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        logger.info(f"{request.method} {request.url.path} - IP: {client}")
        if not is_self_ping(request.url.path):
            self.tracker.record_activity()
        return await call_next(request)
