"""
/**
 * @file dialect_backend/controllers/health_controller.py
 * @description 状态 / 健康检查 / keep-alive / 统计控制器。
 */
"""

import logging
import os
import platform
import sys

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse

from dialect_backend.models.dialect_catalog import DIALECTS
from dialect_backend.utils import iso_now, iso_timestamp


logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "2.0.0"
INDEX_HTML_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "static", "index.html")

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /api/health",
    "GET /api/dialects",
    "GET /api/keep-alive",
    "GET /api/stats",
    "POST /api/translate",
    "POST /api/translate/batch",
]


def _keep_alive_status(state) -> dict:
    snap = state.activity.snapshot()
    return {
        "enabled": state.scheduler.enabled,
        "url": state.scheduler.base_url,
        "last_activity": iso_timestamp(snap.last_activity_at),
        "activity_count": snap.activity_count,
        "minutes_since_last_activity": snap.minutes_since_last_activity,
    }


@router.get("/")
def root(request: Request):
    accept = request.headers.get("accept", "")
    state = request.app.state
    if "application/json" in accept:
        return {
            "message": "九州方言翻訳API",
            "version": API_VERSION,
            "status": "running",
            "server_uptime": state.stats.uptime_seconds,
            "memory_usage": state.stats.memory_usage(),
            "keep_alive_status": _keep_alive_status(state),
            "timestamp": iso_now(),
            "endpoints": AVAILABLE_ENDPOINTS[1:],
            "documentation": "README.mdを参照してください",
        }

    if not os.path.isfile(INDEX_HTML_PATH):
        logger.error(f"index.html配信エラー: {INDEX_HTML_PATH} not found")
        return JSONResponse(
            status_code=500,
            content={"error": "ファイル配信エラー", "message": "index.html not found", "timestamp": iso_now()},
        )
    return FileResponse(INDEX_HTML_PATH, media_type="text/html")


@router.get("/api/keep-alive")
def keep_alive(request: Request):
    state = request.app.state
    snap = state.activity.snapshot()
    return {
        "status": "alive",
        "timestamp": iso_now(),
        "uptime_seconds": int(state.stats.uptime_seconds),
        "uptime_formatted": state.stats.uptime_formatted,
        "memory_mb": state.stats.rss_mb(),
        "last_real_activity": iso_timestamp(snap.last_activity_at),
        "activity_count": snap.activity_count,
        "keep_alive_ping": True,
    }


@router.get("/api/stats")
def stats(request: Request):
    state = request.app.state
    snap = state.activity.snapshot()
    return {
        "success": True,
        "server_stats": {
            "status": "running",
            "uptime_seconds": int(state.stats.uptime_seconds),
            "uptime_formatted": state.stats.uptime_formatted,
            "memory_usage": state.stats.memory_usage(),
            "activity": {
                "last_activity": iso_timestamp(snap.last_activity_at),
                "activity_count": snap.activity_count,
                "minutes_since_last_activity": snap.minutes_since_last_activity,
            },
            "keep_alive": state.scheduler.status(),
            "environment": {
                "python_version": platform.python_version(),
                "platform": sys.platform,
                "arch": platform.machine(),
                "is_production": state.settings.is_production,
            },
        },
        "timestamp": iso_now(),
    }


@router.get("/api/health")
def health(request: Request):
    state = request.app.state
    snap = state.activity.snapshot()
    logger.info("ヘルスチェック実行")
    return {
        "status": "healthy",
        "timestamp": iso_now(),
        "version": API_VERSION,
        "gemini_configured": state.translator.is_configured,
        "supported_dialects_count": len(DIALECTS),
        "server_uptime": state.stats.uptime_seconds,
        "uptime_formatted": state.stats.uptime_formatted,
        "memory_usage": state.stats.memory_usage(),
        "keep_alive_active": state.scheduler.interval_active,
        "last_activity": iso_timestamp(snap.last_activity_at),
        "activity_count": snap.activity_count,
    }
