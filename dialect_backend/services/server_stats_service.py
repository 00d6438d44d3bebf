"""
/**
 * @file dialect_backend/services/server_stats_service.py
 * @description 进程运行状态（运行时长、内存）与定期状态报告。
 */
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional

import psutil

from dialect_backend.services.activity_service import ActivityTracker
from dialect_backend.services.keep_alive_service import KeepAliveScheduler
from dialect_backend.utils.formatting import format_uptime


logger = logging.getLogger("server_stats")

_MB = 1024 * 1024


class ServerStats:
    def __init__(self, started_at: Optional[float] = None):
        self.started_at = started_at if started_at is not None else time.time()
        self._process = psutil.Process()

    @property
    def uptime_seconds(self) -> float:
        return max(0.0, time.time() - self.started_at)

    @property
    def uptime_formatted(self) -> str:
        return format_uptime(self.uptime_seconds)

    def memory_usage(self) -> Dict[str, int]:
        mem = self._process.memory_info()
        return {
            "rss_mb": round(mem.rss / _MB),
            "vms_mb": round(mem.vms / _MB),
        }

    def rss_mb(self) -> int:
        return self.memory_usage()["rss_mb"]


def log_status_report(stats: ServerStats, activity: ActivityTracker, scheduler: KeepAliveScheduler) -> None:
    snap = activity.snapshot()
    logger.info("サーバー状況レポート:")
    logger.info(f"   稼働時間: {stats.uptime_formatted}")
    logger.info(f"   メモリ使用量: {stats.rss_mb()}MB")
    logger.info(f"   アクティビティ数: {snap.activity_count}")
    logger.info(f"   最終アクティビティ: {snap.minutes_since_last_activity}分前")
    logger.info(f"   Keep-Alive状態: {'有効' if scheduler.interval_active else '無効'}")


async def run_status_reporter(
    stats: ServerStats,
    activity: ActivityTracker,
    scheduler: KeepAliveScheduler,
    interval: float,
    initial_delay: float = 10.0,
) -> None:
    await asyncio.sleep(initial_delay)
    while True:
        log_status_report(stats, activity, scheduler)
        await asyncio.sleep(interval)
