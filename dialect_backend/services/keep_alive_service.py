"""
/**
 * @file dialect_backend/services/keep_alive_service.py
 * @description Keep-Alive 调度器：启动延迟后首次自我 ping，之后按固定间隔重复，防止托管平台空闲休眠。
 */
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx


logger = logging.getLogger("keep_alive")

KEEP_ALIVE_PATH = "/api/keep-alive"
USER_AGENT = "KeepAlive/1.0"

DEFAULT_STARTUP_DELAY = 5 * 60
DEFAULT_INTERVAL = 14 * 60  # stays under a 15 minute idle timeout
DEFAULT_TIMEOUT = 30.0


class KeepAliveState(str, enum.Enum):
    DISABLED = "disabled"
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    STOPPED = "stopped"


class PingOutcome(str, enum.Enum):
    SUCCESS = "success"
    BAD_STATUS = "bad_status"
    ERROR = "error"
    TIMEOUT = "timeout"


class KeepAliveScheduler:
    """
    Disabled -> (terminal)
    Idle -> Scheduled -> Running -> Running ...
    Scheduled/Running -> Stopped (stop() is idempotent)

    The scheduler owns exactly one asyncio task. start() while a task exists is a no-op.
    Ping failures are logged and never change state.
    """

    def __init__(
        self,
        base_url: Optional[str],
        startup_delay: float = DEFAULT_STARTUP_DELAY,
        interval: float = DEFAULT_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        client_factory: Optional[Callable[..., httpx.AsyncClient]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.startup_delay = startup_delay
        self.interval = interval
        self.timeout = timeout
        self._client_factory = client_factory or httpx.AsyncClient
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.last_outcome: Optional[PingOutcome] = None
        self._state = KeepAliveState.IDLE if self.base_url else KeepAliveState.DISABLED

    @property
    def state(self) -> KeepAliveState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is not KeepAliveState.DISABLED

    @property
    def ping_url(self) -> Optional[str]:
        return f"{self.base_url}{KEEP_ALIVE_PATH}" if self.base_url else None

    @property
    def interval_active(self) -> bool:
        return self._state is KeepAliveState.RUNNING

    def start(self) -> bool:
        """Arm the deferred first ping. Must be called with a running event loop."""
        if self._state is KeepAliveState.DISABLED:
            logger.info("Keep-Alive URL が未設定のためスキップします")
            return False
        if self._state is not KeepAliveState.IDLE:
            logger.info(f"Keep-Alive は既に開始済みです (state={self._state.value})")
            return False

        self._task = asyncio.get_running_loop().create_task(self._run(), name="keep-alive")
        self._state = KeepAliveState.SCHEDULED
        logger.info(
            f"Keep-Alive スケジューラを開始しました (first ping in {self.startup_delay}s, interval {self.interval}s)"
        )
        return True

    async def stop(self) -> None:
        if self._state is KeepAliveState.DISABLED or self._state is KeepAliveState.STOPPED:
            return
        task, self._task = self._task, None
        self._state = KeepAliveState.STOPPED
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Keep-Alive を停止しました")

    async def _run(self) -> None:
        await self._sleep(self.startup_delay)
        await self._tick()
        if self._state is KeepAliveState.SCHEDULED:
            self._state = KeepAliveState.RUNNING
        while self._state is KeepAliveState.RUNNING:
            await self._sleep(self.interval)
            await self._tick()

    async def _tick(self) -> None:
        try:
            await self.ping()
        except asyncio.CancelledError:
            raise
        except Exception:
            # the timer must survive anything a single ping does
            logger.exception("Keep-Alive ping crashed")

    async def ping(self) -> PingOutcome:
        url = self.ping_url
        logger.info(f"Keep-Alive ping実行中... {url}")
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        try:
            response = await asyncio.wait_for(self._get(url, headers), timeout=self.timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning("Keep-Alive タイムアウト")
            outcome = PingOutcome.TIMEOUT
        except httpx.HTTPError as e:
            logger.warning(f"Keep-Alive エラー: {e}")
            outcome = PingOutcome.ERROR
        else:
            if response.status_code == 200:
                try:
                    data = response.json()
                except ValueError:
                    data = None
                uptime = data.get("uptime_formatted", "N/A") if isinstance(data, dict) else "N/A"
                logger.info(f"Keep-Alive成功 - Uptime: {uptime}")
                outcome = PingOutcome.SUCCESS
            else:
                logger.warning(f"Keep-Alive警告: HTTP {response.status_code}")
                outcome = PingOutcome.BAD_STATUS
        self.last_outcome = outcome
        return outcome

    async def _get(self, url: str, headers: Dict[str, str]) -> httpx.Response:
        async with self._client_factory(timeout=self.timeout) as client:
            return await client.get(url, headers=headers)

    def status(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "url": self.base_url,
            "interval_active": self.interval_active,
            "state": self._state.value,
        }
