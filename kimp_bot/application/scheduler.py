"""주기 실행 태스크 (입금 조회 30초, 체결 확인 300초)"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from kimp_bot.common.logger import AppLogger

logger = AppLogger.get_logger("scheduler", "application")


class PeriodicTask:
    """고정 간격으로 코루틴을 실행하는 asyncio 루프

    Example:
        >>> task = PeriodicTask("deposit_poll", monitor.tick, interval=30)
        >>> task.start()
        >>> await task.stop()

    실행 중 예외는 로그만 남기고 다음 주기로 넘어갑니다.
    """

    def __init__(
        self, name: str, job: Callable[[], Awaitable[object]], interval: float
    ) -> None:
        self.name = name
        self.interval = interval
        self._job = job
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info(f"periodic task started: {self.name}", interval=self.interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"periodic task stopped: {self.name}")

    async def run_once(self) -> None:
        try:
            await self._job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"periodic task {self.name} failed: {e}", exc_info=True)

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            if not self._running:
                break
            await self.run_once()
