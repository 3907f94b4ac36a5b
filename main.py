"""애플리케이션 진입점 (DI Container 기반)

김프방 정산 자동화 봇
- 텔레그램 웹훅으로 정산 명령 수신 → 구글 시트 갱신
- 업비트 USDT 입금 감시 (30초)
- 입금 시 자동 판매 주문 및 체결 확인 (300초)

Usage:
    python main.py
    APP_PORT=8080 LOG_LEVEL=DEBUG python main.py
"""

import asyncio
import contextlib

import uvicorn

from kimp_bot.application.scheduler import PeriodicTask
from kimp_bot.common.events import DepositEvent
from kimp_bot.common.logger import AppLogger
from kimp_bot.config.containers import ApplicationContainer
from kimp_bot.config.settings import (
    app_settings,
    log_settings,
    monitor_settings,
    trading_settings,
)

AppLogger.configure(
    level=log_settings.level,
    log_dir=log_settings.dir,
    log_to_file=log_settings.to_file,
)
logger = AppLogger.get_logger("main", "app")


class Application:
    """애플리케이션 메인 클래스

    책임:
    - DI Container 관리
    - Event Bus 리스너 등록
    - 주기 태스크 + 웹훅 서버 실행
    - Graceful Shutdown
    """

    def __init__(self) -> None:
        self.container = ApplicationContainer()
        self.timers: list[PeriodicTask] = []
        self.server: uvicorn.Server | None = None

    async def _setup_event_bus(self) -> None:
        """DepositEvent → 자동 판매 매니저"""
        event_bus = self.container.services.event_bus()
        order_manager = await self.container.services.order_manager()
        event_bus.on(DepositEvent, order_manager.handle_deposit_event)

    async def initialize(self) -> None:
        """애플리케이션 초기화

        Flow:
        1. Resource 초기화 (시트, 업비트, 텔레그램 세션)
        2. Event Bus 리스너 등록
        3. 주기 태스크 및 웹훅 서버 구성
        """
        logger.info("김프방 정산 봇 시작 (DI 모드)", environment=app_settings.environment)

        await self.container.init_resources()
        logger.info("✅ 모든 Resource 초기화 완료")

        await self._setup_event_bus()
        logger.info("✅ Event Bus 리스너 등록 완료")

        monitor = await self.container.services.deposit_monitor()
        order_manager = await self.container.services.order_manager()
        self.timers = [
            PeriodicTask("deposit-poll", monitor.tick, monitor_settings.poll_interval_sec),
            PeriodicTask("order-poll", order_manager.tick, trading_settings.poll_interval_sec),
        ]

        webhook_app = await self.container.webhook_app()
        config = uvicorn.Config(
            webhook_app,
            host=app_settings.host,
            port=app_settings.port,
            log_level="debug" if app_settings.debug else "info",
        )
        self.server = uvicorn.Server(config)
        logger.info("✅ 웹훅 서버 준비 완료", host=app_settings.host, port=app_settings.port)

    async def run(self) -> None:
        """주기 태스크 시작 후 웹훅 서버 실행 (메인 루프)"""
        for timer in self.timers:
            timer.start()
        logger.info(f"✅ {len(self.timers)}개 주기 태스크 실행 중...")
        await self.server.serve()

    async def shutdown(self) -> None:
        """Graceful Shutdown

        Flow:
        1. 주기 태스크 중지
        2. Resource 정리 (HTTP 세션)
        """
        logger.info("정리 작업 시작...")

        for timer in self.timers:
            with contextlib.suppress(asyncio.CancelledError):
                await timer.stop()

        logger.info("모든 Resource 종료 중...")
        await self.container.shutdown_resources()
        logger.info("✅ 프로그램 종료 완료")
        AppLogger.shutdown()


async def main() -> None:
    """메인 실행 함수"""
    app = Application()

    try:
        await app.initialize()
        await app.run()
    except KeyboardInterrupt:
        logger.info("사용자에 의해 프로그램이 종료되었습니다")
    finally:
        await app.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n프로그램이 종료되었습니다.")
