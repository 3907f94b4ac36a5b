"""이벤트 정의 및 Event Bus

입금 모니터 → 자동 판매 매니저 사이를 순환 import 없이 연결합니다.
이벤트는 순수 데이터 객체로, 의존성이 없습니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable

from kimp_bot.common.logger import AppLogger

logger = AppLogger.get_logger("event_bus", "common")

EventHandler = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class DepositEvent:
    """새 입금 감지 이벤트 (순수 데이터)"""

    deposit_id: str
    amount: Decimal
    fee: Decimal
    net_amount: Decimal
    network: str
    timestamp: str
    tx_id: str
    destination: str


class EventBus:
    """타입 기반 비동기 이벤트 버스

    특징:
    - 인스턴스 단위 핸들러 레지스트리 (DI 컨테이너가 수명 관리)
    - 핸들러는 등록 순서대로 await
    - 핸들러 예외는 로그만 남기고 다음 핸들러로 진행
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}

    async def emit(self, event: Any) -> None:
        event_type = type(event)
        for handler in self._handlers.get(event_type, []):
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler failed: {e}",
                    exc_info=True,
                    event_type=event_type.__name__,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )

    def on(self, event_type: type, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def clear(self) -> None:
        self._handlers.clear()


__all__ = ["DepositEvent", "EventBus"]
