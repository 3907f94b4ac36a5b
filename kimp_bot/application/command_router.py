"""텔레그램 명령어 라우터

문법:
    1. 생성:   <계좌코드> <출금액> <외화> <종류>      (정확히 4토큰, 2·3번째 숫자)
    2. 키워드: 대기목록, 진행대기목록, 진행중, 정산대기, 정산중, 정산완료, 리빌드,
               입금 모니터링 / 자동 거래 시작·중지, 잔고
    3. 조회:   코드<발급코드>
    4. 전이:   <발급코드> <명령> [<값>]
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from kimp_bot.common.exceptions import GENERIC_FAILURE_MESSAGE, SettlementBotError, UnknownCommand
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.interfaces import ExchangeClient
from kimp_bot.core.trading import notices
from kimp_bot.core.trading.deposit_monitor import DepositMonitor
from kimp_bot.core.trading.order_manager import OrderLifecycleManager
from kimp_bot.core.types import RecordState
from kimp_bot.core.workflow import messages
from kimp_bot.core.workflow.archive import ArchiveService
from kimp_bot.core.workflow.engine import WorkflowEngine
from kimp_bot.core.workflow.formulas import parse_amount

logger = AppLogger.get_logger("command_router", "application")

LIST_KEYWORDS: dict[str, RecordState] = {
    "대기목록": RecordState.WAITING,
    "진행대기목록": RecordState.FOREIGN_DEPOSIT_PENDING,
    "진행중": RecordState.IN_PROGRESS,
    "정산대기": RecordState.SETTLEMENT_PENDING,
    "정산중": RecordState.SETTLING,
    "정산완료": RecordState.SETTLED,
}
MONITOR_START_KEYWORDS = frozenset({"입금체크", "입금모니터링", "모니터링시작"})
MONITOR_STOP_KEYWORDS = frozenset({"모니터링중지", "입금체크중지"})
TRADING_START_KEYWORDS = frozenset({"자동거래시작", "자동판매시작", "오토트레이딩"})
TRADING_STOP_KEYWORDS = frozenset({"자동거래중지", "자동판매중지", "오토트레이딩중지"})
ARCHIVE_KEYWORD = "리빌드"
BALANCE_KEYWORD = "잔고"
LOOKUP_PREFIX = "코드"


class CommandRouter:
    """채팅 텍스트 → 작업 디스패치. 어떤 실패도 응답 문구로 변환합니다."""

    def __init__(
        self,
        engine: WorkflowEngine,
        archive: ArchiveService,
        monitor: DepositMonitor,
        order_manager: OrderLifecycleManager,
        exchange: ExchangeClient,
        asset: str = "USDT",
    ) -> None:
        self._engine = engine
        self._archive = archive
        self._monitor = monitor
        self._order_manager = order_manager
        self._exchange = exchange
        self._asset = asset

    async def handle(self, text: str, chat_id: str) -> str:
        parts = text.split()
        if not parts:
            return UnknownCommand(message="empty command").user_message
        try:
            return await self._dispatch(parts, chat_id)
        except SettlementBotError as e:
            logger.warning(f"command rejected: {e}", command=parts[0], **e.to_dict())
            return e.user_message
        except Exception as e:
            logger.error(f"command failed: {e}", exc_info=True, command=parts[0])
            return GENERIC_FAILURE_MESSAGE

    async def _dispatch(self, parts: list[str], chat_id: str) -> str:
        keyword = parts[0].lower()

        if _is_creation(parts):
            code = await self._engine.create_record(parts[0], parts[1], parts[2], parts[3])
            return messages.REGISTERED.format(code=code)

        if len(parts) == 1:
            handler = self._keyword_handler(keyword, chat_id)
            if handler is not None:
                return await handler()
            if keyword.startswith(LOOKUP_PREFIX) and len(keyword) > len(LOOKUP_PREFIX):
                return await self._engine.describe(keyword[len(LOOKUP_PREFIX):])

        if len(parts) >= 2:
            value = parts[2] if len(parts) > 2 else None
            return await self._engine.apply_transition(parts[0], parts[1], value)

        raise UnknownCommand(message=f"unknown command: {parts[0]}")

    def _keyword_handler(
        self, keyword: str, chat_id: str
    ) -> Callable[[], Awaitable[str]] | None:
        if keyword in LIST_KEYWORDS:
            state = LIST_KEYWORDS[keyword]
            return lambda: self._engine.list_by_state(state)
        if keyword == ARCHIVE_KEYWORD:
            return self._run_archive
        if keyword in MONITOR_START_KEYWORDS:
            return lambda: self._monitor.start(chat_id)
        if keyword in MONITOR_STOP_KEYWORDS:
            return self._stop_monitor
        if keyword in TRADING_START_KEYWORDS:
            return self._enable_trading
        if keyword in TRADING_STOP_KEYWORDS:
            return self._order_manager.disable
        if keyword == BALANCE_KEYWORD:
            return self._balance
        return None

    async def _run_archive(self) -> str:
        count = await self._archive.archive()
        if count == 0:
            return messages.ARCHIVE_EMPTY
        return messages.ARCHIVE_DONE.format(count=count)

    async def _stop_monitor(self) -> str:
        return self._monitor.stop()

    async def _enable_trading(self) -> str:
        return self._order_manager.enable()

    async def _balance(self) -> str:
        amount = await self._exchange.balance(self._asset)
        return notices.balance_summary(self._asset, amount)


def _is_creation(parts: list[str]) -> bool:
    return (
        len(parts) == 4
        and parse_amount(parts[1]) is not None
        and parse_amount(parts[2]) is not None
    )
