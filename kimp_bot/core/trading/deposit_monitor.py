"""업비트 입금 모니터

주기적으로 최근 입금 내역을 조회하여 마지막으로 본 입금 ID 이후의 입금을
알림으로 보내고 DepositEvent 로 발행합니다.
"""

from __future__ import annotations

from kimp_bot.common.events import DepositEvent, EventBus
from kimp_bot.common.exceptions import AlreadyActive, NotActive
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.dto.io.exchange import UpbitDepositDTO
from kimp_bot.core.interfaces import ExchangeClient, Notifier
from kimp_bot.core.trading import notices
from kimp_bot.core.types import DEPOSIT_STATE_ACCEPTED

logger = AppLogger.get_logger("deposit_monitor", "trading")


class DepositMonitor:
    """입금 감시 상태 (active, destination, last_seen_deposit_id)"""

    def __init__(
        self,
        exchange: ExchangeClient,
        notifier: Notifier,
        event_bus: EventBus,
        asset: str = "USDT",
        lookback: int = 10,
    ) -> None:
        self._exchange = exchange
        self._notifier = notifier
        self._event_bus = event_bus
        self.asset = asset
        self.lookback = max(1, lookback)

        self.active = False
        self.destination: str | None = None
        self.last_seen_deposit_id: str | None = None

    async def start(self, destination: str) -> str:
        """모니터링 시작. 기존 입금은 무시하도록 최신 입금 ID로 시드합니다."""
        if self.active:
            raise AlreadyActive(
                message="deposit monitor already running",
                user_message=notices.MONITOR_ALREADY_RUNNING,
            )

        self.active = True
        self.destination = destination
        self.last_seen_deposit_id = None

        latest = await self._exchange.list_deposits(self.asset, DEPOSIT_STATE_ACCEPTED, 1)
        if latest:
            self.last_seen_deposit_id = latest[0].uuid

        logger.info(
            "deposit monitor started",
            destination=destination,
            seed=self.last_seen_deposit_id,
        )
        return notices.MONITOR_STARTED

    def stop(self) -> str:
        if not self.active:
            raise NotActive(
                message="deposit monitor not running",
                user_message=notices.MONITOR_NOT_RUNNING,
            )

        self.active = False
        self.destination = None
        self.last_seen_deposit_id = None
        logger.info("deposit monitor stopped")
        return notices.MONITOR_STOPPED

    async def tick(self) -> list[DepositEvent]:
        """한 주기 입금 확인. 새 입금마다 알림 + 이벤트 발행 (오래된 것부터)"""
        if not self.active or self.destination is None:
            return []

        deposits = await self._exchange.list_deposits(
            self.asset, DEPOSIT_STATE_ACCEPTED, self.lookback
        )
        if not deposits or deposits[0].uuid == self.last_seen_deposit_id:
            return []

        if self.last_seen_deposit_id is None:
            # 시작 시 시드 조회가 비어 있었으면 현재 목록을 조용히 시드
            self.last_seen_deposit_id = deposits[0].uuid
            logger.info("deposit monitor seeded on first tick", seed=self.last_seen_deposit_id)
            return []

        fresh = self._unseen(deposits)
        self.last_seen_deposit_id = deposits[0].uuid

        destination = self.destination
        events: list[DepositEvent] = []
        for deposit in reversed(fresh):
            event = self._to_event(deposit, destination)
            await self._notifier.send(destination, notices.deposit_detected(event))
            logger.info(
                "new deposit detected",
                deposit_id=event.deposit_id,
                net_amount=str(event.net_amount),
            )
            await self._event_bus.emit(event)
            events.append(event)
        return events

    def _unseen(self, deposits: list[UpbitDepositDTO]) -> list[UpbitDepositDTO]:
        """최신순 목록에서 last_seen 이후 입금 (최신순)"""
        ids = [deposit.uuid for deposit in deposits]
        if self.last_seen_deposit_id in ids:
            return deposits[: ids.index(self.last_seen_deposit_id)]
        logger.warning(
            "last seen deposit fell out of lookback window",
            last_seen=self.last_seen_deposit_id,
            lookback=self.lookback,
        )
        return deposits[:1]

    @staticmethod
    def _to_event(deposit: UpbitDepositDTO, destination: str) -> DepositEvent:
        return DepositEvent(
            deposit_id=deposit.uuid,
            amount=deposit.amount,
            fee=deposit.fee,
            net_amount=deposit.net_amount,
            network=deposit.net_type or "",
            timestamp=deposit.done_at or deposit.created_at or "",
            tx_id=deposit.txid or "",
            destination=destination,
        )
