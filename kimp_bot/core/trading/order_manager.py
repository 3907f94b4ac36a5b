"""USDT 자동 판매 주문 수명주기 관리

입금 이벤트 → 현재가 지정가 매도 → 주기적 체결 확인 → 시간 초과 시
취소 후 새 현재가로 잔량 재주문 (최대 max_retries 회).
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from kimp_bot.common.events import DepositEvent
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.dto.internal.order import ActiveOrder
from kimp_bot.core.dto.io.exchange import UpbitOrderDTO
from kimp_bot.core.interfaces import ExchangeClient, Notifier
from kimp_bot.core.trading import notices
from kimp_bot.core.types import ORDER_SIDE_ASK, ORDER_STATE_CANCEL, ORDER_STATE_DONE

logger = AppLogger.get_logger("order_manager", "trading")


class OrderLifecycleManager:
    """
    자동 판매 관리자

    - registry: 주문 ID → ActiveOrder (이벤트 루프에서만 접근)
    - tick() 은 스냅샷을 순회하고 await 이후 등록 여부를 다시 확인
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        notifier: Notifier,
        *,
        market: str = "KRW-USDT",
        order_timeout_sec: float = 300.0,
        max_retries: int = 24,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._exchange = exchange
        self._notifier = notifier
        self.market = market
        self.order_timeout_sec = order_timeout_sec
        self.max_retries = max_retries
        self._clock = clock

        self.enabled = False
        self._orders: dict[str, ActiveOrder] = {}

    @property
    def active_orders(self) -> dict[str, ActiveOrder]:
        return dict(self._orders)

    # ------------------------------------------------------------------
    # 활성화 / 비활성화
    # ------------------------------------------------------------------
    def enable(self) -> str:
        if self.enabled:
            return notices.TRADING_ALREADY_ENABLED
        self.enabled = True
        logger.info("auto trading enabled", market=self.market)
        return notices.TRADING_ENABLED

    async def disable(self) -> str:
        """비활성화하고 추적 중인 모든 주문을 취소합니다."""
        if not self.enabled:
            return notices.TRADING_ALREADY_DISABLED
        self.enabled = False

        orders = list(self._orders.values())
        self._orders.clear()
        for order in orders:
            cancelled = await self._exchange.cancel_order(order.order_id)
            if cancelled is None:
                logger.warning("cancel failed or already closed", order_id=order.order_id)
            await self._notifier.send(order.destination, notices.order_cancelled(order.order_id))

        logger.info("auto trading disabled", cancelled=len(orders))
        return notices.TRADING_DISABLED

    # ------------------------------------------------------------------
    # 입금 → 주문
    # ------------------------------------------------------------------
    async def handle_deposit_event(self, event: DepositEvent) -> None:
        await self.on_deposit(event.net_amount, event.destination)

    async def on_deposit(self, net_amount: Decimal, destination: str) -> ActiveOrder | None:
        if not self.enabled or net_amount <= 0:
            return None

        price = await self._exchange.current_price(self.market)
        if price is None:
            await self._notifier.send(destination, notices.PRICE_UNAVAILABLE)
            return None

        placed = await self._exchange.place_limit_order(
            self.market, ORDER_SIDE_ASK, net_amount, price
        )
        if placed is None or not placed.uuid:
            await self._notifier.send(destination, notices.ORDER_FAILED)
            return None

        now = self._clock()
        order = ActiveOrder(
            order_id=placed.uuid,
            volume=net_amount,
            destination=destination,
            created_at=now,
            price=price,
            initial_price=price,
        )
        self._orders[order.order_id] = order
        await self._notifier.send(destination, notices.sell_started(net_amount, price, now))
        logger.info(
            "auto sell order registered",
            order_id=order.order_id,
            volume=str(net_amount),
            price=str(price),
        )
        return order

    # ------------------------------------------------------------------
    # 주기 점검
    # ------------------------------------------------------------------
    async def tick(self) -> None:
        if not self.enabled or not self._orders:
            return

        for order_id in list(self._orders):
            if order_id not in self._orders:
                continue
            status = await self._exchange.order_status(order_id)
            order = self._orders.get(order_id)
            if order is None:
                continue  # disable() 로 제거됨
            if status is None:
                continue

            if status.state == ORDER_STATE_DONE:
                await self._complete(order, status)
            elif status.state == ORDER_STATE_CANCEL:
                self._orders.pop(order_id, None)
                logger.warning("order cancelled outside the bot", order_id=order_id)
                await self._notifier.send(
                    order.destination, notices.order_cancelled_externally(order_id)
                )
            elif order.elapsed_seconds(self._clock()) >= self.order_timeout_sec:
                await self._resubmit(order, status)

    async def _complete(self, order: ActiveOrder, status: UpbitOrderDTO) -> None:
        self._orders.pop(order.order_id, None)
        price = status.price if status.price is not None else order.price
        volume = status.executed_volume or order.volume
        await self._notifier.send(
            order.destination, notices.order_filled(volume, price, self._clock())
        )
        logger.info("order filled", order_id=order.order_id, volume=str(volume))

    def _still_tracked(self, order: ActiveOrder) -> bool:
        """await 사이에 disable() 이나 다른 경로로 해제되지 않았는지"""
        return self.enabled and order.order_id in self._orders

    async def _resubmit(self, order: ActiveOrder, status: UpbitOrderDTO) -> None:
        """시간 초과 주문 취소 후 잔량을 새 현재가로 재주문"""
        if self.max_retries and order.retry_count >= self.max_retries:
            self._orders.pop(order.order_id, None)
            logger.warning(
                "retry limit reached, order left on the book",
                order_id=order.order_id,
                retry_count=order.retry_count,
            )
            await self._notifier.send(
                order.destination,
                notices.retry_limit_reached(order.order_id, order.retry_count, order.price),
            )
            return

        cancelled = await self._exchange.cancel_order(order.order_id)
        if cancelled is None:
            logger.warning("cancel failed, retry on next tick", order_id=order.order_id)
            return
        if not self._still_tracked(order):
            logger.info("order released during resubmit", order_id=order.order_id)
            return
        self._orders.pop(order.order_id, None)

        remaining = status.remaining_volume if status.remaining_volume is not None else order.volume
        if remaining <= 0:
            logger.info("nothing left to resubmit", order_id=order.order_id)
            return

        price = await self._exchange.current_price(self.market)
        if price is None:
            await self._notifier.send(order.destination, notices.RETRY_PRICE_UNAVAILABLE)
            return
        if not self.enabled:
            return

        placed = await self._exchange.place_limit_order(
            self.market, ORDER_SIDE_ASK, remaining, price
        )
        if placed is None or not placed.uuid:
            await self._notifier.send(order.destination, notices.RETRY_ORDER_FAILED)
            return
        if not self.enabled:
            # 재주문 대기 중 비활성화됨
            await self._exchange.cancel_order(placed.uuid)
            logger.warning(
                "trading disabled during resubmit, new order cancelled", order_id=placed.uuid
            )
            return

        now = self._clock()
        renewed = order.resubmitted(placed.uuid, remaining, price, now)
        self._orders[renewed.order_id] = renewed
        await self._notifier.send(
            order.destination,
            notices.order_resubmitted(remaining, price, renewed.retry_count, now),
        )
        logger.info(
            "order resubmitted",
            previous_order_id=order.order_id,
            order_id=renewed.order_id,
            retry_count=renewed.retry_count,
            price=str(price),
        )
