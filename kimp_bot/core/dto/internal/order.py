"""자동 판매 주문 내부 도메인 모델."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True, frozen=True, kw_only=True)
class ActiveOrder:
    """미체결 매도 주문 (메모리 전용)

    재주문 시 새 주문 ID로 교체되며 retry_count 가 1 증가하고,
    initial_price 는 최초 주문가를 유지합니다.
    """

    order_id: str
    volume: Decimal
    destination: str
    created_at: datetime
    price: Decimal
    initial_price: Decimal
    retry_count: int = 0

    def resubmitted(
        self, order_id: str, volume: Decimal, price: Decimal, created_at: datetime
    ) -> ActiveOrder:
        return replace(
            self,
            order_id=order_id,
            volume=volume,
            price=price,
            created_at=created_at,
            retry_count=self.retry_count + 1,
        )

    def elapsed_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()
