"""코어가 의존하는 외부 협력자 인터페이스.

구현체는 infra 레이어에 있고, 테스트는 인메모리 fake로 대체합니다.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol

from kimp_bot.core.dto.io.exchange import UpbitDepositDTO, UpbitOrderDTO


class RecordStore(Protocol):
    """행 기반 원격 테이블 (비트랜잭션)

    실패 시 UpstreamUnavailable 을 발생시킵니다.
    """

    async def read_range(self, sheet: str, range_spec: str) -> list[list[Any]]: ...

    async def append_row(self, sheet: str, columns: str, row: list[Any]) -> None: ...

    async def update_cell(self, sheet: str, cell: str, value: Any) -> None: ...

    async def update_cells(self, sheet: str, values: dict[str, Any]) -> None: ...

    async def delete_rows(self, sheet: str, start_index: int, end_index: int) -> None: ...


class ExchangeClient(Protocol):
    """서명 요청 거래소 클라이언트

    실패 시 예외 대신 None / 빈 목록 / 0 을 반환합니다.
    """

    async def list_deposits(
        self, asset: str, state: str, limit: int
    ) -> list[UpbitDepositDTO]: ...

    async def list_withdrawals(
        self, asset: str, state: str, limit: int
    ) -> list[UpbitDepositDTO]: ...

    async def list_orders(self, market: str, state: str, limit: int) -> list[UpbitOrderDTO]: ...

    async def current_price(self, market: str) -> Decimal | None: ...

    async def place_limit_order(
        self, market: str, side: str, volume: Decimal, price: Decimal
    ) -> UpbitOrderDTO | None: ...

    async def order_status(self, order_id: str) -> UpbitOrderDTO | None: ...

    async def cancel_order(self, order_id: str) -> UpbitOrderDTO | None: ...

    async def balance(self, asset: str) -> Decimal: ...


class Notifier(Protocol):
    """채팅 알림 (best-effort, 실패는 로그 후 무시)"""

    async def send(self, destination: str, text: str) -> bool: ...
