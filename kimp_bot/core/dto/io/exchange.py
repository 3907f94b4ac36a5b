"""업비트 REST 응답 DTO.

금액/수량은 문자열로 내려오므로 Decimal 로 검증합니다.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import Field

from kimp_bot.core.dto.io._base import BaseExternalDTO


class UpbitDepositDTO(BaseExternalDTO):
    """입금/출금 내역 한 건 (/v1/deposits, /v1/withdraws)"""

    uuid: str
    currency: str
    state: str
    amount: Decimal
    fee: Decimal = Decimal(0)
    net_type: str | None = None
    txid: str | None = None
    created_at: str | None = None
    done_at: str | None = None

    @property
    def net_amount(self) -> Decimal:
        return self.amount - self.fee


class UpbitOrderDTO(BaseExternalDTO):
    """주문 한 건 (/v1/order, /v1/orders)"""

    uuid: str
    side: str
    ord_type: str | None = None
    state: str
    market: str
    price: Decimal | None = None
    volume: Decimal | None = None
    remaining_volume: Decimal | None = None
    executed_volume: Decimal = Decimal(0)
    created_at: str | None = None


class UpbitTickerDTO(BaseExternalDTO):
    """현재가 (/v1/ticker)"""

    market: str
    trade_price: Decimal


class UpbitAccountDTO(BaseExternalDTO):
    """보유 자산 (/v1/accounts)"""

    currency: str
    balance: Decimal
    locked: Decimal = Field(default=Decimal(0))
