from __future__ import annotations

import re
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from kimp_bot.common.exceptions import UpstreamUnavailable
from kimp_bot.core.dto.io.exchange import UpbitDepositDTO, UpbitOrderDTO
from kimp_bot.core.types import (
    COL_ACCOUNT_CODE,
    COL_BANK_INFO,
    COL_CURRENCY,
    COL_DEPOSIT_DATE,
    COL_DOMESTIC_DEPOSIT,
    COL_EXCHANGE_REMAINING,
    COL_FINAL_AMOUNT,
    COL_FOREIGN_AMOUNT,
    COL_FOREIGN_DEPOSIT_DATE,
    COL_FOREIGN_NET,
    COL_FOREIGN_RECEIVED,
    COL_ISSUE_CODE,
    COL_PAYEE,
    COL_PLATFORM,
    COL_PROFIT,
    COL_PROFIT_DEPOSIT,
    COL_PROGRESS,
    COL_SETTLEMENT,
    COL_UNIT_PRICE,
    COL_WITHDRAWAL,
    RecordState,
)

WORKING_SHEET = "당일작업"
RATE_SHEET = "출금내역시트"
FIXED_NOW = datetime(2024, 10, 18, 14, 30, 0)

WORKING_HEADER = [
    "입금날짜", "이름", "플랫폼", "계좌정보", "입금", "출금", "수익", "수익입금", "정산",
    "외화입금날짜", "외화", "외화입금", "외화출금", "종류", "진행여부", "바낸달러",
    "최종달러", "발급코드", "달러가격", "계좌코드", "", "", "이름", "플랫폼", "계좌정보",
    "계좌코드",
]
ARCHIVE_HEADER = [
    "입금날짜", "이름", "플랫폼", "은행", "입금", "출금", "수익", "정산", "최종달러",
    "달러가격", "외화입금날짜", "외화", "외화입금", "종류", "계좌코드", "발급코드",
]
RATE_HEADER = ["날짜"] + [""] * 14 + ["당일달러"]

_ACCOUNT_OFFSET = 22  # W


def fixed_clock() -> datetime:
    return FIXED_NOW


# ----------------------------------------------------------------------------
# 시트 행 빌더
# ----------------------------------------------------------------------------
def build_record_row(
    state: RecordState = RecordState.WAITING,
    *,
    issue_code: str = "1234",
    payee: str = "홍길동",
    currency: str = "USD",
    cells: dict[int, Any] | None = None,
) -> list[Any]:
    """상태별로 앞 단계 필드를 순서대로 채운 당일작업 행 (A:T)"""
    row: list[Any] = [""] * 20
    row[COL_DEPOSIT_DATE] = "2024. 10. 18."
    row[COL_PAYEE] = payee
    row[COL_PLATFORM] = "바이낸스"
    row[COL_BANK_INFO] = "국민 123-456"
    row[COL_WITHDRAWAL] = 1_000_000
    row[COL_FOREIGN_AMOUNT] = 500
    row[COL_CURRENCY] = currency
    row[COL_ISSUE_CODE] = issue_code
    row[COL_ACCOUNT_CODE] = "A001"

    order = list(RecordState)
    reached = order.index(state)
    if reached >= order.index(RecordState.FOREIGN_DEPOSIT_PENDING):
        row[COL_FOREIGN_DEPOSIT_DATE] = "2024. 10. 18."
        row[COL_FOREIGN_RECEIVED] = 498
        row[COL_FOREIGN_NET] = 496
    if reached >= order.index(RecordState.IN_PROGRESS):
        row[COL_PROGRESS] = "진행"
    if reached >= order.index(RecordState.SETTLEMENT_PENDING):
        row[COL_EXCHANGE_REMAINING] = 700
        row[COL_FINAL_AMOUNT] = 699
        row[COL_UNIT_PRICE] = 1400
    if reached >= order.index(RecordState.SETTLING):
        row[COL_DOMESTIC_DEPOSIT] = 1_000_000
        row[COL_PROFIT] = -10_700
    if reached >= order.index(RecordState.SETTLED):
        row[COL_PROFIT_DEPOSIT] = 0
        row[COL_SETTLEMENT] = "정산완료"

    for column, value in (cells or {}).items():
        row[column] = value
    return row


def build_account_row(
    account_code: str = "A001",
    payee: str = "홍길동",
    platform: str = "바이낸스",
    bank_info: str = "국민 123-456",
) -> list[Any]:
    return [payee, platform, bank_info, account_code]


def build_working_sheet(
    records: list[list[Any]] | None = None,
    accounts: list[list[Any]] | None = None,
) -> list[list[Any]]:
    """레코드(A:T)와 계좌 디렉토리(W:Z)를 같은 행에 나란히 배치"""
    records = records or []
    accounts = accounts if accounts is not None else [build_account_row()]
    rows: list[list[Any]] = [list(WORKING_HEADER)]
    for index in range(max(len(records), len(accounts))):
        row: list[Any] = [""] * (_ACCOUNT_OFFSET + 4)
        if index < len(records):
            row[: len(records[index])] = records[index]
        if index < len(accounts):
            row[_ACCOUNT_OFFSET : _ACCOUNT_OFFSET + 4] = accounts[index]
        rows.append(row)
    return rows


def build_rate_sheet(rate: Any = 1400, day: str = "2024. 10. 18.") -> list[list[Any]]:
    yesterday = [""] * 16
    yesterday[0] = "2024. 10. 17."
    yesterday[15] = 1390
    today = [""] * 16
    today[0] = day
    today[15] = rate
    return [list(RATE_HEADER), yesterday, today]


# ----------------------------------------------------------------------------
# 인메모리 시트 저장소
# ----------------------------------------------------------------------------
_CELL = re.compile(r"^([A-Z]+)(\d+)$")


def column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def _strip_trailing(cells: list[Any]) -> list[Any]:
    trimmed = list(cells)
    while trimmed and trimmed[-1] in ("", None):
        trimmed.pop()
    return trimmed


class InMemoryRecordStore:
    """구글 시트 응답 모양(빈 꼬리 셀/행 생략)을 흉내내는 RecordStore"""

    def __init__(self, sheets: dict[str, list[list[Any]]] | None = None) -> None:
        self.sheets: dict[str, list[list[Any]]] = {
            name: [list(row) for row in rows] for name, rows in (sheets or {}).items()
        }
        self.fail_reads: set[str] = set()
        self.fail_appends: set[str] = set()
        self.appends: list[tuple[str, list[Any]]] = []
        self.batch_writes: list[tuple[str, dict[str, Any]]] = []
        self.deletes: list[tuple[str, int, int]] = []
        self.on_read: Any = None

    async def read_range(self, sheet: str, range_spec: str) -> list[list[Any]]:
        if self.on_read is not None:
            await self.on_read(sheet, range_spec)
        if sheet in self.fail_reads:
            raise UpstreamUnavailable(message=f"read failed: {sheet}")
        rows = self.sheets.get(sheet)
        if rows is None:
            raise UpstreamUnavailable(message=f"sheet not found: {sheet}")

        start_ref, end_ref = range_spec.split(":")
        start_match, end_match = _CELL.match(start_ref), _CELL.match(end_ref)
        if start_match and end_match:
            col = column_index(start_match.group(1))
            row_index = int(start_match.group(2)) - 1
            if row_index >= len(rows) or col >= len(rows[row_index]):
                return []
            value = rows[row_index][col]
            return [] if value in ("", None) else [[value]]

        start, end = column_index(start_ref), column_index(end_ref)
        result = [_strip_trailing(row[start : end + 1]) for row in rows]
        while result and not result[-1]:
            result.pop()
        return result

    async def append_row(self, sheet: str, columns: str, row: list[Any]) -> None:
        if sheet in self.fail_appends:
            raise UpstreamUnavailable(message=f"append failed: {sheet}")
        rows = self.sheets.setdefault(sheet, [list(ARCHIVE_HEADER)])
        start_ref, end_ref = columns.split(":")
        start, end = column_index(start_ref), column_index(end_ref)

        target = 0
        for index, existing in enumerate(rows):
            if any(cell not in ("", None) for cell in existing[start : end + 1]):
                target = index + 1
        while len(rows) <= target:
            rows.append([])
        line = rows[target]
        if len(line) < start + len(row):
            line.extend([""] * (start + len(row) - len(line)))
        line[start : start + len(row)] = row
        self.appends.append((sheet, list(row)))

    async def update_cell(self, sheet: str, cell: str, value: Any) -> None:
        await self.update_cells(sheet, {cell: value})

    async def update_cells(self, sheet: str, values: dict[str, Any]) -> None:
        rows = self.sheets[sheet]
        for cell, value in values.items():
            match = _CELL.match(cell)
            assert match, cell
            col = column_index(match.group(1))
            row_index = int(match.group(2)) - 1
            while len(rows) <= row_index:
                rows.append([])
            line = rows[row_index]
            if len(line) <= col:
                line.extend([""] * (col + 1 - len(line)))
            line[col] = value
        self.batch_writes.append((sheet, dict(values)))

    async def delete_rows(self, sheet: str, start_index: int, end_index: int) -> None:
        del self.sheets[sheet][start_index:end_index]
        self.deletes.append((sheet, start_index, end_index))

    # ---- 테스트 헬퍼 ----
    def records(self, sheet: str = WORKING_SHEET) -> list[list[Any]]:
        """헤더 제외, A:T 가 비어있지 않은 행"""
        return [
            row[:20]
            for row in self.sheets[sheet][1:]
            if any(cell not in ("", None) for cell in row[:20])
        ]

    def find(self, issue_code: str, sheet: str = WORKING_SHEET) -> list[Any]:
        for row in self.records(sheet):
            padded = row + [""] * (20 - len(row))
            if str(padded[COL_ISSUE_CODE]) == issue_code:
                return padded
        raise AssertionError(f"issue code {issue_code} not in {sheet}")


# ----------------------------------------------------------------------------
# 업비트 응답 빌더
# ----------------------------------------------------------------------------
def build_deposit(
    uuid: str,
    amount: str = "100.0",
    fee: str = "0.0",
    **overrides: Any,
) -> UpbitDepositDTO:
    payload: dict[str, Any] = {
        "type": "deposit",
        "uuid": uuid,
        "currency": "USDT",
        "net_type": "TRX",
        "txid": f"tx-{uuid}-0123456789abcdef",
        "state": "ACCEPTED",
        "created_at": "2024-10-18T14:00:00+09:00",
        "done_at": "2024-10-18T14:01:00+09:00",
        "amount": amount,
        "fee": fee,
        "transaction_type": "default",
    }
    payload.update(overrides)
    return UpbitDepositDTO.model_validate(payload)


def build_order(
    uuid: str,
    state: str = "wait",
    price: str = "1400",
    volume: str = "100",
    remaining_volume: str | None = None,
    executed_volume: str = "0",
) -> UpbitOrderDTO:
    return UpbitOrderDTO.model_validate(
        {
            "uuid": uuid,
            "side": "ask",
            "ord_type": "limit",
            "state": state,
            "market": "KRW-USDT",
            "price": price,
            "volume": volume,
            "remaining_volume": remaining_volume if remaining_volume is not None else volume,
            "executed_volume": executed_volume,
            "created_at": "2024-10-18T14:30:00+09:00",
        }
    )


def as_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


# ----------------------------------------------------------------------------
# 거래소 / 알림 fake
# ----------------------------------------------------------------------------
class FakeExchange:
    """ExchangeClient 인메모리 구현. 호출 내역을 그대로 기록합니다."""

    def __init__(self) -> None:
        self.deposits: list[UpbitDepositDTO] = []
        self.prices: list[Decimal | None] = []
        self.default_price: Decimal | None = Decimal(1400)
        self.statuses: dict[str, UpbitOrderDTO | None] = {}
        self.fail_place = False
        self.fail_cancel: set[str] = set()
        self.balances: dict[str, Decimal] = {}

        self.deposit_queries: list[tuple[str, str, int]] = []
        self.placed: list[tuple[str, str, Decimal, Decimal]] = []
        self.cancelled: list[str] = []
        self._order_seq = 0

    async def list_deposits(self, asset: str, state: str, limit: int) -> list[UpbitDepositDTO]:
        self.deposit_queries.append((asset, state, limit))
        return self.deposits[:limit]

    async def list_withdrawals(self, asset: str, state: str, limit: int) -> list[UpbitDepositDTO]:
        return []

    async def list_orders(self, market: str, state: str, limit: int) -> list[UpbitOrderDTO]:
        return []

    async def current_price(self, market: str) -> Decimal | None:
        if self.prices:
            return self.prices.pop(0)
        return self.default_price

    async def place_limit_order(
        self, market: str, side: str, volume: Decimal, price: Decimal
    ) -> UpbitOrderDTO | None:
        if self.fail_place:
            return None
        self._order_seq += 1
        order_id = f"order-{self._order_seq:04d}-0000-0000"
        self.placed.append((market, side, volume, price))
        order = build_order(order_id, price=str(price), volume=str(volume))
        self.statuses[order_id] = order
        return order

    async def order_status(self, order_id: str) -> UpbitOrderDTO | None:
        return self.statuses.get(order_id)

    async def cancel_order(self, order_id: str) -> UpbitOrderDTO | None:
        if order_id in self.fail_cancel:
            return None
        self.cancelled.append(order_id)
        current = self.statuses.get(order_id)
        return current.model_copy(update={"state": "cancel"}) if current else None

    async def balance(self, asset: str) -> Decimal:
        return self.balances.get(asset, Decimal(0))


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, destination: str, text: str) -> bool:
        self.sent.append((destination, text))
        return True

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


class MutableClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)
