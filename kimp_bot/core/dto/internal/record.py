"""정산 레코드 내부 도메인 모델.

시트 한 행을 불변 dataclass로 표현합니다. 셀 원본(raw)을 함께 보관하여
상태 판별(값 존재 여부)과 개인 시트 투영에 그대로 사용합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

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
    WORKING_WIDTH,
)
from kimp_bot.core.workflow.formulas import cell_text, parse_amount


@dataclass(slots=True, frozen=True, kw_only=True)
class AccountInfo:
    """계좌 디렉토리(당일작업 W:Z) 한 행"""

    payee: str
    platform: str
    bank_info: str
    account_code: str


@dataclass(slots=True, frozen=True, kw_only=True)
class TransactionRecord:
    """당일작업 시트 한 행 (A:T)

    - row_index: 시트 내 0-based 행 인덱스 (헤더 = 0)
    - raw: 길이 20으로 패딩된 원본 셀 값
    """

    row_index: int
    raw: tuple[Any, ...]

    @classmethod
    def from_row(cls, row_index: int, row: list[Any]) -> TransactionRecord:
        padded = list(row[:WORKING_WIDTH]) + [""] * max(0, WORKING_WIDTH - len(row))
        return cls(row_index=row_index, raw=tuple(padded))

    @property
    def row_number(self) -> int:
        """A1 표기 행 번호 (1-based)"""
        return self.row_index + 1

    def is_set(self, column: int) -> bool:
        return cell_text(self.raw[column]) != ""

    def text(self, column: int) -> str:
        return cell_text(self.raw[column])

    def amount(self, column: int) -> Decimal | None:
        return parse_amount(self.raw[column])

    # ---- 자주 쓰는 필드 ----
    @property
    def issue_code(self) -> str:
        return self.text(COL_ISSUE_CODE)

    @property
    def deposit_date(self) -> str:
        return self.text(COL_DEPOSIT_DATE)

    @property
    def payee(self) -> str:
        return self.text(COL_PAYEE)

    @property
    def platform(self) -> str:
        return self.text(COL_PLATFORM)

    @property
    def bank_info(self) -> str:
        return self.text(COL_BANK_INFO)

    @property
    def currency(self) -> str:
        return self.text(COL_CURRENCY)

    @property
    def settlement(self) -> str:
        return self.text(COL_SETTLEMENT)

    @property
    def progress(self) -> str:
        return self.text(COL_PROGRESS)

    @property
    def foreign_deposit_date(self) -> str:
        return self.text(COL_FOREIGN_DEPOSIT_DATE)

    @property
    def account_code(self) -> str:
        return self.text(COL_ACCOUNT_CODE)

    @property
    def withdrawal(self) -> Decimal | None:
        return self.amount(COL_WITHDRAWAL)

    @property
    def domestic_deposit(self) -> Decimal | None:
        return self.amount(COL_DOMESTIC_DEPOSIT)

    @property
    def profit(self) -> Decimal | None:
        return self.amount(COL_PROFIT)

    @property
    def profit_deposit(self) -> Decimal | None:
        return self.amount(COL_PROFIT_DEPOSIT)

    @property
    def foreign_amount(self) -> Decimal | None:
        return self.amount(COL_FOREIGN_AMOUNT)

    @property
    def foreign_received(self) -> Decimal | None:
        return self.amount(COL_FOREIGN_RECEIVED)

    @property
    def foreign_net(self) -> Decimal | None:
        return self.amount(COL_FOREIGN_NET)

    @property
    def exchange_remaining(self) -> Decimal | None:
        return self.amount(COL_EXCHANGE_REMAINING)

    @property
    def final_amount(self) -> Decimal | None:
        return self.amount(COL_FINAL_AMOUNT)

    @property
    def unit_price(self) -> Decimal | None:
        return self.amount(COL_UNIT_PRICE)
