"""정산 계산식 및 셀 값 변환 유틸리티.

- 외화 수수료 차감, 최종달러, 수익 계산
- 통화 정규화
- 시트 셀 ↔ Decimal/날짜 변환
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from kimp_bot.core.types import (
    CURRENCY_ALIASES,
    DEFAULT_FOREIGN_FEE,
    FOREIGN_FEES,
    WITHDRAWAL_UNIT_FEE,
)

# 구글 시트 날짜 직렬값 기준일
_SHEET_EPOCH = date(1899, 12, 30)
_DATE_FORMATS = ("%Y. %m. %d.", "%Y. %m. %d", "%Y.%m.%d", "%Y-%m-%d", "%Y/%m/%d")


def normalize_currency(label: str) -> str:
    """외화 종류 정규화 (별칭 → 코드, 그 외는 대문자 그대로)"""
    label = label.strip()
    return CURRENCY_ALIASES.get(label, label.upper())


def foreign_fee(currency: str) -> Decimal:
    return FOREIGN_FEES.get(currency, DEFAULT_FOREIGN_FEE)


def foreign_net_amount(received: Decimal, currency: str) -> Decimal:
    """외화출금 = 외화입금 - 통화별 수수료"""
    return received - foreign_fee(currency)


def final_exchange_amount(remaining: Decimal) -> Decimal:
    """최종달러 = 바낸달러 - 1"""
    return remaining - WITHDRAWAL_UNIT_FEE


def compute_profit(final_amount: Decimal, unit_price: Decimal, withdrawal: Decimal) -> int:
    """수익 = floor((최종달러 × 달러가격 - 출금) / 2), 음수는 -∞ 방향 내림"""
    return math.floor((final_amount * unit_price - withdrawal) / 2)


def parse_amount(value: Any) -> Decimal | None:
    """셀/명령 값 → Decimal. 빈 값이나 숫자가 아니면 None"""
    match value:
        case None | "":
            return None
        case bool():
            return None
        case int() | Decimal():
            return Decimal(value)
        case float():
            return Decimal(str(value)) if math.isfinite(value) else None
        case str():
            text = value.strip().replace(",", "")
            if not text:
                return None
            try:
                parsed = Decimal(text)
            except InvalidOperation:
                return None
            return parsed if parsed.is_finite() else None
        case _:
            return None


def cell_text(value: Any) -> str:
    """셀 값 → 표시 문자열 (None/빈칸은 "")"""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_cell(value: Decimal | int | str) -> int | float | str:
    """시트 기록용 값 변환 (정수면 int, 소수면 float)"""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def format_krw(value: Any) -> str:
    """원화 천 단위 구분 표기 (빈 값은 0)"""
    amount = parse_amount(value)
    if amount is None:
        return "0"
    return f"{int(amount):,}"


def format_sheet_date(day: date) -> str:
    """ko-KR 날짜 표기 (예: 2024. 10. 18.)"""
    return f"{day.year}. {day.month}. {day.day}."


def format_sheet_datetime(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def parse_sheet_date(value: Any) -> date | None:
    """시트 날짜 셀 → date

    - 숫자: 구글 시트 날짜 직렬값
    - 문자열: ko-KR / ISO 표기
    """
    match value:
        case bool() | None:
            return None
        case int() | float():
            return _SHEET_EPOCH + timedelta(days=int(value))
        case str():
            text = value.strip()
            for fmt in _DATE_FORMATS:
                try:
                    return datetime.strptime(text, fmt).date()
                except ValueError:
                    continue
            try:
                return datetime.fromisoformat(text).date()
            except ValueError:
                return None
        case _:
            return None
