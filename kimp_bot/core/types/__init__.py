"""도메인 공통 타입/상수 모듈.

- 레코드 상태 / 전이 명령 Enum
- 당일작업 시트 컬럼 레이아웃
- 외화 수수료 테이블, 통화 별칭
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Final

from kimp_bot.core.types._exception_types import (
    EXCHANGE_EXCEPTIONS,
    NOTIFY_EXCEPTIONS,
    STORE_EXCEPTIONS,
)


class RecordState(StrEnum):
    """거래 레코드 진행 단계 (필드 존재 여부로 파생)"""

    WAITING = "waiting"
    FOREIGN_DEPOSIT_PENDING = "foreign_deposit_pending"
    IN_PROGRESS = "in_progress"
    SETTLEMENT_PENDING = "settlement_pending"
    SETTLING = "settling"
    SETTLED = "settled"


class TransitionCommand(StrEnum):
    """발급코드 단위 상태 변경 명령"""

    FOREIGN_DEPOSIT = "foreign_deposit"
    PROGRESS = "progress"
    EXCHANGE_REMAINING = "exchange_remaining"
    DOMESTIC_DEPOSIT = "domestic_deposit"
    SETTLEMENT = "settlement"
    SETTLEMENT_COMPLETE = "settlement_complete"


class ErrorCode(StrEnum):
    """에러 코드 분류"""

    ACCOUNT_NOT_FOUND = "account_not_found"
    RECORD_NOT_FOUND = "record_not_found"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_COMMAND = "unknown_command"
    INVALID_TRANSITION = "invalid_transition"
    MISSING_RATE = "missing_rate"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    ALREADY_ACTIVE = "already_active"
    NOT_ACTIVE = "not_active"
    UNKNOWN_ERROR = "unknown_error"


# 채팅 명령어 → 전이 명령
COMMAND_ALIASES: Final[dict[str, TransitionCommand]] = {
    "외화입금": TransitionCommand.FOREIGN_DEPOSIT,
    "진행": TransitionCommand.PROGRESS,
    "바낸달러": TransitionCommand.EXCHANGE_REMAINING,
    "바낸달라": TransitionCommand.EXCHANGE_REMAINING,
    "입금": TransitionCommand.DOMESTIC_DEPOSIT,
    "정산": TransitionCommand.SETTLEMENT,
    "정산완료": TransitionCommand.SETTLEMENT_COMPLETE,
}

# 전이 명령별 허용 출발 상태
ALLOWED_TRANSITIONS: Final[dict[TransitionCommand, frozenset[RecordState]]] = {
    TransitionCommand.FOREIGN_DEPOSIT: frozenset({RecordState.WAITING}),
    TransitionCommand.PROGRESS: frozenset({RecordState.FOREIGN_DEPOSIT_PENDING}),
    TransitionCommand.EXCHANGE_REMAINING: frozenset({RecordState.IN_PROGRESS}),
    TransitionCommand.DOMESTIC_DEPOSIT: frozenset({RecordState.SETTLEMENT_PENDING}),
    TransitionCommand.SETTLEMENT: frozenset({RecordState.SETTLING}),
    TransitionCommand.SETTLEMENT_COMPLETE: frozenset(
        {RecordState.SETTLEMENT_PENDING, RecordState.SETTLING}
    ),
}

# 값(금액)이 필요한 명령
VALUE_COMMANDS: Final[frozenset[TransitionCommand]] = frozenset(
    {
        TransitionCommand.FOREIGN_DEPOSIT,
        TransitionCommand.EXCHANGE_REMAINING,
        TransitionCommand.DOMESTIC_DEPOSIT,
        TransitionCommand.SETTLEMENT,
    }
)

STATE_LABELS: Final[dict[RecordState, str]] = {
    RecordState.WAITING: "대기",
    RecordState.FOREIGN_DEPOSIT_PENDING: "진행대기",
    RecordState.IN_PROGRESS: "진행중",
    RecordState.SETTLEMENT_PENDING: "정산대기",
    RecordState.SETTLING: "정산중",
    RecordState.SETTLED: "정산완료",
}

# 시트 마커 값
SETTLED_MARK: Final[str] = "정산완료"
LEGACY_SETTLED_MARKS: Final[frozenset[str]] = frozenset({"정산완료", "완료"})
PROGRESS_MARK: Final[str] = "진행"

# 통화 별칭 / 외화 수수료
CURRENCY_ALIASES: Final[dict[str, str]] = {
    "홍달": "HKD",
    "미달": "USD",
    "홍콩달러": "HKD",
    "미국달러": "USD",
}
FOREIGN_FEES: Final[dict[str, Decimal]] = {
    "HKD": Decimal(15),
    "USD": Decimal(2),
}
DEFAULT_FOREIGN_FEE: Final[Decimal] = FOREIGN_FEES["USD"]

# 최종달러 = 바낸달러 - 1 (출금 수수료)
WITHDRAWAL_UNIT_FEE: Final[Decimal] = Decimal(1)

# ----------------------------------------------------------------------------
# 시트 레이아웃 (당일작업 A:T, 0-based 컬럼 인덱스)
# ----------------------------------------------------------------------------
COL_DEPOSIT_DATE: Final = 0  # A 입금날짜
COL_PAYEE: Final = 1  # B 이름
COL_PLATFORM: Final = 2  # C 플랫폼
COL_BANK_INFO: Final = 3  # D 계좌정보
COL_DOMESTIC_DEPOSIT: Final = 4  # E 입금
COL_WITHDRAWAL: Final = 5  # F 출금
COL_PROFIT: Final = 6  # G 수익
COL_PROFIT_DEPOSIT: Final = 7  # H 수익입금
COL_SETTLEMENT: Final = 8  # I 정산
COL_FOREIGN_DEPOSIT_DATE: Final = 9  # J 외화입금날짜
COL_FOREIGN_AMOUNT: Final = 10  # K 외화
COL_FOREIGN_RECEIVED: Final = 11  # L 외화입금
COL_FOREIGN_NET: Final = 12  # M 외화출금
COL_CURRENCY: Final = 13  # N 종류
COL_PROGRESS: Final = 14  # O 진행여부
COL_EXCHANGE_REMAINING: Final = 15  # P 바낸달러
COL_FINAL_AMOUNT: Final = 16  # Q 최종달러
COL_ISSUE_CODE: Final = 17  # R 발급코드
COL_UNIT_PRICE: Final = 18  # S 달러가격
COL_ACCOUNT_CODE: Final = 19  # T 계좌코드

WORKING_COLUMNS: Final[str] = "A:T"
WORKING_WIDTH: Final[int] = 20
ACCOUNT_DIRECTORY_COLUMNS: Final[str] = "W:Z"
RATE_COLUMNS: Final[str] = "A:P"
RATE_COL_DATE: Final = 0  # A
RATE_COL_DAILY: Final = 15  # P 당일달러
ARCHIVE_COLUMNS: Final[str] = "A:P"
ARCHIVE_ISSUE_CODE_COLUMN: Final[str] = "P:P"

# 개인 시트 16필드 투영 순서
ARCHIVE_PROJECTION: Final[tuple[int, ...]] = (
    COL_DEPOSIT_DATE,
    COL_PAYEE,
    COL_PLATFORM,
    COL_BANK_INFO,
    COL_DOMESTIC_DEPOSIT,
    COL_WITHDRAWAL,
    COL_PROFIT,
    COL_SETTLEMENT,
    COL_FINAL_AMOUNT,
    COL_UNIT_PRICE,
    COL_FOREIGN_DEPOSIT_DATE,
    COL_FOREIGN_AMOUNT,
    COL_FOREIGN_RECEIVED,
    COL_CURRENCY,
    COL_ACCOUNT_CODE,
    COL_ISSUE_CODE,
)


def column_letter(index: int) -> str:
    """0-based 컬럼 인덱스 → A1 표기 컬럼 문자 (0 → A, 26 → AA)"""
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


# ----------------------------------------------------------------------------
# 거래소 상수 (업비트)
# ----------------------------------------------------------------------------
ORDER_SIDE_ASK: Final[str] = "ask"
ORDER_SIDE_BID: Final[str] = "bid"
ORDER_STATE_DONE: Final[str] = "done"
ORDER_STATE_CANCEL: Final[str] = "cancel"
DEPOSIT_STATE_ACCEPTED: Final[str] = "ACCEPTED"


__all__ = [
    "RecordState",
    "TransitionCommand",
    "ErrorCode",
    "COMMAND_ALIASES",
    "ALLOWED_TRANSITIONS",
    "VALUE_COMMANDS",
    "STATE_LABELS",
    "SETTLED_MARK",
    "LEGACY_SETTLED_MARKS",
    "PROGRESS_MARK",
    "CURRENCY_ALIASES",
    "FOREIGN_FEES",
    "DEFAULT_FOREIGN_FEE",
    "WITHDRAWAL_UNIT_FEE",
    "WORKING_COLUMNS",
    "WORKING_WIDTH",
    "ACCOUNT_DIRECTORY_COLUMNS",
    "RATE_COLUMNS",
    "RATE_COL_DATE",
    "RATE_COL_DAILY",
    "ARCHIVE_COLUMNS",
    "ARCHIVE_ISSUE_CODE_COLUMN",
    "ARCHIVE_PROJECTION",
    "column_letter",
    "ORDER_SIDE_ASK",
    "ORDER_SIDE_BID",
    "ORDER_STATE_DONE",
    "ORDER_STATE_CANCEL",
    "DEPOSIT_STATE_ACCEPTED",
    "EXCHANGE_EXCEPTIONS",
    "NOTIFY_EXCEPTIONS",
    "STORE_EXCEPTIONS",
]
