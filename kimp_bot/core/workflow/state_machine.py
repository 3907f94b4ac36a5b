"""레코드 상태 판별 및 전이 검증.

상태는 시트에 저장하지 않고 어떤 필드가 채워졌는지로 파생합니다.
판별은 상호 배타적이며 아래 우선순위로 평가합니다.

    정산완료 > 정산중 > 정산대기 > 진행중 > 진행대기 > 대기

어느 조건에도 맞지 않는 행(수기 편집 등)은 None 입니다.
"""

from __future__ import annotations

import html

from kimp_bot.common.exceptions import InvalidTransition
from kimp_bot.core.dto.internal.record import TransactionRecord
from kimp_bot.core.types import (
    ALLOWED_TRANSITIONS,
    COL_DOMESTIC_DEPOSIT,
    COL_FINAL_AMOUNT,
    COL_FOREIGN_DEPOSIT_DATE,
    COL_FOREIGN_RECEIVED,
    COL_PROFIT,
    COL_PROGRESS,
    COL_SETTLEMENT,
    LEGACY_SETTLED_MARKS,
    PROGRESS_MARK,
    STATE_LABELS,
    RecordState,
    TransitionCommand,
)


def is_settled(record: TransactionRecord) -> bool:
    return record.settlement in LEGACY_SETTLED_MARKS


def classify(record: TransactionRecord) -> RecordState | None:
    if is_settled(record):
        return RecordState.SETTLED
    if record.is_set(COL_PROFIT) and not record.is_set(COL_SETTLEMENT):
        return RecordState.SETTLING
    if record.is_set(COL_FINAL_AMOUNT) and not record.is_set(COL_DOMESTIC_DEPOSIT):
        return RecordState.SETTLEMENT_PENDING
    if record.progress == PROGRESS_MARK and not record.is_set(COL_FINAL_AMOUNT):
        return RecordState.IN_PROGRESS
    if record.is_set(COL_FOREIGN_RECEIVED) and not record.is_set(COL_PROGRESS):
        return RecordState.FOREIGN_DEPOSIT_PENDING
    if not (
        record.is_set(COL_FOREIGN_DEPOSIT_DATE)
        or record.is_set(COL_FOREIGN_RECEIVED)
        or record.is_set(COL_PROGRESS)
    ):
        return RecordState.WAITING
    return None


def state_label(state: RecordState | None) -> str:
    return STATE_LABELS[state] if state is not None else "확인불가"


def ensure_transition_allowed(
    record: TransactionRecord, command: TransitionCommand, command_word: str
) -> RecordState:
    """현재 상태에서 명령이 허용되는지 확인하고 현재 상태를 반환합니다.

    Raises:
        InvalidTransition: 단계를 건너뛰거나 되돌리는 명령
    """
    state = classify(record)
    if state is None or state not in ALLOWED_TRANSITIONS[command]:
        raise InvalidTransition(
            message=(
                f"transition {command} rejected for {record.issue_code} "
                f"(state={state})"
            ),
            user_message=(
                f"코드 : {record.issue_code} 현재 상태({state_label(state)})에서는 "
                f"'{html.escape(command_word, quote=False)}' 처리를 할 수 없습니다."
            ),
        )
    return state
