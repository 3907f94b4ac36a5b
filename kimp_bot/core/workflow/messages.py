"""채팅 응답 문구 및 목록 렌더링"""

from __future__ import annotations

import html
from decimal import Decimal

from kimp_bot.core.dto.internal.record import TransactionRecord
from kimp_bot.core.types import (
    COL_FINAL_AMOUNT,
    COL_FOREIGN_AMOUNT,
    COL_UNIT_PRICE,
    STATE_LABELS,
    RecordState,
)
from kimp_bot.core.workflow.formulas import cell_text, format_krw
from kimp_bot.core.workflow.state_machine import classify, state_label

REGISTERED = "정상등록 되었습니다.\n발급코드 : {code}"
ARCHIVE_DONE = "리빌드 완료!\n처리된 항목: {count}개"
ARCHIVE_EMPTY = "리빌드할 데이터가 없습니다."

# 상태별 (제목, 빈 목록 문구)
LIST_TITLES: dict[RecordState, tuple[str, str]] = {
    RecordState.WAITING: ("대기 목록", "대기 중인 작업이 없습니다."),
    RecordState.FOREIGN_DEPOSIT_PENDING: ("진행대기 목록", "진행대기 중인 작업이 없습니다."),
    RecordState.IN_PROGRESS: ("진행 중 목록", "진행 중인 작업이 없습니다."),
    RecordState.SETTLEMENT_PENDING: ("정산대기 목록", "정산대기 중인 작업이 없습니다."),
    RecordState.SETTLING: ("정산 중 목록", "정산 중인 작업이 없습니다."),
    RecordState.SETTLED: ("정산완료 목록", "정산완료된 작업이 없습니다."),
}

_STAGE_NOTES: dict[RecordState, str] = {
    RecordState.WAITING: "해외계좌입금전",
    RecordState.FOREIGN_DEPOSIT_PENDING: "거래소입금전",
    RecordState.IN_PROGRESS: "작업중",
}


def _or_zero(value: str) -> str:
    return _escape(value) or "0"


def _escape(value: str) -> str:
    """HTML parse_mode 로 보내므로 시트 문자열의 &, <, > 를 이스케이프"""
    return html.escape(value or "", quote=False)


def render_list_line(record: TransactionRecord, state: RecordState) -> str:
    prefix = f"{_escape(record.deposit_date)}, 코드:{record.issue_code}"
    match state:
        case RecordState.WAITING | RecordState.FOREIGN_DEPOSIT_PENDING | RecordState.IN_PROGRESS:
            foreign = _or_zero(record.text(COL_FOREIGN_AMOUNT))
            return (
                f"{prefix}, {format_krw(record.withdrawal)}원, "
                f"{foreign}{_escape(record.currency)}, {_STAGE_NOTES[state]}"
            )
        case RecordState.SETTLEMENT_PENDING:
            return (
                f"{prefix}, {format_krw(record.withdrawal)}원, "
                f"최종달러:{_or_zero(record.text(COL_FINAL_AMOUNT))}, "
                f"달러가격:{_or_zero(record.text(COL_UNIT_PRICE))}"
            )
        case _:
            return (
                f"{prefix}, {format_krw(record.domestic_deposit)}원, "
                f"수익:{format_krw(record.profit)}원"
            )


def render_list(state: RecordState, records: list[TransactionRecord]) -> str:
    title, empty = LIST_TITLES[state]
    if not records:
        return empty
    lines = [render_list_line(record, state) for record in records]
    return f"📋 {title}\n\n" + "\n".join(lines)


def render_list_failure(state: RecordState) -> str:
    return f"{STATE_LABELS[state]} 목록 조회 중 오류가 발생했습니다."


def render_detail(record: TransactionRecord) -> str:
    """코드별 조회 응답"""
    state = classify(record)
    lines = [
        f"📄 코드 {record.issue_code} ({state_label(state)})",
        f"날짜: {_escape(record.deposit_date)}",
        f"이름: {_escape(record.payee)} / {_escape(record.platform)}",
        f"계좌: {_escape(record.bank_info)}",
        f"출금: {format_krw(record.withdrawal)}원",
        f"외화: {_or_zero(record.text(COL_FOREIGN_AMOUNT))}{_escape(record.currency)}",
    ]
    if record.foreign_net is not None:
        lines.append(f"외화출금: {cell_text(record.foreign_net)}")
    if record.final_amount is not None:
        lines.append(
            f"최종달러: {cell_text(record.final_amount)} "
            f"달러가격: {_or_zero(record.text(COL_UNIT_PRICE))}"
        )
    if record.domestic_deposit is not None:
        lines.append(f"입금: {format_krw(record.domestic_deposit)}원")
    if record.profit is not None:
        lines.append(f"수익: {format_krw(record.profit)}원")
    return "\n".join(lines)


def foreign_deposit_done(code: str, net: Decimal) -> str:
    return f"코드 : {code} 금액 : {cell_text(net)} 거래소입금요망!"


def progress_done(code: str, net: str) -> str:
    return f"코드 : {code} 금액 : {_escape(net)} 작업중!"


def exchange_remaining_done(
    code: str, final: Decimal, price: str, bank_info: str, payee: str, withdrawal: Decimal | None
) -> str:
    return (
        f"코드 : {code} , 달러 {cell_text(final)} 가격 : {_escape(price)}\n"
        f"{_escape(bank_info)} {_escape(payee)} {format_krw(withdrawal)}원 입금요망"
    )


def domestic_deposit_done(code: str, payee: str, profit: int) -> str:
    return f"코드 : {code} {_escape(payee)} {format_krw(profit)}원 입금요망"


def settlement_done(code: str, payee: str, amount: Decimal) -> str:
    return f"코드:{code} {_escape(payee)} {format_krw(amount)}원 정산완료"


def settlement_complete_done(code: str, payee: str) -> str:
    return f"코드:{code} {_escape(payee)} 정산완료"
