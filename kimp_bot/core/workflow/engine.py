"""정산 워크플로우 엔진

당일작업 시트의 레코드를 생성하고, 발급코드 단위 명령으로 단계를 전이시킵니다.

흐름:
    대기 → (외화입금) → 진행대기 → (진행) → 진행중 → (바낸달러) → 정산대기
         → (입금) → 정산중 → (정산) → 정산완료

쓰기 경로는 모두 당일작업 시트 락 안에서 실행되며, 전이 직전 발급코드 셀을
다시 읽어 행이 밀리지 않았는지 확인한 뒤 한 번의 배치로 기록합니다.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from kimp_bot.common.exceptions import (
    AccountNotFound,
    CommandValidationError,
    ConcurrentModification,
    MissingRate,
    RecordNotFound,
    SettlementBotError,
    UnknownCommand,
    UpstreamUnavailable,
)
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.dto.internal.record import AccountInfo, TransactionRecord
from kimp_bot.core.interfaces import RecordStore
from kimp_bot.core.types import (
    ACCOUNT_DIRECTORY_COLUMNS,
    COL_DOMESTIC_DEPOSIT,
    COL_EXCHANGE_REMAINING,
    COL_FINAL_AMOUNT,
    COL_FOREIGN_DEPOSIT_DATE,
    COL_FOREIGN_NET,
    COL_FOREIGN_RECEIVED,
    COL_ISSUE_CODE,
    COL_PROFIT,
    COL_PROFIT_DEPOSIT,
    COL_PROGRESS,
    COL_SETTLEMENT,
    COL_UNIT_PRICE,
    COMMAND_ALIASES,
    PROGRESS_MARK,
    RATE_COL_DAILY,
    RATE_COL_DATE,
    RATE_COLUMNS,
    SETTLED_MARK,
    VALUE_COMMANDS,
    WORKING_COLUMNS,
    RecordState,
    TransitionCommand,
    column_letter,
)
from kimp_bot.core.workflow import messages
from kimp_bot.core.workflow.formulas import (
    cell_text,
    compute_profit,
    final_exchange_amount,
    foreign_net_amount,
    format_sheet_date,
    normalize_currency,
    parse_amount,
    parse_sheet_date,
    to_cell,
)
from kimp_bot.core.workflow.state_machine import classify, ensure_transition_allowed

logger = AppLogger.get_logger("workflow_engine", "workflow")

ISSUE_CODE_MIN = 1000
ISSUE_CODE_MAX = 9999


class WorkflowEngine:
    """TransactionRecord 생명주기 관리

    Args:
        store: 레코드 저장소 (시트)
        working_sheet: 당일작업 시트 이름
        rate_sheet: 출금내역 시트 이름 (당일달러)
        lock: 당일작업 시트 쓰기 락 (리빌드와 공유)
        clock: 현재 시각 공급자 (테스트에서 고정)
        issue_code_attempts: 발급코드 충돌 시 재생성 횟수 상한
        rng: 발급코드 난수 생성기
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        working_sheet: str,
        rate_sheet: str,
        lock: asyncio.Lock | None = None,
        clock: Callable[[], datetime] = datetime.now,
        issue_code_attempts: int = 50,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._working_sheet = working_sheet
        self._rate_sheet = rate_sheet
        self._lock = lock or asyncio.Lock()
        self._clock = clock
        self._issue_code_attempts = issue_code_attempts
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    async def load_records(self) -> list[TransactionRecord]:
        """헤더를 제외한 당일작업 전체 행"""
        rows = await self._store.read_range(self._working_sheet, WORKING_COLUMNS)
        return [
            TransactionRecord.from_row(index, row)
            for index, row in enumerate(rows)
            if index > 0 and row
        ]

    async def find_record(self, issue_code: str) -> TransactionRecord:
        for record in await self.load_records():
            if record.issue_code == issue_code:
                return record
        raise RecordNotFound(message=f"issue code {issue_code} not found")

    async def find_account(self, account_code: str) -> AccountInfo:
        rows = await self._store.read_range(self._working_sheet, ACCOUNT_DIRECTORY_COLUMNS)
        for row in rows:
            if len(row) >= 4 and cell_text(row[3]) == account_code:
                return AccountInfo(
                    payee=cell_text(row[0]),
                    platform=cell_text(row[1]),
                    bank_info=cell_text(row[2]),
                    account_code=account_code,
                )
        raise AccountNotFound(message=f"account code {account_code} not found")

    async def lookup_rate(self, day: date | None = None) -> Decimal | None:
        """출금내역 시트에서 당일 달러가격(P열) 조회. 없으면 None"""
        day = day or self._clock().date()
        rows = await self._store.read_range(self._rate_sheet, RATE_COLUMNS)
        for row in rows[1:]:
            if not row or parse_sheet_date(row[RATE_COL_DATE]) != day:
                continue
            rate = parse_amount(row[RATE_COL_DAILY]) if len(row) > RATE_COL_DAILY else None
            return rate if rate else None
        return None

    async def list_by_state(self, state: RecordState) -> str:
        """상태별 목록 응답. 저장소 실패 시 부분 결과 없이 실패 문구"""
        try:
            records = await self.load_records()
        except UpstreamUnavailable as e:
            logger.warning(f"list query failed: {e}", state=str(state), **e.to_dict())
            return messages.render_list_failure(state)

        matched: list[TransactionRecord] = []
        for record in records:
            current = classify(record)
            if current is None:
                logger.warning(
                    "unclassifiable row skipped",
                    row=record.row_number,
                    issue_code=record.issue_code,
                )
                continue
            if current == state:
                matched.append(record)
        return messages.render_list(state, matched)

    async def describe(self, issue_code: str) -> str:
        return messages.render_detail(await self.find_record(issue_code))

    # ------------------------------------------------------------------
    # 생성
    # ------------------------------------------------------------------
    async def create_record(
        self, account_code: str, withdrawal: Any, foreign_amount: Any, currency_label: str
    ) -> str:
        """대기 상태 레코드를 추가하고 발급코드를 반환합니다.

        Raises:
            CommandValidationError: 출금액이 양의 정수가 아니거나 외화가 양수가 아님
            AccountNotFound: 계좌 디렉토리에 없는 계좌코드
        """
        withdrawal_krw = _positive(withdrawal, "withdrawal")
        if withdrawal_krw != withdrawal_krw.to_integral_value():
            raise CommandValidationError(message=f"withdrawal must be integer: {withdrawal}")
        foreign = _positive(foreign_amount, "foreign_amount")
        currency = normalize_currency(currency_label)
        if not currency:
            raise CommandValidationError(message="currency label is empty")

        async with self._lock:
            account = await self.find_account(account_code)
            issue_code = await self._generate_issue_code()

            row: list[Any] = [
                format_sheet_date(self._clock().date()),
                account.payee,
                account.platform,
                account.bank_info,
                "",
                to_cell(withdrawal_krw),
                "",
                "",
                "",
                "",
                to_cell(foreign),
                "",
                "",
                currency,
                "",
                "",
                "",
                issue_code,
                "",
                account_code,
            ]
            await self._store.append_row(self._working_sheet, WORKING_COLUMNS, row)

        logger.info(
            "record created",
            issue_code=issue_code,
            account_code=account_code,
            currency=currency,
        )
        return issue_code

    async def _generate_issue_code(self) -> str:
        rows = await self._store.read_range(self._working_sheet, WORKING_COLUMNS)
        existing = {
            cell_text(row[COL_ISSUE_CODE]) for row in rows[1:] if len(row) > COL_ISSUE_CODE
        }
        for _ in range(self._issue_code_attempts):
            code = str(self._rng.randint(ISSUE_CODE_MIN, ISSUE_CODE_MAX))
            if code not in existing:
                return code
            logger.debug("issue code collision, regenerating", issue_code=code)
        raise SettlementBotError(
            message=f"no free issue code after {self._issue_code_attempts} attempts"
        )

    # ------------------------------------------------------------------
    # 전이
    # ------------------------------------------------------------------
    async def apply_transition(
        self, issue_code: str, command_word: str, value: str | None = None
    ) -> str:
        """발급코드 레코드에 상태 변경 명령을 적용하고 응답 문구를 반환합니다."""
        async with self._lock:
            record = await self.find_record(issue_code)
            command = COMMAND_ALIASES.get(command_word)
            if command is None:
                raise UnknownCommand(message=f"unknown transition command: {command_word}")

            ensure_transition_allowed(record, command, command_word)
            amount = _command_value(command, value)

            updates, reply = await self._plan(record, command, amount)
            await self._ensure_unchanged(record)
            await self._store.update_cells(
                self._working_sheet,
                {
                    f"{column_letter(column)}{record.row_number}": cell
                    for column, cell in updates.items()
                },
            )

        logger.info(
            "transition applied",
            issue_code=issue_code,
            command=str(command),
            row=record.row_number,
        )
        return reply

    async def _plan(
        self, record: TransactionRecord, command: TransitionCommand, amount: Decimal | None
    ) -> tuple[dict[int, Any], str]:
        """명령별 변경 셀(컬럼 → 값)과 응답 문구"""
        code = record.issue_code
        match command:
            case TransitionCommand.FOREIGN_DEPOSIT:
                net = foreign_net_amount(amount, record.currency)
                updates = {
                    COL_FOREIGN_DEPOSIT_DATE: format_sheet_date(self._clock().date()),
                    COL_FOREIGN_RECEIVED: to_cell(amount),
                    COL_FOREIGN_NET: to_cell(net),
                }
                return updates, messages.foreign_deposit_done(code, net)

            case TransitionCommand.PROGRESS:
                net = record.text(COL_FOREIGN_NET) or "0"
                return {COL_PROGRESS: PROGRESS_MARK}, messages.progress_done(code, net)

            case TransitionCommand.EXCHANGE_REMAINING:
                final = final_exchange_amount(amount)
                updates = {
                    COL_EXCHANGE_REMAINING: to_cell(amount),
                    COL_FINAL_AMOUNT: to_cell(final),
                }
                rate = await self.lookup_rate()
                if rate is not None:
                    updates[COL_UNIT_PRICE] = to_cell(rate)
                else:
                    logger.warning("no same-day rate, unit price left blank", issue_code=code)
                price = cell_text(to_cell(rate)) if rate is not None else "0"
                reply = messages.exchange_remaining_done(
                    code, final, price, record.bank_info, record.payee, record.withdrawal
                )
                return updates, reply

            case TransitionCommand.DOMESTIC_DEPOSIT:
                updates = {COL_DOMESTIC_DEPOSIT: to_cell(amount)}
                unit_price = record.unit_price
                if unit_price is None:
                    unit_price = await self.lookup_rate()
                    if unit_price is None:
                        raise MissingRate(message=f"no same-day rate for {code}")
                    updates[COL_UNIT_PRICE] = to_cell(unit_price)
                profit = compute_profit(
                    record.final_amount or Decimal(0),
                    unit_price,
                    record.withdrawal or Decimal(0),
                )
                updates[COL_PROFIT] = profit
                return updates, messages.domestic_deposit_done(code, record.payee, profit)

            case TransitionCommand.SETTLEMENT:
                updates = {
                    COL_PROFIT_DEPOSIT: to_cell(amount),
                    COL_SETTLEMENT: SETTLED_MARK,
                }
                return updates, messages.settlement_done(code, record.payee, amount)

            case TransitionCommand.SETTLEMENT_COMPLETE:
                return (
                    {COL_SETTLEMENT: SETTLED_MARK},
                    messages.settlement_complete_done(code, record.payee),
                )

        raise UnknownCommand(message=f"unhandled transition command: {command}")

    async def _ensure_unchanged(self, record: TransactionRecord) -> None:
        """쓰기 직전 발급코드 셀 재확인 (행 삭제/삽입으로 밀린 경우 차단)"""
        cell = f"{column_letter(COL_ISSUE_CODE)}{record.row_number}"
        rows = await self._store.read_range(self._working_sheet, f"{cell}:{cell}")
        current = cell_text(rows[0][0]) if rows and rows[0] else ""
        if current != record.issue_code:
            raise ConcurrentModification(
                message=(
                    f"row {record.row_number} changed: "
                    f"expected {record.issue_code}, found {current or '(empty)'}"
                )
            )


def _positive(value: Any, field: str) -> Decimal:
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        raise CommandValidationError(message=f"{field} must be a positive number: {value!r}")
    return amount


def _command_value(command: TransitionCommand, value: str | None) -> Decimal | None:
    """금액이 필요한 명령의 값 검증 (정산 금액만 0 허용)"""
    if command not in VALUE_COMMANDS:
        return None
    amount = parse_amount(value)
    if amount is None:
        raise CommandValidationError(
            message=f"{command} requires a numeric value: {value!r}",
            user_message="금액을 숫자로 입력해주세요.",
        )
    if amount < 0 or (amount == 0 and command != TransitionCommand.SETTLEMENT):
        raise CommandValidationError(
            message=f"{command} value out of range: {value!r}",
            user_message="금액을 숫자로 입력해주세요.",
        )
    return amount
