from __future__ import annotations

import asyncio

import pytest

from kimp_bot.common.exceptions import (
    AccountNotFound,
    CommandValidationError,
    ConcurrentModification,
    InvalidTransition,
    MissingRate,
    RecordNotFound,
    SettlementBotError,
    UnknownCommand,
)
from kimp_bot.core.dto.internal.record import TransactionRecord
from kimp_bot.core.types import COL_BANK_INFO, COL_PROGRESS, COL_UNIT_PRICE, RecordState
from kimp_bot.core.workflow.engine import WorkflowEngine
from kimp_bot.core.workflow.state_machine import classify
from tests.factory_builders import (
    RATE_SHEET,
    WORKING_SHEET,
    InMemoryRecordStore,
    build_account_row,
    build_rate_sheet,
    build_record_row,
    build_working_sheet,
    fixed_clock,
)


class _SequenceRng:
    """randint 가 정해진 순서로 값을 돌려주는 난수 생성기"""

    def __init__(self, values: list[int]) -> None:
        self._values = iter(values)

    def randint(self, a: int, b: int) -> int:
        return next(self._values)


def _store(records: list[list] | None = None, rate_day: str = "2024. 10. 18.") -> InMemoryRecordStore:
    return InMemoryRecordStore(
        {
            WORKING_SHEET: build_working_sheet(
                records,
                accounts=[build_account_row("1234"), build_account_row("A001")],
            ),
            RATE_SHEET: build_rate_sheet(1400, day=rate_day),
        }
    )


def _engine(store: InMemoryRecordStore, rng: object = None, attempts: int = 50) -> WorkflowEngine:
    return WorkflowEngine(
        store,
        working_sheet=WORKING_SHEET,
        rate_sheet=RATE_SHEET,
        clock=fixed_clock,
        issue_code_attempts=attempts,
        rng=rng,  # type: ignore[arg-type]
    )


# ----------------------------------------------------------------------------
# 생성
# ----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_create_record_appends_waiting_row() -> None:
    store = _store()
    engine = _engine(store)

    code = await engine.create_record("1234", "1000000", "500", "미달")

    assert len(code) == 4 and code.isdigit()
    assert 1000 <= int(code) <= 9999
    row = store.find(code)
    assert row[0] == "2024. 10. 18."
    assert row[1] == "홍길동"
    assert row[5] == 1_000_000
    assert row[10] == 500
    assert row[13] == "USD"
    assert row[19] == "1234"
    assert classify(TransactionRecord.from_row(1, row)) == RecordState.WAITING
    # 계좌 디렉토리(W:Z)는 그대로 유지
    assert store.sheets[WORKING_SHEET][1][22:26] == build_account_row("1234")


@pytest.mark.asyncio
async def test_create_record_unknown_account() -> None:
    store = _store()
    with pytest.raises(AccountNotFound) as exc_info:
        await _engine(store).create_record("9999", "1000000", "500", "USD")
    assert exc_info.value.user_message == "등록을 실패하였습니다. (계좌코드 오류)"
    assert store.appends == []


@pytest.mark.parametrize(
    ("withdrawal", "foreign"),
    [("10.5", "500"), ("-100", "500"), ("0", "500"), ("1000", "0"), ("1000", "abc")],
)
@pytest.mark.asyncio
async def test_create_record_rejects_invalid_amounts(withdrawal: str, foreign: str) -> None:
    store = _store()
    with pytest.raises(CommandValidationError):
        await _engine(store).create_record("1234", withdrawal, foreign, "USD")
    assert store.appends == []


@pytest.mark.asyncio
async def test_issue_code_regenerated_on_collision() -> None:
    store = _store([build_record_row(issue_code="1111")])
    engine = _engine(store, rng=_SequenceRng([1111, 1111, 2222]))

    code = await engine.create_record("A001", "1000", "10", "HKD")

    assert code == "2222"


@pytest.mark.asyncio
async def test_issue_code_attempts_exhausted() -> None:
    store = _store([build_record_row(issue_code="1111")])
    engine = _engine(store, rng=_SequenceRng([1111, 1111, 1111]), attempts=3)

    with pytest.raises(SettlementBotError):
        await engine.create_record("A001", "1000", "10", "HKD")
    assert store.appends == []


@pytest.mark.asyncio
async def test_concurrent_creates_get_distinct_codes() -> None:
    store = _store()
    engine = _engine(store, rng=_SequenceRng([1111, 1111, 2222]))

    codes = await asyncio.gather(
        engine.create_record("1234", "1000", "10", "USD"),
        engine.create_record("A001", "2000", "20", "USD"),
    )

    assert sorted(codes) == ["1111", "2222"]
    assert len(store.records()) == 2


# ----------------------------------------------------------------------------
# 전이
# ----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_foreign_deposit_usd_net_of_fee() -> None:
    store = _store([build_record_row(RecordState.WAITING)])

    reply = await _engine(store).apply_transition("1234", "외화입금", "498")

    assert reply == "코드 : 1234 금액 : 496 거래소입금요망!"
    assert store.batch_writes == [
        (WORKING_SHEET, {"J2": "2024. 10. 18.", "L2": 498, "M2": 496})
    ]


@pytest.mark.asyncio
async def test_foreign_deposit_hkd_net_of_fee() -> None:
    store = _store([build_record_row(RecordState.WAITING, currency="HKD")])

    await _engine(store).apply_transition("1234", "외화입금", "1,000")

    assert store.find("1234")[12] == 985


@pytest.mark.asyncio
async def test_progress_marks_in_progress() -> None:
    store = _store([build_record_row(RecordState.FOREIGN_DEPOSIT_PENDING)])

    reply = await _engine(store).apply_transition("1234", "진행")

    assert reply == "코드 : 1234 금액 : 496 작업중!"
    assert store.find("1234")[COL_PROGRESS] == "진행"


@pytest.mark.parametrize("word", ["바낸달러", "바낸달라"])
@pytest.mark.asyncio
async def test_exchange_remaining_sets_final_and_rate(word: str) -> None:
    store = _store([build_record_row(RecordState.IN_PROGRESS)])

    reply = await _engine(store).apply_transition("1234", word, "700")

    assert reply == (
        "코드 : 1234 , 달러 699 가격 : 1400\n국민 123-456 홍길동 1,000,000원 입금요망"
    )
    assert store.batch_writes == [(WORKING_SHEET, {"P2": 700, "Q2": 699, "S2": 1400})]


@pytest.mark.asyncio
async def test_exchange_remaining_without_rate_leaves_unit_price_blank() -> None:
    store = _store([build_record_row(RecordState.IN_PROGRESS)], rate_day="2024. 10. 1.")

    reply = await _engine(store).apply_transition("1234", "바낸달러", "700")

    assert "가격 : 0" in reply
    assert store.batch_writes == [(WORKING_SHEET, {"P2": 700, "Q2": 699})]


@pytest.mark.asyncio
async def test_domestic_deposit_computes_profit() -> None:
    store = _store([build_record_row(RecordState.SETTLEMENT_PENDING)])

    reply = await _engine(store).apply_transition("1234", "입금", "1000000")

    # floor((699 * 1400 - 1_000_000) / 2)
    assert reply == "코드 : 1234 홍길동 -10,700원 입금요망"
    assert store.batch_writes == [(WORKING_SHEET, {"E2": 1_000_000, "G2": -10_700})]
    assert classify(TransactionRecord.from_row(1, store.find("1234"))) == RecordState.SETTLING


@pytest.mark.asyncio
async def test_domestic_deposit_looks_up_missing_rate() -> None:
    row = build_record_row(RecordState.SETTLEMENT_PENDING, cells={COL_UNIT_PRICE: ""})
    store = _store([row])

    await _engine(store).apply_transition("1234", "입금", "970000")

    assert store.batch_writes == [(WORKING_SHEET, {"E2": 970_000, "S2": 1400, "G2": 4300})]


@pytest.mark.asyncio
async def test_domestic_deposit_without_any_rate_fails() -> None:
    row = build_record_row(RecordState.SETTLEMENT_PENDING, cells={COL_UNIT_PRICE: ""})
    store = _store([row], rate_day="2024. 10. 1.")

    with pytest.raises(MissingRate):
        await _engine(store).apply_transition("1234", "입금", "970000")
    assert store.batch_writes == []


@pytest.mark.asyncio
async def test_settlement_records_profit_deposit_and_mark() -> None:
    store = _store([build_record_row(RecordState.SETTLING)])

    reply = await _engine(store).apply_transition("1234", "정산", "5350")

    assert reply == "코드:1234 홍길동 5,350원 정산완료"
    assert store.batch_writes == [(WORKING_SHEET, {"H2": 5350, "I2": "정산완료"})]


@pytest.mark.parametrize("state", [RecordState.SETTLEMENT_PENDING, RecordState.SETTLING])
@pytest.mark.asyncio
async def test_settlement_complete_from_allowed_states(state: RecordState) -> None:
    store = _store([build_record_row(state)])

    reply = await _engine(store).apply_transition("1234", "정산완료")

    assert reply == "코드:1234 홍길동 정산완료"
    assert store.batch_writes == [(WORKING_SHEET, {"I2": "정산완료"})]


@pytest.mark.asyncio
async def test_skipping_stage_is_rejected_without_writes() -> None:
    store = _store([build_record_row(RecordState.WAITING)])

    with pytest.raises(InvalidTransition):
        await _engine(store).apply_transition("1234", "입금", "1000")
    assert store.batch_writes == []


@pytest.mark.asyncio
async def test_unknown_command_word() -> None:
    store = _store([build_record_row(RecordState.WAITING)])
    with pytest.raises(UnknownCommand):
        await _engine(store).apply_transition("1234", "환불", "10")


@pytest.mark.asyncio
async def test_unknown_issue_code() -> None:
    store = _store([build_record_row(RecordState.WAITING)])
    with pytest.raises(RecordNotFound) as exc_info:
        await _engine(store).apply_transition("5678", "외화입금", "10")
    assert exc_info.value.user_message == "해당 코드를 찾을 수 없습니다."


@pytest.mark.parametrize("value", [None, "abc", "-5", "0"])
@pytest.mark.asyncio
async def test_value_command_requires_positive_number(value: str | None) -> None:
    store = _store([build_record_row(RecordState.WAITING)])
    with pytest.raises(CommandValidationError):
        await _engine(store).apply_transition("1234", "외화입금", value)
    assert store.batch_writes == []


@pytest.mark.asyncio
async def test_row_shift_before_write_is_detected() -> None:
    store = _store([build_record_row(RecordState.WAITING)])
    shifted = False

    async def _insert_row_above(sheet: str, range_spec: str) -> None:
        nonlocal shifted
        if range_spec == "R2:R2" and not shifted:
            shifted = True
            store.sheets[WORKING_SHEET].insert(1, build_record_row(issue_code="9999"))

    store.on_read = _insert_row_above

    with pytest.raises(ConcurrentModification):
        await _engine(store).apply_transition("1234", "외화입금", "498")
    assert store.batch_writes == []


@pytest.mark.asyncio
async def test_full_lifecycle_walks_every_state() -> None:
    store = _store()
    engine = _engine(store)

    code = await engine.create_record("1234", "1000000", "500", "미달")
    steps = [
        ("외화입금", "498", RecordState.FOREIGN_DEPOSIT_PENDING),
        ("진행", None, RecordState.IN_PROGRESS),
        ("바낸달러", "700", RecordState.SETTLEMENT_PENDING),
        ("입금", "1000000", RecordState.SETTLING),
        ("정산", "0", RecordState.SETTLED),
    ]
    for word, value, expected in steps:
        await engine.apply_transition(code, word, value)
        record = await engine.find_record(code)
        assert classify(record) == expected

    assert len(store.batch_writes) == len(steps)


# ----------------------------------------------------------------------------
# 조회
# ----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_list_by_state_renders_matching_rows_only() -> None:
    unclassifiable = build_record_row(
        RecordState.IN_PROGRESS, issue_code="4444", cells={COL_PROGRESS: "보류"}
    )
    store = _store(
        [
            build_record_row(RecordState.WAITING, issue_code="1111"),
            build_record_row(RecordState.IN_PROGRESS, issue_code="2222"),
            build_record_row(RecordState.SETTLED, issue_code="3333"),
            unclassifiable,
        ]
    )
    engine = _engine(store)

    waiting = await engine.list_by_state(RecordState.WAITING)
    pending = await engine.list_by_state(RecordState.SETTLEMENT_PENDING)
    settled = await engine.list_by_state(RecordState.SETTLED)

    assert waiting == (
        "📋 대기 목록\n\n2024. 10. 18., 코드:1111, 1,000,000원, 500USD, 해외계좌입금전"
    )
    assert pending == "정산대기 중인 작업이 없습니다."
    assert settled == "📋 정산완료 목록\n\n2024. 10. 18., 코드:3333, 1,000,000원, 수익:-10,700원"
    assert "4444" not in waiting


@pytest.mark.asyncio
async def test_list_by_state_store_failure_has_no_rows() -> None:
    store = _store([build_record_row(RecordState.WAITING)])
    store.fail_reads.add(WORKING_SHEET)

    reply = await _engine(store).list_by_state(RecordState.IN_PROGRESS)

    assert reply == "진행중 목록 조회 중 오류가 발생했습니다."


@pytest.mark.asyncio
async def test_describe_includes_state_label() -> None:
    store = _store([build_record_row(RecordState.SETTLEMENT_PENDING)])

    reply = await _engine(store).describe("1234")

    assert reply.startswith("📄 코드 1234 (정산대기)")
    assert "최종달러: 699 달러가격: 1400" in reply


@pytest.mark.asyncio
async def test_sheet_text_is_html_escaped_in_replies() -> None:
    row = build_record_row(
        RecordState.SETTLING, payee="A&B <VIP>", cells={COL_BANK_INFO: "<국민> 123"}
    )
    store = _store([row])

    detail = await _engine(store).describe("1234")
    reply = await _engine(store).apply_transition("1234", "정산", "5350")

    assert "이름: A&amp;B &lt;VIP&gt; / 바이낸스" in detail
    assert "계좌: &lt;국민&gt; 123" in detail
    assert "<VIP>" not in detail
    assert reply == "코드:1234 A&amp;B &lt;VIP&gt; 5,350원 정산완료"
