from __future__ import annotations

import asyncio

import pytest

from kimp_bot.core.dto.internal.record import TransactionRecord
from kimp_bot.core.types import COL_SETTLEMENT, RecordState
from kimp_bot.core.workflow.archive import ArchiveService, project_for_archive
from tests.factory_builders import (
    ARCHIVE_HEADER,
    WORKING_SHEET,
    InMemoryRecordStore,
    build_record_row,
    build_working_sheet,
)


def _service(store: InMemoryRecordStore) -> ArchiveService:
    return ArchiveService(store, WORKING_SHEET, asyncio.Lock())


def _archived_row(issue_code: str) -> list:
    row = [""] * 16
    row[15] = issue_code
    return row


def test_project_for_archive_field_order() -> None:
    record = TransactionRecord.from_row(1, build_record_row(RecordState.SETTLED))

    projected = project_for_archive(record)

    assert projected == [
        "2024. 10. 18.",
        "홍길동",
        "바이낸스",
        "국민 123-456",
        1_000_000,
        1_000_000,
        -10_700,
        "정산완료",
        699,
        1400,
        "2024. 10. 18.",
        500,
        498,
        "USD",
        "A001",
        "1234",
    ]


@pytest.mark.asyncio
async def test_archive_moves_settled_rows_and_keeps_others() -> None:
    records = [
        build_record_row(RecordState.SETTLED, issue_code="1001", payee="홍길동"),
        build_record_row(RecordState.WAITING, issue_code="2001"),
        build_record_row(RecordState.SETTLED, issue_code="1002", payee="김철수"),
        build_record_row(RecordState.SETTLING, issue_code="2002"),
        build_record_row(RecordState.SETTLED, issue_code="1003", payee="홍길동"),
        build_record_row(
            RecordState.SETTLING, issue_code="1004", cells={COL_SETTLEMENT: "완료"}
        ),
    ]
    store = InMemoryRecordStore({WORKING_SHEET: build_working_sheet(records, accounts=[])})

    copied = await _service(store).archive()

    assert copied == 4
    remaining = [row[17] for row in store.records()]
    assert remaining == ["2001", "2002"]
    assert [row[15] for row in store.records("홍길동")] == ["1001", "1003", "1004"]
    assert [row[15] for row in store.records("김철수")] == ["1002"]
    # 아래 행부터 삭제
    assert [start for _, start, _ in store.deletes] == [6, 5, 3, 1]


@pytest.mark.asyncio
async def test_archive_appends_after_existing_rows() -> None:
    personal = [list(ARCHIVE_HEADER), _archived_row("0001"), _archived_row("0002")]
    store = InMemoryRecordStore(
        {
            WORKING_SHEET: build_working_sheet(
                [build_record_row(RecordState.SETTLED, issue_code="1001")], accounts=[]
            ),
            "홍길동": personal,
        }
    )

    await _service(store).archive()

    assert [row[15] for row in store.records("홍길동")] == ["0001", "0002", "1001"]


@pytest.mark.asyncio
async def test_already_archived_code_is_removed_but_not_copied() -> None:
    store = InMemoryRecordStore(
        {
            WORKING_SHEET: build_working_sheet(
                [
                    build_record_row(RecordState.SETTLED, issue_code="1001"),
                    build_record_row(RecordState.SETTLED, issue_code="1002"),
                ],
                accounts=[],
            ),
            "홍길동": [list(ARCHIVE_HEADER), _archived_row("1001")],
        }
    )

    copied = await _service(store).archive()

    assert copied == 1
    assert store.records() == []
    assert [row[15] for row in store.records("홍길동")] == ["1001", "1002"]


@pytest.mark.asyncio
async def test_append_failure_keeps_row_in_working_sheet() -> None:
    store = InMemoryRecordStore(
        {
            WORKING_SHEET: build_working_sheet(
                [
                    build_record_row(RecordState.SETTLED, issue_code="1001", payee="홍길동"),
                    build_record_row(RecordState.SETTLED, issue_code="1002", payee="김철수"),
                ],
                accounts=[],
            ),
        }
    )
    store.fail_appends.add("김철수")

    copied = await _service(store).archive()

    assert copied == 1
    assert [row[17] for row in store.records()] == ["1002"]


@pytest.mark.asyncio
async def test_archive_without_settled_rows_changes_nothing() -> None:
    store = InMemoryRecordStore(
        {
            WORKING_SHEET: build_working_sheet(
                [build_record_row(RecordState.SETTLEMENT_PENDING)], accounts=[]
            ),
        }
    )

    copied = await _service(store).archive()

    assert copied == 0
    assert store.appends == []
    assert store.deletes == []
