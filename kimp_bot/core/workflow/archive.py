"""리빌드: 정산완료 레코드를 개인 시트로 이동

1. 당일작업 전체 행 중 정산완료 행을 찾는다
2. 이름(B열)과 같은 제목의 개인 시트에 16필드 투영을 추가한다
   (개인 시트 P열에 같은 발급코드가 있으면 추가하지 않는다)
3. 처리된 행을 행 번호 내림차순으로 삭제한다
"""

from __future__ import annotations

import asyncio
from typing import Any

from kimp_bot.common.exceptions import UpstreamUnavailable
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.dto.internal.record import TransactionRecord
from kimp_bot.core.interfaces import RecordStore
from kimp_bot.core.types import (
    ARCHIVE_COLUMNS,
    ARCHIVE_ISSUE_CODE_COLUMN,
    ARCHIVE_PROJECTION,
    WORKING_COLUMNS,
)
from kimp_bot.core.workflow.formulas import cell_text
from kimp_bot.core.workflow.state_machine import is_settled

logger = AppLogger.get_logger("archive", "workflow")


def project_for_archive(record: TransactionRecord) -> list[Any]:
    return [record.raw[column] for column in ARCHIVE_PROJECTION]


class ArchiveService:
    """당일작업 → 개인 시트 일괄 이동 (WorkflowEngine 과 같은 락 사용)"""

    def __init__(self, store: RecordStore, working_sheet: str, lock: asyncio.Lock) -> None:
        self._store = store
        self._working_sheet = working_sheet
        self._lock = lock

    async def archive(self) -> int:
        """정산완료 행을 이동하고 새로 복사된 행 수를 반환합니다.

        - 개인 시트에 이미 있는 발급코드: 복사하지 않고 당일작업에서만 삭제
        - 개인 시트 추가 실패: 해당 행은 당일작업에 남김
        """
        async with self._lock:
            rows = await self._store.read_range(self._working_sheet, WORKING_COLUMNS)
            settled = [
                TransactionRecord.from_row(index, row)
                for index, row in enumerate(rows)
                if index > 0 and row
            ]
            settled = [record for record in settled if is_settled(record)]

            copied = 0
            removable: list[int] = []
            known_codes: dict[str, set[str]] = {}

            for record in settled:
                sheet = record.payee
                if not sheet:
                    logger.warning("settled row without payee skipped", row=record.row_number)
                    continue
                if sheet not in known_codes:
                    known_codes[sheet] = await self._archived_codes(sheet)

                if record.issue_code in known_codes[sheet]:
                    logger.info(
                        "issue code already archived",
                        issue_code=record.issue_code,
                        sheet=sheet,
                    )
                    removable.append(record.row_index)
                    continue

                try:
                    await self._store.append_row(
                        sheet, ARCHIVE_COLUMNS, project_for_archive(record)
                    )
                except UpstreamUnavailable as e:
                    logger.warning(
                        f"archive append failed, row kept: {e}",
                        issue_code=record.issue_code,
                        sheet=sheet,
                    )
                    continue

                known_codes[sheet].add(record.issue_code)
                removable.append(record.row_index)
                copied += 1

            # 아래 행부터 지워야 남은 행 인덱스가 유지된다
            for row_index in sorted(removable, reverse=True):
                await self._store.delete_rows(self._working_sheet, row_index, row_index + 1)

        logger.info("archive finished", copied=copied, removed=len(removable))
        return copied

    async def _archived_codes(self, sheet: str) -> set[str]:
        """개인 시트 P열 발급코드 (읽기 실패는 빈 집합)"""
        try:
            rows = await self._store.read_range(sheet, ARCHIVE_ISSUE_CODE_COLUMN)
        except UpstreamUnavailable as e:
            logger.warning(f"archive sheet read failed: {e}", sheet=sheet)
            return set()
        return {cell_text(row[0]) for row in rows[1:] if row}
