"""
구글 시트 레코드 저장소 구현

Sheets REST v4 를 aiohttp 로 호출합니다. 서비스 계정 토큰은 google-auth 로
발급받으며, 동기 refresh 는 스레드로 넘겨 이벤트 루프를 막지 않습니다.
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import quote

import aiohttp
import orjson
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from kimp_bot.common.exceptions.error_wrappers import store_error_wrapped
from kimp_bot.common.logger import AppLogger

logger = AppLogger.get_logger("sheet_client", "infra")

SHEETS_SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)


def a1_range(sheet: str, range_spec: str) -> str:
    """시트 이름을 따옴표로 감싼 A1 표기 ('당일작업'!A:T)"""
    escaped = sheet.replace("'", "''")
    return f"'{escaped}'!{range_spec}"


class GoogleSheetStore:
    """
    구글 시트 RecordStore

    - 읽기는 UNFORMATTED_VALUE (숫자는 숫자, 날짜는 직렬값)
    - 쓰기는 RAW
    - 행 삭제용 sheetId 는 제목으로 조회 후 캐시
    """

    name = "google_sheets"

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_json: str,
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
        timeout: float = 15.0,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._credentials_json = credentials_json
        self._credentials: service_account.Credentials | None = None
        self._token_lock = asyncio.Lock()
        self._session: aiohttp.ClientSession | None = None
        self._sheet_ids: dict[str, int] = {}

    async def __aenter__(self) -> GoogleSheetStore:
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        """HTTP 세션을 생성하거나 재사용합니다."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    # ------------------------------------------------------------------
    # 인증
    # ------------------------------------------------------------------
    async def _access_token(self) -> str:
        async with self._token_lock:
            if self._credentials is None:
                info = orjson.loads(self._credentials_json)
                self._credentials = service_account.Credentials.from_service_account_info(
                    info, scopes=list(SHEETS_SCOPES)
                )
            if not self._credentials.valid:
                await asyncio.to_thread(self._credentials.refresh, Request())
                logger.debug("service account token refreshed")
            return self._credentials.token

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        await self._ensure_session()
        token = await self._access_token()
        url = f"{self.base_url}/{self.spreadsheet_id}{path}"

        async with self._session.request(
            method,
            url,
            params=params,
            data=orjson.dumps(body) if body is not None else None,
            headers={"Authorization": f"Bearer {token}"},
        ) as response:
            text = await response.text()
            if response.status >= 400:
                logger.warning(
                    f"sheets API error {response.status}",
                    status=response.status,
                    path=path,
                    body=text[:300],
                )
            response.raise_for_status()
            return orjson.loads(text) if text else {}

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    @store_error_wrapped("read_range")
    async def read_range(self, sheet: str, range_spec: str) -> list[list[Any]]:
        path = f"/values/{quote(a1_range(sheet, range_spec), safe='')}"
        data = await self._request(
            "GET", path, params={"valueRenderOption": "UNFORMATTED_VALUE"}
        )
        return data.get("values", [])

    @store_error_wrapped("append_row")
    async def append_row(self, sheet: str, columns: str, row: list[Any]) -> None:
        path = f"/values/{quote(a1_range(sheet, columns), safe='')}:append"
        await self._request(
            "POST",
            path,
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            body={"values": [row]},
        )

    @store_error_wrapped("update_cell")
    async def update_cell(self, sheet: str, cell: str, value: Any) -> None:
        target = a1_range(sheet, cell)
        await self._request(
            "PUT",
            f"/values/{quote(target, safe='')}",
            params={"valueInputOption": "RAW"},
            body={"range": target, "values": [[value]]},
        )

    @store_error_wrapped("update_cells")
    async def update_cells(self, sheet: str, values: dict[str, Any]) -> None:
        """여러 셀을 한 번의 values:batchUpdate 로 기록"""
        if not values:
            return
        data = [
            {"range": a1_range(sheet, cell), "values": [[value]]}
            for cell, value in values.items()
        ]
        await self._request(
            "POST",
            "/values:batchUpdate",
            body={"valueInputOption": "RAW", "data": data},
        )

    @store_error_wrapped("delete_rows")
    async def delete_rows(self, sheet: str, start_index: int, end_index: int) -> None:
        """[start_index, end_index) 0-based 행 삭제"""
        sheet_id = await self._sheet_id(sheet)
        await self._request(
            "POST",
            ":batchUpdate",
            body={
                "requests": [
                    {
                        "deleteDimension": {
                            "range": {
                                "sheetId": sheet_id,
                                "dimension": "ROWS",
                                "startIndex": start_index,
                                "endIndex": end_index,
                            }
                        }
                    }
                ]
            },
        )

    async def _sheet_id(self, sheet: str) -> int:
        if sheet not in self._sheet_ids:
            data = await self._request(
                "GET", "", params={"fields": "sheets.properties(sheetId,title)"}
            )
            for entry in data.get("sheets", []):
                properties = entry["properties"]
                self._sheet_ids[properties["title"]] = int(properties["sheetId"])
        if sheet not in self._sheet_ids:
            raise KeyError(f"sheet not found: {sheet}")
        return self._sheet_ids[sheet]
