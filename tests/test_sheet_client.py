from __future__ import annotations

from typing import Any

import aiohttp
import pytest

from kimp_bot.common.exceptions import UpstreamUnavailable
from kimp_bot.infra.sheets.sheet_client import GoogleSheetStore, a1_range


class _ScriptedStore(GoogleSheetStore):
    """_request 를 기록하고 준비된 응답을 순서대로 돌려주는 저장소"""

    def __init__(self, *responses: Any) -> None:
        super().__init__("sheet-id", "{}")
        self.responses = list(responses)
        self.calls: list[tuple[str, str, dict | None, dict | None]] = []

    async def _request(self, method, path, params=None, body=None):
        self.calls.append((method, path, params, body))
        response = self.responses.pop(0) if self.responses else {}
        if isinstance(response, BaseException):
            raise response
        return response


def test_a1_range_quotes_sheet_name() -> None:
    assert a1_range("당일작업", "A:T") == "'당일작업'!A:T"
    assert a1_range("O'Brien", "P:P") == "'O''Brien'!P:P"


@pytest.mark.asyncio
async def test_read_range_uses_unformatted_values() -> None:
    store = _ScriptedStore({"values": [["날짜"], ["2024. 10. 18.", 1400]]})

    rows = await store.read_range("당일작업", "A:T")

    assert rows == [["날짜"], ["2024. 10. 18.", 1400]]
    method, path, params, _ = store.calls[0]
    assert method == "GET"
    assert path == "/values/%27%EB%8B%B9%EC%9D%BC%EC%9E%91%EC%97%85%27%21A%3AT"
    assert params == {"valueRenderOption": "UNFORMATTED_VALUE"}


@pytest.mark.asyncio
async def test_read_range_without_values_is_empty() -> None:
    assert await _ScriptedStore({"range": "'x'!A1:A1"}).read_range("x", "A1:A1") == []


@pytest.mark.asyncio
async def test_append_row_inserts_raw_values() -> None:
    store = _ScriptedStore()

    await store.append_row("홍길동", "A:P", ["2024. 10. 18.", "홍길동"])

    method, path, params, body = store.calls[0]
    assert method == "POST"
    assert path.endswith(":append")
    assert params == {"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"}
    assert body == {"values": [["2024. 10. 18.", "홍길동"]]}


@pytest.mark.asyncio
async def test_update_cells_is_single_batch() -> None:
    store = _ScriptedStore()

    await store.update_cells("당일작업", {"L5": 498, "M5": 496})

    assert store.calls == [
        (
            "POST",
            "/values:batchUpdate",
            None,
            {
                "valueInputOption": "RAW",
                "data": [
                    {"range": "'당일작업'!L5", "values": [[498]]},
                    {"range": "'당일작업'!M5", "values": [[496]]},
                ],
            },
        )
    ]


@pytest.mark.asyncio
async def test_update_cells_with_nothing_skips_request() -> None:
    store = _ScriptedStore()
    await store.update_cells("당일작업", {})
    assert store.calls == []


@pytest.mark.asyncio
async def test_delete_rows_resolves_and_caches_sheet_id() -> None:
    metadata = {
        "sheets": [
            {"properties": {"sheetId": 0, "title": "당일작업"}},
            {"properties": {"sheetId": 991, "title": "홍길동"}},
        ]
    }
    store = _ScriptedStore(metadata, {}, {})

    await store.delete_rows("당일작업", 4, 5)
    await store.delete_rows("당일작업", 2, 3)

    assert [call[1] for call in store.calls] == ["", ":batchUpdate", ":batchUpdate"]
    request = store.calls[1][3]["requests"][0]["deleteDimension"]["range"]
    assert request == {"sheetId": 0, "dimension": "ROWS", "startIndex": 4, "endIndex": 5}


@pytest.mark.asyncio
async def test_delete_rows_unknown_sheet_is_upstream_failure() -> None:
    store = _ScriptedStore({"sheets": []})

    with pytest.raises(UpstreamUnavailable):
        await store.delete_rows("없는시트", 1, 2)


@pytest.mark.asyncio
async def test_transport_errors_become_upstream_unavailable() -> None:
    cause = aiohttp.ClientConnectionError("connection reset")
    store = _ScriptedStore(cause)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await store.read_range("당일작업", "A:T")

    assert exc_info.value.original_exception is cause
    assert exc_info.value.__cause__ is cause
