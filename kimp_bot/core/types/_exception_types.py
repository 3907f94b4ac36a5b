"""트라이/캐치 블록에서 사용할 예외 타입 정의 모듈.

광범위한 Exception 사용을 지양하고, 외부 경계(시트, 거래소, 텔레그램)에서
의도한 예외만 명시적으로 처리하기 위해 사용합니다.
"""

import asyncio
from typing import Final

import aiohttp
import orjson
from google.auth.exceptions import GoogleAuthError
from pydantic import ValidationError

# 1. 네트워크/연결 관련 예외
# - aiohttp.ClientError: 연결 실패, HTTP 4xx/5xx (raise_for_status)
# - asyncio.TimeoutError: ClientTimeout 초과
# - OSError: 소켓 레벨 에러
NETWORK_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
    OSError,
)

# 2. 응답 파싱 관련 예외
# - orjson.JSONDecodeError: 본문이 JSON이 아님
# - ValidationError: 응답 DTO 검증 실패
# - KeyError/TypeError/ValueError: 예상과 다른 응답 구조
PAYLOAD_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    orjson.JSONDecodeError,
    ValidationError,
    KeyError,
    TypeError,
    ValueError,
)

# 3. 경계별 묶음
STORE_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    *NETWORK_EXCEPTIONS,
    *PAYLOAD_EXCEPTIONS,
    GoogleAuthError,
)

EXCHANGE_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    *NETWORK_EXCEPTIONS,
    *PAYLOAD_EXCEPTIONS,
)

NOTIFY_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    *NETWORK_EXCEPTIONS,
    orjson.JSONDecodeError,
)
