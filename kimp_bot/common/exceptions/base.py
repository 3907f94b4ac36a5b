from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from kimp_bot.core.types import ErrorCode

GENERIC_FAILURE_MESSAGE = "명령어 처리 중 오류가 발생했습니다."


@dataclass(eq=False)
class SettlementBotError(Exception):
    """봇 도메인 기본 예외 클래스

    `message`는 로그용, `user_message`는 채팅 응답용입니다.
    `to_dict()`는 로그 extra 직렬화 시 일관된 스키마를 제공합니다.
    """

    message: str
    user_message: str = GENERIC_FAILURE_MESSAGE
    original_exception: Exception | None = None

    error_code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN_ERROR

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.message,
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value,
        }
        if self.original_exception:
            result["original_error"] = str(self.original_exception)
            result["original_error_type"] = self.original_exception.__class__.__name__
        return result


@dataclass(eq=False)
class AccountNotFound(SettlementBotError):
    user_message: str = "등록을 실패하였습니다. (계좌코드 오류)"
    error_code: ClassVar[ErrorCode] = ErrorCode.ACCOUNT_NOT_FOUND


@dataclass(eq=False)
class RecordNotFound(SettlementBotError):
    user_message: str = "해당 코드를 찾을 수 없습니다."
    error_code: ClassVar[ErrorCode] = ErrorCode.RECORD_NOT_FOUND


@dataclass(eq=False)
class CommandValidationError(SettlementBotError):
    """명령 형식/값 오류 (숫자가 아닌 금액 등)"""

    user_message: str = "등록을 실패하였습니다. (형식오류)"
    error_code: ClassVar[ErrorCode] = ErrorCode.VALIDATION_ERROR


@dataclass(eq=False)
class UnknownCommand(SettlementBotError):
    user_message: str = "알 수 없는 명령어입니다."
    error_code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN_COMMAND


@dataclass(eq=False)
class InvalidTransition(SettlementBotError):
    """현재 상태에서 허용되지 않는 전이"""

    error_code: ClassVar[ErrorCode] = ErrorCode.INVALID_TRANSITION


@dataclass(eq=False)
class MissingRate(SettlementBotError):
    """당일 달러가격 미등록"""

    user_message: str = "당일 달러가격이 등록되지 않아 수익을 계산할 수 없습니다."
    error_code: ClassVar[ErrorCode] = ErrorCode.MISSING_RATE


@dataclass(eq=False)
class ConcurrentModification(SettlementBotError):
    """조회 후 쓰기 전 사이에 행이 바뀐 경우"""

    user_message: str = "처리 중 데이터가 변경되었습니다. 다시 시도해주세요."
    error_code: ClassVar[ErrorCode] = ErrorCode.CONCURRENT_MODIFICATION


@dataclass(eq=False)
class UpstreamUnavailable(SettlementBotError):
    """시트/거래소 호출 실패 또는 타임아웃"""

    error_code: ClassVar[ErrorCode] = ErrorCode.UPSTREAM_UNAVAILABLE


@dataclass(eq=False)
class AlreadyActive(SettlementBotError):
    error_code: ClassVar[ErrorCode] = ErrorCode.ALREADY_ACTIVE


@dataclass(eq=False)
class NotActive(SettlementBotError):
    error_code: ClassVar[ErrorCode] = ErrorCode.NOT_ACTIVE
