import functools
from typing import Any, Callable, Type

from kimp_bot.common.logger import AppLogger
from kimp_bot.core.types import EXCHANGE_EXCEPTIONS

logger = AppLogger.get_logger("client_decorator", "core")


def catch_exception(
    exceptions: tuple[Type[BaseException], ...] = EXCHANGE_EXCEPTIONS,
    phase: str = "unknown",
    level: str = "warning",
    fallback_return: Any = None,
    fallback_factory: Callable[[], Any] | None = None,
):
    """지정된 예외를 포착하여 로그를 남기고 기본값을 반환하는 데코레이터.

    Args:
        exceptions: 포착할 예외 클래스 튜플 (기본: EXCHANGE_EXCEPTIONS)
        phase: 에러 발생 단계 (Context)
        level: "error" or "warning"
        fallback_return: 예외 발생 시 반환할 기본값 (기본: None)
        fallback_factory: 가변 기본값(빈 리스트 등) 생성 함수, 지정 시 우선

    Note:
        데코레이터가 적용되는 클래스에 `self.name`이 있으면 로그 필드로 남깁니다.
    """

    def decorator(func: Callable[..., Any]):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except exceptions as e:
                msg = f"Exception in {phase}: {str(e)}"
                fields = {
                    "phase": phase,
                    "client": getattr(self, "name", type(self).__name__),
                    "error_type": e.__class__.__name__,
                }
                if level == "error":
                    logger.error(msg, **fields)
                else:
                    logger.warning(msg, **fields)

                if fallback_factory is not None:
                    return fallback_factory()
                return fallback_return
            # 지정되지 않은 예외는 상위로 전파

        return wrapper

    return decorator
