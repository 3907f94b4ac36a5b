from __future__ import annotations

import functools
from typing import Awaitable, Callable, ParamSpec, TypeAlias, TypeVar

from kimp_bot.common.exceptions.base import UpstreamUnavailable
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.types import STORE_EXCEPTIONS

P = ParamSpec("P")
R = TypeVar("R")

AsyncWrappedCallable: TypeAlias = Callable[P, Awaitable[R]]
ErrorWrappedDecorator: TypeAlias = Callable[[AsyncWrappedCallable], AsyncWrappedCallable]

logger = AppLogger.get_logger("error_wrappers", "common")


def store_error_wrapped(operation: str) -> ErrorWrappedDecorator:
    """레코드 저장소 경계 데코레이터: 라이브러리 예외 → UpstreamUnavailable

    Notes:
    - 이미 UpstreamUnavailable 이면 그대로 전파합니다.
    - 원본 예외는 `original_exception`과 `__cause__`로 보존됩니다.
    """

    def _decorator(fn: AsyncWrappedCallable) -> AsyncWrappedCallable:
        @functools.wraps(fn)
        async def _wrapper(self, *args: P.args, **kwargs: P.kwargs) -> R:  # type: ignore[override]
            try:
                return await fn(self, *args, **kwargs)
            except STORE_EXCEPTIONS as e:
                logger.warning(
                    f"record store {operation} failed: {e}",
                    operation=operation,
                    error_type=e.__class__.__name__,
                )
                raise UpstreamUnavailable(
                    message=f"{operation} failed: {e}",
                    original_exception=e if isinstance(e, Exception) else None,
                ) from e

        return _wrapper

    return _decorator
