from __future__ import annotations

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

# logging.Logger.log()가 직접 받는 키워드 (extra로 합치지 않음)
_LOG_CALL_KEYS = ("exc_info", "stack_info")
_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(component)s] %(message)s"


class AppLogger:
    """
    봇 전용 로깅 래퍼

    - 모든 모듈 로거가 하나의 QueueHandler/QueueListener 를 공유 (이벤트 루프 비차단)
    - 콘솔 + 일 단위 로테이션 파일 (logs/kimp_bot.log)
    - 키워드 인자는 구조화 필드(extra)로 병합

    모듈 로거는 import 시점에 만들어지므로 configure() 는 이미 생성된
    로거의 레벨과 출력 핸들러까지 다시 적용합니다.
    """

    _level: int = logging.INFO
    _queue: queue.Queue = queue.Queue()
    _listener: QueueListener | None = None
    _loggers: dict[str, logging.Logger] = {}

    @classmethod
    def configure(
        cls,
        level: str | int = logging.INFO,
        log_dir: str = "logs",
        log_to_file: bool = True,
    ) -> None:
        """출력 대상과 레벨 설정 (애플리케이션 시작 시 1회)"""
        cls._level = logging.getLevelName(level.upper()) if isinstance(level, str) else level

        formatter = logging.Formatter(_FORMAT)
        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if log_to_file:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            handlers.append(
                TimedRotatingFileHandler(
                    filename=f"{log_dir}/kimp_bot.log",
                    when="midnight",
                    backupCount=14,
                    encoding="utf-8",
                )
            )
        for handler in handlers:
            handler.setFormatter(formatter)

        cls.shutdown()
        cls._listener = QueueListener(cls._queue, *handlers, respect_handler_level=True)
        cls._listener.start()

        for logger in cls._loggers.values():
            logger.setLevel(cls._level)

    @classmethod
    def shutdown(cls) -> None:
        """리스너 중지 (대기 중인 레코드는 모두 기록됨)"""
        if cls._listener is not None:
            cls._listener.stop()
            cls._listener = None

    @classmethod
    def get_logger(cls, name: str, component: str | None = None) -> AppLogger:
        return cls(name, component)

    def __init__(self, name: str, component: str | None = None) -> None:
        """
        Args:
            name: 로거 이름 (모듈 단위)
            component: 컴포넌트 이름 (workflow, trading, infra ...)
        """
        self.name = name
        self.component = component or "main"
        self.context: dict[str, Any] = {}

        if AppLogger._listener is None:
            # configure() 전에는 콘솔만
            AppLogger.configure(AppLogger._level, log_to_file=False)

        logger_name = f"kimp_bot.{self.component}.{name}"
        self.logger = logging.getLogger(logger_name)
        if logger_name not in AppLogger._loggers:
            self.logger.handlers.clear()
            self.logger.addHandler(QueueHandler(AppLogger._queue))
            self.logger.propagate = False
            AppLogger._loggers[logger_name] = self.logger
        self.logger.setLevel(AppLogger._level)

    def set_context(self, **kwargs) -> None:
        self.context.update(kwargs)

    def clear_context(self) -> None:
        self.context.clear()

    def _process_message(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        """
        키워드 인자를 logging extra로 변환합니다.

        - exc_info / stack_info 는 logger.log() 파라미터로 전달
        - extra={...} 형태로 넘어온 값은 풀어서 병합
        - 나머지 키워드는 그대로 구조화 필드가 됨
        """
        call_kwargs = {key: fields.pop(key) for key in _LOG_CALL_KEYS if key in fields}

        log_extra: dict[str, Any] = {"component": self.component}
        nested_extra = fields.pop("extra", None)
        if isinstance(nested_extra, dict):
            log_extra.update(nested_extra)
        log_extra.update(self.context)
        log_extra.update(fields)

        self.logger.log(
            level,
            msg,
            exc_info=call_kwargs.get("exc_info"),
            stack_info=bool(call_kwargs.get("stack_info", False)),
            extra=log_extra,
        )

    def debug(self, msg: str, **kwargs) -> None:
        self._process_message(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs) -> None:
        self._process_message(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        self._process_message(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs) -> None:
        self._process_message(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs) -> None:
        self._process_message(logging.CRITICAL, msg, kwargs)
