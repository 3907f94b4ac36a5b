"""텔레그램 Bot API 알림 전송 (sendMessage)"""

from __future__ import annotations

import aiohttp
import orjson

from kimp_bot.common.logger import AppLogger
from kimp_bot.core.types import NOTIFY_EXCEPTIONS

logger = AppLogger.get_logger("telegram_client", "infra")


class TelegramNotifier:
    """best-effort 전송: 실패는 로그만 남기고 False 반환 (재시도 없음)"""

    def __init__(
        self,
        bot_token: str,
        api_base: str = "https://api.telegram.org",
        parse_mode: str = "HTML",
        timeout: float = 10.0,
    ) -> None:
        self._url = f"{api_base.rstrip('/')}/bot{bot_token}/sendMessage"
        self.parse_mode = parse_mode
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> TelegramNotifier:
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(self, destination: str, text: str) -> bool:
        await self._ensure_session()
        payload = {"chat_id": destination, "text": text, "parse_mode": self.parse_mode}
        try:
            async with self._session.post(self._url, data=orjson.dumps(payload)) as response:
                body = orjson.loads(await response.read())
                if response.status >= 400 or not body.get("ok", False):
                    logger.warning(
                        "telegram send rejected",
                        status=response.status,
                        destination=destination,
                        description=body.get("description"),
                    )
                    return False
                return True
        except NOTIFY_EXCEPTIONS as e:
            logger.warning(
                f"telegram send failed: {e}",
                destination=destination,
                error_type=e.__class__.__name__,
            )
            return False
