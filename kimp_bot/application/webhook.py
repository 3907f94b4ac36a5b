"""텔레그램 웹훅 / 헬스체크 HTTP 엔드포인트"""

from __future__ import annotations

from datetime import datetime, timezone

import orjson
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from kimp_bot.application.command_router import CommandRouter
from kimp_bot.common.logger import AppLogger
from kimp_bot.core.dto.io.telegram import TelegramUpdateDTO
from kimp_bot.core.interfaces import Notifier

logger = AppLogger.get_logger("webhook", "application")


def create_app(router: CommandRouter, notifier: Notifier) -> FastAPI:
    """라우터/알림 의존성을 주입한 FastAPI 앱 생성"""
    app = FastAPI(title="kimp-settlement-bot", docs_url=None, redoc_url=None)

    @app.post("/webhook", response_class=PlainTextResponse)
    async def webhook(request: Request) -> PlainTextResponse:
        try:
            update = TelegramUpdateDTO.model_validate(orjson.loads(await request.body()))
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.warning(f"unreadable webhook body: {e}")
            return PlainTextResponse("Bad Request", status_code=400)

        message = update.message
        if message is None or not message.text:
            return PlainTextResponse("OK")

        chat_id = str(message.chat.id)
        text = message.text.strip()
        sender = message.from_user.first_name if message.from_user else "Unknown"
        logger.info(f"message received: {text}", chat_id=chat_id, sender=sender)

        reply = await router.handle(text, chat_id)
        await notifier.send(chat_id, reply)
        return PlainTextResponse("OK")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app
