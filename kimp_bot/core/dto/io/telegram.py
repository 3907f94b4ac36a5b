"""텔레그램 웹훅 Update DTO (필요한 필드만)"""

from __future__ import annotations

from pydantic import Field

from kimp_bot.core.dto.io._base import BaseExternalDTO


class TelegramChatDTO(BaseExternalDTO):
    id: int


class TelegramUserDTO(BaseExternalDTO):
    id: int
    first_name: str = "Unknown"


class TelegramMessageDTO(BaseExternalDTO):
    message_id: int | None = None
    chat: TelegramChatDTO
    from_user: TelegramUserDTO | None = Field(default=None, alias="from")
    text: str | None = None


class TelegramUpdateDTO(BaseExternalDTO):
    update_id: int | None = None
    message: TelegramMessageDTO | None = None
