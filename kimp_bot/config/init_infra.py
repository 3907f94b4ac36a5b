from contextlib import asynccontextmanager
from typing import AsyncIterator

from kimp_bot.config.settings import SheetSettings, TelegramSettings, UpbitSettings
from kimp_bot.infra.exchange.upbit_client import UpbitClient
from kimp_bot.infra.notify.telegram_client import TelegramNotifier
from kimp_bot.infra.sheets.sheet_client import GoogleSheetStore


@asynccontextmanager
async def init_sheet_store(settings: SheetSettings) -> AsyncIterator[GoogleSheetStore]:
    """구글 시트 세션 초기화 및 정리"""
    async with GoogleSheetStore(
        spreadsheet_id=settings.spreadsheet_id,
        credentials_json=settings.credentials,
        base_url=settings.base_url,
        timeout=settings.timeout_sec,
    ) as store:
        yield store


@asynccontextmanager
async def init_upbit_client(settings: UpbitSettings) -> AsyncIterator[UpbitClient]:
    """업비트 클라이언트 세션 초기화 및 정리"""
    async with UpbitClient(
        access_key=settings.access_key,
        secret_key=settings.secret_key,
        base_url=settings.base_url,
        timeout=settings.timeout_sec,
    ) as client:
        yield client


@asynccontextmanager
async def init_telegram_notifier(
    settings: TelegramSettings,
) -> AsyncIterator[TelegramNotifier]:
    """텔레그램 전송 세션 초기화 및 정리"""
    async with TelegramNotifier(
        bot_token=settings.bot_token,
        api_base=settings.api_base,
        parse_mode=settings.parse_mode,
        timeout=settings.timeout_sec,
    ) as notifier:
        yield notifier
