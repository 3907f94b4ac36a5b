"""통합 Settings 모듈 - 환경변수 기반

설정 우선순위:
    1. 환경변수 (최우선) - export UPBIT_ACCESS_KEY=...
    2. .env 파일 - 프로젝트 루트의 .env
    3. 코드 기본값 (settings.py 내부)

사용 예시:
    # 개발 환경 (시트/거래소 키만 .env에 기록)
    python main.py

    # 폴링 주기 조정
    export MONITOR_POLL_INTERVAL_SEC=10
    export TRADING_MAX_RETRIES=0   # 재주문 무제한
    python main.py
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env 파일 경로 (프로젝트 루트)
project_root = Path(__file__).resolve().parent.parent.parent


def env_settings(prefix: str) -> SettingsConfigDict:
    """환경변수 + .env 통합 설정

    Args:
        prefix: 환경변수 접두사 (예: UPBIT_, SHEET_)
    """
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=project_root / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class AppSettings(BaseSettings):
    """애플리케이션 일반 설정

    환경변수 오버라이드:
        APP_ENVIRONMENT: 실행 환경 (dev, prod, test) (기본: dev)
        APP_HOST / APP_PORT: 웹훅 서버 바인딩 (기본: 0.0.0.0:3000)
    """

    environment: str = "dev"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = env_settings("APP_")


class LogSettings(BaseSettings):
    """로깅 설정

    환경변수 오버라이드:
        LOG_LEVEL: 로그 레벨 (기본: INFO)
        LOG_DIR: 로그 디렉토리 (기본: logs)
        LOG_TO_FILE: 파일 기록 여부 (기본: true)
    """

    level: str = "INFO"
    dir: str = "logs"
    to_file: bool = True

    model_config = env_settings("LOG_")


class SheetSettings(BaseSettings):
    """구글 시트 설정

    환경변수 오버라이드:
        SHEET_SPREADSHEET_ID: 스프레드시트 ID
        SHEET_CREDENTIALS: 서비스 계정 JSON (문자열)
        SHEET_WORKING_SHEET: 당일작업 시트 이름 (기본: 당일작업)
        SHEET_RATE_SHEET: 달러가격 시트 이름 (기본: 출금내역시트)
        SHEET_TIMEOUT_SEC: 요청 타임아웃 (기본: 15초)
    """

    spreadsheet_id: str = ""
    credentials: str = ""  # 보안상 환경변수로만
    base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"
    working_sheet: str = "당일작업"
    rate_sheet: str = "출금내역시트"
    timeout_sec: float = 15.0

    model_config = env_settings("SHEET_")


class UpbitSettings(BaseSettings):
    """업비트 API 설정

    환경변수 오버라이드:
        UPBIT_ACCESS_KEY / UPBIT_SECRET_KEY: API 키 (환경변수로만)
        UPBIT_ASSET: 모니터링 자산 (기본: USDT)
        UPBIT_MARKET: 판매 마켓 (기본: KRW-USDT)
        UPBIT_TIMEOUT_SEC: 요청 타임아웃 (기본: 10초)
    """

    access_key: str = ""
    secret_key: str = ""
    base_url: str = "https://api.upbit.com"
    asset: str = "USDT"
    market: str = "KRW-USDT"
    timeout_sec: float = 10.0

    model_config = env_settings("UPBIT_")


class TelegramSettings(BaseSettings):
    """텔레그램 봇 설정

    환경변수 오버라이드:
        TELEGRAM_BOT_TOKEN: 봇 토큰
        TELEGRAM_TIMEOUT_SEC: 전송 타임아웃 (기본: 10초)
    """

    bot_token: str = ""
    api_base: str = "https://api.telegram.org"
    parse_mode: str = "HTML"
    timeout_sec: float = 10.0

    model_config = env_settings("TELEGRAM_")


class MonitorSettings(BaseSettings):
    """입금 모니터링 설정

    환경변수 오버라이드:
        MONITOR_POLL_INTERVAL_SEC: 입금 조회 주기 (기본: 30초)
        MONITOR_LOOKBACK: 한 번에 확인할 최근 입금 수 (기본: 10)
    """

    poll_interval_sec: float = 30.0
    lookback: int = 10

    model_config = env_settings("MONITOR_")


class TradingSettings(BaseSettings):
    """자동 판매 설정

    환경변수 오버라이드:
        TRADING_POLL_INTERVAL_SEC: 체결 확인 주기 (기본: 300초)
        TRADING_ORDER_TIMEOUT_SEC: 미체결 재주문 기준 (기본: 300초)
        TRADING_MAX_RETRIES: 재주문 최대 횟수, 0이면 무제한 (기본: 24)
    """

    poll_interval_sec: float = 300.0
    order_timeout_sec: float = 300.0
    max_retries: int = 24

    model_config = env_settings("TRADING_")


class WorkflowSettings(BaseSettings):
    """정산 워크플로 설정

    환경변수 오버라이드:
        WORKFLOW_ISSUE_CODE_ATTEMPTS: 발급코드 중복 시 재생성 횟수 (기본: 50)
    """

    issue_code_attempts: int = 50

    model_config = env_settings("WORKFLOW_")


# ========================================
# 설정 인스턴스 (싱글톤)
# ========================================

app_settings = AppSettings()
log_settings = LogSettings()
sheet_settings = SheetSettings()
upbit_settings = UpbitSettings()
telegram_settings = TelegramSettings()
monitor_settings = MonitorSettings()
trading_settings = TradingSettings()
workflow_settings = WorkflowSettings()
