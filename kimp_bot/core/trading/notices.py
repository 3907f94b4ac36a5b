"""입금/자동 판매 텔레그램 알림 문구 (HTML)"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from kimp_bot.common.events import DepositEvent

MONITOR_STARTED = (
    "✅ 업비트 USDT 입금 모니터링을 시작합니다.\n새로운 입금이 감지되면 즉시 알려드립니다."
)
MONITOR_ALREADY_RUNNING = "이미 입금 모니터링이 실행 중입니다."
MONITOR_STOPPED = "⏸️ 입금 모니터링을 중지했습니다."
MONITOR_NOT_RUNNING = "현재 실행 중인 모니터링이 없습니다."

TRADING_ENABLED = (
    "✅ 자동 거래 기능을 활성화했습니다.\n"
    "USDT 입금 시 자동으로 현재가에 판매 주문을 걸고, 5분마다 재시도합니다."
)
TRADING_ALREADY_ENABLED = "자동 거래가 이미 활성화되어 있습니다."
TRADING_ALREADY_DISABLED = "자동 거래가 비활성화 상태입니다."
TRADING_DISABLED = "⏸️ 자동 거래를 비활성화하고 모든 진행 중인 주문을 취소했습니다."

PRICE_UNAVAILABLE = "⚠️ 현재가 조회 실패"
ORDER_FAILED = "⚠️ 주문 생성 실패"
RETRY_PRICE_UNAVAILABLE = "⚠️ 재주문 실패: 현재가 조회 불가"
RETRY_ORDER_FAILED = "⚠️ 재주문 실패"


def _usdt(amount: Decimal) -> str:
    return f"{amount:.2f}"


def _krw(amount: Decimal) -> str:
    return f"{round(amount):,}"


def _clock_text(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def _event_time(raw: str) -> str:
    try:
        return _clock_text(datetime.fromisoformat(raw))
    except ValueError:
        return raw


def deposit_detected(event: DepositEvent) -> str:
    tx_id = event.tx_id or "N/A"
    return (
        "🚨 <b>새로운 USDT 입금 감지!</b>\n\n"
        f"💰 <b>입금 금액</b>: {_usdt(event.amount)} USDT\n"
        f"💸 <b>수수료</b>: {_usdt(event.fee)} USDT\n"
        f"✅ <b>실제 입금</b>: {_usdt(event.net_amount)} USDT\n"
        f"🌐 <b>네트워크</b>: {event.network or 'Unknown'}\n"
        f"⏰ <b>입금 시간</b>: {_event_time(event.timestamp)}\n"
        f"🔗 <b>TxID</b>: {tx_id[:20]}...\n\n"
        "입금이 완료되었습니다! 거래소에서 확인하세요."
    )


def sell_started(volume: Decimal, price: Decimal, moment: datetime) -> str:
    return (
        "📊 <b>USDT 자동 판매 시작</b>\n\n"
        f"💵 <b>수량</b>: {_usdt(volume)} USDT\n"
        f"💰 <b>지정가</b>: {_krw(price)} 원\n"
        f"⏰ <b>주문 시각</b>: {_clock_text(moment)}\n\n"
        "5분마다 체결 상태를 확인합니다."
    )


def order_filled(volume: Decimal, price: Decimal, moment: datetime) -> str:
    return (
        "✅ <b>주문 체결 완료!</b>\n\n"
        f"💵 <b>수량</b>: {_usdt(volume)} USDT\n"
        f"💰 <b>체결가</b>: {_krw(price)} 원\n"
        f"💸 <b>총액</b>: {_krw(price * volume)} 원\n"
        f"⏰ <b>체결 시각</b>: {_clock_text(moment)}"
    )


def order_resubmitted(volume: Decimal, price: Decimal, retry_count: int, moment: datetime) -> str:
    return (
        "🔄 <b>재주문 실행</b>\n\n"
        f"💵 <b>수량</b>: {_usdt(volume)} USDT\n"
        f"💰 <b>새 지정가</b>: {_krw(price)} 원\n"
        f"📊 <b>재시도</b>: {retry_count}회\n"
        f"⏰ <b>재주문 시각</b>: {_clock_text(moment)}"
    )


def order_cancelled(order_id: str) -> str:
    return f"🛑 주문 {order_id[:8]}... 취소됨"


def order_cancelled_externally(order_id: str) -> str:
    return f"🛑 주문 {order_id[:8]}... 거래소에서 취소되어 추적을 종료합니다."


def retry_limit_reached(order_id: str, retry_count: int, price: Decimal) -> str:
    return (
        f"⚠️ 주문 {order_id[:8]}... 재주문 {retry_count}회 한도에 도달했습니다.\n"
        f"현재 지정가 {_krw(price)} 원 주문은 유지되며 더 이상 추적하지 않습니다."
    )


def balance_summary(asset: str, amount: Decimal) -> str:
    return f"💰 {asset} 잔고: {_usdt(amount)} {asset}"
