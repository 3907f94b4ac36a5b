"""
업비트 REST 클라이언트

모든 인증 요청은 HS256 JWT 로 서명합니다. 쿼리/본문 파라미터가 있으면
urlencode 문자열의 SHA512 해시를 query_hash 로 포함합니다.

실패(네트워크, 인증, 레이트 리밋, 응답 형식)는 경고 로그 후
None / 빈 목록 / 0 으로 대체됩니다.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import uuid
from decimal import Decimal
from typing import Any
from urllib.parse import unquote, urlencode

import aiohttp
import orjson

from kimp_bot.common.logger import AppLogger
from kimp_bot.core.decorators import catch_exception
from kimp_bot.core.dto.io.exchange import (
    UpbitAccountDTO,
    UpbitDepositDTO,
    UpbitOrderDTO,
    UpbitTickerDTO,
)

logger = AppLogger.get_logger("upbit_client", "infra")

_JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def build_query(params: dict[str, Any]) -> str:
    """서명/요청에 동일하게 쓰는 쿼리 문자열"""
    return unquote(urlencode(params, doseq=True))


def sign_jwt(access_key: str, secret_key: str, params: dict[str, Any] | None = None) -> str:
    """업비트 인증 토큰 생성 (HS256)"""
    payload: dict[str, Any] = {"access_key": access_key, "nonce": str(uuid.uuid4())}
    if params:
        payload["query_hash"] = hashlib.sha512(build_query(params).encode("utf-8")).hexdigest()
        payload["query_hash_alg"] = "SHA512"

    signing_input = f"{_b64url(orjson.dumps(_JWT_HEADER))}.{_b64url(orjson.dumps(payload))}"
    signature = hmac.new(
        secret_key.encode("utf-8"),
        signing_input.encode("ascii"),
        hashlib.sha256,
    ).digest()
    return f"{signing_input}.{_b64url(signature)}"


class UpbitClient:
    """업비트 ExchangeClient 구현"""

    name = "upbit"

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        base_url: str = "https://api.upbit.com",
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._access_key = access_key
        self._secret_key = secret_key
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> UpbitClient:
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        signed: bool = True,
    ) -> Any:
        await self._ensure_session()

        headers: dict[str, str] = {}
        if signed:
            token = sign_jwt(self._access_key, self._secret_key, body or params)
            headers["Authorization"] = f"Bearer {token}"
        if body is not None:
            headers["Content-Type"] = "application/json"

        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{build_query(params)}"

        async with self._session.request(
            method,
            url,
            data=orjson.dumps(body) if body is not None else None,
            headers=headers,
        ) as response:
            text = await response.text()
            if response.status >= 400:
                logger.warning(
                    f"upbit API error {response.status}",
                    status=response.status,
                    path=path,
                    body=text[:300],
                )
            response.raise_for_status()
            return orjson.loads(text)

    # ------------------------------------------------------------------
    # 내역 조회
    # ------------------------------------------------------------------
    @catch_exception(phase="list_deposits", fallback_factory=list)
    async def list_deposits(
        self, asset: str, state: str = "ACCEPTED", limit: int = 100
    ) -> list[UpbitDepositDTO]:
        data = await self._request(
            "GET", "/v1/deposits", params={"currency": asset, "state": state, "limit": limit}
        )
        return [UpbitDepositDTO.model_validate(item) for item in data]

    @catch_exception(phase="list_withdrawals", fallback_factory=list)
    async def list_withdrawals(
        self, asset: str, state: str = "DONE", limit: int = 100
    ) -> list[UpbitDepositDTO]:
        data = await self._request(
            "GET", "/v1/withdraws", params={"currency": asset, "state": state, "limit": limit}
        )
        return [UpbitDepositDTO.model_validate(item) for item in data]

    @catch_exception(phase="list_orders", fallback_factory=list)
    async def list_orders(
        self, market: str, state: str = "done", limit: int = 100
    ) -> list[UpbitOrderDTO]:
        data = await self._request(
            "GET", "/v1/orders", params={"market": market, "state": state, "limit": limit}
        )
        return [UpbitOrderDTO.model_validate(item) for item in data]

    # ------------------------------------------------------------------
    # 시세 / 주문
    # ------------------------------------------------------------------
    @catch_exception(phase="current_price")
    async def current_price(self, market: str) -> Decimal | None:
        data = await self._request(
            "GET", "/v1/ticker", params={"markets": market}, signed=False
        )
        if not data:
            return None
        return UpbitTickerDTO.model_validate(data[0]).trade_price

    @catch_exception(phase="place_limit_order", level="error")
    async def place_limit_order(
        self, market: str, side: str, volume: Decimal, price: Decimal
    ) -> UpbitOrderDTO | None:
        body = {
            "market": market,
            "side": side,
            "volume": str(volume),
            "price": str(price),
            "ord_type": "limit",
        }
        data = await self._request("POST", "/v1/orders", body=body)
        order = UpbitOrderDTO.model_validate(data)
        logger.info(
            "limit order placed",
            order_id=order.uuid,
            market=market,
            side=side,
            volume=str(volume),
            price=str(price),
        )
        return order

    @catch_exception(phase="order_status")
    async def order_status(self, order_id: str) -> UpbitOrderDTO | None:
        data = await self._request("GET", "/v1/order", params={"uuid": order_id})
        return UpbitOrderDTO.model_validate(data)

    @catch_exception(phase="cancel_order")
    async def cancel_order(self, order_id: str) -> UpbitOrderDTO | None:
        data = await self._request("DELETE", "/v1/order", params={"uuid": order_id})
        return UpbitOrderDTO.model_validate(data)

    @catch_exception(phase="balance", fallback_return=Decimal(0))
    async def balance(self, asset: str) -> Decimal:
        data = await self._request("GET", "/v1/accounts")
        for item in data:
            account = UpbitAccountDTO.model_validate(item)
            if account.currency == asset:
                return account.balance
        return Decimal(0)
