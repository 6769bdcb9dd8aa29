import asyncio
import hashlib
import hmac
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import aiohttp
from yarl import URL

from tradeboard.exchange.errors import ExchangeAPIError, ExchangeResponseError
from tradeboard.utils.logging_config import logger

FUTURES_BASE_URL = "https://fapi.binance.com"
FUTURES_TESTNET_BASE_URL = "https://testnet.binancefuture.com"
DEFAULT_RECV_WINDOW = 5000
API_KEY_HEADER = "X-MBX-APIKEY"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FuturesClient:
    """
    Binance USD-M Futures REST client.

    Signed endpoints get ``timestamp`` + ``recvWindow`` appended and an HMAC-SHA256
    ``signature`` over the exact query string that goes on the wire. There is no
    retry here; callers decide what a failure means.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        api_secret: str,
        base_url: Optional[str] = None,
        recv_window: Optional[int] = None,
        testnet: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.api_key = api_key
        self.api_secret = api_secret
        self.recv_window = recv_window or DEFAULT_RECV_WINDOW
        self._clock = clock
        self._signing_key: Optional[hmac.HMAC] = None

        if base_url:
            self.base_url = base_url.rstrip("/")
        else:
            self.base_url = FUTURES_TESTNET_BASE_URL if testnet else FUTURES_BASE_URL

    # --- Market data ---
    async def get_server_time(self) -> Dict:
        return await self.request("GET", "/fapi/v1/time")

    async def get_exchange_info(self) -> Dict:
        return await self.request("GET", "/fapi/v1/exchangeInfo")

    async def get_ticker_24h(self, symbol: str) -> Dict:
        return await self.request("GET", "/fapi/v1/ticker/24hr", {"symbol": symbol})

    async def get_klines(self, symbol: str, interval: str, limit: Optional[int] = None) -> List[List]:
        params = {"symbol": symbol, "interval": interval, "limit": limit}
        return await self.request("GET", "/fapi/v1/klines", params)

    # --- Account ---
    async def get_account_info(self) -> Dict:
        return await self.request("GET", "/fapi/v2/account", signed=True)

    async def get_balances(self) -> List[Dict]:
        return await self.request("GET", "/fapi/v2/balance", signed=True)

    async def get_position_risk(self) -> List[Dict]:
        return await self.request("GET", "/fapi/v1/positionRisk", signed=True)

    async def get_user_trades(
        self,
        symbol: str,
        limit: Optional[int] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[Dict]:
        params = {"symbol": symbol, "limit": limit, "startTime": start_time, "endTime": end_time}
        return await self.request("GET", "/fapi/v1/userTrades", params, signed=True)

    async def get_income_history(
        self,
        income_type: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict]:
        params = {"incomeType": income_type, "startTime": start_time, "endTime": end_time, "limit": limit}
        return await self.request("GET", "/fapi/v1/income", params, signed=True)

    # --- Orders ---
    async def post_order(self, params: Dict[str, Any]) -> Dict:
        return await self.request("POST", "/fapi/v1/order", params, signed=True)

    async def delete_order(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        orig_client_order_id: Optional[str] = None,
    ) -> Dict:
        params = {"symbol": symbol, "orderId": order_id, "origClientOrderId": orig_client_order_id}
        return await self.request("DELETE", "/fapi/v1/order", params, signed=True)

    # --- Transport ---
    def build_query(self, params: Optional[Dict[str, Any]] = None, signed: bool = False) -> str:
        pairs: List[Tuple[str, str]] = [
            (key, _stringify(value)) for key, value in (params or {}).items() if value is not None
        ]

        if signed:
            pairs = [(k, v) for k, v in pairs if k != "timestamp"]
            pairs.append(("timestamp", str(int(self._clock() * 1000))))
            if not any(k == "recvWindow" for k, _ in pairs):
                pairs.append(("recvWindow", str(self.recv_window)))
            query = urlencode(pairs)
            return f"{query}&signature={self.sign(query)}"

        return urlencode(pairs)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = False,
    ) -> Any:
        query = self.build_query(params, signed)
        headers: Dict[str, str] = {}
        body: Optional[str] = None

        if method == "GET":
            url = f"{self.base_url}{path}?{query}" if query else f"{self.base_url}{path}"
        else:
            url = f"{self.base_url}{path}"
            body = query
            headers["Content-Type"] = "application/x-www-form-urlencoded"

        if signed or method != "GET":
            headers[API_KEY_HEADER] = self.api_key

        try:
            async with self.session.request(method, URL(url, encoded=True), data=body, headers=headers) as response:
                text = await response.text()
                if not 200 <= response.status < 300:
                    logger.warning("Binance request rejected", method=method, path=path, status=response.status)
                    raise ExchangeAPIError(response.status, text or (response.reason or ""))
                content_type = response.headers.get("Content-Type", "")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Binance request failed", method=method, path=path, error=str(e) or type(e).__name__)
            raise ExchangeAPIError(None, str(e) or type(e).__name__) from e

        if "application/json" not in content_type and not text:
            return {}

        try:
            return json.loads(text)
        except ValueError as e:
            raise ExchangeResponseError("Failed to parse Binance response as JSON") from e

    def _signer(self) -> hmac.HMAC:
        # Key schedule is computed once per client; each signature works on a copy
        if self._signing_key is None:
            self._signing_key = hmac.new(self.api_secret.encode("utf-8"), digestmod=hashlib.sha256)
        return self._signing_key.copy()

    def sign(self, payload: str) -> str:
        signer = self._signer()
        signer.update(payload.encode("utf-8"))
        return signer.hexdigest()
