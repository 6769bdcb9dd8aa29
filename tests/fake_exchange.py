"""In-process stand-in for the Binance Futures REST API, served by aiohttp's TestServer."""
import hashlib
import hmac
from typing import Dict, List, Optional, Tuple

from aiohttp import web
from aiohttp.test_utils import TestServer

API_KEY = "test-key"
API_SECRET = "test-secret"


def default_account() -> Dict:
    return {
        "totalWalletBalance": "10000.50000000",
        "availableBalance": "8000.25000000",
        "dualSidePosition": False,
        "positions": [
            {"symbol": "BTCUSDT", "leverage": "10"},
            {"symbol": "ETHUSDT", "leverage": "5"},
        ],
    }


def default_positions() -> List[Dict]:
    return [
        {
            "symbol": "BTCUSDT", "positionAmt": "0.010", "entryPrice": "60000.0", "markPrice": "61000.0",
            "unRealizedProfit": "10.00000000", "leverage": "10", "positionSide": "BOTH",
            "updateTime": 1700000000000,
        },
        {
            "symbol": "ETHUSDT", "positionAmt": "-2.000", "entryPrice": "3000.0", "markPrice": "2900.0",
            "unRealizedProfit": "200.00000000", "leverage": "5", "positionSide": "BOTH",
            "updateTime": 1700000100000,
        },
        {
            "symbol": "XRPUSDT", "positionAmt": "0.0", "entryPrice": "0.0", "markPrice": "0.6",
            "unRealizedProfit": "0.0", "leverage": "3", "positionSide": "BOTH", "updateTime": 0,
        },
    ]


def default_user_trades() -> Dict[str, List[Dict]]:
    return {
        "BTCUSDT": [{
            "symbol": "BTCUSDT", "id": 1, "orderId": 11, "side": "SELL", "price": "61000",
            "qty": "0.01", "realizedPnl": "10", "time": 1700000200000,
        }],
        "ETHUSDT": [{
            "symbol": "ETHUSDT", "id": 2, "orderId": 22, "side": "BUY", "price": "2950",
            "qty": "1", "realizedPnl": "-20", "time": 1700000300000,
        }],
    }


class FakeExchange:
    def __init__(self, api_key: str = API_KEY, api_secret: str = API_SECRET):
        self.api_key = api_key
        self.api_secret = api_secret
        self.account = default_account()
        self.positions = default_positions()
        self.user_trades = default_user_trades()
        self.income = [{"incomeType": "REALIZED_PNL", "income": "12.5"}, {"incomeType": "REALIZED_PNL", "income": "-2.5"}]
        self.ticker = {
            "lastPrice": "61000.123", "priceChange": "500.5", "priceChangePercent": "0.83",
            "highPrice": "62000", "lowPrice": "60000", "quoteVolume": "123456789.7",
        }
        # path -> (status, body[, content type]) returned instead of the normal answer
        self.failures: Dict[str, Tuple] = {}
        self.requests: List[Dict] = []
        self.orders: List[Dict] = []
        self.server: Optional[TestServer] = None

        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self.handle)

    async def start(self) -> str:
        self.server = TestServer(self.app)
        await self.server.start_server()
        return str(self.server.make_url(""))

    async def close(self):
        if self.server is not None:
            await self.server.close()

    def calls(self, path: str) -> List[Dict]:
        return [r for r in self.requests if r["path"] == path]

    def _signature_valid(self, raw: str) -> bool:
        if "&signature=" not in raw:
            return False
        payload, signature = raw.rsplit("&signature=", 1)
        expected = hmac.new(self.api_secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def handle(self, request: web.Request) -> web.StreamResponse:
        raw = request.rel_url.raw_query_string if request.method == "GET" else await request.text()
        params = dict(request.query) if request.method == "GET" else dict(await request.post())
        path = request.path
        self.requests.append({
            "method": request.method,
            "path": path,
            "params": params,
            "raw": raw,
            "headers": request.headers.copy(),
        })

        if path in self.failures:
            status, body, *content_type = self.failures[path]
            return web.Response(status=status, text=body,
                                content_type=content_type[0] if content_type else "application/json")

        if "signature" in params:
            if request.headers.get("X-MBX-APIKEY") != self.api_key or not self._signature_valid(raw):
                return web.json_response({"code": -1022, "msg": "Signature for this request is not valid."},
                                         status=401)

        if path == "/fapi/v1/time":
            return web.json_response({"serverTime": 1700000000000})
        if path == "/fapi/v2/account":
            return web.json_response(self.account)
        if path == "/fapi/v1/positionRisk":
            return web.json_response(self.positions)
        if path == "/fapi/v1/userTrades":
            return web.json_response(self.user_trades.get(params.get("symbol"), []))
        if path == "/fapi/v1/income":
            return web.json_response(self.income)
        if path == "/fapi/v1/ticker/24hr":
            return web.json_response({"symbol": params.get("symbol"), **self.ticker})
        if path == "/fapi/v1/order" and request.method == "POST":
            self.orders.append(params)
            return web.json_response({"orderId": 999, "symbol": params.get("symbol"), "status": "FILLED"})
        if path == "/fapi/v1/order" and request.method == "DELETE":
            return web.json_response({"orderId": int(params.get("orderId", 0)), "status": "CANCELED"})
        return web.json_response({"code": -1000, "msg": "Unknown path"}, status=404)
