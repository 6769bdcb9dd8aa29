import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
for path in (PROJECT_ROOT, CURRENT_DIR):
    if path not in sys.path:
        sys.path.insert(0, path)

import hashlib
import hmac

import aiohttp

from fake_exchange import API_KEY, API_SECRET, FakeExchange
from tradeboard.exchange.client import (
    DEFAULT_RECV_WINDOW,
    FUTURES_BASE_URL,
    FUTURES_TESTNET_BASE_URL,
    FuturesClient,
)
from tradeboard.exchange.errors import ExchangeAPIError, ExchangeResponseError

import unittest

FIXED_NOW = 1_700_000_000.0


def offline_client(**kwargs) -> FuturesClient:
    kwargs.setdefault("clock", lambda: FIXED_NOW)
    return FuturesClient(None, api_key="key", api_secret="abc", **kwargs)


class TestSigning(unittest.TestCase):
    def test_signature_matches_hmac_sha256(self) -> None:
        payload = "symbol=BTCUSDT&timestamp=1700000000000"
        expected = hmac.new(b"abc", payload.encode(), hashlib.sha256).hexdigest()
        client = offline_client()
        self.assertEqual(client.sign(payload), expected)
        # The cached key must not accumulate state between signatures
        self.assertEqual(client.sign(payload), expected)

    def test_signed_query_layout(self) -> None:
        query = offline_client().build_query({"symbol": "BTCUSDT"}, signed=True)
        unsigned, signature = query.split("&signature=")
        self.assertEqual(unsigned, f"symbol=BTCUSDT&timestamp=1700000000000&recvWindow={DEFAULT_RECV_WINDOW}")
        self.assertEqual(signature, hmac.new(b"abc", unsigned.encode(), hashlib.sha256).hexdigest())

    def test_caller_recv_window_and_timestamp(self) -> None:
        query = offline_client().build_query({"recvWindow": 10000, "timestamp": 1}, signed=True)
        self.assertTrue(query.startswith("recvWindow=10000&timestamp=1700000000000&signature="))


class TestQueryBuilding(unittest.TestCase):
    def test_none_dropped_and_bools_lowercase(self) -> None:
        query = offline_client().build_query({"symbol": "BTCUSDT", "limit": None, "reduceOnly": True, "x": False})
        self.assertEqual(query, "symbol=BTCUSDT&reduceOnly=true&x=false")

    def test_empty_params(self) -> None:
        self.assertEqual(offline_client().build_query(), "")

    def test_base_url_selection(self) -> None:
        self.assertEqual(offline_client().base_url, FUTURES_BASE_URL)
        self.assertEqual(offline_client(testnet=True).base_url, FUTURES_TESTNET_BASE_URL)
        self.assertEqual(offline_client(base_url="http://localhost:9000/", testnet=True).base_url,
                         "http://localhost:9000")


class TestTransport(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.exchange = FakeExchange()
        base_url = await self.exchange.start()
        self.session = aiohttp.ClientSession()
        self.client = FuturesClient(self.session, api_key=API_KEY, api_secret=API_SECRET, base_url=base_url)

    async def asyncTearDown(self) -> None:
        await self.session.close()
        await self.exchange.close()

    async def test_signed_get_carries_key_and_valid_signature(self) -> None:
        account = await self.client.get_account_info()
        self.assertEqual(account["totalWalletBalance"], "10000.50000000")
        call = self.exchange.calls("/fapi/v2/account")[0]
        self.assertEqual(call["headers"]["X-MBX-APIKEY"], API_KEY)
        self.assertIn("recvWindow", call["params"])

    async def test_public_get_has_no_key_header(self) -> None:
        await self.client.get_server_time()
        call = self.exchange.calls("/fapi/v1/time")[0]
        self.assertNotIn("X-MBX-APIKEY", call["headers"])
        self.assertEqual(call["raw"], "")

    async def test_post_sends_form_body(self) -> None:
        order = await self.client.post_order({
            "symbol": "BTCUSDT", "side": "SELL", "type": "MARKET", "quantity": "0.01", "reduceOnly": True,
        })
        self.assertEqual(order["orderId"], 999)
        call = self.exchange.calls("/fapi/v1/order")[0]
        self.assertEqual(call["headers"]["Content-Type"], "application/x-www-form-urlencoded")
        self.assertEqual(call["params"]["reduceOnly"], "true")
        self.assertTrue(call["raw"].startswith("symbol=BTCUSDT&side=SELL&type=MARKET&quantity=0.01"))

    async def test_delete_order(self) -> None:
        result = await self.client.delete_order("BTCUSDT", order_id=42)
        self.assertEqual(result["status"], "CANCELED")
        self.assertEqual(self.exchange.calls("/fapi/v1/order")[0]["method"], "DELETE")

    async def test_non_2xx_raises_with_status_and_body(self) -> None:
        self.exchange.failures["/fapi/v1/ticker/24hr"] = (400, '{"code":-1121,"msg":"Invalid symbol."}')
        with self.assertRaises(ExchangeAPIError) as ctx:
            await self.client.get_ticker_24h("NOPE")
        self.assertEqual(ctx.exception.status, 400)
        self.assertIn("Invalid symbol", ctx.exception.body)
        self.assertIn("400", str(ctx.exception))

    async def test_wrong_secret_is_rejected_upstream(self) -> None:
        client = FuturesClient(self.session, api_key=API_KEY, api_secret="wrong",
                               base_url=str(self.exchange.server.make_url("")))
        with self.assertRaises(ExchangeAPIError) as ctx:
            await client.get_position_risk()
        self.assertEqual(ctx.exception.status, 401)

    async def test_malformed_body(self) -> None:
        self.exchange.failures["/fapi/v1/exchangeInfo"] = (200, "<html>maintenance</html>")
        with self.assertRaises(ExchangeResponseError):
            await self.client.get_exchange_info()

    async def test_empty_body_is_empty_object(self) -> None:
        self.exchange.failures["/fapi/v1/exchangeInfo"] = (200, "", "text/plain")
        self.assertEqual(await self.client.get_exchange_info(), {})

    async def test_empty_json_body_is_a_parse_error(self) -> None:
        self.exchange.failures["/fapi/v1/exchangeInfo"] = (200, "")
        with self.assertRaises(ExchangeResponseError):
            await self.client.get_exchange_info()

    async def test_unreachable_host(self) -> None:
        client = FuturesClient(self.session, api_key=API_KEY, api_secret=API_SECRET, base_url="http://127.0.0.1:1")
        with self.assertRaises(ExchangeAPIError) as ctx:
            await client.get_server_time()
        self.assertIsNone(ctx.exception.status)
        self.assertIn("unreachable", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
