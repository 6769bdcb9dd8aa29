import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
for path in (PROJECT_ROOT, CURRENT_DIR):
    if path not in sys.path:
        sys.path.insert(0, path)

import tempfile
from pathlib import Path

from aiohttp.test_utils import AioHTTPTestCase

from fake_exchange import API_KEY, API_SECRET, FakeExchange
from tradeboard.config import Settings
from tradeboard.server.app import create_app
from tradeboard.state.store import MockStore

import unittest


def env_settings(**overrides) -> Settings:
    values = {
        "BINANCE_API_KEY": None,
        "BINANCE_API_SECRET": None,
        "BINANCE_FUTURES_BASE_URL": None,
        "STATIC_DIR": None,
        "UPSTREAM_TIMEOUT_SECONDS": 5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class DemoModeRoutes(AioHTTPTestCase):
    """No credentials anywhere: every endpoint answers from the demo store."""

    async def get_application(self):
        self.store = MockStore()
        return create_app(store=self.store, config=env_settings())

    async def get_json(self, path: str, expected_status: int = 200):
        resp = await self.client.request("GET", path)
        self.assertEqual(resp.status, expected_status)
        return await resp.json()

    async def test_settings_hide_secrets(self) -> None:
        data = await self.get_json("/api/settings")
        self.assertIsNone(data["binanceApiKey"])
        self.assertTrue(data["telegramBotToken"].endswith("oken"))
        self.assertIn("•", data["telegramBotToken"])
        self.assertEqual(data["breakoutLookbackPeriod"], 20)

    async def test_update_settings(self) -> None:
        masked = (await self.get_json("/api/settings"))["telegramBotToken"]
        resp = await self.client.request("PUT", "/api/settings", json={
            "maxRiskPerTrade": 3,
            "telegramBotToken": masked,
        })
        self.assertEqual(resp.status, 200)
        data = await resp.json()
        self.assertEqual(data["maxRiskPerTrade"], 3)
        self.assertEqual(self.store.get_settings().telegram_bot_token, "demo-telegram-token")

    async def test_update_settings_rejects_bad_payloads(self) -> None:
        resp = await self.client.request("PUT", "/api/settings", data="not json")
        self.assertEqual(resp.status, 400)
        self.assertEqual((await resp.json())["error"], "invalid_payload")

        resp = await self.client.request("PUT", "/api/settings", json=[1, 2])
        self.assertEqual(resp.status, 400)

        resp = await self.client.request("PUT", "/api/settings", json={"rsiPeriod": "fourteen"})
        self.assertEqual(resp.status, 400)
        self.assertEqual((await resp.json())["error"], "invalid_payload")

    async def test_connection_without_credentials(self) -> None:
        resp = await self.client.request("POST", "/api/test-connection")
        self.assertEqual(resp.status, 400)
        self.assertEqual((await resp.json())["error"], "no_credentials")

    async def test_account_falls_back_to_demo(self) -> None:
        data = await self.get_json("/api/account")
        self.assertFalse(data["connected"])
        self.assertEqual(data["error"], "no_credentials")
        self.assertEqual(data["totalBalance"], 125400)
        self.assertEqual(len(data["positions"]), 3)
        self.assertIn("unrealizedPnl", data["positions"][0])

    async def test_trades(self) -> None:
        active = await self.get_json("/api/trades/active")
        self.assertEqual(len(active), 3)
        self.assertEqual(active[0]["status"], "active")

        history = await self.get_json("/api/trades/history")
        self.assertEqual(len(history), 5)
        self.assertEqual(len(await self.get_json("/api/trades/history?limit=2")), 2)

    async def test_history_limit_validation(self) -> None:
        for value in ("abc", "0", "-3"):
            with self.subTest(limit=value):
                data = await self.get_json(f"/api/trades/history?limit={value}", 400)
                self.assertEqual(data["error"], "invalid_limit")

    async def test_close_trade(self) -> None:
        resp = await self.client.request("POST", "/api/trades/trade-btc-long-active/close")
        self.assertEqual(resp.status, 200)
        data = await resp.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["trade"]["status"], "closed")
        self.assertIsNotNone(data["trade"]["exitPrice"])
        self.assertEqual(len(await self.get_json("/api/trades/active")), 2)

    async def test_close_unknown_trade(self) -> None:
        resp = await self.client.request("POST", "/api/trades/nope/close")
        self.assertEqual(resp.status, 404)
        self.assertEqual((await resp.json())["error"], "trade_not_found")

    async def test_close_all(self) -> None:
        resp = await self.client.request("POST", "/api/trades/close-all")
        self.assertEqual(resp.status, 200)
        data = await resp.json()
        self.assertEqual(len(data["trades"]), 3)
        self.assertEqual(await self.get_json("/api/trades/active"), [])
        self.assertEqual(len(await self.get_json("/api/trades/history")), 8)

    async def test_stats(self) -> None:
        summary = await self.get_json("/api/stats/summary")
        self.assertEqual(summary["activeTrades"], 3)
        self.assertEqual(summary["successRate"], 80)

        detailed = await self.get_json("/api/stats")
        self.assertEqual(detailed["totalTrades"], 8)
        self.assertEqual(detailed["bestTrade"], 1101.6)

        breakdown = await self.get_json("/api/stats/breakdown")
        self.assertEqual(breakdown["outcomes"], {"wins": 4, "losses": 1})
        self.assertEqual(breakdown["pairs"][0]["pair"], "SOL/USDT")

    async def test_logs(self) -> None:
        self.assertEqual(len(await self.get_json("/api/logs")), 6)
        await self.client.request("POST", "/api/bot/toggle")
        recent = await self.get_json("/api/logs/recent")
        self.assertLessEqual(len(recent), 8)
        self.assertEqual(recent[0]["message"], "Bot deactivated")

    async def test_bot_controls(self) -> None:
        resp = await self.client.request("POST", "/api/bot/toggle")
        self.assertEqual(await resp.json(), {"success": True, "isActive": False})

        await self.client.request("POST", "/api/auto-trading/stop")
        self.assertFalse((await self.get_json("/api/auto-trading/status"))["isRunning"])
        await self.client.request("POST", "/api/auto-trading/start")
        self.assertEqual(await self.get_json("/api/auto-trading/status"), {"enabled": True, "isRunning": True})

    async def test_market_and_analysis(self) -> None:
        market = await self.get_json("/api/market/BTCUSDT")
        self.assertEqual(market["symbol"], "BTC/USDT")
        self.assertIn("priceChange24h", market)
        await self.get_json("/api/market/DOGEUSDT", 404)

        analysis = await self.get_json("/api/analyze/ETHUSDT")
        self.assertEqual(analysis["overallSignal"], "sell")
        await self.get_json("/api/analyze/DOGEUSDT", 404)

        predictions = await self.get_json("/api/ai-predictions/all/4h")
        self.assertEqual(predictions["timeframe"], "4h")
        self.assertEqual(len(predictions["predictions"]), 2)

    async def test_notifications_and_reports(self) -> None:
        resp = await self.client.request("POST", "/api/telegram/test")
        self.assertTrue((await resp.json())["success"])

        resp = await self.client.request("POST", "/api/reports/weekly")
        self.assertEqual(resp.status, 200)
        self.assertEqual((await resp.json())["type"], "weekly")

        resp = await self.client.request("POST", "/api/reports/daily")
        self.assertEqual(resp.status, 400)
        self.assertEqual((await resp.json())["error"], "unsupported_report")

    async def test_unknown_api_path(self) -> None:
        data = await self.get_json("/api/does-not-exist", 404)
        self.assertEqual(data["error"], "not_found")


class EnvironmentSecretRoutes(AioHTTPTestCase):
    async def get_application(self):
        return create_app(store=MockStore(), config=env_settings(BINANCE_API_KEY="env-key"))

    async def test_environment_secret_placeholder(self) -> None:
        resp = await self.client.request("GET", "/api/settings")
        data = await resp.json()
        self.assertEqual(data["binanceApiKey"], "__env__")
        self.assertIsNone(data["binanceApiSecret"])


class StaticRoutes(AioHTTPTestCase):
    async def asyncSetUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        (root / "assets").mkdir()
        (root / "index.html").write_text("<div id=root></div>")
        (root / "assets" / "app.js").write_text("console.log('ok')")
        await super().asyncSetUp()

    async def asyncTearDown(self) -> None:
        await super().asyncTearDown()
        self.tmp.cleanup()

    async def get_application(self):
        return create_app(store=MockStore(), config=env_settings(STATIC_DIR=self.tmp.name))

    async def test_index_for_client_routes(self) -> None:
        for path in ("/", "/dashboard", "/settings/keys"):
            with self.subTest(path=path):
                resp = await self.client.request("GET", path)
                self.assertEqual(resp.status, 200)
                self.assertIn("id=root", await resp.text())

    async def test_assets(self) -> None:
        resp = await self.client.request("GET", "/assets/app.js")
        self.assertEqual(resp.status, 200)
        self.assertIn("console.log", await resp.text())

    async def test_api_still_wins(self) -> None:
        resp = await self.client.request("GET", "/api/stats/summary")
        self.assertEqual(resp.status, 200)
        resp = await self.client.request("GET", "/api/missing")
        self.assertEqual(resp.status, 404)


class ExchangeModeRoutes(AioHTTPTestCase):
    """Credentials stored through the settings page, Binance replaced by a local fake."""

    async def asyncSetUp(self) -> None:
        self.exchange = FakeExchange()
        base_url = await self.exchange.start()
        self.store = MockStore()
        self.store.update_settings({
            "binanceApiKey": API_KEY,
            "binanceApiSecret": API_SECRET,
            "customApiUrl": base_url,
        })
        await super().asyncSetUp()

    async def asyncTearDown(self) -> None:
        await super().asyncTearDown()
        await self.exchange.close()

    async def get_application(self):
        return create_app(store=self.store, config=env_settings())

    async def get_json(self, path: str, expected_status: int = 200):
        resp = await self.client.request("GET", path)
        self.assertEqual(resp.status, expected_status)
        return await resp.json()

    async def test_stored_secrets_are_masked(self) -> None:
        data = await self.get_json("/api/settings")
        self.assertEqual(data["binanceApiKey"], "••••-key")
        self.assertNotIn(API_SECRET, data["binanceApiSecret"])

    async def test_connection(self) -> None:
        resp = await self.client.request("POST", "/api/test-connection")
        self.assertEqual(resp.status, 200)
        data = await resp.json()
        self.assertTrue(data["success"])
        self.assertEqual(self.store.get_logs(1)[0].message, "Binance connection verified")

    async def test_connection_failure(self) -> None:
        self.exchange.failures["/fapi/v2/account"] = (401, '{"code":-2015,"msg":"Invalid API-key"}')
        resp = await self.client.request("POST", "/api/test-connection")
        self.assertEqual(resp.status, 502)
        self.assertEqual((await resp.json())["error"], "connection_failed")

    async def test_account(self) -> None:
        data = await self.get_json("/api/account")
        self.assertTrue(data["connected"])
        self.assertEqual(data["totalBalance"], 10000.5)
        self.assertEqual([p["symbol"] for p in data["positions"]], ["BTCUSDT", "ETHUSDT"])

    async def test_trades(self) -> None:
        active = await self.get_json("/api/trades/active")
        self.assertEqual([t["id"] for t in active], ["BTCUSDT:LONG", "ETHUSDT:SHORT"])
        history = await self.get_json("/api/trades/history?limit=1")
        self.assertEqual([t["id"] for t in history], ["hist-ETHUSDT-2"])

    async def test_stats(self) -> None:
        summary = await self.get_json("/api/stats/summary")
        self.assertEqual(summary["totalBalance"], 10000.5)
        self.assertEqual(summary["todayProfit"], 10)
        breakdown = await self.get_json("/api/stats/breakdown")
        self.assertEqual(breakdown["outcomes"], {"wins": 1, "losses": 1})

    async def test_market(self) -> None:
        market = await self.get_json("/api/market/BTCUSDT")
        self.assertEqual(market["price"], 61000.12)

    async def test_close_position(self) -> None:
        resp = await self.client.request("POST", "/api/trades/BTCUSDT:LONG/close")
        self.assertEqual(resp.status, 200)
        self.assertEqual((await resp.json())["order"]["orderId"], 999)
        self.assertEqual(self.exchange.orders[0]["side"], "SELL")

    async def test_close_missing_position(self) -> None:
        resp = await self.client.request("POST", "/api/trades/DOGEUSDT:LONG/close")
        self.assertEqual(resp.status, 404)
        self.assertEqual((await resp.json())["error"], "position_not_found")

    async def test_close_rejected_upstream(self) -> None:
        self.exchange.failures["/fapi/v1/order"] = (400, '{"code":-2022,"msg":"rejected"}')
        resp = await self.client.request("POST", "/api/trades/BTCUSDT:LONG/close")
        self.assertEqual(resp.status, 502)

        resp = await self.client.request("POST", "/api/trades/close-all")
        self.assertEqual(resp.status, 502)
        data = await resp.json()
        self.assertFalse(data["success"])
        self.assertEqual(len(data["results"]), 2)

    async def test_close_all(self) -> None:
        resp = await self.client.request("POST", "/api/trades/close-all")
        self.assertEqual(resp.status, 200)
        self.assertEqual(len((await resp.json())["results"]), 2)

    async def test_close_when_positions_unavailable(self) -> None:
        self.exchange.failures["/fapi/v1/positionRisk"] = (500, '{"code":-1000,"msg":"boom"}')
        for path in ("/api/trades/BTCUSDT:LONG/close", "/api/trades/close-all"):
            with self.subTest(path=path):
                resp = await self.client.request("POST", path)
                self.assertEqual(resp.status, 502)
                data = await resp.json()
                self.assertEqual(data["error"], "failed_to_close_position")
                self.assertIn("boom", data["message"])
                log = self.store.get_logs(1)[0]
                self.assertEqual(log.level, "error")
                self.assertIn("boom", log.details)
        self.assertEqual(self.exchange.orders, [])

    async def test_upstream_failure_falls_back_to_demo(self) -> None:
        self.exchange.failures["/fapi/v1/positionRisk"] = (500, '{"code":-1000,"msg":"boom"}')
        active = await self.get_json("/api/trades/active")
        self.assertEqual(len(active), 3)
        self.assertTrue(active[0]["id"].startswith("trade-"))

        account = await self.get_json("/api/account")
        self.assertFalse(account["connected"])
        self.assertEqual(account["error"], "connection_failed")


if __name__ == "__main__":
    unittest.main()
