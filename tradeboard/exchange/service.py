import asyncio
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiohttp

from tradeboard.config import Settings
from tradeboard.exchange.client import FuturesClient
from tradeboard.exchange.errors import ExchangeError
from tradeboard.models import AccountPosition, AccountState, BotSettings, MarketSnapshot, Trade
from tradeboard.state.store import MockStore
from tradeboard.stats import summarize_trades, win_rate
from tradeboard.symbols import format_display_symbol, pair_to_symbol
from tradeboard.utils.logging_config import logger
from tradeboard.utils.numbers import normalize_quantity, round_number, to_int, to_number

DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_HISTORY_LIMIT = 25
MAX_SYMBOLS_PER_HISTORY_REQUEST = 8
MIN_TRADES_PER_SYMBOL = 5
# Placeholder bracket shown for positions opened outside the bot
SYNTHETIC_BRACKET_PCT = 0.02
BINANCE_USER_ID = "binance-futures"


@dataclass
class ResolvedCredentials:
    api_key: str
    api_secret: str
    base_url: Optional[str] = None
    testnet: bool = False
    recv_window: Optional[int] = None


@dataclass
class ClosePositionResult:
    success: bool
    symbol: str
    position_side: str
    order: Optional[Dict] = None
    error: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data = {"success": self.success, "symbol": self.symbol, "positionSide": self.position_side}
        if self.order is not None:
            data["order"] = self.order
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class RequestCache:
    """Upstream calls shared within one service instance (one HTTP request)."""
    account: Optional[asyncio.Future] = None
    positions: Optional[asyncio.Future] = None


def _ms_to_datetime(value: Any) -> datetime:
    return datetime.fromtimestamp(to_int(value) / 1000, tz=timezone.utc)


async def _gather_all(*aws: Awaitable) -> List[Any]:
    # Every sibling is awaited to completion before the first failure is raised
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class FuturesService:
    """
    Maps Binance Futures payloads onto the dashboard's Trade / AccountState model.

    Lives for a single request. Upstream errors propagate untouched: falling back
    to demo data is the HTTP layer's decision.
    """

    def __init__(self, client: FuturesClient, settings: BotSettings, store: MockStore,
                 clock: Callable[[], float] = time.time):
        self.client = client
        self.settings = settings
        self.store = store
        self._clock = clock
        self._cache = RequestCache()

    # --- Memoized upstream calls ---
    def _memo(self, slot: str, factory: Callable[[], Awaitable]) -> asyncio.Future:
        future = getattr(self._cache, slot)
        if future is None:
            future = asyncio.ensure_future(factory())
            setattr(self._cache, slot, future)
        return future

    async def _account_info(self) -> Dict:
        return await self._memo("account", self.client.get_account_info)

    async def _positions(self) -> List[Dict]:
        return await self._memo("positions", self.client.get_position_risk)

    # --- Queries ---
    async def test_connection(self) -> Dict:
        started = time.perf_counter()
        try:
            await self.client.get_account_info()
        except ExchangeError as e:
            latency_ms = round((time.perf_counter() - started) * 1000)
            return {"success": False, "latencyMs": latency_ms, "error": str(e)}
        latency_ms = round((time.perf_counter() - started) * 1000)
        return {"success": True, "latencyMs": latency_ms}

    async def get_account_state(self) -> AccountState:
        account, positions = await _gather_all(self._account_info(), self._positions())
        mapped = [p for p in (self._transform_position(raw) for raw in positions) if p is not None]
        suffix = " (Testnet)" if self.settings.is_testnet else ""

        return AccountState(
            connected=True,
            total_balance=to_number(account.get("totalWalletBalance"), 2),
            available_balance=to_number(account.get("availableBalance"), 2),
            message=f"Connected to Binance Futures{suffix}",
            positions=mapped,
        )

    async def get_active_trades(self) -> List[Trade]:
        positions = await self._positions()
        account = await self._account_info()
        dual_side = bool(account.get("dualSidePosition"))
        trades = (self._transform_position_to_trade(raw, dual_side) for raw in positions)
        return [trade for trade in trades if trade is not None]

    async def get_trades_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Trade]:
        symbols = await self._history_symbols()
        if not symbols:
            return []

        per_symbol = max(MIN_TRADES_PER_SYMBOL, math.ceil(limit / len(symbols)))
        fills_by_symbol = await _gather_all(
            *(self.client.get_user_trades(symbol, limit=per_symbol) for symbol in symbols)
        )
        leverage_by_symbol = await self._leverage_map()

        trades = [
            self._transform_user_trade(fill, leverage_by_symbol.get(fill.get("symbol"), 1))
            for fills in fills_by_symbol
            for fill in fills
        ]
        trades.sort(key=lambda t: t.exit_time or t.entry_time, reverse=True)
        return trades[:limit]

    async def get_summary_stats(self) -> Dict:
        account, income = await _gather_all(self._account_info(), self._income_24h())
        today_profit = round_number(sum(to_number(item.get("income")) for item in income), 2)
        total_balance = round_number(to_number(account.get("totalWalletBalance")), 2)
        active_trades = len(await self.get_active_trades())
        history = await self.get_trades_history(DEFAULT_HISTORY_LIMIT)

        return {
            "totalBalance": total_balance,
            "todayProfit": today_profit,
            "todayProfitPercent": 0 if total_balance == 0 else round_number(today_profit / total_balance * 100, 2),
            "activeTrades": active_trades,
            "successRate": win_rate(history),
        }

    async def get_detailed_stats(self) -> Dict:
        summary = await self.get_summary_stats()
        history = await self.get_trades_history(DEFAULT_HISTORY_LIMIT * 2)
        metrics = summarize_trades(history)
        closed_count = metrics.pop("closedTrades")
        return {
            **summary,
            "totalTrades": closed_count + summary["activeTrades"],
            **metrics,
        }

    async def get_market_snapshot(self, symbol: str) -> MarketSnapshot:
        ticker = await self.client.get_ticker_24h(symbol)
        return MarketSnapshot(
            symbol=format_display_symbol(ticker.get("symbol", symbol)),
            price=round_number(to_number(ticker.get("lastPrice"))),
            price_change_24h=round_number(to_number(ticker.get("priceChange"))),
            price_change_percent_24h=round_number(to_number(ticker.get("priceChangePercent"))),
            high_24h=round_number(to_number(ticker.get("highPrice"))),
            low_24h=round_number(to_number(ticker.get("lowPrice"))),
            volume_24h=round_number(to_number(ticker.get("quoteVolume")), 0),
            timestamp=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
        )

    # --- Position closing ---
    async def close_position_by_trade_id(self, trade_id: str) -> ClosePositionResult:
        positions = await self._positions()
        target = next((p for p in positions if self._matches_trade_id(p, trade_id)), None)
        if target is None:
            return ClosePositionResult(success=False, symbol="UNKNOWN", position_side="BOTH",
                                       error="POSITION_NOT_FOUND")
        return await self._close_position(target)

    async def close_all_positions(self) -> List[ClosePositionResult]:
        results = []
        for position in await self._positions():
            if to_number(position.get("positionAmt"), None) == 0:
                continue
            results.append(await self._close_position(position))
        return results

    async def _close_position(self, position: Dict) -> ClosePositionResult:
        symbol = position.get("symbol", "")
        position_side = position.get("positionSide", "BOTH")
        amount = to_number(position.get("positionAmt"), None)
        quantity = abs(amount)
        if quantity == 0:
            return ClosePositionResult(success=True, symbol=symbol, position_side=position_side,
                                       error="NO_QUANTITY")

        payload = {
            "symbol": symbol,
            "side": "SELL" if amount > 0 else "BUY",
            "type": "MARKET",
            "quantity": normalize_quantity(quantity),
            "reduceOnly": True,
            "positionSide": position_side,
        }

        display = format_display_symbol(symbol)
        try:
            order = await self.client.post_order(payload)
        except ExchangeError as e:
            self.store.record_log("error", f"Failed to close position {display}", str(e))
            return ClosePositionResult(success=False, symbol=symbol, position_side=position_side, error=str(e))

        logger.info("Position closed", symbol=symbol, position_side=position_side, order_id=order.get("orderId"))
        self.store.record_log("success", f"Closed position {display}", f"Order id {order.get('orderId')}")
        return ClosePositionResult(success=True, symbol=symbol, position_side=position_side, order=order)

    @staticmethod
    def _matches_trade_id(position: Dict, trade_id: str) -> bool:
        symbol = position.get("symbol")
        position_side = position.get("positionSide", "BOTH")
        parts = trade_id.split(":")
        if len(parts) == 2:
            wanted_symbol, wanted_side = parts[0], parts[1].upper()
            if wanted_symbol != symbol:
                return False
            if wanted_side == position_side:
                return True
            # One-way mode ids carry the derived side, the position says BOTH
            if position_side == "BOTH":
                amount = to_number(position.get("positionAmt"), None)
                derived = "LONG" if amount > 0 else "SHORT" if amount < 0 else None
                return wanted_side == derived
            return False

        # Legacy ids: bare symbol or SYMBOL-SIDE
        return trade_id == symbol or trade_id == f"{symbol}-{position_side}"

    # --- Shape translation ---
    @staticmethod
    def _transform_position(position: Dict) -> Optional[AccountPosition]:
        amount = to_number(position.get("positionAmt"), None)
        quantity = abs(amount)
        if quantity == 0:
            return None

        side = "LONG" if amount > 0 else "SHORT"
        entry_price = to_number(position.get("entryPrice"))
        mark_price = to_number(position.get("markPrice"))
        direction = 1 if side == "LONG" else -1

        return AccountPosition(
            symbol=position.get("symbol", ""),
            side=side,
            entry_price=entry_price,
            quantity=quantity,
            leverage=to_int(position.get("leverage"), 1),
            mark_price=mark_price,
            unrealized_pnl=round_number((mark_price - entry_price) * quantity * direction, 2),
        )

    def _transform_position_to_trade(self, position: Dict, dual_side: bool) -> Optional[Trade]:
        amount = to_number(position.get("positionAmt"), None)
        quantity = abs(amount)
        if quantity == 0:
            return None

        side = "long" if amount > 0 else "short"
        symbol = position.get("symbol", "")
        entry_price = to_number(position.get("entryPrice"))
        unrealized = to_number(position.get("unRealizedProfit"))
        profit_percent = 0 if entry_price == 0 else unrealized / (entry_price * quantity) * 100
        id_side = position.get("positionSide", "BOTH") if dual_side else side.upper()
        below = round_number(entry_price * (1 - SYNTHETIC_BRACKET_PCT), 2)
        above = round_number(entry_price * (1 + SYNTHETIC_BRACKET_PCT), 2)

        return Trade(
            id=f"{symbol}:{id_side}",
            user_id=BINANCE_USER_ID,
            symbol=format_display_symbol(symbol),
            type=side,
            status="active",
            entry_price=entry_price,
            quantity=quantity,
            leverage=to_int(position.get("leverage"), 1),
            stop_loss=below if side == "long" else above,
            take_profit=above if side == "long" else below,
            profit=round_number(unrealized, 2),
            profit_percent=round_number(profit_percent, 2),
            entry_time=_ms_to_datetime(position.get("updateTime")),
            binance_order_id="",
            is_auto_trade=self.settings.auto_trading_enabled,
        )

    def _transform_user_trade(self, fill: Dict, leverage: int) -> Trade:
        symbol = fill.get("symbol", "")
        price = to_number(fill.get("price"))
        quantity = abs(to_number(fill.get("qty")))
        realized = to_number(fill.get("realizedPnl"))
        notional = price * quantity
        timestamp = _ms_to_datetime(fill.get("time"))

        return Trade(
            id=f"hist-{symbol}-{fill.get('id')}",
            user_id=BINANCE_USER_ID,
            symbol=format_display_symbol(symbol),
            type="long" if fill.get("side") == "BUY" else "short",
            status="closed",
            entry_price=price,
            exit_price=price,
            quantity=quantity,
            leverage=leverage,
            stop_loss=price,
            take_profit=price,
            profit=round_number(realized, 2),
            profit_percent=round_number(0 if notional == 0 else realized / notional * 100, 2),
            entry_time=timestamp,
            exit_time=timestamp,
            binance_order_id=str(fill.get("orderId", "")),
            is_auto_trade=self.settings.auto_trading_enabled,
        )

    async def _history_symbols(self) -> List[str]:
        preferred = [pair_to_symbol(pair) for pair in self.settings.trading_pairs or []]
        held = [
            p.get("symbol", "") for p in await self._positions()
            if to_number(p.get("positionAmt"), None) != 0
        ]
        # dict keeps first-seen order while de-duplicating
        unique = list(dict.fromkeys(s for s in preferred + held if s))
        return unique[:MAX_SYMBOLS_PER_HISTORY_REQUEST]

    async def _leverage_map(self) -> Dict[str, int]:
        account = await self._account_info()
        return {
            p.get("symbol"): to_int(p.get("leverage"), 1)
            for p in account.get("positions", [])
        }

    async def _income_24h(self) -> List[Dict]:
        start_time = int(self._clock() * 1000) - DAY_MS
        return await self.client.get_income_history(income_type="REALIZED_PNL", start_time=start_time, limit=1000)


def resolve_credentials(env: Settings, bot_settings: BotSettings) -> Optional[ResolvedCredentials]:
    """Stored settings win over environment values; no key or secret means no credentials."""
    api_key = (bot_settings.binance_api_key or env.BINANCE_API_KEY or "").strip()
    api_secret = (bot_settings.binance_api_secret or env.BINANCE_API_SECRET or "").strip()
    if not api_key or not api_secret:
        return None

    testnet = bot_settings.is_testnet if bot_settings.is_testnet is not None else bool(env.BINANCE_TESTNET)
    base_url = (bot_settings.custom_api_url or env.BINANCE_FUTURES_BASE_URL or "").strip()

    return ResolvedCredentials(
        api_key=api_key,
        api_secret=api_secret,
        base_url=base_url or None,
        testnet=bool(testnet),
        recv_window=env.BINANCE_RECV_WINDOW,
    )


def create_service(env: Settings, store: MockStore, session: aiohttp.ClientSession) -> Optional[FuturesService]:
    bot_settings = store.get_settings()
    credentials = resolve_credentials(env, bot_settings)
    if credentials is None:
        return None

    client = FuturesClient(
        session,
        api_key=credentials.api_key,
        api_secret=credentials.api_secret,
        base_url=credentials.base_url,
        recv_window=credentials.recv_window,
        testnet=credentials.testnet,
    )
    return FuturesService(client, bot_settings, store)
