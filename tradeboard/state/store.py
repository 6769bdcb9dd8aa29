import copy
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from tradeboard.models import (
    AccountState,
    ActivityLog,
    AutoTradingState,
    BotSettings,
    MarketSnapshot,
    Trade,
)
from tradeboard.state import fixtures
from tradeboard.state.jitter import jitter
from tradeboard.stats import summarize_trades, win_rate
from tradeboard.symbols import format_display_symbol, pair_to_symbol
from tradeboard.utils.logging_config import logger
from tradeboard.utils.numbers import round_int, round_number

DAY = timedelta(hours=24)
# Simulated fill slippage applied when a demo trade is closed
EXIT_PRICE_OFFSET = 0.4


def calculate_profit(trade: Trade, exit_price: float) -> Dict[str, float]:
    direction = 1 if trade.type == "long" else -1
    profit = (exit_price - trade.entry_price) * trade.quantity * direction
    basis = trade.entry_price * trade.quantity
    profit_percent = 0.0 if basis == 0 else profit / basis * 100
    return {
        "profit": round_number(profit, 2),
        "profit_percent": round_number(profit_percent, 2),
    }


def _clamped(value: float, low: int, high: int) -> int:
    return max(low, min(high, round_int(value)))


class MockStore:
    """
    In-memory demo backend.

    Holds settings, trades, the activity feed, the account snapshot and the
    market templates for one process. Read accessors hand out copies; every
    mutation records an activity entry.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_logs: int = 100):
        self._clock = clock
        self.max_logs = max_logs
        self.reset()

    def reset(self):
        now = self.now()
        self.settings = BotSettings.model_validate(copy.deepcopy(fixtures.DEMO_SETTINGS))
        self.active_trades: List[Trade] = [Trade.model_validate(t) for t in fixtures.active_trades(now)]
        self.history: List[Trade] = [Trade.model_validate(t) for t in fixtures.history_trades(now)]
        self.logs: List[ActivityLog] = [ActivityLog.model_validate(entry) for entry in fixtures.activity_logs(now)]
        self.market = copy.deepcopy(fixtures.MARKET_BASELINES)
        self.technical = copy.deepcopy(fixtures.TECHNICAL_TEMPLATES)
        self.ai_predictions = copy.deepcopy(fixtures.AI_PREDICTION_TEMPLATES)
        self.account = AccountState.model_validate(fixtures.account_snapshot())
        self.auto_trading = AutoTradingState(
            enabled=self.settings.auto_trading_enabled,
            is_running=self.settings.auto_trading_enabled,
        )

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    # --- Activity log ---
    def record_log(self, level: str, message: str, details: Optional[str] = None) -> ActivityLog:
        entry = ActivityLog(
            id=f"log-{uuid.uuid4().hex[:8]}",
            user_id=fixtures.DEMO_USER_ID,
            level=level,
            message=message,
            details=details,
            timestamp=self.now(),
        )
        self.logs.insert(0, entry)
        del self.logs[self.max_logs:]
        logger.info("Activity", level=level, message=message, details=details)
        return entry

    def get_logs(self, limit: Optional[int] = None) -> List[ActivityLog]:
        logs = sorted(self.logs, key=lambda log: log.timestamp, reverse=True)
        if limit:
            logs = logs[:limit]
        return [log.model_copy() for log in logs]

    # --- Settings & bot control ---
    def get_settings(self) -> BotSettings:
        return self.settings.model_copy(deep=True)

    def update_settings(self, changes: Dict[str, Any]) -> BotSettings:
        """Merge ``changes`` (camelCase keys) into the stored settings. Raises ValidationError."""
        merged = self.settings.model_dump(by_alias=True)
        merged.update(changes)
        updated = BotSettings.model_validate(merged)
        self.settings = updated

        if "autoTradingEnabled" in changes:
            self.auto_trading.enabled = updated.auto_trading_enabled
            self.auto_trading.is_running = updated.auto_trading_enabled

        self.record_log("success", "Bot settings updated", "New settings saved")
        return self.get_settings()

    def get_auto_trading_status(self) -> AutoTradingState:
        return self.auto_trading.model_copy()

    def start_auto_trading(self):
        self.auto_trading.enabled = True
        self.auto_trading.is_running = True
        self.settings.auto_trading_enabled = True
        self.record_log("success", "Auto trading started", "The bot will watch signals and execute trades")

    def stop_auto_trading(self):
        self.auto_trading.is_running = False
        self.settings.auto_trading_enabled = False
        self.record_log("warning", "Auto trading stopped", "No new trades will be opened until it is restarted")

    def toggle_bot_active(self) -> bool:
        self.settings.is_active = not self.settings.is_active
        if self.settings.is_active:
            self.record_log("success", "Bot activated", "The bot resumes watching for opportunities")
        else:
            self.record_log("warning", "Bot deactivated", "Signal execution paused")
        return self.settings.is_active

    # --- Trades ---
    def get_active_trades(self) -> List[Trade]:
        return [trade.model_copy(deep=True) for trade in self.active_trades]

    def get_trades_history(self) -> List[Trade]:
        history = sorted(self.history, key=lambda t: t.exit_time or t.entry_time, reverse=True)
        return [trade.model_copy(deep=True) for trade in history]

    def close_trade(self, trade_id: str) -> Optional[Trade]:
        trade = next((t for t in self.active_trades if t.id == trade_id), None)
        if trade is None:
            return None

        self.active_trades.remove(trade)
        symbol_key = pair_to_symbol(trade.symbol)
        market = self.get_market_snapshot(symbol_key)
        base_price = market.price if market else trade.entry_price
        adjustment = EXIT_PRICE_OFFSET if trade.type == "long" else -EXIT_PRICE_OFFSET
        exit_price = round_number(base_price + adjustment, 2)
        outcome = calculate_profit(trade, exit_price)

        closed = trade.model_copy(update={
            "status": "closed",
            "exit_price": exit_price,
            "exit_time": self.now(),
            "profit": outcome["profit"],
            "profit_percent": outcome["profit_percent"],
        })
        self.history.insert(0, closed)
        self.account.total_balance = round_number(self.account.total_balance + outcome["profit"], 2)
        self._remove_position(symbol_key, trade.type.upper())
        self._sync_available_balance()

        self.record_log(
            "success" if outcome["profit"] >= 0 else "warning",
            f"Closed trade {trade.symbol}",
            f"Profit: {outcome['profit']:.2f}$ ({outcome['profit_percent']:.2f}%)",
        )
        return closed.model_copy(deep=True)

    def close_all_trades(self) -> List[Trade]:
        closed = []
        for trade in list(self.active_trades):
            result = self.close_trade(trade.id)
            if result:
                closed.append(result)
        return closed

    # --- Account ---
    def _remove_position(self, symbol: str, side: str):
        """Drop one position for ``symbol``; a hedged account keeps the opposite leg."""
        candidates = [p for p in self.account.positions if p.symbol == symbol]
        if not candidates:
            return
        target = next((p for p in candidates if p.side == side), candidates[0])
        self.account.positions.remove(target)

    def _margin_used(self) -> float:
        return sum(p.entry_price * p.quantity / max(p.leverage, 1) for p in self.account.positions)

    def _sync_available_balance(self):
        available = max(self.account.total_balance - self._margin_used(), 0)
        self.account.available_balance = round_number(available, 2)

    def get_account_state(self) -> AccountState:
        positions = []
        for position in self.account.positions:
            market = self.get_market_snapshot(position.symbol)
            current_price = market.price if market else position.entry_price
            direction = 1 if position.side == "LONG" else -1
            pnl = (current_price - position.entry_price) * position.quantity * direction
            positions.append(position.model_copy(update={
                "mark_price": current_price,
                "unrealized_pnl": round_number(pnl, 2),
            }))
        return self.account.model_copy(update={"positions": positions}, deep=True)

    # --- Market data ---
    def get_market_snapshot(self, symbol: str) -> Optional[MarketSnapshot]:
        key = pair_to_symbol(symbol)
        base = self.market.get(key)
        if not base:
            return None

        at = self._clock()
        price = round_number(base["price"] + jitter(0, base["price"] * 0.0025, at), 2)
        reference = base["price"] - base["priceChange24h"]
        change = round_number(price - reference, 2)
        percent = 0.0 if reference == 0 else round_number(change / reference * 100, 2)

        return MarketSnapshot(
            symbol=format_display_symbol(key),
            price=price,
            price_change_24h=change,
            price_change_percent_24h=percent,
            high_24h=base["high24h"],
            low_24h=base["low24h"],
            volume_24h=base["volume24h"],
            timestamp=self.now(),
        )

    def get_technical_analysis(self, symbol: str) -> Optional[Dict]:
        key = pair_to_symbol(symbol)
        template = self.technical.get(key)
        market = self.get_market_snapshot(key)
        if template is None and market is None:
            return None

        if template is None:
            template = {
                "currentPrice": market.price,
                "rsi": {"value": 50, "signal": "hold"},
                "macd": {"value": 0, "signal": "hold", "histogram": 0},
                "ma": {"signal": "hold", "shortMA": market.price, "longMA": market.price},
                "overallSignal": "hold",
                "signalStrength": 50,
            }

        at = self._clock()
        return {
            "symbol": format_display_symbol(key),
            "currentPrice": market.price if market else template["currentPrice"],
            "rsi": {
                "value": round_number(jitter(template["rsi"]["value"], 1.5, at), 2),
                "signal": template["rsi"]["signal"],
            },
            "macd": {
                "value": round_number(jitter(template["macd"]["value"], 1.8, at), 2),
                "signal": template["macd"]["signal"],
                "histogram": round_number(jitter(template["macd"]["histogram"], 1.2, at), 2),
            },
            "ma": {
                "signal": template["ma"]["signal"],
                "shortMA": round_number(jitter(template["ma"]["shortMA"], 20, at), 2),
                "longMA": round_number(jitter(template["ma"]["longMA"], 15, at), 2),
            },
            "overallSignal": template["overallSignal"],
            "signalStrength": _clamped(jitter(template["signalStrength"], 3, at), 0, 100),
        }

    def get_ai_predictions(self, timeframe: str) -> Dict:
        key = timeframe if timeframe in self.ai_predictions else fixtures.DEFAULT_TIMEFRAME
        at = self._clock()
        predictions = []
        for entry in self.ai_predictions[key]:
            market = self.get_market_snapshot(entry["symbol"])
            base = copy.deepcopy(entry["prediction"])
            base["confidence"] = _clamped(jitter(base["confidence"], 3, at), 40, 95)
            base["signalStrength"] = _clamped(jitter(base["signalStrength"], 4, at), 30, 90)
            for reading in base["predictions"].values():
                reading["strength"] = _clamped(jitter(reading["strength"], 3, at), 20, 95)
                reading["confidence"] = _clamped(jitter(reading["confidence"], 3, at), 20, 95)
            predictions.append({
                "symbol": entry["symbol"],
                "currentPrice": market.price if market else entry["currentPrice"],
                "prediction": base,
            })

        return {
            "timeframe": key,
            "predictions": predictions,
            "timestamp": self.now().isoformat(),
        }

    # --- Statistics ---
    def get_summary_stats(self) -> Dict:
        now = self.now()
        closed_today = [t for t in self.history if t.exit_time and now - t.exit_time <= DAY]
        today_profit = sum(t.profit or 0 for t in closed_today)
        total_balance = self.account.total_balance

        return {
            "totalBalance": round_number(total_balance, 2),
            "todayProfit": round_number(today_profit, 2),
            "todayProfitPercent": round_number(0 if total_balance == 0 else today_profit / total_balance * 100, 2),
            "activeTrades": len(self.active_trades),
            "successRate": win_rate(self.history),
        }

    def get_detailed_stats(self) -> Dict:
        summary = self.get_summary_stats()
        metrics = summarize_trades(self.history)
        closed_count = metrics.pop("closedTrades")
        return {
            **summary,
            "totalTrades": closed_count + len(self.active_trades),
            **metrics,
        }
