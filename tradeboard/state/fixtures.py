"""
Demo dataset served when no Binance credentials are configured.

Every builder returns fresh dicts so the store can be reset between runs;
timestamps are relative to the ``now`` handed in by the store's clock.
"""
from datetime import datetime, timedelta
from typing import Dict, List

DEMO_USER_ID = "user-demo"

DEMO_SETTINGS = {
    "id": "settings-demo",
    "userId": DEMO_USER_ID,
    "binanceApiKey": None,
    "binanceApiSecret": None,
    "customApiUrl": None,
    "isTestnet": True,
    "isActive": True,
    "hedgingMode": True,
    "maxRiskPerTrade": 1.5,
    "riskRewardRatio": 2.2,
    "maShortPeriod": 21,
    "maLongPeriod": 200,
    "rsiPeriod": 14,
    "rsiOverbought": 70,
    "rsiOversold": 30,
    "macdFast": 12,
    "macdSlow": 26,
    "macdSignal": 9,
    "tradingPairs": ["BTC/USDT", "ETH/USDT", "BNB/USDT", "SOL/USDT", "XRP/USDT"],
    "telegramBotToken": "demo-telegram-token",
    "telegramChatId": "123456789",
    "emailNotifications": True,
    "notificationEmail": "alerts@tradeboard.demo",
    "autoTradingEnabled": True,
    "minSignalStrength": 70,
    "maxDailyTrades": 12,
    "tradeCooldownMinutes": 15,
    "trailingStopEnabled": True,
    "trailingStopPercent": 0.8,
    "trailingStopActivationPercent": 1.2,
    "multiTimeframeEnabled": True,
    "timeframes": ["15m", "1h", "4h"],
    "weeklyReportEnabled": True,
    "monthlyReportEnabled": True,
    "reportDay": 0,
    "aiTradingEnabled": True,
    "aiMinConfidence": 75,
    "aiMinSignalStrength": 65,
    "aiRequiredSignals": 3,
    "advancedStrategiesEnabled": True,
    "enabledStrategies": ["breakout", "momentum", "meanReversion", "swing"],
    "strategyMinConfidence": 62,
    "strategyMinStrength": 54,
    "requireStrategyConsensus": False,
    # Per-strategy tuning, kept as extras on BotSettings
    "breakoutLookbackPeriod": 20,
    "breakoutThreshold": 1.6,
    "breakoutVolumeMultiplier": 1.5,
    "scalpingProfitTarget": 0.45,
    "scalpingStopLoss": 0.25,
    "scalpingMaxHoldingPeriod": 12,
    "momentumLookbackPeriod": 14,
    "momentumThreshold": 1.8,
    "meanReversionBollingerPeriod": 20,
    "meanReversionBollingerStdDev": 2,
    "meanReversionOversoldLevel": 25,
    "meanReversionOverboughtLevel": 75,
    "swingPeriod": 10,
    "swingMinSize": 2.2,
    "swingConfirmationCandles": 3,
    "gridLevels": 6,
    "gridSpacing": 0.9,
    "gridOrderSize": 50,
    "smartPositionSizingEnabled": True,
    "atrPeriod": 14,
    "atrMultiplier": 1.7,
    "maxPositionPercent": 12,
    "minPositionPercent": 1.2,
    "volatilityAdjustment": True,
    "marketFilterEnabled": True,
    "avoidHighVolatility": True,
    "maxVolatilityPercent": 4,
    "trendFilterEnabled": True,
    "minTrendStrength": 32,
    "avoidRangingMarket": True,
    "accountProtectionEnabled": True,
    "maxDailyLossPercent": 3,
    "maxConcurrentTrades": 4,
    "pauseAfterConsecutiveLosses": 2,
    "diversificationEnabled": True,
}


def _trade(now: datetime, trade_id: str, symbol: str, side: str, entry: float, quantity: float,
           leverage: int, stop_loss: float, take_profit: float, opened_hours_ago: float,
           signals: List[str], order_id: str, **extra) -> Dict:
    trade = {
        "id": trade_id,
        "userId": DEMO_USER_ID,
        "symbol": symbol,
        "type": side,
        "status": "active",
        "entryPrice": entry,
        "exitPrice": None,
        "quantity": quantity,
        "leverage": leverage,
        "stopLoss": stop_loss,
        "takeProfit": take_profit,
        "profit": None,
        "profitPercent": None,
        "entryTime": now - timedelta(hours=opened_hours_ago),
        "exitTime": None,
        "entrySignals": signals,
        "binanceOrderId": order_id,
        "trailingStopActive": False,
        "trailingStopPrice": None,
        "highestPrice": None,
        "lowestPrice": None,
        "isAutoTrade": False,
    }
    closed_hours_ago = extra.pop("closed_hours_ago", None)
    if closed_hours_ago is not None:
        trade["status"] = "closed"
        trade["exitTime"] = now - timedelta(hours=closed_hours_ago)
    trade.update(extra)
    return trade


def active_trades(now: datetime) -> List[Dict]:
    return [
        _trade(now, "trade-btc-long-active", "BTC/USDT", "long", 67250.45, 0.35, 5, 65800, 68950, 6,
               ["RSI", "Breakout", "Volume Surge"], "BN-874523",
               trailingStopActive=True, trailingStopPrice=66840, highestPrice=6.4, isAutoTrade=True),
        _trade(now, "trade-eth-short-active", "ETH/USDT", "short", 3185.6, 4.5, 4, 3260, 3050, 4,
               ["MACD Cross", "RSI Divergence"], "BN-874524",
               trailingStopActive=True, trailingStopPrice=3120, highestPrice=5.2, lowestPrice=-1.3,
               isAutoTrade=True),
        _trade(now, "trade-sol-long-active", "SOL/USDT", "long", 182.75, 120, 2, 172, 198, 35 / 60,
               ["Trend Following", "Breakout"], "BN-874525",
               highestPrice=3.9, lowestPrice=-0.8),
    ]


def history_trades(now: datetime) -> List[Dict]:
    return [
        _trade(now, "trade-btc-long-1", "BTC/USDT", "long", 65200.12, 0.4, 4, 64000, 67000, 48,
               ["RSI", "Momentum"], "BN-873100", closed_hours_ago=30,
               exitPrice=66840.55, profit=655.7, profitPercent=2.51,
               trailingStopActive=True, trailingStopPrice=66450, highestPrice=4.8, lowestPrice=-0.9,
               isAutoTrade=True),
        _trade(now, "trade-eth-short-1", "ETH/USDT", "short", 3280.4, 3.2, 3, 3340, 3100, 80,
               ["MACD Cross", "Order Flow"], "BN-873101", closed_hours_ago=50,
               exitPrice=3162.8, profit=376.99, profitPercent=3.59,
               highestPrice=3.2, lowestPrice=-1.1, isAutoTrade=True),
        _trade(now, "trade-bnb-long-1", "BNB/USDT", "long", 512.25, 25, 2, 490, 540, 120,
               ["Trend", "Volume Spike"], "BN-873102", closed_hours_ago=96,
               exitPrice=498.1, profit=-353.75, profitPercent=-2.76,
               highestPrice=2.5, lowestPrice=-3.4),
        _trade(now, "trade-sol-long-1", "SOL/USDT", "long", 165.4, 80, 2, 158, 182, 96,
               ["Breakout", "RSI"], "BN-873103", closed_hours_ago=80,
               exitPrice=179.2, profit=1101.6, profitPercent=8.33,
               trailingStopActive=True, trailingStopPrice=172, highestPrice=7.5, lowestPrice=-0.5),
        _trade(now, "trade-xrp-short-1", "XRP/USDT", "short", 0.62, 1200, 3, 0.64, 0.58, 60,
               ["Order Block", "Volume Divergence"], "BN-873104", closed_hours_ago=32,
               exitPrice=0.59, profit=108, profitPercent=4.35,
               highestPrice=4.9, lowestPrice=-1.9, isAutoTrade=True),
    ]


def activity_logs(now: datetime) -> List[Dict]:
    entries = [
        ("log-setup", "info", "Trading bot initialised", "Default platform settings loaded", 24 * 60),
        ("log-connection", "success", "Connected to Binance (Testnet)",
         "API keys and testnet network settings verified", 18 * 60),
        ("log-trade-open", "info", "Opened long position on BTC/USDT",
         "Risk 1.5%, trailing stop enabled", 6 * 60),
        ("log-auto-trading", "success", "Auto trading enabled",
         "Multi-timeframe and AI trading strategies active", 4 * 60),
        ("log-warning", "warning", "Volatility rising on SOL/USDT",
         "Trailing stop moved to 179.20 to reduce risk", 45),
        ("log-signal", "info", "Strong AI signal on ETH/USDT",
         "82% confidence from momentum analysis", 20),
    ]
    return [
        {
            "id": log_id,
            "userId": DEMO_USER_ID,
            "level": level,
            "message": message,
            "details": details,
            "timestamp": now - timedelta(minutes=minutes_ago),
        }
        for log_id, level, message, details, minutes_ago in entries
    ]


MARKET_BASELINES = {
    "BTCUSDT": {"price": 67420, "priceChange24h": 520, "high24h": 68450, "low24h": 66180, "volume24h": 28500000000},
    "ETHUSDT": {"price": 3175, "priceChange24h": -85, "high24h": 3290, "low24h": 3120, "volume24h": 15800000000},
    "BNBUSDT": {"price": 502, "priceChange24h": -8.5, "high24h": 515, "low24h": 496, "volume24h": 1840000000},
    "SOLUSDT": {"price": 188, "priceChange24h": 6.4, "high24h": 195, "low24h": 178, "volume24h": 3200000000},
    "XRPUSDT": {"price": 0.6, "priceChange24h": 0.018, "high24h": 0.62, "low24h": 0.58, "volume24h": 1200000000},
}


def _technical(symbol, price, rsi, rsi_signal, macd, macd_signal, histogram, ma_signal, short_ma, long_ma,
               overall, strength):
    return {
        "symbol": symbol,
        "currentPrice": price,
        "rsi": {"value": rsi, "signal": rsi_signal},
        "macd": {"value": macd, "signal": macd_signal, "histogram": histogram},
        "ma": {"signal": ma_signal, "shortMA": short_ma, "longMA": long_ma},
        "overallSignal": overall,
        "signalStrength": strength,
    }


TECHNICAL_TEMPLATES = {
    "BTCUSDT": _technical("BTC/USDT", 67420, 58.4, "buy", 312.6, "buy", 48.2, "buy", 67010, 65480, "buy", 78),
    "ETHUSDT": _technical("ETH/USDT", 3175, 41.2, "sell", -24.8, "sell", -12.4, "sell", 3210, 3284, "sell", 64),
    "SOLUSDT": _technical("SOL/USDT", 188, 62.1, "buy", 12.7, "buy", 6.3, "buy", 184, 176, "buy", 72),
    "BNBUSDT": _technical("BNB/USDT", 502, 48.2, "hold", -6.4, "hold", 1.2, "hold", 506, 502, "hold", 52),
}

# Order matters: the dashboard renders the five readings in this sequence
PREDICTION_COMPONENTS = ("patternRecognition", "momentumAnalysis", "volatilityAnalysis", "trendStrength", "priceAction")


def _prediction(symbol, price, overall, confidence, strength, readings, patterns, regime, risk, short_term,
                medium_term):
    return {
        "symbol": symbol,
        "currentPrice": price,
        "prediction": {
            "overallSignal": overall,
            "confidence": confidence,
            "signalStrength": strength,
            "predictions": {
                name: {"signal": signal, "strength": s, "confidence": c, "description": description}
                for name, (signal, s, c, description) in zip(PREDICTION_COMPONENTS, readings)
            },
            "detectedPatterns": [
                {"pattern": pattern, "signal": signal, "strength": s, "description": description}
                for pattern, signal, s, description in patterns
            ],
            "marketRegime": regime,
            "riskLevel": risk,
            "shortTermPrediction": short_term,
            "mediumTermPrediction": medium_term,
        },
    }


AI_PREDICTION_TEMPLATES = {
    "15m": [
        _prediction("BTC/USDT", 67420, "buy", 82, 78, [
            ("buy", 84, 79, "Short-term resistance breakout on high volume"),
            ("buy", 76, 81, "Positive MACD acceleration"),
            ("hold", 52, 68, "Moderate volatility supports holding"),
            ("buy", 73, 77, "Stable uptrend over recent hours"),
            ("buy", 80, 83, "Consecutive bullish candles with strong support"),
        ], [
            ("Bull Flag", "buy", 74, "Bullish continuation pattern"),
            ("RSI Divergence", "buy", 68, "Positive RSI divergence"),
        ], "trending_up", "medium", "bullish", "bullish"),
        _prediction("ETH/USDT", 3175, "sell", 71, 66, [
            ("sell", 68, 70, "Clear double top forming"),
            ("sell", 61, 69, "Bearish momentum since the previous timeframe"),
            ("hold", 48, 62, "Relatively low volatility"),
            ("sell", 59, 67, "Short-term downtrend"),
            ("sell", 63, 72, "Bearish candles against strong resistance"),
        ], [
            ("Double Top", "sell", 66, "Pattern confirmed at 3200"),
        ], "trending_down", "medium", "bearish", "neutral"),
        _prediction("SOL/USDT", 188, "buy", 76, 72, [
            ("buy", 71, 74, "Completed cup and handle"),
            ("buy", 75, 79, "Positive momentum for 4 hours"),
            ("hold", 54, 63, "Normal market volatility"),
            ("buy", 69, 73, "Continuing uptrend"),
            ("buy", 78, 80, "Bullish candles breaking 185 resistance"),
        ], [
            ("Cup and Handle", "buy", 71, "Supports uptrend continuation"),
        ], "trending_up", "medium", "bullish", "bullish"),
    ],
    "1h": [
        _prediction("BTC/USDT", 67420, "buy", 84, 80, [
            ("buy", 86, 83, "Stable uptrend over 6 hours"),
            ("buy", 80, 85, "Positive momentum with rising volume"),
            ("hold", 55, 67, "Moderate volatility supports continuation"),
            ("buy", 82, 86, "Uptrend since the start of the week"),
            ("buy", 79, 81, "Consecutive bullish candle patterns"),
        ], [
            ("Ascending Channel", "buy", 75, "Clearly rising price channel"),
        ], "trending_up", "medium", "bullish", "bullish"),
        _prediction("ETH/USDT", 3175, "hold", 68, 58, [
            ("hold", 54, 65, "Sideways channel on the hourly chart"),
            ("hold", 57, 63, "Weak, indecisive momentum"),
            ("hold", 49, 60, "Limited medium-term volatility"),
            ("sell", 53, 62, "Weak downtrend persisting"),
            ("hold", 58, 66, "Price oscillating around 3200"),
        ], [], "ranging", "medium", "neutral", "neutral"),
        _prediction("BNB/USDT", 502, "hold", 64, 56, [
            ("hold", 53, 62, "Tight channel between 498 and 508"),
            ("hold", 50, 60, "Weak, indecisive momentum"),
            ("hold", 47, 58, "Low volatility, easy to trade"),
            ("hold", 51, 59, "Overall sideways trend"),
            ("hold", 55, 63, "Overlapping candles with no clear direction"),
        ], [], "ranging", "low", "neutral", "neutral"),
    ],
    "4h": [
        _prediction("BTC/USDT", 67420, "buy", 88, 84, [
            ("buy", 88, 87, "Strong uptrend on the 4h chart"),
            ("buy", 84, 88, "Positive acceleration with growing volume"),
            ("hold", 58, 68, "Healthy volatility supports the trend"),
            ("buy", 86, 90, "Rising channel since the start of the month"),
            ("buy", 82, 85, "Rising supports with new highs"),
        ], [
            ("Higher Highs", "buy", 80, "Clear higher highs and higher lows"),
        ], "trending_up", "medium", "bullish", "bullish"),
        _prediction("SOL/USDT", 188, "buy", 79, 74, [
            ("buy", 75, 78, "Bullish pattern with strong support at 176"),
            ("buy", 73, 76, "Sustained momentum on the 4h chart"),
            ("hold", 53, 64, "Average volatility supports the trend"),
            ("buy", 74, 77, "Steady rising trendline"),
            ("buy", 78, 80, "Consecutive bullish candles above the 50 MA"),
        ], [
            ("Ascending Triangle", "buy", 72, "Possible breakout of 190 resistance"),
        ], "trending_up", "medium", "bullish", "bullish"),
    ],
    "1d": [
        _prediction("BTC/USDT", 67420, "buy", 86, 82, [
            ("buy", 84, 85, "Long-term bullish structure"),
            ("buy", 79, 83, "Positive momentum for 3 weeks"),
            ("hold", 56, 66, "Normal market volatility"),
            ("buy", 81, 84, "Coherent uptrend"),
            ("buy", 77, 82, "Rising supports with new highs"),
        ], [
            ("Golden Cross", "buy", 78, "Positive moving average crossover"),
        ], "trending_up", "medium", "bullish", "bullish"),
    ],
}

DEFAULT_TIMEFRAME = "1h"


def account_snapshot() -> Dict:
    return {
        "connected": True,
        "totalBalance": 125_400,
        "availableBalance": 87_200,
        "message": "Account data refreshes every 10 seconds.",
        "positions": [
            {"symbol": "BTCUSDT", "side": "LONG", "entryPrice": 67250.45, "quantity": 0.35, "leverage": 5},
            {"symbol": "ETHUSDT", "side": "SHORT", "entryPrice": 3185.6, "quantity": 4.5, "leverage": 4},
            {"symbol": "SOLUSDT", "side": "LONG", "entryPrice": 182.75, "quantity": 120, "leverage": 2},
        ],
    }
