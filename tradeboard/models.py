from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TradeType = Literal["long", "short"]
TradeStatus = Literal["active", "closed", "pending", "cancelled"]
LogLevel = Literal["info", "warning", "error", "success"]
PositionSide = Literal["LONG", "SHORT", "BOTH"]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Trade(CamelModel):
    id: str
    user_id: Optional[str] = None
    symbol: str
    type: TradeType
    status: TradeStatus = "active"
    entry_price: float
    exit_price: Optional[float] = None
    quantity: float
    leverage: int = 1
    stop_loss: float
    take_profit: float
    profit: Optional[float] = None
    profit_percent: Optional[float] = None
    entry_time: datetime
    exit_time: Optional[datetime] = None
    entry_signals: List[str] = Field(default_factory=list)
    binance_order_id: Optional[str] = None
    trailing_stop_active: Optional[bool] = False
    trailing_stop_price: Optional[float] = None
    highest_price: Optional[float] = None
    lowest_price: Optional[float] = None
    is_auto_trade: bool = False

    @model_validator(mode="after")
    def check_exit_fields(self):
        if self.status == "closed" and (self.exit_price is None or self.exit_time is None):
            raise ValueError("closed trade requires exitPrice and exitTime")
        if self.status == "active" and (self.exit_price is not None or self.exit_time is not None):
            raise ValueError("active trade cannot carry exitPrice or exitTime")
        return self


class ActivityLog(CamelModel):
    id: str
    user_id: Optional[str] = None
    level: LogLevel = "info"
    message: str
    details: Optional[str] = None
    timestamp: datetime


class AccountPosition(CamelModel):
    symbol: str
    side: Literal["LONG", "SHORT"]
    entry_price: float
    quantity: float
    leverage: int = 1
    mark_price: Optional[float] = None
    unrealized_pnl: Optional[float] = None


class AccountState(CamelModel):
    connected: bool
    total_balance: float
    available_balance: float
    message: Optional[str] = None
    error: Optional[str] = None
    positions: List[AccountPosition] = Field(default_factory=list)


class MarketSnapshot(CamelModel):
    symbol: str
    price: float
    price_change_24h: float = Field(0.0, alias="priceChange24h")
    price_change_percent_24h: float = Field(0.0, alias="priceChangePercent24h")
    high_24h: Optional[float] = Field(None, alias="high24h")
    low_24h: Optional[float] = Field(None, alias="low24h")
    volume_24h: Optional[float] = Field(None, alias="volume24h")
    timestamp: datetime


class AutoTradingState(CamelModel):
    enabled: bool = False
    is_running: bool = False


class BotSettings(CamelModel):
    """
    The single bot configuration record. Unknown keys (per-strategy tuning such as
    breakoutLookbackPeriod) are kept as extras so they round-trip through the UI.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    user_id: Optional[str] = None
    binance_api_key: Optional[str] = None
    binance_api_secret: Optional[str] = None
    custom_api_url: Optional[str] = None
    is_testnet: Optional[bool] = True
    is_active: bool = False
    hedging_mode: bool = False

    # Risk & indicators
    max_risk_per_trade: float = 2
    risk_reward_ratio: float = 1.5
    ma_short_period: int = 50
    ma_long_period: int = 200
    rsi_period: int = 14
    rsi_overbought: float = 70
    rsi_oversold: float = 30
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    trading_pairs: List[str] = Field(default_factory=lambda: ["BTC/USDT", "ETH/USDT"])

    # Notifications
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    email_notifications: bool = False
    notification_email: Optional[str] = None

    # Automation
    auto_trading_enabled: bool = False
    min_signal_strength: float = 70
    max_daily_trades: int = 10
    trade_cooldown_minutes: int = 30
    trailing_stop_enabled: bool = False
    trailing_stop_percent: float = 1
    trailing_stop_activation_percent: float = 1
    trailing_stop_price_buffer: Optional[float] = None
    multi_timeframe_enabled: bool = False
    timeframes: List[str] = Field(default_factory=lambda: ["15m", "1h", "4h"])

    # Reports
    weekly_report_enabled: bool = False
    monthly_report_enabled: bool = False
    report_day: int = 0

    # AI / strategies
    ai_trading_enabled: bool = False
    ai_min_confidence: float = 70
    ai_min_signal_strength: float = 60
    ai_required_signals: int = 3
    advanced_strategies_enabled: bool = False
    enabled_strategies: List[str] = Field(
        default_factory=lambda: ["breakout", "momentum", "meanReversion", "swing"]
    )
    strategy_min_confidence: float = 60
    strategy_min_strength: float = 50
    require_strategy_consensus: bool = False

    # Position sizing & filters
    smart_position_sizing_enabled: bool = False
    atr_period: int = 14
    atr_multiplier: float = 1.5
    max_position_percent: float = 10
    min_position_percent: float = 1
    volatility_adjustment: bool = True
    market_filter_enabled: bool = False
    avoid_high_volatility: bool = True
    max_volatility_percent: float = 5
    trend_filter_enabled: bool = True
    min_trend_strength: float = 25
    avoid_ranging_market: bool = True

    # Account protection
    account_protection_enabled: bool = False
    max_daily_loss_percent: float = 5
    max_concurrent_trades: int = 3
    pause_after_consecutive_losses: int = 3
    diversification_enabled: bool = True

    created_at: Optional[str] = None
    updated_at: Optional[str] = None
