"""
Performance statistics over closed trades.

Everything here is a pure function of the trades passed in; the exchange adapter
and the demo store feed it the same ``Trade`` models.
"""
from typing import Dict, Iterable, List

import pandas as pd

from tradeboard.models import Trade
from tradeboard.utils.numbers import round_int, round_number

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
# Sunday first, like the dashboard's weekday chart
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
TOP_PAIRS = 5


def closed_trades(trades: Iterable[Trade]) -> List[Trade]:
    return [trade for trade in trades if trade.status == "closed"]


def win_rate(trades: Iterable[Trade]) -> float:
    closed = closed_trades(trades)
    if not closed:
        return 0.0
    wins = [t for t in closed if (t.profit or 0) > 0]
    return round_number(len(wins) / len(closed) * 100, 2)


def summarize_trades(trades: Iterable[Trade]) -> Dict:
    closed = closed_trades(trades)
    wins = [t.profit for t in closed if (t.profit or 0) > 0]
    losses = [t.profit for t in closed if (t.profit or 0) < 0]

    avg_profit = sum(wins) / len(wins) if wins else 0.0
    avg_loss = abs(sum(losses) / len(losses)) if losses else 0.0

    # Both reductions start at 0, so an all-losing history reports bestTrade == 0
    best_trade = 0.0
    worst_trade = 0.0
    for trade in closed:
        best_trade = max(best_trade, trade.profit if trade.profit is not None else float("-inf"))
        worst_trade = min(worst_trade, trade.profit if trade.profit is not None else float("inf"))

    total_volume = sum(t.entry_price * t.quantity for t in closed)

    return {
        "closedTrades": len(closed),
        "winRate": win_rate(closed),
        "avgProfit": round_number(avg_profit, 2),
        "avgLoss": round_number(avg_loss, 2),
        "bestTrade": round_number(best_trade, 2),
        "worstTrade": round_number(worst_trade, 2),
        "totalVolume": round_int(total_volume),
    }


def build_breakdown(trades: Iterable[Trade]) -> Dict:
    """
    Time-bucketed P&L for the statistics page: monthly gains vs losses by exit
    month, weekday activity, the best pairs and the win/loss split.
    """
    closed = closed_trades(trades)
    wins = sum(1 for t in closed if (t.profit or 0) > 0)
    losses = sum(1 for t in closed if (t.profit or 0) < 0)
    result = {
        "monthly": [],
        "weekdays": [],
        "pairs": [],
        "outcomes": {"wins": wins, "losses": losses},
    }
    if not closed:
        return result

    frame = pd.DataFrame(
        {
            "symbol": [t.symbol for t in closed],
            "profit": [float(t.profit or 0) for t in closed],
            "exit_time": pd.to_datetime([t.exit_time for t in closed], utc=True),
        }
    )

    pairs = (
        frame.groupby("symbol", sort=False)["profit"]
        .agg(trades="count", profit="sum")
        .reset_index()
        .sort_values("profit", ascending=False, kind="stable")
        .head(TOP_PAIRS)
    )
    result["pairs"] = [
        {"pair": row.symbol, "trades": int(row.trades), "profit": round_number(float(row.profit), 2)}
        for row in pairs.itertuples(index=False)
    ]

    dated = frame.dropna(subset=["exit_time"])
    if dated.empty:
        return result

    monthly = pd.DataFrame(
        {
            "month": dated["exit_time"].dt.month,
            "profit": dated["profit"].where(dated["profit"] >= 0, 0.0),
            "loss": dated["profit"].where(dated["profit"] < 0, 0.0),
        }
    ).groupby("month").sum().sort_index()
    result["monthly"] = [
        {
            "month": MONTH_NAMES[int(month) - 1],
            "profit": round_number(float(row.profit), 2),
            "loss": round_number(float(row.loss), 2),
        }
        for month, row in monthly.iterrows()
    ]

    # pandas counts Monday as 0
    weekday = (dated["exit_time"].dt.dayofweek + 1) % 7
    weekdays = dated.groupby(weekday)["profit"].agg(trades="count", profit="sum").sort_index()
    result["weekdays"] = [
        {
            "day": WEEKDAY_NAMES[int(day)],
            "trades": int(row.trades),
            "profit": round_number(float(row.profit), 2),
        }
        for day, row in weekdays.iterrows()
    ]
    return result
