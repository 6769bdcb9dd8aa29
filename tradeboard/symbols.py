"""
Symbol naming.

The dashboard shows pairs as ``BASE/QUOTE`` while Binance Futures uses the
concatenated form (``BTCUSDT``). Quote assets are checked in ranked order, so
longer or more common stablecoins win over shorter suffixes.
"""

QUOTE_ASSETS = (
    "USDT",
    "USDC",
    "BUSD",
    "TUSD",
    "FDUSD",
    "BTC",
    "ETH",
    "BNB",
    "TRY",
    "EUR",
    "AUD",
    "GBP",
    "DAI",
    "BRL",
    "IDR",
)


def format_display_symbol(symbol: str) -> str:
    """BTCUSDT -> BTC/USDT. Unknown quote assets are returned unchanged."""
    for quote in QUOTE_ASSETS:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            base = symbol[: -len(quote)]
            return f"{base}/{quote}"
    return symbol


def pair_to_symbol(pair: str) -> str:
    """BTC/USDT -> BTCUSDT. Also accepts an already concatenated symbol."""
    if not pair:
        return ""
    return pair.replace("/", "", 1).upper()
