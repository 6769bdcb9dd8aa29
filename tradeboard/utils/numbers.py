import math
from typing import Optional, Union


def round_number(value: float, precision: int = 2) -> float:
    """Half-up rounding, so 0.125 -> 0.13 and -2.5 -> -2 (not banker's rounding)."""
    factor = 10 ** precision
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_number(value: Optional[Union[str, float, int]], precision: Optional[int] = 4) -> float:
    """
    Parse the exchange's decimal strings ("0.00120000") into floats.
    Anything unparsable or non-finite becomes 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            parsed = float(text)
        except ValueError:
            return 0.0
    else:
        parsed = float(value)

    if not math.isfinite(parsed):
        return 0.0
    return parsed if precision is None else round_number(parsed, precision)


def to_int(value: Optional[Union[str, float, int]], default: int = 0) -> int:
    try:
        parsed = int(float(value))
    except (TypeError, ValueError):
        return default
    return parsed or default


def normalize_quantity(quantity: float) -> str:
    """Fixed 8-decimal representation with trailing zeros stripped: 0.0100 -> "0.01"."""
    if quantity <= 0:
        return "0"
    text = f"{quantity:.8f}"
    return text.rstrip("0").rstrip(".")
