import math
import time
from typing import Optional


def jitter(value: float, variance: float = 2.0, at: Optional[float] = None) -> float:
    """
    Smooth, deterministic wobble around ``value``.

    ``at`` is epoch seconds (defaults to now). The phase advances one radian per
    minute and is offset by the value itself, so different baselines polled at
    the same instant do not move in lockstep.
    """
    if at is None:
        at = time.time()
    return value + math.sin(at / 60.0 + value) * variance
