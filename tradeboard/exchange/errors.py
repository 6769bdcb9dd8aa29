from typing import Optional


class ExchangeError(Exception):
    """Base class for anything that went wrong talking to the exchange."""


class ExchangeAPIError(ExchangeError):
    """
    Non-2xx answer from Binance, or a transport failure before one arrived
    (connection refused, timeout). ``status`` is None for the latter.
    """

    def __init__(self, status: Optional[int], body: str):
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"Binance API unreachable: {body}")
        else:
            super().__init__(f"Binance API error ({status}): {body}")


class ExchangeResponseError(ExchangeError):
    """The exchange answered 2xx with a body that is not JSON."""
