class TrendError(Exception):
    """Base class for pipeline errors."""


class FetchError(TrendError):
    """Quote retrieval failed. Fatal for the collection loop."""


class DecodeError(FetchError):
    """Quote response could not be decoded into ticks."""


class EncodeError(TrendError):
    """A tick could not be turned into a point. Recoverable."""


class UnsupportedCurrencyError(EncodeError):
    def __init__(self, currency):
        self.currency = currency
        super().__init__(f"unsupported currency: {currency!r}")


class SinkError(TrendError):
    """The metrics database client could not be built."""
