"""
Domain error taxonomy.

Errors raised by the query layer are mapped to HTTP responses by the
exception handlers registered in klima.main:

- InvalidRequestError -> 400 (the caller can fix the request)
- NotFoundError -> 404 (valid request, no qualifying records)
- DataSourceError -> 503 (store unreachable or query failed; detail is logged only)
"""


class KlimaError(Exception):
    """Base class for all errors raised by the climate query layer."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRequestError(KlimaError):
    """Request cannot be answered as asked: unknown layer, parameter or combination."""


class UnsupportedCombinationError(InvalidRequestError):
    """An (indicator, period) pair does not resolve to a stored column."""

    def __init__(self, indicator: str, period: str, reason: str):
        super().__init__(
            f"Unsupported combination indicator='{indicator}', period='{period}': {reason}"
        )
        self.indicator = indicator
        self.period = period
        self.reason = reason


class NotFoundError(KlimaError):
    """The request was valid but no records qualified."""


class DataSourceError(KlimaError):
    """The backing store is unreachable or a query failed."""

    public_detail = "Climate data source is currently unavailable"
