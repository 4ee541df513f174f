"""Errors raised by the aggregation engine to its callers."""


class GeoResolutionFailed(RuntimeError):
    """Raised when the search area cannot be resolved to a center coordinate."""


class InvalidSearchRequest(ValueError):
    """Raised when a search is missing its city or category."""
