"""
Error types for the heat stress dashboard.

Failures are grouped by how the pipeline reacts to them:

    TableUnavailable       lookup table missing or malformed; lookup family disabled
    FetchError             upstream request failed for good
    RateLimited            upstream kept answering 429 until retries ran out
    DegenerateAggregation  a reduction has too little data to be meaningful
"""

from typing import Optional


class HeatDashboardError(Exception):
    """Base class for all dashboard errors."""


class TableUnavailable(HeatDashboardError):
    """The heat stress lookup table could not be loaded."""


class FetchError(HeatDashboardError):
    """
    An upstream request did not produce a usable JSON body.

    Attributes:
        status: HTTP status of the last response, or None for transport errors
        url: Requested URL
    """

    def __init__(self, status: Optional[int], url: str, detail: str = ""):
        self.status = status
        self.url = url
        self.detail = detail
        if status is None:
            reason = f"request failed ({detail})" if detail else "request failed"
        else:
            reason = f"HTTP {status}"
        super().__init__(f"Fetch failed: {reason} for {url}; please try again later")


class RateLimited(FetchError):
    """Retries were exhausted while the upstream API kept rate limiting."""


class DegenerateAggregation(HeatDashboardError, ValueError):
    """Raised when an aggregation cannot be computed from the given input."""
