"""
IO Package for the Heat Stress Dashboard

HTTP fetching with retry, and the upstream query shapes.
"""

from .fetch_client import FetchClient, RetryPolicy
from .open_meteo import (
    current_query,
    fetch_long_term,
    history_query,
    long_term_query,
    merge_daily,
    projection_query,
    year_chunks
)

__all__ = [
    'FetchClient',
    'RetryPolicy',
    'current_query',
    'fetch_long_term',
    'history_query',
    'long_term_query',
    'merge_daily',
    'projection_query',
    'year_chunks'
]
