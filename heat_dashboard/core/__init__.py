"""
Core heat stress index calculations: the baseline heat index and the
lookup-table index.
"""

from .calculations import HeatCalculations
from .lookup import (
    IndexFamily,
    LookupEngine,
    LookupTableCache,
    TableState,
    WorkLevel,
    effective_index,
    load_lookup_table,
    lookup_index,
    parse_lookup_table,
)

__all__ = [
    "HeatCalculations",
    "IndexFamily",
    "LookupEngine",
    "LookupTableCache",
    "TableState",
    "WorkLevel",
    "effective_index",
    "load_lookup_table",
    "lookup_index",
    "parse_lookup_table",
]
