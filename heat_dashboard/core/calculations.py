"""
Core calculations for heat stress analysis.

This module contains the closed-form heat index (NWS/Steadman regression)
used as the comparison baseline for the lookup-based index, together with
the unit conversions and clamping it relies on.
"""

import numpy as np
import pandas as pd
from typing import Union

ArrayLike = Union[float, np.ndarray, pd.Series]

# Rothfusz regression coefficients (Fahrenheit, percent humidity)
HI_COEFFICIENTS = (
    -42.379,
    2.04901523,
    10.14333127,
    -0.22475541,
    -0.00683783,
    -0.05481717,
    0.00122874,
    0.00085282,
    -0.00000199,
)

HI_FLOOR_F = 80.0


class HeatCalculations:
    """Core calculations for heat stress indices."""

    @staticmethod
    def celsius_to_fahrenheit(temp_c: ArrayLike) -> ArrayLike:
        """Convert Celsius to Fahrenheit."""
        return temp_c * 9 / 5 + 32

    @staticmethod
    def fahrenheit_to_celsius(temp_f: ArrayLike) -> ArrayLike:
        """Convert Fahrenheit to Celsius."""
        return (temp_f - 32) * 5 / 9

    @staticmethod
    def clamp(value: float, min_val: float, max_val: float) -> float:
        """
        Clamp a value to the closed range [min_val, max_val].

        Raises:
            ValueError: If min_val is greater than max_val
        """
        if min_val > max_val:
            raise ValueError(f"Invalid range [{min_val}, {max_val}]")
        return max(min_val, min(max_val, value))

    @staticmethod
    def _regression(T, H):
        c = HI_COEFFICIENTS
        return (
            c[0] + c[1]*T + c[2]*H + c[3]*T*H
            + c[4]*T*T + c[5]*H*H + c[6]*T*T*H
            + c[7]*T*H*H + c[8]*T*T*H*H
        )

    @staticmethod
    def heat_index(temp_c: ArrayLike, humidity_pct: ArrayLike) -> ArrayLike:
        """
        Calculate the baseline heat index (feels like temperature).

        Uses the National Weather Service regression with its low and high
        humidity adjustments. Below 80 °F the index has no effect and the
        input temperature is returned unchanged.

        Args:
            temp_c: Air temperature in Celsius
            humidity_pct: Relative humidity percentage

        Returns:
            Heat index in Celsius
        """
        T = HeatCalculations.celsius_to_fahrenheit(temp_c)
        H = humidity_pct

        # Handle both single values and pandas Series / numpy arrays
        if hasattr(T, '__iter__') and not isinstance(T, str):
            T = np.asarray(T, dtype=float)
            H = np.broadcast_to(np.asarray(H, dtype=float), T.shape)
            hi = HeatCalculations._regression(T, H)

            low_rh = (H < 13) & (T >= 80) & (T <= 112)
            with np.errstate(invalid='ignore'):
                low_adj = ((13 - H) / 4) * np.sqrt((17 - np.abs(T - 95)) / 17)
            hi = np.where(low_rh, hi - low_adj, hi)

            high_rh = (H > 85) & (T >= 80) & (T <= 87)
            hi = np.where(high_rh, hi + ((H - 85) / 10) * ((87 - T) / 5), hi)

            result = np.where(T < HI_FLOOR_F, np.asarray(temp_c, dtype=float),
                              HeatCalculations.fahrenheit_to_celsius(hi))
            if isinstance(temp_c, pd.Series):
                return pd.Series(result, index=temp_c.index, name=temp_c.name)
            return result

        if T < HI_FLOOR_F:
            return temp_c

        hi = HeatCalculations._regression(T, H)
        if H < 13 and 80 <= T <= 112:
            hi -= ((13 - H) / 4) * np.sqrt((17 - abs(T - 95)) / 17)
        if H > 85 and 80 <= T <= 87:
            hi += ((H - 85) / 10) * ((87 - T) / 5)

        return float(HeatCalculations.fahrenheit_to_celsius(hi))
