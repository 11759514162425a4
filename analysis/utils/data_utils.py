"""
Utility functions for numeric coercion and rounding of stat values.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

import pandas as pd


class DataUtils:
    """Helpers for stat values that may be null, blank, or stored as text."""

    @staticmethod
    def to_int(value: Any) -> Optional[int]:
        """
        Coerce a raw stat value to int.

        Historical rows store unrecorded stats as NULL or an empty string;
        both come back as None rather than 0.
        """
        if value is None:
            return None
        if isinstance(value, float) and pd.isna(value):
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        try:
            return int(value)
        except (TypeError, ValueError):
            try:
                return int(float(value))
            except (TypeError, ValueError):
                return None

    @staticmethod
    def is_known(value: Any) -> bool:
        """True for a populated, nonzero number. Zero counts as unknown."""
        v = DataUtils.to_int(value)
        return v is not None and v != 0

    @staticmethod
    def sum_known(values: Iterable[Any]) -> Optional[int]:
        """
        Sum populated values, or None when nothing was populated.
        """
        total = None
        for v in values:
            iv = DataUtils.to_int(v)
            if iv is None:
                continue
            total = iv if total is None else total + iv
        return total

    @staticmethod
    def safe_divide(numerator: float, denominator: float, default: Optional[float] = None) -> Optional[float]:
        """
        Safely divide two numbers, returning default if denominator is 0 or None.
        """
        try:
            if numerator is None or denominator is None or denominator == 0:
                return default
            return numerator / denominator
        except (TypeError, ZeroDivisionError):
            return default

    @staticmethod
    def round_half_up(value: Any, places: int = 1) -> Optional[float]:
        """
        Round with halves going away from zero (2.25 -> 2.3), unlike round().
        """
        if value is None:
            return None
        try:
            quant = Decimal(1).scaleb(-places)
            return float(Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP))
        except (InvalidOperation, ValueError):
            return None
