"""As-of alignment of indicator series onto a reference calendar."""
from __future__ import annotations

from .aligner import IndicatorSnapshot, SeriesAligner
from .series import (
    DateLike,
    IndicatorSeries,
    as_series,
    closest_value,
    coerce_date,
    reference_dates,
)

__all__ = [
    "DateLike",
    "IndicatorSeries",
    "IndicatorSnapshot",
    "SeriesAligner",
    "as_series",
    "closest_value",
    "coerce_date",
    "reference_dates",
]
