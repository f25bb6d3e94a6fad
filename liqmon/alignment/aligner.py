"""Align sparse, mixed-frequency series onto a reference calendar."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Sequence

import pandas as pd

from .series import DateLike, IndicatorSeries, as_series, coerce_date, to_timestamp

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    """Every indicator's last known value as of one reference date.

    Indicators with no observation on or before ``as_of`` read as ``0.0``.
    That zero is indistinguishable from a genuine zero reading; the symbols
    affected are listed in ``errors`` so callers can report them.
    """

    as_of: date | None
    values: Mapping[str, float]
    errors: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))

    def get(self, symbol: str) -> float:
        return float(self.values.get(symbol, 0.0))

    def __getitem__(self, symbol: str) -> float:
        return self.get(symbol)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.values

    @property
    def symbols(self) -> Sequence[str]:
        return tuple(self.values)

    def to_dict(self) -> Dict[str, object]:
        return {
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "values": dict(self.values),
            "errors": dict(self.errors),
        }


class SeriesAligner:
    """Build snapshots for *indicators* from a set of raw series.

    Every series is wrapped in an :class:`IndicatorSeries` once, so each
    alignment is a forward-filling ``reindex`` over presorted observations.
    Indicators missing from *series_by_indicator* behave like empty series.
    """

    def __init__(
        self,
        series_by_indicator: Mapping[str, Mapping | IndicatorSeries],
        indicators: Iterable[str] | None = None,
    ) -> None:
        symbols = list(indicators) if indicators is not None else list(series_by_indicator)
        self.indicators = tuple(dict.fromkeys(symbols))
        self._series: Dict[str, IndicatorSeries] = {
            symbol: as_series(series_by_indicator.get(symbol), symbol=symbol)
            for symbol in self.indicators
        }

    def series(self, symbol: str) -> IndicatorSeries:
        return self._series[symbol]

    def frame(self, dates: Iterable[DateLike]) -> pd.DataFrame:
        """One row per date in *dates*, one forward-filled column per indicator."""

        days = [coerce_date(day) for day in dates]
        index = pd.DatetimeIndex([to_timestamp(day) for day in days])
        columns = {symbol: series.reindex(days).to_numpy() for symbol, series in self._series.items()}
        return pd.DataFrame(columns, index=index, columns=list(self.indicators), dtype=float)

    def snapshot(self, target: DateLike) -> IndicatorSnapshot:
        return next(self.snapshots([target]))

    def snapshots(self, dates: Iterable[DateLike]) -> Iterator[IndicatorSnapshot]:
        days = [coerce_date(day) for day in dates]
        aligned = self.frame(days)
        for position, as_of in enumerate(days):
            row = aligned.iloc[position]
            values = {symbol: float(row[symbol]) for symbol in self.indicators}
            errors = self._missing(as_of)
            if errors:
                logger.debug("Snapshot %s falls back to zero for %s", as_of, sorted(errors))
            yield IndicatorSnapshot(as_of=as_of, values=values, errors=errors)

    def _missing(self, as_of: date) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for symbol, series in self._series.items():
            first = series.first_date
            if first is None:
                errors[symbol] = "no observations"
            elif first > as_of:
                errors[symbol] = f"no observation on or before {as_of.isoformat()}"
        return errors


__all__ = ["IndicatorSnapshot", "SeriesAligner"]
