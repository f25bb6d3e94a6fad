"""Date-keyed indicator series with as-of lookups."""
from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Iterable, Iterator, List, Tuple

import pandas as pd

DateLike = date | datetime | str


def coerce_date(value: DateLike) -> date:
    """Return *value* as a :class:`datetime.date`.

    Accepts dates, datetimes (the time part is dropped) and ISO 8601 strings.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Cannot interpret {value!r} as a date")


def to_timestamp(value: DateLike) -> pd.Timestamp:
    return pd.Timestamp(coerce_date(value))


def _empty() -> pd.Series:
    return pd.Series(dtype=float, index=pd.DatetimeIndex([]))


def _frame_series(observations) -> pd.Series:
    if isinstance(observations, IndicatorSeries):
        return observations.data
    if isinstance(observations, pd.Series):
        data = pd.to_numeric(observations, errors="coerce").astype(float)
        data.index = pd.DatetimeIndex([to_timestamp(key) for key in data.index])
    else:
        items = observations.items() if isinstance(observations, Mapping) else observations
        merged = {}
        for key, value in items:
            merged[to_timestamp(key)] = float(value)
        if not merged:
            return _empty()
        data = pd.Series(list(merged.values()), index=pd.DatetimeIndex(list(merged)), dtype=float)
    data = data.dropna()
    data = data[~data.index.duplicated(keep="last")]
    return data.sort_index()


class IndicatorSeries(Mapping):
    """Immutable ``date -> float`` mapping over a sorted pandas series.

    Gaps between observations are expected; they are never filled with
    zeros. Lookups for dates without an observation go through
    :meth:`as_of`, which carries the last known value forward.
    """

    __slots__ = ("symbol", "_data", "_dates")

    def __init__(
        self,
        observations: Mapping | pd.Series | Iterable[Tuple[DateLike, float]] = (),
        *,
        symbol: str = "",
    ) -> None:
        self.symbol = symbol
        self._data = _frame_series(observations)
        self._dates: Tuple[date, ...] = tuple(stamp.date() for stamp in self._data.index)

    def __getitem__(self, key: DateLike) -> float:
        try:
            stamp = to_timestamp(key)
        except (TypeError, ValueError) as exc:
            raise KeyError(key) from exc
        return float(self._data[stamp])

    def __contains__(self, key: object) -> bool:
        try:
            return to_timestamp(key) in self._data.index  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __iter__(self) -> Iterator[date]:
        return iter(self._dates)

    def __len__(self) -> int:
        return len(self._dates)

    def __repr__(self) -> str:
        span = f"{self._dates[0]}..{self._dates[-1]}" if self._dates else "empty"
        return f"IndicatorSeries({self.symbol or '?'}, {len(self)} obs, {span})"

    @property
    def data(self) -> pd.Series:
        """A copy of the underlying float series on a ``DatetimeIndex``."""

        return self._data.copy()

    @property
    def dates(self) -> Tuple[date, ...]:
        return self._dates

    @property
    def first_date(self) -> date | None:
        return self._dates[0] if self._dates else None

    @property
    def last_date(self) -> date | None:
        return self._dates[-1] if self._dates else None

    def as_of(self, target: DateLike, default: float = 0.0) -> float:
        """Return the value observed on or most recently before *target*."""

        if self._data.empty:
            return default
        value = self._data.asof(to_timestamp(target))
        if pd.isna(value):
            return default
        return float(value)

    def reindex(self, dates: Iterable[DateLike], default: float = 0.0) -> pd.Series:
        """Forward-fill onto *dates*; dates before the first observation get *default*."""

        index = pd.DatetimeIndex([to_timestamp(day) for day in dates])
        if self._data.empty:
            return pd.Series(default, index=index, dtype=float)
        return self._data.reindex(index, method="ffill").fillna(default)

    def latest(self) -> Tuple[date, float] | None:
        if not self._dates:
            return None
        return self._dates[-1], float(self._data.iloc[-1])

    def since(self, start: DateLike) -> "IndicatorSeries":
        """Return the observations dated on or after *start*."""

        return IndicatorSeries(self._data[self._data.index >= to_timestamp(start)], symbol=self.symbol)


def as_series(series: Mapping | IndicatorSeries | None, symbol: str = "") -> IndicatorSeries:
    if isinstance(series, IndicatorSeries):
        return series
    return IndicatorSeries(series if series is not None else {}, symbol=symbol)


def closest_value(series: Mapping | IndicatorSeries | None, target: DateLike) -> float:
    """Return ``series[target]`` or the last value before it, else ``0.0``.

    Strictly a step function: no interpolation between observations. Callers
    making repeated lookups should build an :class:`IndicatorSeries` once and
    pass it in, so the dates are only sorted a single time.
    """

    return as_series(series).as_of(target)


def reference_dates(anchor: Mapping | IndicatorSeries | None, start: DateLike | None = None) -> List[date]:
    """Sorted unique observation dates of *anchor* on or after *start*."""

    series = as_series(anchor)
    if start is not None:
        series = series.since(start)
    return list(series.dates)


__all__ = [
    "DateLike",
    "IndicatorSeries",
    "as_series",
    "closest_value",
    "coerce_date",
    "reference_dates",
    "to_timestamp",
]
