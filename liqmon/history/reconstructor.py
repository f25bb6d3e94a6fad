"""Rebuild the composite score over a date range."""
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Iterable, Iterator, List, Mapping, Sequence

from liqmon.alignment import DateLike, IndicatorSeries, SeriesAligner, coerce_date, reference_dates
from liqmon.ingestion.catalog import default_symbol_table
from liqmon.scoring import CompositeResult, ScoringEngine

logger = logging.getLogger(__name__)


class InsufficientDataError(RuntimeError):
    """Raised when a series is too sparse to reconstruct any history."""


class ScoreTimeline:
    """Lazily evaluated sequence of historical results.

    Reference dates are fixed at construction. Every iteration re-aligns
    and re-scores the whole range from the first date, so iterating twice
    yields equal results and nothing is cached between passes.
    """

    def __init__(
        self,
        aligner: SeriesAligner,
        engine: ScoringEngine,
        dates: Sequence[date],
    ) -> None:
        self.aligner = aligner
        self.engine = engine
        self.dates = tuple(dates)

    def __len__(self) -> int:
        return len(self.dates)

    def __iter__(self) -> Iterator[CompositeResult]:
        previous = None
        for snapshot in self.aligner.snapshots(self.dates):
            yield self.engine.score(
                snapshot,
                previous or snapshot,
                timestamp=datetime.combine(snapshot.as_of, time.min),
            )
            previous = snapshot

    def results(self) -> List[CompositeResult]:
        return list(self)


class HistoryReconstructor:
    """Replay the scoring engine over every anchor observation date."""

    def __init__(
        self,
        engine: ScoringEngine | None = None,
        symbols: Iterable[str] | None = None,
        anchor: str | None = None,
    ) -> None:
        table = default_symbol_table()
        self.engine = engine or ScoringEngine()
        self.symbols = tuple(symbols) if symbols is not None else tuple(table.required())
        self.anchor = anchor or table.anchor

    def reconstruct(
        self,
        series_by_indicator: Mapping[str, Mapping | IndicatorSeries],
        start_date: DateLike,
    ) -> ScoreTimeline:
        start = coerce_date(start_date)
        dates = reference_dates(series_by_indicator.get(self.anchor), start)
        if not dates:
            raise InsufficientDataError(
                f"No '{self.anchor}' observations on or after {start.isoformat()}; nothing to reconstruct"
            )
        symbols = self.symbols if self.anchor in self.symbols else (self.anchor, *self.symbols)
        aligner = SeriesAligner(series_by_indicator, symbols)
        logger.debug("Reconstructing %d reference dates from %s", len(dates), dates[0])
        return ScoreTimeline(aligner, self.engine, dates)


def reconstruct(
    series_by_indicator: Mapping[str, Mapping | IndicatorSeries],
    start_date: DateLike,
    engine: ScoringEngine | None = None,
) -> ScoreTimeline:
    """Shortcut for :meth:`HistoryReconstructor.reconstruct` with defaults."""

    return HistoryReconstructor(engine).reconstruct(series_by_indicator, start_date)


__all__ = ["HistoryReconstructor", "InsufficientDataError", "ScoreTimeline", "reconstruct"]
