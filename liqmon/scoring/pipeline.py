from __future__ import annotations

"""Live analysis: align the latest observations, score them, persist."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, Mapping

from liqmon.alignment import IndicatorSeries, SeriesAligner
from liqmon.ingestion.catalog import load_symbol_table

from .config import load_scoring_config
from .diagnostics import regional_readings
from .engine import ScoringEngine
from .models import CompositeResult
from .repository import ObservationRepository
from .storage import LiquidityStore

logger = logging.getLogger(__name__)

TREASURY_MONTH_DAYS = 30


@dataclass(slots=True)
class AnalysisReport:
    """A live composite result plus the descriptive regional readings."""

    result: CompositeResult
    readings: Dict[str, object] = field(default_factory=dict)

    @property
    def errors(self) -> Mapping[str, str]:
        return self.result.snapshot.errors

    def to_row(self, run_id: str | None = None) -> Dict[str, object]:
        row = self.result.to_row()
        row["run_id"] = run_id
        details = dict(row["details"])
        details["readings"] = self.readings
        row["details"] = details
        return row


def analyze(
    series_by_indicator: Mapping[str, IndicatorSeries],
    engine: ScoringEngine,
    *,
    as_of: date,
    now: datetime | None = None,
    wow_lookback_days: int = 7,
) -> AnalysisReport:
    """Score the market as of *as_of* against the week before."""

    aligner = SeriesAligner(series_by_indicator)
    snapshot = aligner.snapshot(as_of)
    previous = aligner.snapshot(as_of - timedelta(days=wow_lookback_days))
    result = engine.score(snapshot, previous, timestamp=now or datetime.utcnow())

    readings: Dict[str, object] = {}
    if not result.is_error:
        values = dict(result.derived)
        if "treasury_account" in series_by_indicator:
            month_ago = as_of - timedelta(days=TREASURY_MONTH_DAYS)
            treasury = aligner.series("treasury_account")
            values["treasury_account_month_change"] = treasury.as_of(as_of) - treasury.as_of(month_ago)
        readings = regional_readings(values)
    return AnalysisReport(result=result, readings=readings)


def run_pipeline(
    *,
    sqlite_path: Path,
    config_path: Path,
    catalog_path: Path,
    run_id: str,
    as_of: date | None = None,
    wow_lookback_days: int = 7,
) -> AnalysisReport:
    """Execute the live scoring pipeline and persist its result."""

    config = load_scoring_config(config_path)
    table = load_symbol_table(catalog_path)
    repository = ObservationRepository(sqlite_path)
    series = repository.series_map(table.keys())
    empty = [key for key in table.required() if not series[key]]
    if empty:
        logger.warning("No stored observations for %s; run the ingest stage first.", ", ".join(empty))

    report = analyze(
        series,
        ScoringEngine(config),
        as_of=as_of or date.today(),
        wow_lookback_days=wow_lookback_days,
    )

    store = LiquidityStore(sqlite_path)
    row = report.to_row(run_id)
    store.append_row("analysis_history", row)
    store.upsert_latest("analysis_latest", row)
    return report


__all__ = ["AnalysisReport", "analyze", "run_pipeline"]
