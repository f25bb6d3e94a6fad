"""Backfill the score history from stored observations."""
from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import List

from liqmon.ingestion.catalog import load_symbol_table
from liqmon.scoring import CompositeResult, ScoringEngine, load_scoring_config
from liqmon.scoring.repository import ObservationRepository
from liqmon.scoring.storage import LiquidityStore

from .reconstructor import HistoryReconstructor

logger = logging.getLogger(__name__)


def run_backfill(
    *,
    sqlite_path: Path,
    config_path: Path,
    catalog_path: Path,
    run_id: str,
    start: date,
) -> List[CompositeResult]:
    """Reconstruct scores since *start* and append them to ``score_history``.

    Every result is computed before the first row is written, so an
    :class:`InsufficientDataError` or any other failure leaves the table
    untouched.
    """

    config = load_scoring_config(config_path)
    table = load_symbol_table(catalog_path)
    series = ObservationRepository(sqlite_path).series_map(table.keys())

    reconstructor = HistoryReconstructor(
        ScoringEngine(config),
        symbols=table.required(),
        anchor=table.anchor,
    )
    results = reconstructor.reconstruct(series, start).results()

    degraded = sum(1 for result in results if result.is_error)
    if degraded:
        logger.warning("%d of %d historical point(s) could not be scored", degraded, len(results))

    rows = []
    for result in results:
        row = result.to_row()
        row["run_id"] = run_id
        rows.append(row)
    written = LiquidityStore(sqlite_path).append_rows("score_history", rows)
    logger.info("Appended %d historical score(s) from %s to %s", written, results[0].as_of, results[-1].as_of)
    return results


__all__ = ["run_backfill"]
