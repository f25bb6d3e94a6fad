"""Liquidity monitor history backfill stage."""
from __future__ import annotations

import logging

from liqmon.core import register_stage
from liqmon.core.registry import StageContext

from .pipeline import run_backfill
from .reconstructor import HistoryReconstructor, InsufficientDataError, ScoreTimeline, reconstruct

logger = logging.getLogger(__name__)

__all__ = [
    "HistoryReconstructor",
    "InsufficientDataError",
    "ScoreTimeline",
    "reconstruct",
    "run_backfill",
]


@register_stage("backfill", "Reconstruct the weekly score history since the configured start date.")
def run(context: StageContext) -> None:
    """Execute the history backfill."""

    settings = context.settings
    logger.info("Starting backfill from %s", settings.history_start)
    try:
        results = run_backfill(
            sqlite_path=settings.sqlite_path,
            config_path=settings.scoring_config,
            catalog_path=settings.indicator_catalog,
            run_id=context.run_id,
            start=settings.history_start,
        )
    except InsufficientDataError as exc:
        logger.error("Backfill aborted, nothing written: %s", exc)
        raise
    logger.info("Backfill produced %d weekly score(s)", len(results))
