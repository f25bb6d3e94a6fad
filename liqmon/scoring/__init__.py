"""Liquidity monitor scoring stage."""
from __future__ import annotations

import logging

from liqmon.core import register_stage
from liqmon.core.registry import StageContext

from .config import ConfigError, ScoringConfig, default_scoring_config, load_scoring_config
from .engine import ScoringEngine
from .models import CompositeResult, ScoreComponents, Signal
from .pipeline import run_pipeline

logger = logging.getLogger(__name__)

__all__ = [
    "CompositeResult",
    "ConfigError",
    "ScoreComponents",
    "ScoringConfig",
    "ScoringEngine",
    "Signal",
    "default_scoring_config",
    "load_scoring_config",
]


@register_stage("score", "Score the latest observations into a composite liquidity signal.")
def run(context: StageContext) -> None:
    """Execute the live scoring pipeline."""

    logger.info(
        "Starting scoring with database %s and config %s",
        context.settings.sqlite_path,
        context.settings.scoring_config,
    )
    try:
        report = run_pipeline(
            sqlite_path=context.settings.sqlite_path,
            config_path=context.settings.scoring_config,
            catalog_path=context.settings.indicator_catalog,
            run_id=context.run_id,
            wow_lookback_days=context.settings.wow_lookback_days,
        )
    except FileNotFoundError as exc:
        logger.error("Scoring configuration missing: %s", exc)
        raise

    result = report.result
    if result.is_error:
        logger.error("Scoring failed for %s: %s", result.as_of, result.error)
        return
    if report.errors:
        logger.warning("Zero fallback used for: %s", ", ".join(sorted(report.errors)))
    logger.info(
        "Composite score %d (%s) as of %s: %s",
        result.score,
        result.signal.value,
        result.as_of,
        result.recommendation,
    )
