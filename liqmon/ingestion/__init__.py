"""Liquidity monitor ingestion stage."""
from __future__ import annotations

import logging

from liqmon.core import register_stage
from liqmon.core.registry import StageContext

from .pipeline import run_pipeline

logger = logging.getLogger(__name__)


@register_stage("ingest", "Fetch indicator series and store the observations.")
def run(context: StageContext) -> None:
    """Execute the ingestion pipeline."""

    logger.info("Starting ingestion into %s", context.settings.sqlite_path)
    results = run_pipeline(context)
    successes = sum(1 for entry in results if entry.status == "success")
    failures = len(results) - successes
    logger.info(
        "Ingestion completed: %d success, %d failure(s)",
        successes,
        failures,
    )
