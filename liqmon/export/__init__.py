"""Liquidity monitor export stage."""
from __future__ import annotations

import logging

from liqmon.core import register_stage
from liqmon.core.registry import StageContext

from .generators import ExportGenerator, ExportSummary

logger = logging.getLogger(__name__)

__all__ = ["ExportGenerator", "ExportSummary"]


@register_stage("export", "Write CSV/Excel extracts of the score history, analyses and alerts.")
def run(context: StageContext) -> None:
    """Produce CSV/Excel files from the stored results."""

    generator = ExportGenerator(context.settings.sqlite_path, context.settings.output_dir)
    summary = generator.generate(context.run_id)
    if summary.empty:
        logger.warning("No results stored yet; skipping export for run %s.", context.run_id)
        return
    logger.info(
        "Exported %d history row(s), %d analysis row(s) and %d alert(s) for run %s.",
        summary.history_rows,
        summary.analysis_rows,
        summary.alert_rows,
        context.run_id,
    )
    for artifact in summary.files:
        logger.info("Export artifact written to %s", artifact)
