"""Liquidity monitor alerts stage."""
from __future__ import annotations

import logging

from liqmon.core import register_stage
from liqmon.core.registry import StageContext

from .notifier import EmailNotifier, LogNotifier, Notifier, deliver_alerts
from .pipeline import run_alerts
from .rules import Alert, AlertEvaluator, AlertThresholds, load_alert_thresholds

logger = logging.getLogger(__name__)

__all__ = [
    "Alert",
    "AlertEvaluator",
    "AlertThresholds",
    "EmailNotifier",
    "LogNotifier",
    "Notifier",
    "deliver_alerts",
    "load_alert_thresholds",
    "run_alerts",
]


@register_stage("alerts", "Check alert thresholds and notify the configured recipient.")
def run(context: StageContext) -> None:
    """Evaluate alert rules against the current reading."""

    summary = run_alerts(context.settings, context.run_id)
    if summary.alerts:
        logger.info(
            "Raised %d alert(s): %s (delivered: %s)",
            len(summary.alerts),
            ", ".join(alert.level for alert in summary.alerts),
            "yes" if summary.delivered else "no",
        )
