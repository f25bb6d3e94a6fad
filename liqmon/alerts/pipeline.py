"""Evaluate, record and deliver alerts for the current reading."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List

from liqmon.ingestion.catalog import load_symbol_table
from liqmon.scoring import ScoringEngine, load_scoring_config
from liqmon.scoring.pipeline import AnalysisReport, analyze
from liqmon.scoring.repository import ObservationRepository
from liqmon.scoring.storage import LiquidityStore
from liqmon.settings import Settings

from .notifier import EmailNotifier, LogNotifier, Notifier, deliver_alerts
from .rules import Alert, AlertEvaluator, load_alert_thresholds

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AlertSummary:
    report: AnalysisReport
    alerts: List[Alert] = field(default_factory=list)
    delivered: bool = False


def build_notifier(settings: Settings, labels=None) -> Notifier:
    if settings.smtp_host and settings.alert_recipient:
        return EmailNotifier(
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_sender,
            timeout=settings.request_timeout,
            labels=labels,
        )
    return LogNotifier(labels=labels)


def run_alerts(
    settings: Settings,
    run_id: str,
    *,
    as_of: date | None = None,
    notifier: Notifier | None = None,
) -> AlertSummary:
    """Score the stored observations, then log and send any alerts raised."""

    config = load_scoring_config(settings.scoring_config)
    thresholds = load_alert_thresholds(settings.scoring_config)
    table = load_symbol_table(settings.indicator_catalog)
    series = ObservationRepository(settings.sqlite_path).series_map(table.keys())
    report = analyze(
        series,
        ScoringEngine(config),
        as_of=as_of or date.today(),
        wow_lookback_days=settings.wow_lookback_days,
    )
    alerts = AlertEvaluator(thresholds).evaluate(report.result)
    summary = AlertSummary(report=report, alerts=alerts)
    if not alerts:
        logger.info("No alert thresholds crossed (score %d)", report.result.score)
        return summary

    notifier = notifier or build_notifier(settings, labels=config.labels)
    recipient = settings.alert_recipient or "log"
    summary.delivered = deliver_alerts(notifier, recipient, alerts, report.result)

    result = report.result
    rows = [
        {
            "run_id": run_id,
            "reference_date": result.as_of.isoformat() if result.as_of else None,
            "timestamp": result.timestamp.isoformat(),
            "level": alert.level,
            "message": alert.message,
            "action": alert.action,
            "score": result.score,
            "signal": result.signal.value,
            "delivered": summary.delivered,
        }
        for alert in alerts
    ]
    LiquidityStore(settings.sqlite_path).append_rows("alert_history", rows)
    return summary


__all__ = ["AlertSummary", "build_notifier", "run_alerts"]
