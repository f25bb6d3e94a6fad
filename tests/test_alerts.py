from __future__ import annotations

import logging
import smtplib
from datetime import date, datetime
from pathlib import Path

import pytest

from liqmon.alerts import (
    Alert,
    AlertEvaluator,
    AlertThresholds,
    EmailNotifier,
    LogNotifier,
    deliver_alerts,
    load_alert_thresholds,
    run_alerts,
)
from liqmon.alerts.rules import CHINA_RISK, DXY_MOVE, OPPORTUNITY, WARNING, YEN_RISK
from liqmon.ingestion.storage import ObservationStore
from liqmon.scoring import ConfigError, ScoringEngine
from liqmon.scoring.models import CompositeResult
from liqmon.scoring.storage import LiquidityStore

from conftest import CONFIG_DIR, NEUTRAL_VALUES, definition_for, snapshot_of, weekly_series


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


def _levels(alerts):
    return [alert.level for alert in alerts]


def test_neutral_reading_raises_no_alerts(engine, neutral_snapshot) -> None:
    assert AlertEvaluator().evaluate(engine.score(neutral_snapshot)) == []


def test_score_thresholds_raise_opportunity_and_warning(engine) -> None:
    previous = snapshot_of()
    surge = snapshot_of(
        balance_sheet=NEUTRAL_VALUES["balance_sheet"] + 60000,
        dollar_index=NEUTRAL_VALUES["dollar_index"] - 1.5,
        money_supply_growth=12.5,
    )
    surge_result = engine.score(surge, previous)
    assert surge_result.score == 60

    contraction = engine.score(snapshot_of(reverse_repo=600000, carry_pair=152, money_supply_growth=7.5))
    assert contraction.score == -35

    assert _levels(AlertEvaluator().evaluate(surge_result)) == [OPPORTUNITY]
    alerts = AlertEvaluator().evaluate(contraction)
    assert _levels(alerts) == [WARNING]
    assert alerts[0].action == contraction.recommendation


def test_indicator_rules_fire_independently(engine) -> None:
    previous = snapshot_of()
    current = snapshot_of(
        money_supply_growth=6.5,
        carry_pair=156,
        dollar_index=NEUTRAL_VALUES["dollar_index"] + 2.5,
    )

    alerts = AlertEvaluator().evaluate(engine.score(current, previous))

    assert _levels(alerts) == [WARNING, CHINA_RISK, YEN_RISK, DXY_MOVE]
    assert alerts[-1].message == "Dollar surge (+2.50)"
    assert alerts[-1].action == "Prepare for risk-off"


def test_dollar_slump_suggests_risk_on(engine) -> None:
    current = snapshot_of(dollar_index=NEUTRAL_VALUES["dollar_index"] - 3)

    alerts = AlertEvaluator().evaluate(engine.score(current, snapshot_of()))

    assert _levels(alerts) == [DXY_MOVE]
    assert alerts[0].action == "Risk-on opportunity"


def test_degraded_result_raises_no_alerts(neutral_snapshot) -> None:
    result = CompositeResult.degraded(snapshot_of(money_supply_growth=1), datetime(2024, 1, 3), "boom")
    assert AlertEvaluator().evaluate(result) == []


def test_thresholds_load_from_scoring_yaml(tmp_path: Path) -> None:
    assert load_alert_thresholds(CONFIG_DIR / "scoring.yaml") == AlertThresholds()
    assert load_alert_thresholds(tmp_path / "absent.yaml") == AlertThresholds()

    path = tmp_path / "scoring.yaml"
    path.write_text("alerts:\n  carry_pair_ceiling: 150\n", encoding="utf-8")
    assert load_alert_thresholds(path).carry_pair_ceiling == 150.0

    path.write_text("alerts:\n  vix_ceiling: 30\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_alert_thresholds(path)


def test_email_message_contains_alerts_and_indicators(engine) -> None:
    result = engine.score(snapshot_of(carry_pair=156))
    alerts = [Alert(YEN_RISK, "Yen carry-trade unwind risk", "Hedge volatility")]

    message = EmailNotifier("smtp.example", sender="monitor@example.com").build_message(
        "desk@example.com", alerts, result
    )

    assert message["To"] == "desk@example.com"
    assert "NEUTRAL" in message["Subject"]
    text = message.get_body(("plain",)).get_content()
    html = message.get_body(("html",)).get_content()
    assert "USD/JPY: 156.00" in text
    assert "[YEN RISK] Yen carry-trade unwind risk -> Hedge volatility" in text
    assert "<em>Hedge volatility</em>" in html


def test_delivery_failure_is_logged_not_raised(engine, caplog) -> None:
    class BrokenNotifier:
        def send(self, recipient, alerts, result):
            raise smtplib.SMTPServerDisconnected("connection lost")

    alerts = [Alert(OPPORTUNITY, "Global liquidity surge", "Buy")]
    with caplog.at_level(logging.ERROR, logger="liqmon.alerts.notifier"):
        delivered = deliver_alerts(BrokenNotifier(), "desk@example.com", alerts, engine.score(snapshot_of()))

    assert delivered is False
    assert "connection lost" in caplog.text


def test_log_notifier_writes_warnings(engine, caplog) -> None:
    alerts = [Alert(CHINA_RISK, "China liquidity squeeze", "Reduce EM and commodity exposure")]
    with caplog.at_level(logging.WARNING, logger="liqmon.alerts.notifier"):
        assert deliver_alerts(LogNotifier(), "log", alerts, engine.score(snapshot_of()))

    assert "[CHINA RISK]" in caplog.text


def test_run_alerts_records_history(stage_context) -> None:
    settings = stage_context.settings
    store = ObservationStore(settings.sqlite_path)
    start = date(2024, 1, 3)
    for symbol, value in NEUTRAL_VALUES.items():
        values = [value, value]
        if symbol == "carry_pair":
            values = [value, 158.0]
        store.upsert_series("seed", definition_for(symbol), weekly_series(symbol, start, values))

    sent = []

    class RecordingNotifier:
        def send(self, recipient, alerts, result):
            sent.append((recipient, list(alerts), result.score))

    summary = run_alerts(settings, "alert-run", as_of=date(2024, 1, 10), notifier=RecordingNotifier())

    assert _levels(summary.alerts) == [YEN_RISK]
    assert summary.delivered is True
    assert sent[0][0] == "log"
    rows = LiquidityStore(settings.sqlite_path).rows("alert_history")
    assert [(row["level"], row["run_id"], row["delivered"]) for row in rows] == [(YEN_RISK, "alert-run", 1)]
    assert rows[0]["reference_date"] == "2024-01-10"
