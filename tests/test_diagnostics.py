from __future__ import annotations

from datetime import date, datetime

import pytest

from liqmon.scoring import ScoringEngine
from liqmon.scoring.diagnostics import (
    carry_risk,
    china_signal,
    debt_ceiling_risk,
    em_signal,
    funding_signal,
    regional_readings,
    tga_impact,
)
from liqmon.scoring.pipeline import analyze

from conftest import NEUTRAL_VALUES, weekly_series


@pytest.mark.parametrize(
    "growth, expected",
    [(12.5, "excess liquidity"), (11, "healthy growth"), (9, "neutral"), (7, "slowing growth"), (6, "liquidity shortage")],
)
def test_china_signal_bands(growth, expected) -> None:
    assert china_signal(growth) == expected


def test_carry_risk_needs_level_and_spread() -> None:
    assert carry_risk(152, 4.2) == "extreme risk"
    assert carry_risk(152, 3.0) == "moderate risk"
    assert carry_risk(147, 3.8) == "high risk"
    assert carry_risk(135, 4.5) == "stable"
    assert carry_risk(128, 1.0) == "unwind in progress"


def test_tga_impact_reaches_every_band() -> None:
    assert tga_impact(-150000) == "large liquidity injection"
    assert tga_impact(-60000) == "liquidity injection"
    assert tga_impact(0) == "neutral"
    assert tga_impact(60000) == "liquidity drain"
    assert tga_impact(150000) == "large liquidity drain"


def test_debt_ceiling_and_em_labels() -> None:
    assert debt_ceiling_risk(90000) == "debt ceiling risk"
    assert debt_ceiling_risk(150000) == "watch"
    assert debt_ceiling_risk(750000) == "sufficient"
    assert em_signal(1.5) == "EM strength"
    assert em_signal(-1.5) == "EM weakness"
    assert em_signal(0.4) == "neutral"


def test_funding_signal_regimes() -> None:
    assert funding_signal(2, 450000, 10000, 7000000) == "excess"
    assert funding_signal(12, 150000, -5000, 7000000) == "tight"
    assert funding_signal(2, 150000, 5000, 7000000) == "easing"
    assert funding_signal(7, 250000, 0, 7000000) == "neutral"


def test_regional_readings_default_missing_inputs_to_zero() -> None:
    readings = regional_readings({"carry_pair": 151.0, "us_10y": 4.5, "jgb_10y": 0.3})

    assert readings["japan"]["us_jp_spread"] == pytest.approx(4.2)
    assert readings["japan"]["carry_risk"] == "extreme risk"
    assert readings["china"]["signal"] == "liquidity shortage"
    assert readings["treasury"]["debt_ceiling"] == "debt ceiling risk"


def test_analyze_adds_treasury_month_change() -> None:
    start = date(2024, 1, 3)
    series = {symbol: weekly_series(symbol, start, [value] * 6) for symbol, value in NEUTRAL_VALUES.items()}
    series["treasury_account"] = weekly_series(
        "treasury_account", start, [750000, 750000, 700000, 650000, 600000, 500000]
    )

    report = analyze(series, ScoringEngine(), as_of=date(2024, 2, 7), now=datetime(2024, 2, 7, 9))

    treasury = report.readings["treasury"]
    assert treasury["month_change"] == -250000
    assert treasury["week_change"] == -100000
    assert treasury["impact"] == "large liquidity injection"
    assert report.to_row("live")["details"]["readings"]["china"]["signal"] == "neutral"
    assert report.errors == {}
