from __future__ import annotations

from datetime import date, datetime

import pytest

from liqmon.alignment import IndicatorSnapshot
from liqmon.scoring.config import default_scoring_config
from liqmon.scoring.engine import ScoringEngine, em_strength_index, percent_change
from liqmon.scoring.models import CompositeResult, Signal

from conftest import NEUTRAL_VALUES, snapshot_of


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


def _score_with_wow(engine: ScoringEngine, symbol: str, delta: float) -> CompositeResult:
    previous = snapshot_of()
    current = snapshot_of(**{symbol: NEUTRAL_VALUES[symbol] + delta})
    return engine.score(current, previous)


def test_neutral_snapshot_scores_zero(engine, neutral_snapshot) -> None:
    result = engine.score(neutral_snapshot)

    assert result.score == 0
    assert result.signal is Signal.NEUTRAL
    assert all(points == 0 for points in result.components.line_items.values())


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (60000, 20),
        (50000, 10),
        (50001, 20),
        (10000, 0),
        (10001, 10),
        (-10000, 0),
        (-10001, -10),
        (-50000, -10),
        (-50001, -20),
    ],
)
def test_balance_sheet_bands_are_strict(engine, delta, expected) -> None:
    result = _score_with_wow(engine, "balance_sheet", delta)
    assert result.components.line_items["balance_sheet"] == expected
    assert result.score == expected


@pytest.mark.parametrize(
    ("delta", "expected"),
    [(-100001, 10), (-100000, 5), (-50000, 0), (50000, 0), (50001, -5), (100001, -10)],
)
def test_treasury_account_bands(engine, delta, expected) -> None:
    assert _score_with_wow(engine, "treasury_account", delta).score == expected


@pytest.mark.parametrize(
    ("level", "expected"),
    [(600000, -15), (500000, -10), (300001, -10), (300000, 0), (200000, 5), (100000, 10), (0, 10)],
)
def test_reverse_repo_level_bands(engine, level, expected) -> None:
    assert engine.score(snapshot_of(reverse_repo=level)).score == expected


@pytest.mark.parametrize(
    ("delta", "expected"),
    [(-2.5, 25), (-2.0, 20), (-1.0, 0), (1.0, 0), (1.5, -20), (2.0, -20), (2.01, -25)],
)
def test_dollar_index_bands(engine, delta, expected) -> None:
    assert _score_with_wow(engine, "dollar_index", delta).score == expected


@pytest.mark.parametrize(
    ("growth", "expected"),
    [(12.5, 20), (12.0, 15), (10.0, 0), (8.0, 0), (7.9, -10), (6.0, -10), (5.9, -20)],
)
def test_money_supply_growth_bands(engine, growth, expected) -> None:
    assert engine.score(snapshot_of(money_supply_growth=growth)).score == expected


@pytest.mark.parametrize(
    ("rate", "expected"),
    [(160, -15), (155, -10), (150, -5), (145, 0), (130, 0), (129.9, 5)],
)
def test_carry_pair_bands(engine, rate, expected) -> None:
    assert engine.score(snapshot_of(carry_pair=rate)).score == expected


def test_percent_change_without_base_is_zero() -> None:
    assert percent_change(10.0, 0.0) == 0.0
    assert percent_change(110.0, 100.0) == pytest.approx(10.0)


def test_em_strength_index_is_negative_mean_of_pair_moves() -> None:
    previous = snapshot_of(em_krw=1000.0, em_brl=5.0, em_mxn=20.0)
    current = snapshot_of(em_krw=970.0, em_brl=4.85, em_mxn=19.4)

    index = em_strength_index(current, previous, ("em_krw", "em_brl", "em_mxn"))

    assert index == pytest.approx(3.0)


def test_em_strength_feeds_em_factor(engine) -> None:
    previous = snapshot_of()
    weaker = snapshot_of(
        em_krw=NEUTRAL_VALUES["em_krw"] * 1.03,
        em_brl=NEUTRAL_VALUES["em_brl"] * 1.03,
        em_mxn=NEUTRAL_VALUES["em_mxn"] * 1.03,
    )

    result = engine.score(weaker, previous)

    assert result.value("em_strength") == pytest.approx(-3.0)
    assert result.components.factor("em") == -15
    assert result.score == -15


@pytest.mark.parametrize(
    ("strength", "expected"),
    [
        (2.01, 15),
        (2, 10),
        (1.01, 10),
        (1, 0),
        (-1, 0),
        (-1.01, -10),
        (-2, -10),
        (-2.01, -15),
    ],
)
def test_em_strength_bands_are_strict(engine, strength, expected) -> None:
    pairs = ("em_krw", "em_brl", "em_mxn")
    previous = snapshot_of(**{pair: 100.0 for pair in pairs})
    current = snapshot_of(**{pair: 100.0 - strength for pair in pairs})

    result = engine.score(current, previous)

    assert result.value("em_strength") == pytest.approx(strength)
    assert result.components.line_items["em_strength"] == expected
    assert result.score == expected


def test_results_and_snapshots_are_read_only(engine) -> None:
    values = dict(NEUTRAL_VALUES)
    snapshot = IndicatorSnapshot(as_of=date(2024, 1, 3), values=values)
    result = engine.score(snapshot)

    with pytest.raises(TypeError):
        result.derived["carry_pair"] = 160.0
    with pytest.raises(TypeError):
        result.snapshot.values["carry_pair"] = 160.0
    with pytest.raises(TypeError):
        result.components.line_items["carry_pair"] = -15

    values["carry_pair"] = 160.0
    assert result.value("carry_pair") == 135.0
    assert result.to_row()["details"]["derived"]["carry_pair"] == 135.0


@pytest.mark.parametrize(
    ("overrides", "factor", "expected"),
    [
        ({"reverse_repo": 50000}, "us", 10),
        ({"money_supply_growth": 11}, "china", 15),
        ({"carry_pair": 152}, "japan", -10),
    ],
)
def test_composite_equals_isolated_factor(engine, overrides, factor, expected) -> None:
    result = engine.score(snapshot_of(**overrides))

    assert result.components.factor(factor) == expected
    assert result.score == expected
    assert result.score == sum(result.components.factors.values())


def test_composite_is_sum_of_all_line_items(engine) -> None:
    previous = snapshot_of()
    current = snapshot_of(
        balance_sheet=NEUTRAL_VALUES["balance_sheet"] + 20000,
        dollar_index=NEUTRAL_VALUES["dollar_index"] - 1.5,
        money_supply_growth=13,
        carry_pair=147,
    )

    result = engine.score(current, previous)

    assert result.components.line_items["balance_sheet"] == 10
    assert result.components.line_items["dollar_index"] == 20
    assert result.components.line_items["money_supply_growth"] == 20
    assert result.components.line_items["carry_pair"] == -5
    assert result.score == 45 == sum(result.components.line_items.values())
    assert result.signal is Signal.HIGH_LIQUIDITY


def test_signal_bands_are_total_over_integer_scores() -> None:
    config = default_scoring_config()
    for score in range(-200, 201):
        matches = [
            band
            for position, band in enumerate(config.signal_bands)
            if (band.min_score is None or score >= band.min_score)
            and all(
                earlier.min_score is not None and score < earlier.min_score
                for earlier in config.signal_bands[:position]
            )
        ]
        assert len(matches) == 1, score
        assert config.signal_for(score) is matches[0].signal


@pytest.mark.parametrize(
    ("score", "signal"),
    [
        (80, Signal.SUPER_HIGH_LIQUIDITY),
        (79, Signal.EXTREME_LIQUIDITY),
        (50, Signal.EXTREME_LIQUIDITY),
        (20, Signal.HIGH_LIQUIDITY),
        (19, Signal.NEUTRAL),
        (-20, Signal.NEUTRAL),
        (-21, Signal.TIGHT),
        (-50, Signal.TIGHT),
        (-51, Signal.EXTREME_TIGHT),
        (-80, Signal.EXTREME_TIGHT),
        (-81, Signal.CRISIS),
    ],
)
def test_signal_thresholds_are_inclusive_lower_bounds(score, signal) -> None:
    assert default_scoring_config().signal_for(score) is signal


def test_scenario_balance_sheet_expansion_is_high_liquidity(engine) -> None:
    previous = snapshot_of(date(2024, 1, 3))
    current = snapshot_of(date(2024, 1, 10), balance_sheet=NEUTRAL_VALUES["balance_sheet"] + 60000)

    result = engine.score(current, previous)

    assert result.components.factor("us") == 20
    assert result.score == 20
    assert result.signal is Signal.HIGH_LIQUIDITY
    assert result.recommendation == default_scoring_config().recommendations[Signal.HIGH_LIQUIDITY]


def test_scenario_drain_china_and_yen_is_tight(engine) -> None:
    result = engine.score(snapshot_of(reverse_repo=600000, money_supply_growth=5, carry_pair=160))

    assert result.components.line_items["reverse_repo"] == -15
    assert result.components.line_items["money_supply_growth"] == -20
    assert result.components.line_items["carry_pair"] == -15
    assert result.score == -50
    assert result.signal is Signal.TIGHT


def test_missing_previous_snapshot_means_zero_wow(engine) -> None:
    current = snapshot_of(balance_sheet=9_000_000)

    result = engine.score(current)

    assert result.value("balance_sheet_wow") == 0.0
    assert result.components.line_items["balance_sheet"] == 0


def test_zero_fallback_snapshot_still_scores(engine) -> None:
    snapshot = IndicatorSnapshot(
        as_of=date(2024, 1, 3),
        values={key: 0.0 for key in NEUTRAL_VALUES},
        errors={key: "no observations" for key in NEUTRAL_VALUES},
    )

    result = engine.score(snapshot)

    assert not result.is_error
    # Zero reverse repo and zero M2 growth still land in their bands.
    assert result.components.line_items["reverse_repo"] == 10
    assert result.components.line_items["money_supply_growth"] == -20
    assert result.components.line_items["carry_pair"] == 5


def test_scoring_failure_degrades_to_error_result(engine, monkeypatch, neutral_snapshot) -> None:
    def explode(*_args, **_kwargs):
        raise ArithmeticError("bad structure")

    monkeypatch.setattr(engine, "derive", explode)
    stamp = datetime(2024, 1, 3, 9, 0)

    result = engine.score(neutral_snapshot, timestamp=stamp)

    assert result.is_error
    assert result.signal is Signal.ERROR
    assert result.score == 0
    assert result.error == "bad structure"
    assert result.timestamp == stamp


def test_result_row_flattens_factor_scores(engine) -> None:
    result = engine.score(snapshot_of(carry_pair=160), timestamp=datetime(2024, 1, 3))

    row = result.to_row()

    assert row["reference_date"] == "2024-01-03"
    assert row["japan_score"] == -15
    assert row["signal"] == "neutral"
    assert row["details"]["components"]["line_items"]["carry_pair"] == -15
