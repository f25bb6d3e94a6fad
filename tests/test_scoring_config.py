from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from liqmon.scoring.config import (
    Band,
    ConfigError,
    LineItemRule,
    default_scoring_config,
    load_scoring_config,
)
from liqmon.scoring.engine import ScoringEngine
from liqmon.scoring.models import Signal

from conftest import CONFIG_DIR, snapshot_of


def test_shipped_yaml_matches_builtin_tables() -> None:
    loaded = load_scoring_config(CONFIG_DIR / "scoring.yaml")
    builtin = default_scoring_config()

    assert loaded.line_items == builtin.line_items
    assert loaded.signal_bands == builtin.signal_bands
    assert loaded.em_pairs == builtin.em_pairs
    assert loaded.recommendations[Signal.CRISIS] == builtin.recommendations[Signal.CRISIS]


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_scoring_config(tmp_path / "absent.yaml")


def test_none_path_returns_defaults() -> None:
    assert load_scoring_config(None) == default_scoring_config()


def test_line_item_override_changes_engine_behaviour(tmp_path: Path) -> None:
    path = tmp_path / "scoring.yaml"
    path.write_text(
        """
line_items:
  carry_pair:
    bands:
      - {above: 140, score: -30}
""",
        encoding="utf-8",
    )

    config = load_scoring_config(path)
    result = ScoringEngine(config).score(snapshot_of(carry_pair=142))

    assert config.rule("carry_pair").factor == "japan"
    assert result.score == -30
    assert ScoringEngine().score(snapshot_of(carry_pair=142)).score == 0


def test_shadowed_band_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "scoring.yaml"
    path.write_text(
        """
line_items:
  dollar_index:
    bands:
      - {below: -1, score: 20}
      - {below: -2, score: 25}
""",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="shadowed"):
        load_scoring_config(path)


def test_signal_table_must_end_with_catch_all(tmp_path: Path) -> None:
    path = tmp_path / "scoring.yaml"
    path.write_text(
        """
signals:
  - {signal: high_liquidity, min: 20, recommendation: buy}
  - {signal: neutral, min: -20, recommendation: hold}
""",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="last signal band"):
        load_scoring_config(path)


def test_unknown_signal_name_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "scoring.yaml"
    path.write_text("signals:\n  - {signal: euphoric, min: 90}\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Unknown signal"):
        load_scoring_config(path)


def test_malformed_yaml_raises_config_error(tmp_path: Path) -> None:
    path = tmp_path / "scoring.yaml"
    path.write_text("line_items: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_scoring_config(path)


def test_with_line_item_validates_factor() -> None:
    rule = LineItemRule(name="vix", factor="volatility", input="vix", bands=(Band(score=-5, above=30),))

    with pytest.raises(ConfigError, match="unknown factor"):
        default_scoring_config().with_line_item(rule)


def test_with_line_item_adds_new_rule() -> None:
    rule = LineItemRule(name="vix", factor="us", input="vix", bands=(Band(score=-5, above=30),))
    config = default_scoring_config().with_line_item(rule)

    result = ScoringEngine(config).score(snapshot_of(vix=35))

    assert result.components.line_items["vix"] == -5
    assert result.score == -5


def test_labels_fall_back_to_signal_name() -> None:
    config = replace(default_scoring_config(), labels={})

    assert config.label_for(Signal.EXTREME_TIGHT) == "EXTREME TIGHT"
    assert default_scoring_config().label_for(Signal.SUPER_HIGH_LIQUIDITY) == "SUPER-HIGH LIQUIDITY"
