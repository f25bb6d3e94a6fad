from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict

import pytest

from liqmon.alignment import IndicatorSeries, IndicatorSnapshot
from liqmon.core.registry import StageContext
from liqmon.ingestion.catalog import IndicatorDefinition, default_symbol_table
from liqmon.settings import Settings

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

NEUTRAL_VALUES: Dict[str, float] = {
    "balance_sheet": 7_000_000.0,
    "treasury_account": 750_000.0,
    "reverse_repo": 250_000.0,
    "dollar_index": 120.0,
    "money_supply_growth": 9.0,
    "carry_pair": 135.0,
    "em_krw": 1300.0,
    "em_brl": 5.0,
    "em_mxn": 17.0,
}


def snapshot_of(as_of: date | None = date(2024, 1, 3), **overrides: float) -> IndicatorSnapshot:
    """A snapshot where every line item scores zero unless overridden."""

    values = dict(NEUTRAL_VALUES)
    values.update(overrides)
    return IndicatorSnapshot(as_of=as_of, values=values)


def weekly_series(symbol: str, start: date, values, step_days: int = 7) -> IndicatorSeries:
    return IndicatorSeries(
        ((start + timedelta(days=step_days * index), value) for index, value in enumerate(values)),
        symbol=symbol,
    )


@pytest.fixture
def neutral_snapshot() -> IndicatorSnapshot:
    return snapshot_of()


@pytest.fixture
def stage_context(tmp_path: Path) -> StageContext:
    """Create a temporary stage context for tests."""

    settings = Settings(
        data_dir=tmp_path / "data",
        output_dir=tmp_path / "artifacts",
        sqlite_path=tmp_path / "liqmon.sqlite",
        scoring_config=CONFIG_DIR / "scoring.yaml",
        indicator_catalog=CONFIG_DIR / "indicators.yaml",
        fred_base_url="https://fred.example/graph/fredgraph.csv",
        nyfed_base_url="https://nyfed.example/api",
        request_timeout=1,
        cache_ttl=0,
        history_start=date(2024, 1, 1),
        series_lookback_days=400,
        wow_lookback_days=7,
        alert_recipient=None,
        smtp_host=None,
        smtp_port=25,
        smtp_sender="liqmon@localhost",
        log_level="INFO",
    )
    settings.ensure_directories()
    return StageContext(
        settings=settings,
        run_id="test-run",
        timestamp=datetime(2024, 1, 1, 12, 0, 0),
        workspace=tmp_path,
    )


def definition_for(symbol: str) -> IndicatorDefinition:
    return default_symbol_table()[symbol]
