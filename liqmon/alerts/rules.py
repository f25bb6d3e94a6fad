"""Threshold rules turning a composite result into alerts."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import List, Mapping

import yaml

from liqmon.scoring import CompositeResult, ConfigError

logger = logging.getLogger(__name__)

OPPORTUNITY = "OPPORTUNITY"
WARNING = "WARNING"
CHINA_RISK = "CHINA RISK"
YEN_RISK = "YEN RISK"
DXY_MOVE = "DXY MOVE"


@dataclass(slots=True, frozen=True)
class Alert:
    level: str
    message: str
    action: str

    def to_dict(self) -> dict:
        return {"level": self.level, "message": self.message, "action": self.action}


@dataclass(slots=True, frozen=True)
class AlertThresholds:
    """Trigger levels; loaded from the ``alerts`` section of the scoring YAML."""

    opportunity_score: float = 60
    warning_score: float = -30
    china_m2_floor: float = 7
    carry_pair_ceiling: float = 155
    dollar_move: float = 2

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "AlertThresholds":
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(f"Unknown alert threshold(s): {', '.join(unknown)}")
        values = {}
        for name, value in payload.items():
            try:
                values[name] = float(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Alert threshold '{name}' must be a number") from exc
        return cls(**values)


def load_alert_thresholds(path: Path | None = None) -> AlertThresholds:
    if path is None or not path.exists():
        return AlertThresholds()
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse alert thresholds: {exc}") from exc
    section = payload.get("alerts") if isinstance(payload, Mapping) else None
    if section is None:
        return AlertThresholds()
    if not isinstance(section, Mapping):
        raise ConfigError("The 'alerts' section must be a mapping")
    return AlertThresholds.from_mapping(section)


class AlertEvaluator:
    """Evaluate every rule against one result; rules are independent."""

    def __init__(self, thresholds: AlertThresholds | None = None) -> None:
        self.thresholds = thresholds or AlertThresholds()

    def evaluate(self, result: CompositeResult) -> List[Alert]:
        if result.is_error:
            logger.debug("No alerts evaluated for degraded result: %s", result.error)
            return []
        limits = self.thresholds
        alerts: List[Alert] = []

        if result.score >= limits.opportunity_score:
            alerts.append(Alert(OPPORTUNITY, "Global liquidity surge", result.recommendation))
        elif result.score <= limits.warning_score:
            alerts.append(Alert(WARNING, "Global liquidity contraction", result.recommendation))

        if result.value("money_supply_growth") < limits.china_m2_floor:
            alerts.append(Alert(CHINA_RISK, "China liquidity squeeze", "Reduce EM and commodity exposure"))

        if result.value("carry_pair") > limits.carry_pair_ceiling:
            alerts.append(Alert(YEN_RISK, "Yen carry-trade unwind risk", "Hedge volatility"))

        dollar_change = result.value("dollar_index_wow")
        if abs(dollar_change) > limits.dollar_move:
            rising = dollar_change > 0
            alerts.append(
                Alert(
                    DXY_MOVE,
                    f"Dollar {'surge' if rising else 'slump'} ({dollar_change:+.2f})",
                    "Prepare for risk-off" if rising else "Risk-on opportunity",
                )
            )
        return alerts


__all__ = [
    "Alert",
    "AlertEvaluator",
    "AlertThresholds",
    "CHINA_RISK",
    "DXY_MOVE",
    "OPPORTUNITY",
    "WARNING",
    "YEN_RISK",
    "load_alert_thresholds",
]
