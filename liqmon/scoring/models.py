from __future__ import annotations

"""Value objects produced by the scoring engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from liqmon.alignment import IndicatorSnapshot

FACTORS = ("us", "dollar", "china", "japan", "em")


class Signal(str, Enum):
    """Categorical liquidity regime, ordered from loosest to tightest."""

    SUPER_HIGH_LIQUIDITY = "super_high_liquidity"
    EXTREME_LIQUIDITY = "extreme_liquidity"
    HIGH_LIQUIDITY = "high_liquidity"
    NEUTRAL = "neutral"
    TIGHT = "tight"
    EXTREME_TIGHT = "extreme_tight"
    CRISIS = "crisis"
    ERROR = "error"

    @classmethod
    def parse(cls, value: "Signal | str") -> "Signal":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        return cls(normalized)


@dataclass(slots=True, frozen=True)
class ScoreComponents:
    """Line-item scores grouped into the five regional factors."""

    line_items: Mapping[str, int]
    factors: Mapping[str, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "line_items", MappingProxyType(dict(self.line_items)))
        object.__setattr__(self, "factors", MappingProxyType(dict(self.factors)))

    @property
    def total(self) -> int:
        return sum(self.factors.values())

    def factor(self, name: str) -> int:
        return int(self.factors.get(name, 0))

    def to_dict(self) -> Dict[str, object]:
        return {"line_items": dict(self.line_items), "factors": dict(self.factors)}


@dataclass(slots=True, frozen=True)
class CompositeResult:
    """One scored reading. Never mutated after the engine returns it."""

    score: int
    signal: Signal
    recommendation: str
    timestamp: datetime
    snapshot: IndicatorSnapshot
    components: Optional[ScoreComponents] = None
    derived: Mapping[str, float] = field(default_factory=dict)
    error: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "derived", MappingProxyType(dict(self.derived)))

    @property
    def is_error(self) -> bool:
        return self.signal is Signal.ERROR

    @property
    def as_of(self):
        return self.snapshot.as_of

    def value(self, name: str) -> float:
        """Return a derived quantity such as ``dollar_index_wow``."""

        return float(self.derived.get(name, 0.0))

    @classmethod
    def degraded(
        cls,
        snapshot: IndicatorSnapshot,
        timestamp: datetime,
        message: str,
    ) -> "CompositeResult":
        return cls(
            score=0,
            signal=Signal.ERROR,
            recommendation="",
            timestamp=timestamp,
            snapshot=snapshot,
            components=None,
            derived={},
            error=message,
        )

    def to_row(self) -> Dict[str, object]:
        """Flatten the result into a storage row."""

        row: Dict[str, object] = {
            "reference_date": self.as_of.isoformat() if self.as_of else None,
            "timestamp": self.timestamp.isoformat(),
            "score": self.score,
            "signal": self.signal.value,
            "recommendation": self.recommendation,
            "error": self.error,
        }
        if self.components is not None:
            for name in FACTORS:
                row[f"{name}_score"] = self.components.factor(name)
        row["details"] = {
            "snapshot": self.snapshot.to_dict(),
            "derived": dict(self.derived),
            "components": self.components.to_dict() if self.components else None,
        }
        return row


__all__ = [
    "FACTORS",
    "CompositeResult",
    "IndicatorSnapshot",
    "ScoreComponents",
    "Signal",
]
