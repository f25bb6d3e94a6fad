from __future__ import annotations

"""Composite liquidity scoring."""

import logging
from datetime import datetime
from typing import Dict, Optional

from .config import ScoringConfig, default_scoring_config
from .models import FACTORS, CompositeResult, IndicatorSnapshot, ScoreComponents

logger = logging.getLogger(__name__)


def percent_change(current: float, previous: float) -> float:
    """Percent move from *previous* to *current*; ``0.0`` without a base value."""

    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def em_strength_index(
    current: IndicatorSnapshot,
    previous: IndicatorSnapshot,
    pairs: tuple[str, ...],
) -> float:
    """Negative mean week-over-week move of the USD/EM pairs.

    The pairs are quoted as units of EM currency per dollar, so a rising
    rate is a weakening EM currency; the sign flip makes positive readings
    mean EM strength.
    """

    if not pairs:
        return 0.0
    changes = [percent_change(current.get(pair), previous.get(pair)) for pair in pairs]
    return -sum(changes) / len(changes)


class ScoringEngine:
    """Score indicator snapshots against the configured band tables.

    :meth:`score` is total: whatever happens while deriving or scoring, it
    returns a :class:`CompositeResult`, degraded to score ``0`` and
    ``Signal.ERROR`` when something went wrong.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self.config = config or default_scoring_config()

    def derive(
        self,
        snapshot: IndicatorSnapshot,
        previous: Optional[IndicatorSnapshot] = None,
    ) -> Dict[str, float]:
        """Levels, week-over-week deltas and the EM strength index."""

        previous = previous or snapshot
        derived: Dict[str, float] = {}
        for symbol in snapshot.symbols:
            current_value = snapshot.get(symbol)
            derived[symbol] = current_value
            derived[f"{symbol}_wow"] = current_value - previous.get(symbol)
        for pair in self.config.em_pairs:
            derived[f"{pair}_pct"] = percent_change(snapshot.get(pair), previous.get(pair))
        derived["em_strength"] = em_strength_index(snapshot, previous, self.config.em_pairs)
        return derived

    def components(self, derived: Dict[str, float]) -> ScoreComponents:
        line_items: Dict[str, int] = {}
        factors: Dict[str, int] = {name: 0 for name in FACTORS}
        for rule in self.config.line_items:
            points = rule.evaluate(derived.get(rule.input, 0.0))
            line_items[rule.name] = points
            factors[rule.factor] += points
        return ScoreComponents(line_items=line_items, factors=factors)

    def score(
        self,
        snapshot: IndicatorSnapshot,
        previous: Optional[IndicatorSnapshot] = None,
        *,
        timestamp: datetime | None = None,
    ) -> CompositeResult:
        timestamp = timestamp or datetime.utcnow()
        try:
            derived = self.derive(snapshot, previous)
            components = self.components(derived)
            total = components.total
            signal = self.config.signal_for(total)
        except Exception as exc:
            logger.exception("Scoring failed for snapshot as of %s", snapshot.as_of)
            return CompositeResult.degraded(snapshot, timestamp, str(exc))

        if snapshot.errors:
            logger.debug(
                "Scored %s with zero fallbacks for %s", snapshot.as_of, ", ".join(sorted(snapshot.errors))
            )
        return CompositeResult(
            score=total,
            signal=signal,
            recommendation=self.config.recommendation_for(signal),
            timestamp=timestamp,
            snapshot=snapshot,
            components=components,
            derived=derived,
        )


__all__ = ["ScoringEngine", "em_strength_index", "percent_change"]
