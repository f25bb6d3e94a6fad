from __future__ import annotations

"""Band tables for the scoring engine and their YAML loader."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, Mapping, Sequence, Tuple

import yaml

from .models import FACTORS, Signal

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a scoring configuration is malformed or ambiguous."""


@dataclass(slots=True, frozen=True)
class Band:
    """Open interval ``(above, below)`` mapped to a score.

    Both comparisons are strict: a value equal to a bound is outside the
    band. A missing bound is unbounded on that side.
    """

    score: int
    above: float | None = None
    below: float | None = None

    def matches(self, value: float) -> bool:
        if self.above is not None and not value > self.above:
            return False
        if self.below is not None and not value < self.below:
            return False
        return True

    def covers(self, other: "Band") -> bool:
        """True when every value matching *other* also matches this band."""

        low = float("-inf") if self.above is None else self.above
        high = float("inf") if self.below is None else self.below
        other_low = float("-inf") if other.above is None else other.above
        other_high = float("inf") if other.below is None else other.below
        return low <= other_low and other_high <= high

    @property
    def empty(self) -> bool:
        return self.above is not None and self.below is not None and self.above >= self.below


@dataclass(slots=True, frozen=True)
class LineItemRule:
    """Step function over one derived quantity; the first matching band wins."""

    name: str
    factor: str
    input: str
    bands: Tuple[Band, ...]
    default: int = 0

    def evaluate(self, value: float) -> int:
        for band in self.bands:
            if band.matches(value):
                return band.score
        return self.default


@dataclass(slots=True, frozen=True)
class SignalBand:
    """Scores ``>= min_score`` map to *signal*; ``None`` is the catch-all."""

    signal: Signal
    min_score: float | None


@dataclass(slots=True, frozen=True)
class ScoringConfig:
    """Immutable scoring configuration handed to :class:`ScoringEngine`."""

    version: int
    line_items: Tuple[LineItemRule, ...]
    signal_bands: Tuple[SignalBand, ...]
    recommendations: Mapping[Signal, str]
    labels: Mapping[Signal, str]
    em_pairs: Tuple[str, ...] = ("em_krw", "em_brl", "em_mxn")

    def rule(self, name: str) -> LineItemRule:
        for rule in self.line_items:
            if rule.name == name:
                return rule
        raise KeyError(f"No line item named '{name}'")

    def signal_for(self, score: float) -> Signal:
        for band in self.signal_bands:
            if band.min_score is None or score >= band.min_score:
                return band.signal
        raise ConfigError(f"No signal band matches score {score}")

    def recommendation_for(self, signal: Signal) -> str:
        return self.recommendations.get(signal, "")

    def label_for(self, signal: Signal) -> str:
        return self.labels.get(signal, signal.value.replace("_", " ").upper())

    def with_line_item(self, rule: LineItemRule) -> "ScoringConfig":
        """Return a copy with *rule* replacing the line item of the same name."""

        items = tuple(rule if item.name == rule.name else item for item in self.line_items)
        if rule.name not in {item.name for item in self.line_items}:
            items = items + (rule,)
        config = replace(self, line_items=items)
        validate_scoring_config(config)
        return config


def _bands(*rows: Tuple[int, float | None, float | None]) -> Tuple[Band, ...]:
    return tuple(Band(score=score, above=above, below=below) for score, above, below in rows)


DEFAULT_LINE_ITEMS: Tuple[LineItemRule, ...] = (
    LineItemRule(
        name="balance_sheet",
        factor="us",
        input="balance_sheet_wow",
        bands=_bands((20, 50000, None), (10, 10000, None), (-20, None, -50000), (-10, None, -10000)),
    ),
    LineItemRule(
        name="treasury_account",
        factor="us",
        input="treasury_account_wow",
        bands=_bands((10, None, -100000), (5, None, -50000), (-10, 100000, None), (-5, 50000, None)),
    ),
    LineItemRule(
        name="reverse_repo",
        factor="us",
        input="reverse_repo",
        bands=_bands((-15, 500000, None), (-10, 300000, None), (0, 200000, None), (5, 100000, None)),
        default=10,
    ),
    LineItemRule(
        name="dollar_index",
        factor="dollar",
        input="dollar_index_wow",
        bands=_bands((25, None, -2), (20, None, -1), (-25, 2, None), (-20, 1, None)),
    ),
    LineItemRule(
        name="money_supply_growth",
        factor="china",
        input="money_supply_growth",
        bands=_bands((20, 12, None), (15, 10, None), (-20, None, 6), (-10, None, 8)),
    ),
    LineItemRule(
        name="carry_pair",
        factor="japan",
        input="carry_pair",
        bands=_bands((-15, 155, None), (-10, 150, None), (-5, 145, None), (5, None, 130)),
    ),
    LineItemRule(
        name="em_strength",
        factor="em",
        input="em_strength",
        bands=_bands((15, 2, None), (10, 1, None), (-15, None, -2), (-10, None, -1)),
    ),
)

DEFAULT_SIGNAL_BANDS: Tuple[SignalBand, ...] = (
    SignalBand(Signal.SUPER_HIGH_LIQUIDITY, 80),
    SignalBand(Signal.EXTREME_LIQUIDITY, 50),
    SignalBand(Signal.HIGH_LIQUIDITY, 20),
    SignalBand(Signal.NEUTRAL, -20),
    SignalBand(Signal.TIGHT, -50),
    SignalBand(Signal.EXTREME_TIGHT, -80),
    SignalBand(Signal.CRISIS, None),
)

DEFAULT_RECOMMENDATIONS: Dict[Signal, str] = {
    Signal.SUPER_HIGH_LIQUIDITY: "Maximum risk-on: overweight growth stocks, emerging markets and commodities",
    Signal.EXTREME_LIQUIDITY: "Overweight growth stocks, emerging markets and commodities",
    Signal.HIGH_LIQUIDITY: "Maintain or increase risk-asset exposure",
    Signal.NEUTRAL: "Keep the portfolio balanced",
    Signal.TIGHT: "Raise cash and bond allocation",
    Signal.EXTREME_TIGHT: "Defensive positioning; prefer the dollar and gold",
    Signal.CRISIS: "Capital preservation: hold cash, the dollar and gold",
}

DEFAULT_LABELS: Dict[Signal, str] = {
    Signal.SUPER_HIGH_LIQUIDITY: "SUPER-HIGH LIQUIDITY",
    Signal.EXTREME_LIQUIDITY: "EXTREME LIQUIDITY",
    Signal.HIGH_LIQUIDITY: "HIGH LIQUIDITY",
    Signal.NEUTRAL: "NEUTRAL",
    Signal.TIGHT: "TIGHT",
    Signal.EXTREME_TIGHT: "EXTREME TIGHT",
    Signal.CRISIS: "CRISIS",
    Signal.ERROR: "ERROR",
}


def default_scoring_config() -> ScoringConfig:
    """Return the built-in band tables."""

    return ScoringConfig(
        version=1,
        line_items=DEFAULT_LINE_ITEMS,
        signal_bands=DEFAULT_SIGNAL_BANDS,
        recommendations=dict(DEFAULT_RECOMMENDATIONS),
        labels=dict(DEFAULT_LABELS),
    )


def validate_scoring_config(config: ScoringConfig) -> None:
    """Reject unreachable bands and signal tables that are not total."""

    names = [rule.name for rule in config.line_items]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate line items: {', '.join(duplicates)}")
    for rule in config.line_items:
        if rule.factor not in FACTORS:
            raise ConfigError(f"Line item '{rule.name}' uses unknown factor '{rule.factor}'")
        for position, band in enumerate(rule.bands):
            if band.empty:
                raise ConfigError(f"Line item '{rule.name}' band {position} can never match")
            for earlier in rule.bands[:position]:
                if earlier.covers(band):
                    raise ConfigError(
                        f"Line item '{rule.name}' band {position} is shadowed by an earlier band"
                    )

    bands = config.signal_bands
    if not bands:
        raise ConfigError("No signal bands configured")
    if bands[-1].min_score is not None:
        raise ConfigError("The last signal band must have no lower bound")
    thresholds = [band.min_score for band in bands[:-1]]
    if any(value is None for value in thresholds):
        raise ConfigError("Only the last signal band may omit its lower bound")
    if any(later >= earlier for earlier, later in zip(thresholds, thresholds[1:])):
        raise ConfigError("Signal band thresholds must strictly descend")
    missing = [band.signal.value for band in bands if band.signal not in config.recommendations]
    if missing:
        raise ConfigError(f"No recommendation configured for: {', '.join(missing)}")


def _as_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Expected a number, got {value!r}") from exc


def _load_bands(name: str, payload: Iterable[object]) -> Tuple[Band, ...]:
    bands = []
    for entry in payload:
        if not isinstance(entry, Mapping) or "score" not in entry:
            raise ConfigError(f"Line item '{name}' has a band without a score")
        if "above" not in entry and "below" not in entry:
            raise ConfigError(f"Line item '{name}' has a band without 'above' or 'below'")
        bands.append(
            Band(
                score=int(entry["score"]),
                above=_as_float(entry.get("above")),
                below=_as_float(entry.get("below")),
            )
        )
    return tuple(bands)


def _load_line_item(name: str, payload: Mapping[str, object], base: LineItemRule | None) -> LineItemRule:
    bands_payload = payload.get("bands")
    if bands_payload is None and base is None:
        raise ConfigError(f"Line item '{name}' defines no bands")
    return LineItemRule(
        name=name,
        factor=str(payload.get("factor", base.factor if base else "")),
        input=str(payload.get("input", base.input if base else name)),
        bands=_load_bands(name, bands_payload) if bands_payload is not None else base.bands,
        default=int(payload.get("default", base.default if base else 0)),
    )


def _load_signals(payload: Sequence[object]) -> tuple[Tuple[SignalBand, ...], Dict[Signal, str], Dict[Signal, str]]:
    bands = []
    recommendations: Dict[Signal, str] = {}
    labels: Dict[Signal, str] = dict(DEFAULT_LABELS)
    for entry in payload:
        if not isinstance(entry, Mapping) or "signal" not in entry:
            raise ConfigError("Each signal band needs a 'signal' key")
        try:
            signal = Signal.parse(entry["signal"])
        except ValueError as exc:
            raise ConfigError(f"Unknown signal {entry['signal']!r}") from exc
        bands.append(SignalBand(signal=signal, min_score=_as_float(entry.get("min"))))
        recommendations[signal] = str(entry.get("recommendation") or DEFAULT_RECOMMENDATIONS.get(signal, ""))
        if entry.get("label"):
            labels[signal] = str(entry["label"])
    return tuple(bands), recommendations, labels


def load_scoring_config(path: Path | None = None) -> ScoringConfig:
    """Load the scoring configuration from *path* on top of the defaults.

    ``None`` returns :func:`default_scoring_config`. Line items named in the
    file replace the built-in item of the same name; a ``signals`` list
    replaces the whole signal table.
    """

    config = default_scoring_config()
    if path is None:
        return config
    if not path.exists():
        raise FileNotFoundError(f"Scoring configuration not found at {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse scoring configuration: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ConfigError("Scoring configuration must be a mapping")

    defaults = {rule.name: rule for rule in config.line_items}
    items = dict(defaults)
    for name, item_payload in (payload.get("line_items") or {}).items():
        if not isinstance(item_payload, Mapping):
            raise ConfigError(f"Line item '{name}' must be a mapping")
        items[name] = _load_line_item(name, item_payload, defaults.get(name))

    signal_bands = config.signal_bands
    recommendations = dict(config.recommendations)
    labels = dict(config.labels)
    if payload.get("signals"):
        signal_bands, recommendations, labels = _load_signals(payload["signals"])

    em_pairs = payload.get("em_pairs")
    config = ScoringConfig(
        version=int(payload.get("version", config.version)),
        line_items=tuple(items.values()),
        signal_bands=signal_bands,
        recommendations=recommendations,
        labels=labels,
        em_pairs=tuple(str(pair) for pair in em_pairs) if em_pairs else config.em_pairs,
    )
    validate_scoring_config(config)
    logger.debug("Loaded scoring configuration v%d from %s", config.version, path)
    return config


__all__ = [
    "Band",
    "ConfigError",
    "LineItemRule",
    "ScoringConfig",
    "SignalBand",
    "default_scoring_config",
    "load_scoring_config",
    "validate_scoring_config",
]
