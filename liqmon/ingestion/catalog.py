"""Indicator symbol table: short names mapped to provider series ids."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Tuple

import yaml

logger = logging.getLogger(__name__)

PROVIDERS = {"fred", "nyfed"}


class CatalogError(RuntimeError):
    """Raised when the indicator catalog cannot be loaded."""


@dataclass(slots=True, frozen=True)
class IndicatorDefinition:
    """Where one indicator comes from and whether scoring needs it."""

    key: str
    series_id: str
    name: str
    provider: str = "fred"
    frequency: str = "daily"
    unit: str | None = None
    required: bool = False


@dataclass(slots=True, frozen=True)
class SymbolTable:
    """Immutable lookup of indicator definitions by short name.

    ``anchor`` names the slowest-updating required series; its observation
    dates form the reference calendar for alignment.
    """

    definitions: Tuple[IndicatorDefinition, ...]
    anchor: str = "balance_sheet"

    def __post_init__(self) -> None:
        keys = [definition.key for definition in self.definitions]
        if len(set(keys)) != len(keys):
            raise CatalogError("Indicator keys must be unique")
        if self.anchor not in keys:
            raise CatalogError(f"Anchor indicator '{self.anchor}' is not in the catalog")

    def __getitem__(self, key: str) -> IndicatorDefinition:
        for definition in self.definitions:
            if definition.key == key:
                return definition
        raise KeyError(f"Unknown indicator '{key}'")

    def __contains__(self, key: object) -> bool:
        return any(definition.key == key for definition in self.definitions)

    def __iter__(self) -> Iterator[IndicatorDefinition]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def keys(self) -> List[str]:
        return [definition.key for definition in self.definitions]

    def required(self) -> List[str]:
        return [definition.key for definition in self.definitions if definition.required]

    def series_id(self, key: str) -> str:
        return self[key].series_id


DEFAULT_INDICATORS: Tuple[IndicatorDefinition, ...] = (
    IndicatorDefinition("balance_sheet", "WALCL", "Fed total assets", frequency="weekly", unit="USD mn", required=True),
    IndicatorDefinition("treasury_account", "WTREGEN", "Treasury General Account", frequency="weekly", unit="USD mn", required=True),
    IndicatorDefinition("reverse_repo", "RRPONTSYD", "Overnight reverse repo", unit="USD bn", required=True),
    IndicatorDefinition("dollar_index", "DTWEXBGS", "Broad dollar index", required=True),
    IndicatorDefinition("money_supply_growth", "MABMM301CNM657S", "China M2 growth", frequency="monthly", unit="%", required=True),
    IndicatorDefinition("carry_pair", "DEXJPUS", "USD/JPY", required=True),
    IndicatorDefinition("em_krw", "DEXKOUS", "USD/KRW", required=True),
    IndicatorDefinition("em_brl", "DEXBZUS", "USD/BRL", required=True),
    IndicatorDefinition("em_mxn", "DEXMXUS", "USD/MXN", required=True),
    IndicatorDefinition("sofr", "SOFR", "Secured overnight financing rate", unit="%"),
    IndicatorDefinition("effr", "EFFR", "Effective federal funds rate", unit="%"),
    IndicatorDefinition("iorb", "IORB", "Interest on reserve balances", unit="%"),
    IndicatorDefinition("us_10y", "DGS10", "US 10y Treasury yield", unit="%"),
    IndicatorDefinition("jgb_10y", "IRLTLT01JPM156N", "Japan 10y government bond yield", frequency="monthly", unit="%"),
    IndicatorDefinition("china_credit", "QCNLOANTOPRIV", "China credit to private sector", frequency="quarterly"),
    IndicatorDefinition("china_reserves", "TRESEGCNM052N", "China FX reserves", frequency="monthly"),
    IndicatorDefinition("vix", "VIXCLS", "CBOE volatility index"),
    IndicatorDefinition("standing_repo", "standing-repo-facility", "Standing repo facility take-up", provider="nyfed", unit="USD mn"),
)


def default_symbol_table() -> SymbolTable:
    return SymbolTable(definitions=DEFAULT_INDICATORS)


def _override(definition: IndicatorDefinition | None, key: str, entry: Mapping[str, object]) -> IndicatorDefinition:
    if definition is None:
        if "series_id" not in entry:
            raise CatalogError(f"Indicator '{key}' needs a series_id")
        definition = IndicatorDefinition(key=key, series_id=str(entry["series_id"]), name=key)
    changes: Dict[str, object] = {}
    for field_name in ("series_id", "name", "provider", "frequency", "unit"):
        if entry.get(field_name) is not None:
            changes[field_name] = str(entry[field_name])
    if "required" in entry:
        changes["required"] = bool(entry["required"])
    updated = replace(definition, **changes)
    if updated.provider not in PROVIDERS:
        raise CatalogError(f"Indicator '{key}' uses unknown provider '{updated.provider}'")
    return updated


def load_symbol_table(path: Path | None = None) -> SymbolTable:
    """Load overrides from the YAML file at *path* on top of the defaults.

    The file has an ``indicators`` mapping keyed by short name; any field
    given replaces the built-in value, unknown keys add new indicators. A
    missing file yields the defaults unchanged.
    """

    table = default_symbol_table()
    if path is None or not path.exists():
        if path is not None:
            logger.info("Indicator catalog %s not found; using built-in symbols.", path)
        return table
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise CatalogError(f"Failed to parse indicator catalog: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise CatalogError("Indicator catalog must be a mapping")

    definitions = {definition.key: definition for definition in table.definitions}
    for key, entry in (payload.get("indicators") or {}).items():
        if not isinstance(entry, Mapping):
            raise CatalogError(f"Indicator '{key}' must be a mapping")
        definitions[str(key)] = _override(definitions.get(str(key)), str(key), entry)
    anchor = str(payload.get("anchor", table.anchor))
    return SymbolTable(definitions=tuple(definitions.values()), anchor=anchor)


__all__ = [
    "CatalogError",
    "IndicatorDefinition",
    "SymbolTable",
    "default_symbol_table",
    "load_symbol_table",
]
