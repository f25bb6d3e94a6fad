"""Core orchestration utilities for the liquidity monitor."""
from __future__ import annotations

from importlib import metadata

from .registry import (
    StageContext,
    StageDefinition,
    StageRegistry,
    register_stage,
    registry,
)
from .runner import StageRunner, StageTiming


def package_version() -> str:
    """Return the installed package version, ``0.0.0`` when running from a checkout."""

    try:
        return metadata.version("liqmon")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = [
    "StageContext",
    "StageDefinition",
    "StageRegistry",
    "StageRunner",
    "StageTiming",
    "package_version",
    "register_stage",
    "registry",
]
