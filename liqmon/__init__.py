"""liqmon - global liquidity monitor.

Polls central-bank, treasury, FX and money-supply series, scores them into
a composite liquidity reading and keeps a weekly history of that score.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

from liqmon.core import StageContext, StageRunner, package_version, registry
from liqmon.settings import Settings

__all__ = [
    "__version__",
    "StageContext",
    "StageRunner",
    "Settings",
    "registry",
    "bootstrap",
    "create_default_context",
]


def __getattr__(name: str):
    if name == "__version__":
        return package_version()
    raise AttributeError(name)


def bootstrap() -> None:
    """Import stage modules so their stages register in run order."""

    from liqmon import ingestion, scoring, history, alerts, export  # noqa: F401


def create_default_context(settings: Settings | None = None) -> StageContext:
    """Construct a :class:`StageContext` for command-line runs."""

    settings = settings or Settings.load()
    settings.ensure_directories()
    now = datetime.utcnow()
    return StageContext(
        settings=settings,
        run_id=now.strftime("%Y%m%d%H%M%S"),
        timestamp=now,
        workspace=Path.cwd(),
    )
