"""Sequential stage execution."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .registry import StageContext, StageRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StageTiming:
    name: str
    seconds: float


class StageRunner:
    """Run registered stages one after another, stopping at the first failure."""

    def __init__(self, registry: StageRegistry) -> None:
        self._registry = registry

    def available(self) -> List[str]:
        return self._registry.names()

    def run(self, stages: Sequence[str], context: StageContext) -> List[StageTiming]:
        timings: List[StageTiming] = []
        for name in stages:
            definition = self._registry.get(name)
            stage_logger = logging.getLogger(definition.module)
            stage_logger.info(
                "Starting stage '%s' (run_id=%s, timestamp=%s)",
                definition.name,
                context.run_id,
                context.timestamp.isoformat(),
            )
            started = time.perf_counter()
            try:
                definition.callable(context)
            except Exception:
                stage_logger.exception("Stage '%s' failed", definition.name)
                raise
            elapsed = time.perf_counter() - started
            stage_logger.info("Completed stage '%s' in %.2fs", definition.name, elapsed)
            timings.append(StageTiming(name=definition.name, seconds=elapsed))
        return timings

    def resolve(self, requested: Iterable[str] | None) -> List[str]:
        """Validate *requested* stage names, dropping duplicates.

        ``None`` or an empty list selects every registered stage.
        """

        if not requested:
            return self.available()
        requested = list(requested)
        unknown = [name for name in requested if name not in self._registry]
        if unknown:
            raise ValueError(f"Unknown stages requested: {', '.join(unknown)}")
        return list(dict.fromkeys(requested))


__all__ = ["StageRunner", "StageTiming"]
