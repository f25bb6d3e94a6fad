"""Stage primitives and the registry that orders them."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Protocol

from liqmon.settings import Settings


class StageCallable(Protocol):
    """Callable protocol for a pipeline stage."""

    def __call__(self, context: "StageContext") -> None:
        """Execute the stage logic."""


@dataclass(slots=True)
class StageContext:
    """Shared state handed to every stage of a run."""

    settings: Settings
    run_id: str
    timestamp: datetime
    workspace: Path


@dataclass(slots=True, frozen=True)
class StageDefinition:
    """A registered stage and where it came from."""

    name: str
    callable: StageCallable
    description: str
    module: str


class StageRegistry:
    """Ordered collection of pipeline stages.

    Stages run in registration order, which follows the import order used
    by :func:`liqmon.bootstrap`.
    """

    def __init__(self) -> None:
        self._stages: Dict[str, StageDefinition] = {}

    def register(self, name: str, func: StageCallable, description: str = "") -> StageCallable:
        if name in self._stages:
            raise ValueError(f"Stage '{name}' is already registered")
        self._stages[name] = StageDefinition(
            name=name,
            callable=func,
            description=description,
            module=func.__module__,
        )
        return func

    def get(self, name: str) -> StageDefinition:
        try:
            return self._stages[name]
        except KeyError as exc:
            raise KeyError(f"Stage '{name}' is not registered") from exc

    def __contains__(self, name: str) -> bool:
        return name in self._stages

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(list(self._stages.values()))

    def __len__(self) -> int:
        return len(self._stages)

    def names(self) -> List[str]:
        """Return registered stage names in run order."""

        return list(self._stages)


registry = StageRegistry()


def register_stage(name: str, description: str = "") -> Callable[[StageCallable], StageCallable]:
    """Decorator registering *func* as the stage called *name*."""

    def decorator(func: StageCallable) -> StageCallable:
        return registry.register(name, func, description=description)

    return decorator


__all__ = [
    "StageCallable",
    "StageContext",
    "StageDefinition",
    "StageRegistry",
    "register_stage",
    "registry",
]
