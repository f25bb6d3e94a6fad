from __future__ import annotations

"""Data access helpers for the scoring engine."""

import logging
import sqlite3
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List

from liqmon.alignment import IndicatorSeries

logger = logging.getLogger(__name__)


class ObservationRepository:
    """Read stored observations back as :class:`IndicatorSeries`."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def series_map(
        self,
        indicators: Iterable[str],
        start: date | None = None,
    ) -> Dict[str, IndicatorSeries]:
        """Return one series per requested indicator, empty when none stored."""

        keys = list(dict.fromkeys(indicators))
        collected: Dict[str, List[tuple]] = defaultdict(list)
        if keys:
            placeholders = ", ".join("?" for _ in keys)
            query = f"SELECT indicator, date, value FROM observations WHERE indicator IN ({placeholders})"
            params: list = list(keys)
            if start is not None:
                query += " AND date >= ?"
                params.append(start.isoformat())
            try:
                with sqlite3.connect(self.path) as connection:
                    rows = connection.execute(query + " ORDER BY indicator, date", params).fetchall()
            except sqlite3.OperationalError as exc:
                logger.warning("Observations unavailable for scoring: %s", exc)
                rows = []
            for indicator, day, value in rows:
                collected[indicator].append((day, value))
        return {key: IndicatorSeries(collected.get(key, ()), symbol=key) for key in keys}

    def indicators(self) -> List[str]:
        try:
            with sqlite3.connect(self.path) as connection:
                rows = connection.execute(
                    "SELECT DISTINCT indicator FROM observations ORDER BY indicator"
                ).fetchall()
        except sqlite3.OperationalError:
            return []
        return [row[0] for row in rows]


__all__ = ["ObservationRepository"]
