"""SQLite persistence for fetched observations."""
from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from liqmon.alignment import IndicatorSeries

from .catalog import IndicatorDefinition


@dataclass(slots=True)
class FetchLogEntry:
    run_id: str
    indicator: str
    series_id: str
    provider: str
    start_date: str | None
    observation_count: int
    latest_date: str | None
    status: str
    error: str | None
    started_at: datetime
    completed_at: datetime
    metadata: Dict[str, Any]


class ObservationStore:
    """Raw indicator observations keyed by ``(indicator, date)``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with sqlite3.connect(self.path) as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS observations (
                    indicator TEXT NOT NULL,
                    date TEXT NOT NULL,
                    value REAL NOT NULL,
                    series_id TEXT NOT NULL,
                    run_id TEXT NOT NULL,
                    fetched_at TEXT NOT NULL,
                    PRIMARY KEY (indicator, date)
                );

                CREATE TABLE IF NOT EXISTS fetch_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT NOT NULL,
                    indicator TEXT NOT NULL,
                    series_id TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    start_date TEXT,
                    observation_count INTEGER NOT NULL,
                    latest_date TEXT,
                    status TEXT NOT NULL,
                    error TEXT,
                    started_at TEXT NOT NULL,
                    completed_at TEXT NOT NULL,
                    metadata TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_fetch_log_run ON fetch_log(run_id);
                """
            )

    def upsert_series(self, run_id: str, definition: IndicatorDefinition, series: IndicatorSeries) -> int:
        """Store *series* under the catalog key of *definition*; returns the row count."""

        fetched_at = datetime.utcnow().isoformat()
        rows = [
            (definition.key, day.isoformat(), value, definition.series_id, run_id, fetched_at)
            for day, value in series.items()
        ]
        if not rows:
            return 0
        with sqlite3.connect(self.path) as connection:
            connection.executemany(
                """
                INSERT INTO observations (indicator, date, value, series_id, run_id, fetched_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(indicator, date) DO UPDATE SET
                    value=excluded.value,
                    series_id=excluded.series_id,
                    run_id=excluded.run_id,
                    fetched_at=excluded.fetched_at
                """,
                rows,
            )
        return len(rows)

    def record(self, entry: FetchLogEntry) -> None:
        metadata = json.dumps(entry.metadata or {}, ensure_ascii=False)
        with sqlite3.connect(self.path) as connection:
            connection.execute(
                """
                INSERT INTO fetch_log (
                    run_id,
                    indicator,
                    series_id,
                    provider,
                    start_date,
                    observation_count,
                    latest_date,
                    status,
                    error,
                    started_at,
                    completed_at,
                    metadata
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.run_id,
                    entry.indicator,
                    entry.series_id,
                    entry.provider,
                    entry.start_date,
                    entry.observation_count,
                    entry.latest_date,
                    entry.status,
                    entry.error,
                    entry.started_at.isoformat(),
                    entry.completed_at.isoformat(),
                    metadata,
                ),
            )


__all__ = ["FetchLogEntry", "ObservationStore"]
