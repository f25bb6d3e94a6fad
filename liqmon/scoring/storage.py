from __future__ import annotations

"""Persistence utilities for scoring outputs."""

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

RESULT_COLUMNS = (
    "run_id",
    "reference_date",
    "timestamp",
    "score",
    "signal",
    "recommendation",
    "error",
    "us_score",
    "dollar_score",
    "china_score",
    "japan_score",
    "em_score",
    "details",
)

ALERT_COLUMNS = (
    "run_id",
    "reference_date",
    "timestamp",
    "level",
    "message",
    "action",
    "score",
    "signal",
    "delivered",
)

APPEND_TABLES: Dict[str, tuple] = {
    "analysis_history": RESULT_COLUMNS,
    "score_history": RESULT_COLUMNS,
    "alert_history": ALERT_COLUMNS,
}

LATEST_TABLES: Dict[str, tuple] = {
    "analysis_latest": RESULT_COLUMNS,
}


def _encode(value: Any) -> Any:
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, bool):
        return int(value)
    return value


class LiquidityStore:
    """Write composite results and alerts to SQLite.

    History tables are append-only. ``analysis_latest`` holds a single row
    that every live run overwrites.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with sqlite3.connect(self.path) as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS analysis_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT,
                    reference_date TEXT,
                    timestamp TEXT NOT NULL,
                    score INTEGER NOT NULL,
                    signal TEXT NOT NULL,
                    recommendation TEXT,
                    error TEXT,
                    us_score INTEGER,
                    dollar_score INTEGER,
                    china_score INTEGER,
                    japan_score INTEGER,
                    em_score INTEGER,
                    details TEXT
                );

                CREATE TABLE IF NOT EXISTS score_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT,
                    reference_date TEXT,
                    timestamp TEXT NOT NULL,
                    score INTEGER NOT NULL,
                    signal TEXT NOT NULL,
                    recommendation TEXT,
                    error TEXT,
                    us_score INTEGER,
                    dollar_score INTEGER,
                    china_score INTEGER,
                    japan_score INTEGER,
                    em_score INTEGER,
                    details TEXT
                );

                CREATE TABLE IF NOT EXISTS analysis_latest (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    run_id TEXT,
                    reference_date TEXT,
                    timestamp TEXT NOT NULL,
                    score INTEGER NOT NULL,
                    signal TEXT NOT NULL,
                    recommendation TEXT,
                    error TEXT,
                    us_score INTEGER,
                    dollar_score INTEGER,
                    china_score INTEGER,
                    japan_score INTEGER,
                    em_score INTEGER,
                    details TEXT
                );

                CREATE TABLE IF NOT EXISTS alert_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT,
                    reference_date TEXT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    message TEXT NOT NULL,
                    action TEXT,
                    score INTEGER,
                    signal TEXT,
                    delivered INTEGER NOT NULL DEFAULT 0
                );

                CREATE INDEX IF NOT EXISTS idx_analysis_history_date ON analysis_history(reference_date);
                CREATE INDEX IF NOT EXISTS idx_score_history_date ON score_history(reference_date);
                """
            )

    @staticmethod
    def _columns(table: str, known: Mapping[str, tuple], row: Mapping[str, Any]) -> List[str]:
        if table not in known:
            raise ValueError(f"Unknown table '{table}'")
        allowed = known[table]
        unknown = sorted(set(row) - set(allowed))
        if unknown:
            raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")
        return [column for column in allowed if column in row]

    def append_row(self, table: str, row: Mapping[str, Any]) -> None:
        self.append_rows(table, [row])

    def append_rows(self, table: str, rows: Iterable[Mapping[str, Any]]) -> int:
        """Append *rows* in one transaction; returns how many were written."""

        rows = list(rows)
        if not rows:
            return 0
        with sqlite3.connect(self.path) as connection:
            for row in rows:
                columns = self._columns(table, APPEND_TABLES, row)
                placeholders = ", ".join("?" for _ in columns)
                connection.execute(
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                    [_encode(row[column]) for column in columns],
                )
        return len(rows)

    def upsert_latest(self, table: str, row: Mapping[str, Any]) -> None:
        columns = self._columns(table, LATEST_TABLES, row)
        assignments = ", ".join(f"{column}=excluded.{column}" for column in columns)
        placeholders = ", ".join("?" for _ in columns)
        with sqlite3.connect(self.path) as connection:
            connection.execute(
                f"""
                INSERT INTO {table} (id, {', '.join(columns)}) VALUES (1, {placeholders})
                ON CONFLICT(id) DO UPDATE SET {assignments}
                """,
                [_encode(row[column]) for column in columns],
            )

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """Read back every row of *table* ordered by insertion."""

        if table not in APPEND_TABLES and table not in LATEST_TABLES:
            raise ValueError(f"Unknown table '{table}'")
        with sqlite3.connect(self.path) as connection:
            connection.row_factory = sqlite3.Row
            records = connection.execute(f"SELECT * FROM {table} ORDER BY id").fetchall()
        results = []
        for record in records:
            data = dict(record)
            if data.get("details"):
                try:
                    data["details"] = json.loads(data["details"])
                except json.JSONDecodeError:
                    data["details"] = {"raw": data["details"]}
            results.append(data)
        return results

    def latest(self) -> Dict[str, Any] | None:
        rows = self.rows("analysis_latest")
        return rows[0] if rows else None


__all__ = ["APPEND_TABLES", "LATEST_TABLES", "LiquidityStore"]
