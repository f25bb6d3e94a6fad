"""CSV and Excel extracts of the liquidity history."""
from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from liqmon.scoring.storage import LiquidityStore

SUMMARY_COLUMNS = (
    "reference_date",
    "timestamp",
    "score",
    "signal",
    "us_score",
    "dollar_score",
    "china_score",
    "japan_score",
    "em_score",
    "recommendation",
    "error",
)

ALERT_FILLS = {
    "OPPORTUNITY": "D5F4E6",
    "WARNING": "FADBD8",
    "RISK": "FFF3CD",
}


@dataclass(slots=True)
class ExportSummary:
    """Details about the generated export files."""

    history_rows: int
    analysis_rows: int
    alert_rows: int
    files: List[Path] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.history_rows or self.analysis_rows or self.alert_rows)


class ExportGenerator:
    """Create CSV/Excel artifacts from the SQLite result tables."""

    def __init__(self, sqlite_path: Path, output_dir: Path) -> None:
        self.store = LiquidityStore(sqlite_path)
        self.output_dir = output_dir

    def generate(self, run_id: str) -> ExportSummary:
        history = self.history_rows()
        analysis = self._summaries(self.store.rows("analysis_history"))
        alerts = self.alert_rows()
        summary = ExportSummary(len(history), len(analysis), len(alerts))
        if summary.empty:
            return summary

        self.output_dir.mkdir(parents=True, exist_ok=True)
        history_csv = self.output_dir / f"liqmon_history_{run_id}.csv"
        workbook_path = self.output_dir / f"liqmon_report_{run_id}.xlsx"
        self._write_csv(history_csv, history)
        self._write_workbook(workbook_path, history, analysis, alerts, self.store.latest())
        summary.files.extend([history_csv, workbook_path])
        return summary

    def history_rows(self) -> List[Dict[str, object]]:
        """Weekly scores of the most recent backfill run, oldest first."""

        rows = self.store.rows("score_history")
        if not rows:
            return []
        latest_run = rows[-1]["run_id"]
        selected = [row for row in rows if row["run_id"] == latest_run]
        selected.sort(key=lambda row: row["reference_date"] or "")
        return self._summaries(selected)

    def alert_rows(self) -> List[Dict[str, object]]:
        rows = self.store.rows("alert_history")
        return [{key: value for key, value in row.items() if key != "id"} for row in rows]

    def _summaries(self, rows: Sequence[Mapping[str, object]]) -> List[Dict[str, object]]:
        return [{column: row.get(column) for column in SUMMARY_COLUMNS} for row in rows]

    def _write_csv(self, path: Path, rows: Sequence[Mapping[str, object]]) -> None:
        fieldnames = list(rows[0]) if rows else list(SUMMARY_COLUMNS)
        with path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)

    def _write_workbook(
        self,
        path: Path,
        history: Sequence[Mapping[str, object]],
        analysis: Sequence[Mapping[str, object]],
        alerts: Sequence[Mapping[str, object]],
        latest: Mapping[str, object] | None,
    ) -> None:
        workbook = Workbook()
        latest_sheet = workbook.active
        latest_sheet.title = "Latest"
        self._write_latest(latest_sheet, latest)
        self._write_sheet(workbook.create_sheet("History"), history)
        self._write_sheet(workbook.create_sheet("Analysis"), analysis)
        alert_sheet = workbook.create_sheet("Alerts")
        self._write_sheet(alert_sheet, alerts)
        self._highlight_alerts(alert_sheet, alerts)
        workbook.save(path)

    def _write_latest(self, worksheet, latest: Mapping[str, object] | None) -> None:
        worksheet.append(["field", "value"])
        worksheet["A1"].font = Font(bold=True)
        worksheet["B1"].font = Font(bold=True)
        if not latest:
            worksheet.append(["message", "No live analysis recorded"])
            return
        for column in SUMMARY_COLUMNS:
            worksheet.append([column, latest.get(column)])
        details = latest.get("details") or {}
        readings = details.get("readings") if isinstance(details, Mapping) else None
        for region, values in (readings or {}).items():
            for name, value in values.items():
                worksheet.append([f"{region}.{name}", value])
        worksheet.column_dimensions["A"].width = 28
        worksheet.column_dimensions["B"].width = 60

    def _write_sheet(self, worksheet, rows: Sequence[Mapping[str, object]]) -> None:
        fieldnames = list(rows[0]) if rows else ["message"]
        if not rows:
            rows = [{"message": "No data available"}]
        worksheet.append(fieldnames)
        for cell in worksheet[1]:
            cell.font = Font(bold=True)
        worksheet.freeze_panes = "A2"
        for row in rows:
            worksheet.append(
                [
                    json.dumps(value, ensure_ascii=False)
                    if isinstance(value, (dict, list))
                    else value
                    for value in (row.get(name) for name in fieldnames)
                ]
            )
        for index, _ in enumerate(fieldnames, start=1):
            worksheet.column_dimensions[get_column_letter(index)].width = 18

    def _highlight_alerts(self, worksheet, alerts: Sequence[Mapping[str, object]]) -> None:
        for offset, alert in enumerate(alerts, start=2):
            level = str(alert.get("level") or "")
            colour = next((fill for key, fill in ALERT_FILLS.items() if key in level), None)
            if colour is None:
                continue
            for cell in worksheet[offset]:
                cell.fill = PatternFill(start_color=colour, end_color=colour, fill_type="solid")


__all__ = ["ExportGenerator", "ExportSummary"]
