"""Environment-driven configuration for the liquidity monitor."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(slots=True)
class Settings:
    """Runtime settings loaded from environment variables."""

    data_dir: Path
    output_dir: Path
    sqlite_path: Path
    scoring_config: Path
    indicator_catalog: Path
    fred_base_url: str
    nyfed_base_url: str
    request_timeout: int
    cache_ttl: int
    history_start: date
    series_lookback_days: int
    wow_lookback_days: int
    alert_recipient: str | None
    smtp_host: str | None
    smtp_port: int
    smtp_sender: str
    log_level: str

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment variables with sensible defaults."""

        data_dir = Path(os.getenv("LIQMON_DATA_DIR", "data"))
        output_dir = Path(os.getenv("LIQMON_OUTPUT_DIR", "artifacts"))
        sqlite_path = Path(os.getenv("LIQMON_DB_PATH", "liqmon.sqlite"))
        scoring_config = Path(os.getenv("LIQMON_SCORING_CONFIG", "config/scoring.yaml"))
        indicator_catalog = Path(
            os.getenv("LIQMON_INDICATOR_CATALOG", "config/indicators.yaml")
        )
        history_start = date.fromisoformat(os.getenv("LIQMON_HISTORY_START", "2020-01-01"))
        return cls(
            data_dir=data_dir,
            output_dir=output_dir,
            sqlite_path=sqlite_path,
            scoring_config=scoring_config,
            indicator_catalog=indicator_catalog,
            fred_base_url=os.getenv(
                "LIQMON_FRED_BASE_URL", "https://fred.stlouisfed.org/graph/fredgraph.csv"
            ),
            nyfed_base_url=os.getenv(
                "LIQMON_NYFED_BASE_URL", "https://markets.newyorkfed.org/api"
            ),
            request_timeout=int(os.getenv("LIQMON_REQUEST_TIMEOUT", "15")),
            cache_ttl=int(os.getenv("LIQMON_CACHE_TTL", "300")),
            history_start=history_start,
            series_lookback_days=int(os.getenv("LIQMON_SERIES_LOOKBACK_DAYS", "400")),
            wow_lookback_days=int(os.getenv("LIQMON_WOW_LOOKBACK_DAYS", "7")),
            alert_recipient=_optional("LIQMON_ALERT_RECIPIENT"),
            smtp_host=_optional("LIQMON_SMTP_HOST"),
            smtp_port=int(os.getenv("LIQMON_SMTP_PORT", "25")),
            smtp_sender=os.getenv("LIQMON_SMTP_SENDER", "liqmon@localhost"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    def ensure_directories(self) -> None:
        """Create directories required for the runtime to operate."""

        for path in {self.data_dir, self.cache_dir, self.output_dir, self.sqlite_path.parent}:
            if not path.exists():
                path.mkdir(parents=True, exist_ok=True)
