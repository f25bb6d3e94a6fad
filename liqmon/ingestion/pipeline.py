"""Ingestion pipeline implementation."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import List

from liqmon.core.registry import StageContext
from liqmon.settings import Settings

from .cache import CachingFetcher, ResponseCache
from .catalog import CatalogError, IndicatorDefinition, load_symbol_table
from .fetch import BaseFetcher, CompositeFetcher, FetchError, FredFetcher, NewYorkFedFetcher
from .storage import FetchLogEntry, ObservationStore

logger = logging.getLogger(__name__)


def build_fetcher(settings: Settings) -> BaseFetcher:
    """Provider-routing fetcher behind the response cache."""

    fetcher = CompositeFetcher(
        {
            "fred": FredFetcher(settings.fred_base_url, timeout=settings.request_timeout),
            "nyfed": NewYorkFedFetcher(settings.nyfed_base_url, timeout=settings.request_timeout),
        }
    )
    if settings.cache_ttl <= 0:
        return fetcher
    return CachingFetcher(fetcher, ResponseCache(settings.cache_dir, ttl=settings.cache_ttl))


def fetch_start(settings: Settings) -> date:
    """First date requested from providers.

    Reaches ``series_lookback_days`` before the history start so that slow
    series already have a value to carry forward on the first reference
    date.
    """

    return settings.history_start - timedelta(days=settings.series_lookback_days)


def _ingest_one(
    run_id: str,
    definition: IndicatorDefinition,
    fetcher: BaseFetcher,
    store: ObservationStore,
    start: date,
) -> FetchLogEntry:
    started = datetime.utcnow()
    try:
        series = fetcher.fetch_series(definition, start)
    except FetchError as exc:
        logger.warning("Failed to fetch %s (%s): %s", definition.key, definition.series_id, exc)
        return FetchLogEntry(
            run_id=run_id,
            indicator=definition.key,
            series_id=definition.series_id,
            provider=definition.provider,
            start_date=start.isoformat(),
            observation_count=0,
            latest_date=None,
            status="failed",
            error=str(exc),
            started_at=started,
            completed_at=datetime.utcnow(),
            metadata={"required": definition.required},
        )

    stored = store.upsert_series(run_id, definition, series)
    latest = series.latest()
    return FetchLogEntry(
        run_id=run_id,
        indicator=definition.key,
        series_id=definition.series_id,
        provider=definition.provider,
        start_date=start.isoformat(),
        observation_count=stored,
        latest_date=latest[0].isoformat() if latest else None,
        status="success" if stored else "empty",
        error=None,
        started_at=started,
        completed_at=datetime.utcnow(),
        metadata={
            "required": definition.required,
            "latest_value": latest[1] if latest else None,
            "frequency": definition.frequency,
        },
    )


def run_pipeline(context: StageContext, fetcher: BaseFetcher | None = None) -> List[FetchLogEntry]:
    """Fetch every catalog indicator and store its observations."""

    settings = context.settings
    settings.ensure_directories()
    try:
        table = load_symbol_table(settings.indicator_catalog)
    except CatalogError as exc:
        logger.error("Unable to load indicator catalog: %s", exc)
        raise

    fetcher = fetcher or build_fetcher(settings)
    store = ObservationStore(settings.sqlite_path)
    start = fetch_start(settings)
    logger.info("Fetching %d indicators from %s", len(table), start)

    results: List[FetchLogEntry] = []
    for definition in table:
        entry = _ingest_one(context.run_id, definition, fetcher, store, start)
        store.record(entry)
        results.append(entry)
        logger.info(
            "Recorded %s: %s, %d observation(s)",
            entry.indicator,
            entry.status,
            entry.observation_count,
        )
        if entry.status != "success" and definition.required:
            logger.warning("Required indicator %s has no fresh data; scoring falls back to zero", definition.key)
    logger.info("Ingestion pipeline complete for run %s", context.run_id)
    return results


__all__ = ["build_fetcher", "fetch_start", "run_pipeline"]
