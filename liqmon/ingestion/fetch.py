"""Retrieve indicator series from FRED and the New York Fed."""
from __future__ import annotations

import csv
import io
import json
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Mapping, Optional, Protocol
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from liqmon.alignment import IndicatorSeries, coerce_date

from .catalog import IndicatorDefinition

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; liqmon)"


class FetchError(RuntimeError):
    """Raised when a series cannot be retrieved or parsed after retries."""


@dataclass(slots=True, frozen=True)
class LatestValue:
    """Most recent observation of one indicator.

    Failed fetches come back with ``value`` 0.0 and ``error`` set instead of
    raising.
    """

    symbol: str
    date: Optional[date]
    value: float
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Fetcher(Protocol):
    """Interface the pipeline stages use to obtain indicator data."""

    def get_latest(self, definition: IndicatorDefinition) -> LatestValue:
        """Return the latest observation, degrading to zero on failure."""

    def get_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        """Return observations since *start*, empty on failure."""


def http_get(
    url: str,
    *,
    timeout: int = 15,
    retries: int = 3,
    backoff: float = 1.0,
    accept: str | None = None,
) -> str:
    """GET *url* and return the decoded body, retrying transient failures."""

    headers = {"User-Agent": USER_AGENT}
    if accept:
        headers["Accept"] = accept
    last_error: Exception | None = None
    for attempt in range(1, retries + 1):
        try:
            request = Request(url, headers=headers)
            with urlopen(request, timeout=timeout) as response:  # nosec - provider URLs from settings
                status = getattr(response, "status", 200)
                if status != 200:
                    raise FetchError(f"HTTP {status} from {url}")
                charset = response.headers.get_content_charset() if response.headers else None
                body = response.read()
            try:
                return body.decode(charset or "utf-8")
            except (UnicodeDecodeError, LookupError) as exc:
                raise FetchError(f"Undecodable response from {url}: {exc}") from exc
        except (URLError, OSError, FetchError) as exc:
            last_error = exc
            if attempt == retries:
                break
            logger.debug("Attempt %d for %s failed: %s", attempt, url, exc)
            time.sleep(backoff * attempt)
    raise FetchError(f"Failed to fetch {url} after {retries} attempts: {last_error}")


def parse_fred_csv(text: str, symbol: str = "") -> IndicatorSeries:
    """Parse a ``fredgraph.csv`` payload.

    The first column is the observation date, the second the value. FRED
    writes ``.`` for days without an observation; those rows are skipped.
    """

    reader = csv.reader(io.StringIO(text.strip()))
    header = next(reader, None)
    if not header or len(header) < 2:
        raise FetchError(f"Malformed FRED payload for {symbol or 'series'}")
    observations: Dict[date, float] = {}
    for row in reader:
        if len(row) < 2:
            continue
        raw_date, raw_value = row[0].strip(), row[1].strip()
        if not raw_value or raw_value == ".":
            continue
        try:
            observations[coerce_date(raw_date)] = float(raw_value)
        except ValueError as exc:
            raise FetchError(f"Malformed FRED row {row!r} for {symbol or 'series'}") from exc
    return IndicatorSeries(observations, symbol=symbol)


def _is_standing_repo(operation: Mapping[str, object]) -> bool:
    operation_type = str(operation.get("operationType") or "")
    return "Standing" in operation_type or "SRF" in operation_type


def parse_repo_operations(payload: Mapping[str, object], symbol: str = "") -> IndicatorSeries:
    """Extract standing repo facility take-up per operation date."""

    repo = payload.get("repo") if isinstance(payload, Mapping) else None
    if repo is not None and not isinstance(repo, Mapping):
        raise FetchError(f"Malformed repo operations payload for {symbol or 'series'}")
    operations: Iterable[Mapping[str, object]] = (repo or {}).get("operations") or []
    observations: Dict[date, float] = {}
    for operation in operations:
        if not isinstance(operation, Mapping) or not _is_standing_repo(operation):
            continue
        raw_date = operation.get("operationDate") or operation.get("effectiveDate")
        if not raw_date:
            continue
        try:
            amount = float(operation.get("totalAmtAccepted") or 0)
            day = coerce_date(str(raw_date))
        except (TypeError, ValueError) as exc:
            raise FetchError(f"Malformed repo operation {dict(operation)!r} for {symbol or 'series'}") from exc
        # Some releases report billions instead of millions.
        if 0 < amount < 1000:
            amount *= 1000
        observations[day] = observations.get(day, 0.0) + amount
    return IndicatorSeries(observations, symbol=symbol)


class BaseFetcher:
    """Fail-soft :class:`Fetcher` built on a raising :meth:`fetch_series`."""

    def fetch_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        raise NotImplementedError

    def get_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        try:
            return self.fetch_series(definition, start)
        except FetchError as exc:
            logger.warning("Series %s (%s) unavailable: %s", definition.key, definition.series_id, exc)
            return IndicatorSeries(symbol=definition.key)

    def get_latest(self, definition: IndicatorDefinition) -> LatestValue:
        try:
            series = self.fetch_series(definition, None)
        except FetchError as exc:
            logger.warning("Latest %s (%s) unavailable: %s", definition.key, definition.series_id, exc)
            return LatestValue(symbol=definition.key, date=None, value=0.0, error=str(exc))
        latest = series.latest()
        if latest is None:
            return LatestValue(symbol=definition.key, date=None, value=0.0, error="no observations")
        return LatestValue(symbol=definition.key, date=latest[0], value=latest[1])


class FredFetcher(BaseFetcher):
    """Read series from the public ``fredgraph.csv`` endpoint."""

    def __init__(self, base_url: str, *, timeout: int = 15, retries: int = 3, backoff: float = 1.0) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff

    def url_for(self, definition: IndicatorDefinition, start: date | None = None) -> str:
        params = {"id": definition.series_id}
        if start is not None:
            params["cosd"] = start.isoformat()
        return f"{self.base_url}?{urlencode(params)}"

    def fetch_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        text = http_get(
            self.url_for(definition, start),
            timeout=self.timeout,
            retries=self.retries,
            backoff=self.backoff,
        )
        series = parse_fred_csv(text, symbol=definition.key)
        return series.since(start) if start is not None else series


class NewYorkFedFetcher(BaseFetcher):
    """Read repo operation results from the New York Fed markets API."""

    def __init__(self, base_url: str, *, timeout: int = 15, retries: int = 3, backoff: float = 1.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff

    def url_for(self, start: date | None = None) -> str:
        if start is None:
            return f"{self.base_url}/rp/all/all/results/latest/1.json"
        query = urlencode({"startDate": start.isoformat(), "endDate": date.today().isoformat()})
        return f"{self.base_url}/rp/all/all/results/search.json?{query}"

    def fetch_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        text = http_get(
            self.url_for(start),
            timeout=self.timeout,
            retries=self.retries,
            backoff=self.backoff,
            accept="application/json",
        )
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FetchError(f"Malformed repo operations payload: {exc}") from exc
        return parse_repo_operations(payload, symbol=definition.key)


class CompositeFetcher(BaseFetcher):
    """Dispatch to a fetcher per provider name (``fred``, ``nyfed``)."""

    def __init__(self, fetchers: Mapping[str, BaseFetcher]) -> None:
        self.fetchers = dict(fetchers)

    def fetch_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        fetcher = self.fetchers.get(definition.provider)
        if fetcher is None:
            raise FetchError(f"No fetcher configured for provider '{definition.provider}'")
        return fetcher.fetch_series(definition, start)


__all__ = [
    "BaseFetcher",
    "FetchError",
    "Fetcher",
    "FredFetcher",
    "LatestValue",
    "NewYorkFedFetcher",
    "CompositeFetcher",
    "http_get",
    "parse_fred_csv",
    "parse_repo_operations",
]
