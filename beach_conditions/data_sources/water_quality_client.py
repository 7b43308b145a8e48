"""Client for the City of Vancouver beach water-quality open dataset.

The portal publishes E. coli counts per monitored beach. We take the most
recent sample and turn it into a swim status:

- advisory text mentioning "closed" or "closure" means CLOSED, whatever the count
- more than 400 E. coli per 100 mL is CLOSED
- 200 to 400 inclusive is ADVISORY
- under 200 is SAFE
- no count at all is UNKNOWN

Samples older than a week are reported as UNKNOWN but keep their date.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Mapping, Optional

import requests

from beach_conditions.cache_store import CacheStore
from beach_conditions.errors import ParseFailure, TransportFailure
from beach_conditions.models import WaterQuality, WaterStatus
from beach_conditions.resilience import fetch_with_cache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="water_quality_client")

session = requests.Session()

WATER_QUALITY_URL = (
    "https://opendata.vancouver.ca/api/explore/v2.1/catalog/datasets/beach-water-quality/records"
)
SOURCE = "water-quality"

ECOLI_SAFE_THRESHOLD = 200
ECOLI_ADVISORY_THRESHOLD = 400
STALE_SAMPLE_DAYS = 7
CLOSURE_KEYWORDS = ("closed", "closure")


def determine_status(ecoli_count: Optional[int], advisory: Optional[str]) -> WaterStatus:
    """Classify a sample from its E. coli count and advisory text."""
    if advisory:
        lowered = advisory.lower()
        if any(word in lowered for word in CLOSURE_KEYWORDS):
            return WaterStatus.CLOSED

    if ecoli_count is None:
        return WaterStatus.UNKNOWN
    if ecoli_count > ECOLI_ADVISORY_THRESHOLD:
        return WaterStatus.CLOSED
    if ecoli_count >= ECOLI_SAFE_THRESHOLD:
        return WaterStatus.ADVISORY
    return WaterStatus.SAFE


def unknown_sample(sample_date: dt.date) -> WaterQuality:
    """A placeholder result for beaches with no usable sample."""
    return WaterQuality(
        status=WaterStatus.UNKNOWN,
        ecoli_count=None,
        sample_date=sample_date,
        advisory_reason=None,
        fetched_at=dt.datetime.now(dt.timezone.utc),
    )


def _parse_sample_date(value: Any) -> dt.date:
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ParseFailure(SOURCE, f"invalid sample_date '{value}'") from exc


def _parse_ecoli(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseFailure(SOURCE, f"invalid e_coli value {value!r}")
    try:
        return max(int(float(value)), 0)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ParseFailure(SOURCE, f"invalid e_coli value {value!r}") from exc


def parse_record(
    record: Mapping[str, Any],
    *,
    today: dt.date | None = None,
    stale_days: int = STALE_SAMPLE_DAYS,
) -> WaterQuality:
    """Classify one dataset record."""
    today = today or dt.date.today()
    if not isinstance(record, Mapping):
        raise ParseFailure(SOURCE, "record is not a JSON object")

    raw_date = record.get("sample_date")
    if raw_date is None:
        return unknown_sample(today)
    sample_date = _parse_sample_date(raw_date)

    if (today - sample_date).days > stale_days:
        logger.info(
            "Water-quality sample is stale",
            extra={"beach": record.get("beach_name"), "sample_date": sample_date.isoformat()},
        )
        return unknown_sample(sample_date)

    ecoli_count = _parse_ecoli(record.get("e_coli"))
    advisory = record.get("advisory")
    if advisory is not None and not isinstance(advisory, str):
        advisory = str(advisory)

    status = determine_status(ecoli_count, advisory)
    return WaterQuality(
        status=status,
        ecoli_count=ecoli_count,
        sample_date=sample_date,
        advisory_reason=advisory if status in (WaterStatus.ADVISORY, WaterStatus.CLOSED) else None,
        fetched_at=dt.datetime.now(dt.timezone.utc),
    )


def parse_response(
    data: Any,
    *,
    today: dt.date | None = None,
    stale_days: int = STALE_SAMPLE_DAYS,
) -> WaterQuality:
    """Classify the newest record in a records-API response."""
    if not isinstance(data, Mapping) or not isinstance(data.get("results"), list):
        raise ParseFailure(SOURCE, "missing 'results' list")
    results = data["results"]
    if not results:
        return unknown_sample(today or dt.date.today())
    return parse_record(results[0], today=today, stale_days=stale_days)


def fetch_latest_sample(
    beach_name: str,
    *,
    base_url: str = WATER_QUALITY_URL,
    timeout: float = 10,
    stale_days: int = STALE_SAMPLE_DAYS,
) -> WaterQuality:
    """Fetch and classify the most recent sample for ``beach_name``."""
    params = {
        "where": f"beach_name='{beach_name}'",
        "order_by": "sample_date desc",
        "limit": 1,
    }

    try:
        resp = session.get(base_url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise TransportFailure(SOURCE, str(exc)) from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise ParseFailure(SOURCE, f"invalid JSON: {exc}") from exc

    try:
        return parse_response(data, stale_days=stale_days)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise ParseFailure(SOURCE, f"malformed response: {exc}") from exc


class WaterQualitySource:
    """Cache-backed access to the water-quality dataset."""

    def __init__(
        self,
        cache: Optional[CacheStore] = None,
        *,
        base_url: str = WATER_QUALITY_URL,
        timeout: float = 10,
        ttl_hours: float = 24,
        stale_days: int = STALE_SAMPLE_DAYS,
    ) -> None:
        self.cache = cache
        self.base_url = base_url
        self.timeout = timeout
        self.ttl_hours = ttl_hours
        self.stale_days = stale_days

    @staticmethod
    def cache_key(beach_name: str) -> str:
        return "water_quality_" + beach_name.replace(" ", "_").lower()

    def fetch(self, beach_name: str) -> WaterQuality:
        """Return the latest classified sample, falling back to cached data when the portal fails."""
        return fetch_with_cache(
            self.cache,
            self.cache_key(beach_name),
            WaterQuality,
            self.ttl_hours,
            lambda: fetch_latest_sample(
                beach_name,
                base_url=self.base_url,
                timeout=self.timeout,
                stale_days=self.stale_days,
            ),
        )
