"""Merge weather, tides and water quality into per-location conditions snapshots."""
from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Dict, Iterable, List, Mapping, Optional

from beach_conditions.data_sources import ConditionsDataSource, build_data_source
from beach_conditions.models import ConditionsSnapshot, Location, TideInfo, WaterQuality, Weather
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="conditions_service")


def _field_or_none(result: Any, *, field: str, location_id: str | None = None) -> Any:
    """Turn a gathered result into a value, or None if the task raised."""
    if isinstance(result, BaseException):
        logger.warning(
            "Conditions field unavailable",
            extra={"field": field, "location_id": location_id, "error": repr(result)},
        )
        return None
    return result


class ConditionsOrchestrator:
    """Fan out fetches across locations and keep the latest snapshot map.

    The blocking sources run in worker threads. Every fetch in a pass is
    scheduled before any is awaited, and failures are captured per task so
    one bad upstream never cancels the others. Tide data is fetched once per
    pass and shared by every snapshot.
    """

    def __init__(self, data_source: ConditionsDataSource | None = None) -> None:
        self.data_source = data_source or build_data_source()
        self._snapshots: Dict[str, ConditionsSnapshot] = {}
        self.last_refresh: Optional[dt.datetime] = None

    @property
    def snapshots(self) -> Mapping[str, ConditionsSnapshot]:
        """The map produced by the most recent pass."""
        return self._snapshots

    def get(self, location_id: str) -> Optional[ConditionsSnapshot]:
        return self._snapshots.get(location_id)

    async def fetch_all(self, locations: Iterable[Location]) -> Dict[str, ConditionsSnapshot]:
        """Fetch conditions for every location and replace the snapshot map."""
        locations = list(locations)
        ds = self.data_source

        logger.info("Fetching conditions", extra={"locations": len(locations)})

        tide_task = asyncio.to_thread(ds.fetch_tides)
        weather_tasks = [
            asyncio.to_thread(ds.fetch_weather, loc.latitude, loc.longitude) for loc in locations
        ]
        monitored = [loc for loc in locations if loc.water_quality_id]
        water_tasks = [
            asyncio.to_thread(ds.fetch_water_quality, loc.water_quality_id) for loc in monitored
        ]

        results = await asyncio.gather(tide_task, *weather_tasks, *water_tasks, return_exceptions=True)

        tides: Optional[TideInfo] = _field_or_none(results[0], field="tides")
        weather_results = results[1:1 + len(locations)]
        water_results = results[1 + len(locations):]
        water_by_id: Dict[str, Any] = {loc.id: res for loc, res in zip(monitored, water_results)}

        snapshots: Dict[str, ConditionsSnapshot] = {}
        for loc, weather_result in zip(locations, weather_results):
            weather: Optional[Weather] = _field_or_none(weather_result, field="weather", location_id=loc.id)
            water_quality: Optional[WaterQuality] = None
            if loc.id in water_by_id:
                water_quality = _field_or_none(water_by_id[loc.id], field="water_quality", location_id=loc.id)
            snapshots[loc.id] = ConditionsSnapshot(
                location=loc,
                weather=weather,
                tides=tides,
                water_quality=water_quality,
            )

        # swap in the new map only after every task has finished
        self._snapshots = snapshots
        self.last_refresh = dt.datetime.now(dt.timezone.utc)

        logger.info(
            "Computed conditions snapshots",
            extra={
                "snapshots": len(snapshots),
                "weather_missing": sum(1 for s in snapshots.values() if s.weather is None),
                "water_quality_missing": sum(
                    1 for s in snapshots.values() if s.location.water_quality_id and s.water_quality is None
                ),
                "tides_available": tides is not None,
            },
        )
        return snapshots

    async def refresh_location(self, location: Location) -> ConditionsSnapshot:
        """Re-fetch one location and replace only its entry in the map."""
        ds = self.data_source
        tasks: List[Any] = [
            asyncio.to_thread(ds.fetch_tides),
            asyncio.to_thread(ds.fetch_weather, location.latitude, location.longitude),
        ]
        if location.water_quality_id:
            tasks.append(asyncio.to_thread(ds.fetch_water_quality, location.water_quality_id))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        snapshot = ConditionsSnapshot(
            location=location,
            tides=_field_or_none(results[0], field="tides", location_id=location.id),
            weather=_field_or_none(results[1], field="weather", location_id=location.id),
            water_quality=(
                _field_or_none(results[2], field="water_quality", location_id=location.id)
                if len(results) > 2 else None
            ),
        )

        updated = dict(self._snapshots)
        updated[location.id] = snapshot
        self._snapshots = updated
        logger.info("Refreshed conditions for location", extra={"location_id": location.id})
        return snapshot


def main():
    """Manual test helper for conditions aggregation."""
    from beach_conditions.locations import all_locations
    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="beach_conditions")
    orchestrator = ConditionsOrchestrator()
    snapshots = asyncio.run(orchestrator.fetch_all(all_locations()))
    for location_id, snap in snapshots.items():
        weather = snap.weather
        water = snap.water_quality
        tides = snap.tides
        print(f"{location_id}:\n"
              f"    weather: {f'{weather.temperature:.1f}°C {weather.condition.value}' if weather else 'unavailable'}\n"
              f"    tide: {f'{tides.current_height:.2f} m {tides.tide_state.value}' if tides else 'unavailable'}\n"
              f"    water: {water.effective_status().value if water else 'unavailable'}\n")


if __name__ == "__main__":
    main()
