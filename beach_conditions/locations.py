"""Registry of the Vancouver beaches we report conditions for."""

from __future__ import annotations

from typing import Dict, List, Optional

from beach_conditions.models import Location

BEACHES: List[Location] = [
    Location(id="kitsilano", name="Kitsilano Beach",
             latitude=49.2743, longitude=-123.1544, water_quality_id="kitsilano-beach"),
    Location(id="english-bay", name="English Bay Beach",
             latitude=49.2863, longitude=-123.1432, water_quality_id="english-bay"),
    Location(id="jericho", name="Jericho Beach",
             latitude=49.2726, longitude=-123.1967, water_quality_id="jericho-beach"),
    Location(id="spanish-banks-east", name="Spanish Banks East",
             latitude=49.2756, longitude=-123.2089, water_quality_id="spanish-banks-east"),
    Location(id="spanish-banks-west", name="Spanish Banks West",
             latitude=49.2769, longitude=-123.2244, water_quality_id="spanish-banks-west"),
    Location(id="locarno", name="Locarno Beach",
             latitude=49.2768, longitude=-123.2167, water_quality_id="locarno-beach"),
    Location(id="wreck", name="Wreck Beach",
             latitude=49.2621, longitude=-123.2617, water_quality_id="wreck-beach"),
    Location(id="second", name="Second Beach",
             latitude=49.2912, longitude=-123.1513, water_quality_id="second-beach"),
    Location(id="third", name="Third Beach",
             latitude=49.2989, longitude=-123.1588, water_quality_id="third-beach"),
    Location(id="sunset", name="Sunset Beach",
             latitude=49.2799, longitude=-123.1339, water_quality_id="sunset-beach"),
    Location(id="trout-lake", name="Trout Lake Beach",
             latitude=49.2555, longitude=-123.0644, water_quality_id="trout-lake"),
    Location(id="new-brighton", name="New Brighton Beach",
             latitude=49.2930, longitude=-123.0365, water_quality_id="new-brighton"),
]

_BY_ID: Dict[str, Location] = {beach.id: beach for beach in BEACHES}


def all_locations() -> List[Location]:
    """Return every known location, in display order."""
    return list(BEACHES)


def get_location(location_id: str) -> Optional[Location]:
    """Look up a location by id."""
    return _BY_ID.get(location_id)
