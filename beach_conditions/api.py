"""HTTP read surface over the conditions snapshot map."""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from .activities import build_outlook, parse_activity
from .conditions_service import ConditionsOrchestrator
from .config import settings
from .data_sources import build_data_source
from .locations import all_locations, get_location
from .models import ActivityOutlook, ConditionsSnapshot, Location
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")

router = APIRouter()

# Built on first request so importing the app stays free of disk and config side effects.
ORCHESTRATOR: Optional[ConditionsOrchestrator] = None


def get_orchestrator() -> ConditionsOrchestrator:
    """Return the shared orchestrator, building its data sources on first use."""
    global ORCHESTRATOR
    if ORCHESTRATOR is None:
        logger.info("Building conditions orchestrator")
        ORCHESTRATOR = ConditionsOrchestrator(build_data_source(settings))
    return ORCHESTRATOR


class ConditionsResponse(BaseModel):
    """All snapshots from the latest pass."""
    last_refresh: Optional[datetime] = None
    conditions: Dict[str, ConditionsSnapshot]


def _require_location(location_id: str) -> Location:
    """Resolve a location id or raise a 404."""
    location = get_location(location_id)
    if location is None:
        raise HTTPException(status_code=404, detail=f"Unknown location '{location_id}'")
    return location


async def _ensure_loaded(orchestrator: ConditionsOrchestrator) -> None:
    """Run a first pass if nothing has been fetched yet."""
    if not orchestrator.snapshots:
        logger.info("No snapshots yet; running initial fetch")
        await orchestrator.fetch_all(all_locations())


async def _snapshot_for(location: Location, orchestrator: ConditionsOrchestrator) -> ConditionsSnapshot:
    await _ensure_loaded(orchestrator)
    snapshot = orchestrator.get(location.id)
    if snapshot is None:
        snapshot = await orchestrator.refresh_location(location)
    return snapshot


@router.get("/locations", response_model=List[Location])
def list_locations():
    """Return every location we report on."""
    return all_locations()


@router.get("/conditions", response_model=ConditionsResponse)
async def list_conditions(orchestrator: ConditionsOrchestrator = Depends(get_orchestrator)):
    """Return the current snapshot map."""
    await _ensure_loaded(orchestrator)
    return ConditionsResponse(last_refresh=orchestrator.last_refresh, conditions=dict(orchestrator.snapshots))


@router.get("/conditions/{location_id}", response_model=ConditionsSnapshot)
async def get_conditions(location_id: str, orchestrator: ConditionsOrchestrator = Depends(get_orchestrator)):
    """Return the snapshot for one location."""
    location = _require_location(location_id)
    return await _snapshot_for(location, orchestrator)


@router.get("/conditions/{location_id}/activities/{activity}", response_model=ActivityOutlook)
async def get_activity_outlook(
    location_id: str,
    activity: str,
    orchestrator: ConditionsOrchestrator = Depends(get_orchestrator),
):
    """Score the rest of today at one location for an activity and return its best windows."""
    location = _require_location(location_id)
    parsed = parse_activity(activity)
    if parsed is None:
        raise HTTPException(status_code=404, detail=f"Unknown activity '{activity}'")
    snapshot = await _snapshot_for(location, orchestrator)
    return build_outlook(snapshot, parsed)


@router.post("/conditions/refresh", response_model=ConditionsResponse)
async def refresh_all(orchestrator: ConditionsOrchestrator = Depends(get_orchestrator)):
    """Run a full pass over every location."""
    snapshots = await orchestrator.fetch_all(all_locations())
    return ConditionsResponse(last_refresh=orchestrator.last_refresh, conditions=snapshots)


@router.post("/conditions/{location_id}/refresh", response_model=ConditionsSnapshot)
async def refresh_one(location_id: str, orchestrator: ConditionsOrchestrator = Depends(get_orchestrator)):
    """Re-fetch a single location."""
    location = _require_location(location_id)
    return await orchestrator.refresh_location(location)
