from typing import Optional, Literal

from fastapi import APIRouter, Depends, Query

from globetrotter.dependencies import get_destination_service
from globetrotter.responses import ok
from globetrotter.services.destination_service import DestinationService

router = APIRouter()


@router.get("")
def list_destinations(
    q: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    sort: Literal["name", "popularity", "costIndex"] = Query("popularity"),
    limit: int = Query(50, ge=1, le=100),
    destinations: DestinationService = Depends(get_destination_service),
):
    """Public browse of the reference city catalog."""
    return ok({"destinations": destinations.list(q, region, sort, limit)})


@router.get("/{dest_id}")
def get_destination(dest_id: str, destinations: DestinationService = Depends(get_destination_service)):
    return ok({"destination": destinations.get(dest_id)})
