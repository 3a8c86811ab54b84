from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.clock import get_clock
from ..database.database import get_db
from ..domain.records import RequestStatus
from ..schemas import schemas
from ..services import request_service

router = APIRouter(prefix="/requests", tags=["Ride Requests"])


def _parse_statuses(raw: Optional[str]) -> Optional[List[RequestStatus]]:
    if not raw:
        return None
    try:
        return [RequestStatus(value.strip().upper()) for value in raw.split(",") if value.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status filter: {raw}")


@router.get("", response_model=List[schemas.RideRequest])
def read_requests(
    status: Optional[str] = None,
    rider_id: Optional[str] = Query(None, alias="riderId"),
    db: Session = Depends(get_db),
):
    return request_service.list_requests(db, statuses=_parse_statuses(status), rider_id=rider_id)

@router.post("", response_model=schemas.RideRequest, status_code=201)
def create_request(request: schemas.RideRequestCreate, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return request_service.create_request(
        db,
        clock,
        rider_id=request.rider_id,
        request_type=request.type,
        pickup_label=request.pickup_label,
        pickup_address=request.pickup_address,
        dropoff_label=request.dropoff_label,
        dropoff_address=request.dropoff_address,
        party_size=request.party_size,
        pickup_at=request.pickup_at,
        cars_needed=request.cars_needed,
        pickup_notes=request.pickup_notes,
        status=request.status,
    )

@router.get("/{request_id}", response_model=schemas.RideRequest)
def read_request(request_id: str, db: Session = Depends(get_db)):
    return request_service.get_request(db, request_id)

@router.post("/{request_id}/cancel", response_model=schemas.RideRequest)
def cancel_request(request_id: str, payload: schemas.RiderAction, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return request_service.cancel_request(db, clock, request_id, payload.rider_id)
