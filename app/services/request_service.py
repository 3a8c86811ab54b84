from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import NotFound
from ..crud import RideRequestRepository
from ..domain import ride_requests
from ..domain.records import RequestStatus, RideRequest
from .audit_service import log_action


def _load(repo: RideRequestRepository, request_id: str) -> RideRequest:
    request = repo.get(request_id)
    if request is None:
        raise NotFound("Ride request not found")
    return request


def create_request(
    db: Session,
    clock,
    rider_id: str,
    request_type,
    pickup_label: str,
    pickup_address: str,
    dropoff_label: str,
    dropoff_address: str,
    party_size: int,
    pickup_at: datetime,
    cars_needed: Optional[int] = None,
    pickup_notes: Optional[str] = None,
    status: Optional[RequestStatus] = None,
) -> RideRequest:
    request = ride_requests.create(
        rider_id=rider_id,
        request_type=request_type,
        pickup_label=pickup_label,
        pickup_address=pickup_address,
        dropoff_label=dropoff_label,
        dropoff_address=dropoff_address,
        party_size=party_size,
        pickup_at=pickup_at,
        now=clock.now(),
        cars_needed=cars_needed,
        pickup_notes=pickup_notes,
        status=status,
        seats_per_car=settings.SEATS_PER_CAR,
    )
    saved = RideRequestRepository(db).put(request)
    log_action(
        db=db,
        user_id=saved.rider_id,
        action="CREATE_RIDE_REQUEST",
        entity_type="RideRequest",
        entity_id=saved.id,
        details=f"Type: {saved.type.value} | Party: {saved.party_size} | Cars: {saved.cars_needed}",
    )
    return saved


def get_request(db: Session, request_id: str) -> RideRequest:
    return _load(RideRequestRepository(db), request_id)


def list_requests(
    db: Session,
    statuses: Optional[List[RequestStatus]] = None,
    rider_id: Optional[str] = None,
) -> List[RideRequest]:
    requests = RideRequestRepository(db).list()
    return ride_requests.sort_by_pickup(ride_requests.filter_requests(requests, statuses=statuses, rider_id=rider_id))


def cancel_request(db: Session, clock, request_id: str, rider_id: str) -> RideRequest:
    repo = RideRequestRepository(db)
    request = _load(repo, request_id)
    canceled = ride_requests.cancel(request, rider_id, clock.now())
    if canceled is request:
        return request

    saved = repo.put(canceled)
    log_action(db=db, user_id=rider_id, action="CANCEL_RIDE_REQUEST", entity_type="RideRequest", entity_id=saved.id)
    return saved
