"""
Ride request rules.

A ride request is one rider asking for transport from a pickup to a dropoff:
right away (IMMEDIATE), at a later time (SCHEDULED) or for a larger party that
may need several cars (GROUP). Matching requests to drivers happens elsewhere;
here a request is only created, listed and canceled by its rider.
"""

import math
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..core.errors import Forbidden, PolicyError, ValidationError
from .records import INITIAL_REQUEST_STATUSES, RequestStatus, RequestType, RideRequest

REQUIRED_PLACES = ("pickup_label", "pickup_address", "dropoff_label", "dropoff_address")

DEFAULT_SEATS_PER_CAR = 4

# A canceled request stays canceled; matched and expired ones are settled.
CANCELABLE_STATUSES = {RequestStatus.DRAFT, RequestStatus.OPEN}


def new_request_id() -> str:
    return f"request_{uuid.uuid4().hex}"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _parse_type(value) -> RequestType:
    if not value:
        raise ValidationError("type is required")
    try:
        return RequestType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in RequestType)
        raise ValidationError(f"type must be one of {allowed}")


def _as_utc_naive(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def create(
    rider_id: str,
    request_type,
    pickup_label: str,
    pickup_address: str,
    dropoff_label: str,
    dropoff_address: str,
    party_size: int,
    pickup_at: datetime,
    now: datetime,
    cars_needed: Optional[int] = None,
    pickup_notes: Optional[str] = None,
    status: Optional[RequestStatus] = None,
    seats_per_car: int = DEFAULT_SEATS_PER_CAR,
    request_id: Optional[str] = None,
) -> RideRequest:
    if not _clean(rider_id):
        raise ValidationError("rider_id is required")
    kind = _parse_type(request_type)

    places = {
        "pickup_label": pickup_label,
        "pickup_address": pickup_address,
        "dropoff_label": dropoff_label,
        "dropoff_address": dropoff_address,
    }
    for name in REQUIRED_PLACES:
        if not _clean(places[name]):
            raise ValidationError(f"{name} is required")

    if party_size is None:
        raise ValidationError("party_size is required")
    if party_size < 1:
        raise ValidationError("Party size must be at least 1")

    if pickup_at is None:
        raise ValidationError("pickup_at is required")
    pickup_at = _as_utc_naive(pickup_at)
    if kind != RequestType.IMMEDIATE and pickup_at < now:
        raise ValidationError("pickup_at cannot be in the past")

    if cars_needed is None:
        cars_needed = math.ceil(party_size / seats_per_car)
    if cars_needed < 1:
        raise ValidationError("Cars needed must be at least 1")

    if status is not None and status not in INITIAL_REQUEST_STATUSES:
        raise ValidationError("New requests must be DRAFT or OPEN")

    return RideRequest(
        id=request_id or new_request_id(),
        rider_id=_clean(rider_id),
        type=kind,
        status=status or RequestStatus.OPEN,
        pickup_label=_clean(pickup_label),
        pickup_address=_clean(pickup_address),
        dropoff_label=_clean(dropoff_label),
        dropoff_address=_clean(dropoff_address),
        pickup_notes=_clean(pickup_notes) or None,
        party_size=party_size,
        pickup_at=pickup_at,
        cars_needed=cars_needed,
        created_at=now,
        updated_at=now,
    )


def cancel(request: RideRequest, rider_id: str, now: datetime) -> RideRequest:
    if request.rider_id != rider_id:
        raise Forbidden("Only the rider can cancel this request")
    if request.status == RequestStatus.CANCELED:
        return request
    if request.status not in CANCELABLE_STATUSES:
        raise PolicyError(f"Request cannot be canceled from status {request.status.value}")
    return replace(request, status=RequestStatus.CANCELED, updated_at=now)


def filter_requests(
    requests: Iterable[RideRequest],
    statuses: Optional[Iterable[RequestStatus]] = None,
    rider_id: Optional[str] = None,
) -> List[RideRequest]:
    wanted = set(statuses) if statuses else None
    return [
        r for r in requests
        if (wanted is None or r.status in wanted) and (not rider_id or r.rider_id == rider_id)
    ]


def sort_by_pickup(requests: Iterable[RideRequest]) -> List[RideRequest]:
    return sorted(requests, key=lambda r: r.pickup_at)
