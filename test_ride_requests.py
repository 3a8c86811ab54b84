import pytest
from datetime import datetime, timedelta, timezone

from app.core.errors import Forbidden, PolicyError, ValidationError
from app.domain import ride_requests
from app.domain.records import RequestStatus, RequestType

NOW = datetime(2026, 3, 10, 9, 0)
TOMORROW = NOW + timedelta(days=1)


def make_request(**overrides):
    fields = {
        "rider_id": "rider",
        "request_type": "SCHEDULED",
        "pickup_label": "Dorm",
        "pickup_address": "10 College St",
        "dropoff_label": "Airport",
        "dropoff_address": "1 Terminal Rd",
        "party_size": 2,
        "pickup_at": TOMORROW,
        "now": NOW,
    }
    fields.update(overrides)
    return ride_requests.create(**fields)


def test_create_defaults():
    request = make_request(pickup_notes="  by the gate ", pickup_label=" Dorm ")
    assert request.id.startswith("request_")
    assert request.type == RequestType.SCHEDULED
    assert request.status == RequestStatus.OPEN
    assert request.cars_needed == 1
    assert request.pickup_label == "Dorm"
    assert request.pickup_notes == "by the gate"
    assert request.created_at == request.updated_at == NOW


@pytest.mark.parametrize("party_size, cars", [(1, 1), (4, 1), (5, 2), (9, 3)])
def test_cars_needed_follows_party_size(party_size, cars):
    assert make_request(request_type="GROUP", party_size=party_size).cars_needed == cars


def test_explicit_cars_needed_is_kept():
    assert make_request(request_type="group", party_size=3, cars_needed=2).cars_needed == 2


@pytest.mark.parametrize("overrides, message", [
    ({"rider_id": " "}, "rider_id is required"),
    ({"request_type": None}, "type is required"),
    ({"request_type": "SHUTTLE"}, "type must be one of IMMEDIATE, SCHEDULED, GROUP"),
    ({"pickup_address": ""}, "pickup_address is required"),
    ({"dropoff_label": None}, "dropoff_label is required"),
    ({"party_size": None}, "party_size is required"),
    ({"party_size": 0}, "Party size must be at least 1"),
    ({"pickup_at": None}, "pickup_at is required"),
    ({"pickup_at": NOW - timedelta(minutes=1)}, "pickup_at cannot be in the past"),
    ({"cars_needed": 0}, "Cars needed must be at least 1"),
    ({"status": RequestStatus.MATCHED}, "New requests must be DRAFT or OPEN"),
])
def test_create_rejects_bad_fields(overrides, message):
    with pytest.raises(ValidationError) as exc:
        make_request(**overrides)
    assert exc.value.detail == message


def test_immediate_request_may_use_current_time():
    request = make_request(request_type="IMMEDIATE", pickup_at=NOW - timedelta(minutes=1))
    assert request.type == RequestType.IMMEDIATE


def test_aware_pickup_time_is_stored_as_utc():
    pickup = datetime(2026, 3, 11, 10, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert make_request(pickup_at=pickup).pickup_at == datetime(2026, 3, 11, 15, 0)


def test_cancel_by_rider():
    request = make_request(status=RequestStatus.DRAFT)
    later = NOW + timedelta(hours=1)
    canceled = ride_requests.cancel(request, "rider", later)
    assert canceled.status == RequestStatus.CANCELED
    assert canceled.updated_at == later
    assert request.status == RequestStatus.DRAFT


def test_cancel_twice_is_noop():
    canceled = ride_requests.cancel(make_request(), "rider", NOW)
    assert ride_requests.cancel(canceled, "rider", NOW) is canceled


def test_cancel_only_by_rider():
    with pytest.raises(Forbidden):
        ride_requests.cancel(make_request(), "someone", NOW)


@pytest.mark.parametrize("status", [RequestStatus.MATCHED, RequestStatus.EXPIRED])
def test_cancel_settled_request(status):
    request = make_request()
    request.status = status
    with pytest.raises(PolicyError):
        ride_requests.cancel(request, "rider", NOW)


def test_filter_and_sort():
    late = make_request(pickup_at=TOMORROW + timedelta(hours=5))
    early = make_request(pickup_at=TOMORROW, rider_id="other")
    draft = make_request(status=RequestStatus.DRAFT, pickup_at=TOMORROW + timedelta(hours=1))

    assert ride_requests.sort_by_pickup([late, early, draft]) == [early, draft, late]
    assert ride_requests.filter_requests([late, early, draft], statuses=[RequestStatus.OPEN]) == [late, early]
    assert ride_requests.filter_requests([late, early, draft], rider_id="other") == [early]
