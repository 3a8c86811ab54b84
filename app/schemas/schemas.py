from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

from ..domain.records import CarpoolStatus, RequestStatus, RequestType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Users and driver capability

class LicenseDetails(CamelModel):
    legal_name: Optional[str] = None
    license_number: Optional[str] = None
    license_expiration_date: Optional[str] = None
    issuing_state: Optional[str] = None


class UserCreate(LicenseDetails):
    alias: str
    name: str


class DriverAvailabilityUpdate(CamelModel):
    is_available: bool


class DriverInfo(CamelModel):
    legal_name: str
    license_number: str
    issuing_state: str
    license_expiration_date: Optional[date] = None
    verified: bool
    verified_at: datetime
    last_verified_at: datetime
    expiration_alerts_sent: Dict[str, datetime] = {}


class User(CamelModel):
    id: str
    alias: str
    name: str
    is_driver_available: bool
    driver_info: Optional[DriverInfo] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="isDriver")
    @property
    def is_driver(self) -> bool:
        return self.driver_info is not None


class LicenseExpirationStatus(CamelModel):
    is_expired: bool
    days_until_expiration: Optional[int] = None
    alerts_needed: Dict[str, bool]
    reupload_allowed: bool


# Carpools

class TimeWindow(CamelModel):
    start: str
    end: str


class CarpoolParticipant(CamelModel):
    user_id: str
    joined_at: datetime
    confirmed_at: Optional[datetime] = None
    is_creator: bool


class CarpoolCreate(CamelModel):
    creator_id: Optional[str] = None
    destination: Optional[str] = None
    date: Optional[str] = None
    time_window: Optional[TimeWindow] = None
    pickup_area: Optional[str] = None
    seats_needed: Optional[int] = None
    notes: Optional[str] = None
    status: Optional[CarpoolStatus] = None


class CarpoolUpdate(CamelModel):
    creator_id: str
    destination: Optional[str] = None
    date: Optional[str] = None
    time_window: Optional[TimeWindow] = None
    pickup_area: Optional[str] = None
    seats_needed: Optional[int] = None
    notes: Optional[str] = None


class Carpool(CamelModel):
    id: str
    creator_id: str
    destination: str
    date: str
    time_window: TimeWindow
    pickup_area: str
    seats_needed: int
    target_group_size: int
    status: CarpoolStatus
    participants: List[CarpoolParticipant] = []
    interested_count: int
    confirmed_count: int
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    locked_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None


class ParticipantAction(CamelModel):
    user_id: str


class ConfirmAction(CamelModel):
    user_id: str
    action: Literal["confirm", "unconfirm"] = "confirm"


class CreatorAction(CamelModel):
    creator_id: str


class MessageCreate(CamelModel):
    user_id: str
    content: str


class CarpoolMessage(CamelModel):
    id: str
    carpool_id: str
    user_id: str
    content: str
    created_at: datetime


# Ride requests

class RideRequestCreate(CamelModel):
    rider_id: Optional[str] = None
    type: Optional[str] = None
    pickup_label: Optional[str] = None
    pickup_address: Optional[str] = None
    dropoff_label: Optional[str] = None
    dropoff_address: Optional[str] = None
    pickup_notes: Optional[str] = None
    party_size: Optional[int] = None
    pickup_at: Optional[datetime] = None
    cars_needed: Optional[int] = None
    status: Optional[RequestStatus] = None


class RideRequest(CamelModel):
    id: str
    rider_id: str
    type: RequestType
    status: RequestStatus
    pickup_label: str
    pickup_address: str
    dropoff_label: str
    dropoff_address: str
    pickup_notes: Optional[str] = None
    party_size: int
    pickup_at: datetime
    cars_needed: int
    created_at: datetime
    updated_at: datetime


class RiderAction(CamelModel):
    rider_id: str
