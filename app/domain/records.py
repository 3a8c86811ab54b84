"""
Plain records the rule engines operate on.

The engines never touch ORM rows: the repository converts a row into one of
these records, the engine returns a new record and the repository writes the
whole record back.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional


class CarpoolStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    PENDING_CONFIRMATIONS = "PENDING_CONFIRMATIONS"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"
    COMPLETED = "COMPLETED"


TERMINAL_STATUSES = {CarpoolStatus.CANCELED, CarpoolStatus.COMPLETED, CarpoolStatus.EXPIRED}

# Statuses in which join/confirm/unconfirm leave the participant list alone.
FROZEN_STATUSES = TERMINAL_STATUSES | {CarpoolStatus.CONFIRMED}

LOCKABLE_STATUSES = {CarpoolStatus.OPEN, CarpoolStatus.PENDING_CONFIRMATIONS}


class AlertType(str, enum.Enum):
    ONE_WEEK = "oneWeek"
    THREE_DAYS = "threeDays"
    ONE_DAY = "oneDay"


@dataclass
class TimeWindow:
    start: str
    end: str


@dataclass
class CarpoolParticipant:
    user_id: str
    joined_at: datetime
    confirmed_at: Optional[datetime] = None
    is_creator: bool = False

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None


@dataclass
class CarpoolThread:
    id: str
    creator_id: str
    destination: str
    date: str
    time_window: TimeWindow
    pickup_area: str
    seats_needed: int
    target_group_size: int
    status: CarpoolStatus
    created_at: datetime
    updated_at: datetime
    notes: Optional[str] = None
    participants: List[CarpoolParticipant] = field(default_factory=list)
    interested_count: int = 0
    confirmed_count: int = 0
    locked_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None

    def participant(self, user_id: str) -> Optional[CarpoolParticipant]:
        return next((p for p in self.participants if p.user_id == user_id), None)


@dataclass
class CarpoolMessage:
    id: str
    carpool_id: str
    user_id: str
    content: str
    created_at: datetime


@dataclass
class DriverInfo:
    legal_name: str
    license_number: str
    issuing_state: str
    verified_at: datetime
    last_verified_at: datetime
    license_expiration_date: Optional[date] = None
    verified: bool = True
    expiration_alerts_sent: Dict[str, datetime] = field(default_factory=dict)


@dataclass
class UserRecord:
    id: str
    alias: str
    name: str
    created_at: datetime
    updated_at: datetime
    is_driver_available: bool = False
    driver_info: Optional[DriverInfo] = None


@dataclass
class ExpirationStatus:
    is_expired: bool
    days_until_expiration: Optional[int]
    alerts_needed: Dict[str, bool]


class RequestType(str, enum.Enum):
    IMMEDIATE = "IMMEDIATE"
    SCHEDULED = "SCHEDULED"
    GROUP = "GROUP"


class RequestStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    MATCHED = "MATCHED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"


INITIAL_REQUEST_STATUSES = {RequestStatus.DRAFT, RequestStatus.OPEN}


@dataclass
class RideRequest:
    id: str
    rider_id: str
    type: RequestType
    status: RequestStatus
    pickup_label: str
    pickup_address: str
    dropoff_label: str
    dropoff_address: str
    party_size: int
    pickup_at: datetime
    cars_needed: int
    created_at: datetime
    updated_at: datetime
    pickup_notes: Optional[str] = None
