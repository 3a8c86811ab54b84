from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .domain.records import (
    CarpoolMessage,
    CarpoolParticipant,
    CarpoolStatus,
    CarpoolThread,
    DriverInfo,
    RequestStatus,
    RequestType,
    RideRequest,
    TimeWindow,
    UserRecord,
)
from .models import models


def _thread_from_row(row: models.CarpoolThread) -> CarpoolThread:
    return CarpoolThread(
        id=row.id,
        creator_id=row.creatorId,
        destination=row.destination,
        date=row.date,
        time_window=TimeWindow(start=row.timeWindowStart, end=row.timeWindowEnd),
        pickup_area=row.pickupArea,
        seats_needed=row.seatsNeeded,
        target_group_size=row.targetGroupSize,
        status=CarpoolStatus(row.status),
        created_at=row.createdAt,
        updated_at=row.updatedAt,
        notes=row.notes,
        participants=[
            CarpoolParticipant(
                user_id=p.userId,
                joined_at=p.joinedAt,
                confirmed_at=p.confirmedAt,
                is_creator=p.isCreator,
            )
            for p in row.participants
        ],
        interested_count=row.interestedCount,
        confirmed_count=row.confirmedCount,
        locked_at=row.lockedAt,
        canceled_at=row.canceledAt,
    )


def _driver_info_from_row(row: Optional[models.DriverInfo]) -> Optional[DriverInfo]:
    if row is None:
        return None
    return DriverInfo(
        legal_name=row.legalName,
        license_number=row.licenseNumber,
        issuing_state=row.issuingState,
        license_expiration_date=row.licenseExpirationDate,
        verified=row.verified,
        verified_at=row.verifiedAt,
        last_verified_at=row.lastVerifiedAt,
        expiration_alerts_sent={k: _parse_timestamp(v) for k, v in (row.expirationAlertsSent or {}).items()},
    )


def _parse_timestamp(value):
    return datetime.fromisoformat(value) if isinstance(value, str) else value


def _next_sequence(db: Session, column) -> int:
    return (db.query(func.max(column)).scalar() or 0) + 1


def _user_from_row(row: models.User) -> UserRecord:
    return UserRecord(
        id=row.id,
        alias=row.alias,
        name=row.name,
        is_driver_available=bool(row.isDriverAvailable),
        created_at=row.createdAt,
        updated_at=row.updatedAt,
        driver_info=_driver_info_from_row(row.driverInfo),
    )


class CarpoolRepository:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, carpool_id: str) -> Optional[models.CarpoolThread]:
        return self.db.query(models.CarpoolThread).filter(models.CarpoolThread.id == carpool_id).first()

    def get(self, carpool_id: str) -> Optional[CarpoolThread]:
        row = self._row(carpool_id)
        return _thread_from_row(row) if row else None

    def list(self) -> List[CarpoolThread]:
        rows = (
            self.db.query(models.CarpoolThread)
            .order_by(models.CarpoolThread.createdAt, models.CarpoolThread.sequence)
            .all()
        )
        return [_thread_from_row(row) for row in rows]

    def put(self, thread: CarpoolThread) -> CarpoolThread:
        row = self._row(thread.id)
        if row is None:
            row = models.CarpoolThread(id=thread.id, sequence=_next_sequence(self.db, models.CarpoolThread.sequence))
            self.db.add(row)

        row.creatorId = thread.creator_id
        row.destination = thread.destination
        row.date = thread.date
        row.timeWindowStart = thread.time_window.start
        row.timeWindowEnd = thread.time_window.end
        row.pickupArea = thread.pickup_area
        row.seatsNeeded = thread.seats_needed
        row.targetGroupSize = thread.target_group_size
        row.status = thread.status.value
        row.notes = thread.notes
        row.interestedCount = thread.interested_count
        row.confirmedCount = thread.confirmed_count
        row.createdAt = thread.created_at
        row.updatedAt = thread.updated_at
        row.lockedAt = thread.locked_at
        row.canceledAt = thread.canceled_at

        existing = {p.userId: p for p in row.participants}
        participants = []
        for position, participant in enumerate(thread.participants):
            p_row = existing.get(participant.user_id) or models.CarpoolParticipant(userId=participant.user_id)
            p_row.position = position
            p_row.joinedAt = participant.joined_at
            p_row.confirmedAt = participant.confirmed_at
            p_row.isCreator = participant.is_creator
            participants.append(p_row)
        row.participants = participants

        self.db.commit()
        self.db.refresh(row)
        return _thread_from_row(row)


class MessageRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_for_carpool(self, carpool_id: str) -> List[CarpoolMessage]:
        rows = (
            self.db.query(models.CarpoolMessage)
            .filter(models.CarpoolMessage.carpool_id == carpool_id)
            .order_by(models.CarpoolMessage.createdAt, models.CarpoolMessage.sequence)
            .all()
        )
        return [
            CarpoolMessage(id=r.id, carpool_id=r.carpool_id, user_id=r.userId, content=r.content, created_at=r.createdAt)
            for r in rows
        ]

    def put(self, message: CarpoolMessage) -> CarpoolMessage:
        db_message = models.CarpoolMessage(
            id=message.id,
            sequence=_next_sequence(self.db, models.CarpoolMessage.sequence),
            carpool_id=message.carpool_id,
            userId=message.user_id,
            content=message.content,
            createdAt=message.created_at,
        )
        self.db.add(db_message)
        self.db.commit()
        return message


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def get(self, user_id: str) -> Optional[UserRecord]:
        row = self._row(user_id)
        return _user_from_row(row) if row else None

    def get_by_alias(self, alias: str) -> Optional[UserRecord]:
        row = self.db.query(models.User).filter(models.User.alias == alias).first()
        return _user_from_row(row) if row else None

    def list(self, skip: int = 0, limit: int = 100) -> List[UserRecord]:
        rows = self.db.query(models.User).order_by(models.User.createdAt).offset(skip).limit(limit).all()
        return [_user_from_row(row) for row in rows]

    def put(self, user: UserRecord) -> UserRecord:
        row = self._row(user.id)
        if row is None:
            row = models.User(id=user.id)
            self.db.add(row)

        row.alias = user.alias
        row.name = user.name
        row.isDriverAvailable = user.is_driver_available
        row.createdAt = user.created_at
        row.updatedAt = user.updated_at

        info = user.driver_info
        if info is None:
            row.driverInfo = None
        else:
            if row.driverInfo is None:
                row.driverInfo = models.DriverInfo()
            db_info = row.driverInfo
            db_info.legalName = info.legal_name
            db_info.licenseNumber = info.license_number
            db_info.issuingState = info.issuing_state
            db_info.licenseExpirationDate = info.license_expiration_date
            db_info.verified = info.verified
            db_info.verifiedAt = info.verified_at
            db_info.lastVerifiedAt = info.last_verified_at
            db_info.expirationAlertsSent = {
                key: sent_at.isoformat() for key, sent_at in info.expiration_alerts_sent.items()
            }

        self.db.commit()
        self.db.refresh(row)
        return _user_from_row(row)


def _request_from_row(row: models.RideRequest) -> RideRequest:
    return RideRequest(
        id=row.id,
        rider_id=row.riderId,
        type=RequestType(row.type),
        status=RequestStatus(row.status),
        pickup_label=row.pickupLabel,
        pickup_address=row.pickupAddress,
        dropoff_label=row.dropoffLabel,
        dropoff_address=row.dropoffAddress,
        pickup_notes=row.pickupNotes,
        party_size=row.partySize,
        pickup_at=row.pickupAt,
        cars_needed=row.carsNeeded,
        created_at=row.createdAt,
        updated_at=row.updatedAt,
    )


class RideRequestRepository:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, request_id: str) -> Optional[models.RideRequest]:
        return self.db.query(models.RideRequest).filter(models.RideRequest.id == request_id).first()

    def get(self, request_id: str) -> Optional[RideRequest]:
        row = self._row(request_id)
        return _request_from_row(row) if row else None

    def list(self) -> List[RideRequest]:
        rows = (
            self.db.query(models.RideRequest)
            .order_by(models.RideRequest.createdAt, models.RideRequest.sequence)
            .all()
        )
        return [_request_from_row(row) for row in rows]

    def put(self, request: RideRequest) -> RideRequest:
        row = self._row(request.id)
        if row is None:
            row = models.RideRequest(id=request.id, sequence=_next_sequence(self.db, models.RideRequest.sequence))
            self.db.add(row)

        row.riderId = request.rider_id
        row.type = request.type.value
        row.status = request.status.value
        row.pickupLabel = request.pickup_label
        row.pickupAddress = request.pickup_address
        row.dropoffLabel = request.dropoff_label
        row.dropoffAddress = request.dropoff_address
        row.pickupNotes = request.pickup_notes
        row.partySize = request.party_size
        row.pickupAt = request.pickup_at
        row.carsNeeded = request.cars_needed
        row.createdAt = request.created_at
        row.updatedAt = request.updated_at

        self.db.commit()
        self.db.refresh(row)
        return _request_from_row(row)
