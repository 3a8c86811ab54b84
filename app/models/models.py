from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class User(Base):
    __tablename__ = 'users'
    id = Column(String, primary_key=True, index=True)
    alias = Column(String, unique=True, index=True)
    name = Column(String)
    isDriverAvailable = Column(Boolean, default=False)
    createdAt = Column(DateTime, default=datetime.utcnow)
    updatedAt = Column(DateTime, default=datetime.utcnow)
    driverInfo = relationship("DriverInfo", back_populates="user", uselist=False, cascade="all, delete-orphan")


class DriverInfo(Base):
    __tablename__ = 'driver_infos'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey('users.id'), unique=True)
    legalName = Column(String)
    licenseNumber = Column(String)
    issuingState = Column(String)
    licenseExpirationDate = Column(Date, nullable=True)
    verified = Column(Boolean, default=True)
    verifiedAt = Column(DateTime)
    lastVerifiedAt = Column(DateTime)
    # {"oneWeek": iso timestamp, ...}
    expirationAlertsSent = Column(JSON, default=dict)
    user = relationship("User", back_populates="driverInfo")


class CarpoolThread(Base):
    __tablename__ = 'carpool_threads'
    id = Column(String, primary_key=True, index=True)
    # Insertion order; breaks ties between rows created in the same instant.
    sequence = Column(Integer, index=True)
    creatorId = Column(String, index=True)
    destination = Column(String)
    date = Column(String, index=True)
    timeWindowStart = Column(String)
    timeWindowEnd = Column(String)
    pickupArea = Column(String)
    seatsNeeded = Column(Integer)
    targetGroupSize = Column(Integer)
    status = Column(String, default="OPEN", index=True)
    notes = Column(Text, nullable=True)
    interestedCount = Column(Integer, default=0)
    confirmedCount = Column(Integer, default=0)
    createdAt = Column(DateTime)
    updatedAt = Column(DateTime)
    lockedAt = Column(DateTime, nullable=True)
    canceledAt = Column(DateTime, nullable=True)
    participants = relationship(
        "CarpoolParticipant",
        back_populates="carpool",
        order_by="CarpoolParticipant.position",
        cascade="all, delete-orphan",
    )
    messages = relationship("CarpoolMessage", back_populates="carpool")


class CarpoolParticipant(Base):
    __tablename__ = 'carpool_participants'
    id = Column(Integer, primary_key=True, index=True)
    carpool_id = Column(String, ForeignKey('carpool_threads.id'))
    userId = Column(String, index=True)
    position = Column(Integer)
    joinedAt = Column(DateTime)
    confirmedAt = Column(DateTime, nullable=True)
    isCreator = Column(Boolean, default=False)
    carpool = relationship("CarpoolThread", back_populates="participants")


class CarpoolMessage(Base):
    __tablename__ = 'carpool_messages'
    id = Column(String, primary_key=True, index=True)
    sequence = Column(Integer, index=True)
    carpool_id = Column(String, ForeignKey('carpool_threads.id'), index=True)
    userId = Column(String)
    content = Column(Text)
    createdAt = Column(DateTime, index=True)
    carpool = relationship("CarpoolThread", back_populates="messages")


class AuditLog(Base):
    __tablename__ = 'audit_logs'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=True)
    action = Column(String)
    entity_type = Column(String)
    entity_id = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class RideRequest(Base):
    __tablename__ = 'ride_requests'
    id = Column(String, primary_key=True, index=True)
    sequence = Column(Integer, index=True)
    riderId = Column(String, index=True)
    type = Column(String)
    status = Column(String, default="OPEN", index=True)
    pickupLabel = Column(String)
    pickupAddress = Column(String)
    dropoffLabel = Column(String)
    dropoffAddress = Column(String)
    pickupNotes = Column(Text, nullable=True)
    partySize = Column(Integer)
    pickupAt = Column(DateTime, index=True)
    carsNeeded = Column(Integer)
    createdAt = Column(DateTime)
    updatedAt = Column(DateTime)
