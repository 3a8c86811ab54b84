import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.errors import NotFound, ValidationError
from ..crud import CarpoolRepository, MessageRepository
from ..domain import carpool_lifecycle as lifecycle
from ..domain.records import CarpoolMessage, CarpoolStatus, CarpoolThread, TimeWindow
from .audit_service import log_action


def _load(repo: CarpoolRepository, carpool_id: str) -> CarpoolThread:
    thread = repo.get(carpool_id)
    if thread is None:
        raise NotFound("Carpool not found")
    return thread


def _commit(db: Session, repo: CarpoolRepository, before: CarpoolThread, after: CarpoolThread, user_id: str, action: str):
    """Persist the transition result; unchanged records are not written."""
    if after is before:
        return before
    saved = repo.put(after)
    log_action(
        db=db,
        user_id=user_id,
        action=action,
        entity_type="Carpool",
        entity_id=saved.id,
        details=f"Status: {saved.status.value} | Interested: {saved.interested_count} | Confirmed: {saved.confirmed_count}",
    )
    return saved


def create_carpool(
    db: Session,
    clock,
    creator_id: str,
    destination: str,
    date: str,
    time_window: TimeWindow,
    pickup_area: str,
    seats_needed: int,
    notes: Optional[str] = None,
    status: Optional[CarpoolStatus] = None,
) -> CarpoolThread:
    thread = lifecycle.create(
        creator_id=creator_id,
        destination=destination,
        date=date,
        time_window=time_window,
        pickup_area=pickup_area,
        seats_needed=seats_needed,
        now=clock.now(),
        notes=notes,
        status=status,
    )
    saved = CarpoolRepository(db).put(thread)
    log_action(
        db=db,
        user_id=creator_id,
        action="CREATE_CARPOOL",
        entity_type="Carpool",
        entity_id=saved.id,
        details=f"Destination: {saved.destination} | Date: {saved.date} | Seats needed: {saved.seats_needed}",
    )
    return saved


def get_carpool(db: Session, carpool_id: str) -> CarpoolThread:
    return _load(CarpoolRepository(db), carpool_id)


def list_carpools(
    db: Session,
    statuses: Optional[List[CarpoolStatus]] = None,
    destination: Optional[str] = None,
    date: Optional[str] = None,
) -> List[CarpoolThread]:
    threads = CarpoolRepository(db).list()
    threads = lifecycle.filter_threads(threads, statuses=statuses, destination=destination, date=date)
    return lifecycle.sort_by_soonest(threads)


def join_carpool(db: Session, clock, carpool_id: str, user_id: str) -> CarpoolThread:
    repo = CarpoolRepository(db)
    thread = _load(repo, carpool_id)
    return _commit(db, repo, thread, lifecycle.join(thread, user_id, clock.now()), user_id, "JOIN_CARPOOL")


def confirm_participation(db: Session, clock, carpool_id: str, user_id: str) -> CarpoolThread:
    repo = CarpoolRepository(db)
    thread = _load(repo, carpool_id)
    return _commit(db, repo, thread, lifecycle.confirm(thread, user_id, clock.now()), user_id, "CONFIRM_CARPOOL")


def unconfirm_participation(db: Session, clock, carpool_id: str, user_id: str) -> CarpoolThread:
    repo = CarpoolRepository(db)
    thread = _load(repo, carpool_id)
    return _commit(db, repo, thread, lifecycle.unconfirm(thread, user_id, clock.now()), user_id, "UNCONFIRM_CARPOOL")


def lock_carpool(db: Session, clock, carpool_id: str, creator_id: str) -> CarpoolThread:
    repo = CarpoolRepository(db)
    thread = _load(repo, carpool_id)
    return _commit(db, repo, thread, lifecycle.lock(thread, creator_id, clock.now()), creator_id, "LOCK_CARPOOL")


def cancel_carpool(db: Session, clock, carpool_id: str, creator_id: str) -> CarpoolThread:
    repo = CarpoolRepository(db)
    thread = _load(repo, carpool_id)
    return _commit(db, repo, thread, lifecycle.cancel(thread, creator_id, clock.now()), creator_id, "CANCEL_CARPOOL")


def update_carpool(db: Session, clock, carpool_id: str, creator_id: str, changes: dict) -> CarpoolThread:
    repo = CarpoolRepository(db)
    thread = _load(repo, carpool_id)
    updated = lifecycle.update_details(thread, creator_id, changes, clock.now())
    return _commit(db, repo, thread, updated, creator_id, "UPDATE_CARPOOL")


def post_message(db: Session, clock, carpool_id: str, user_id: str, content: str) -> CarpoolMessage:
    _load(CarpoolRepository(db), carpool_id)

    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content cannot be empty")

    message = CarpoolMessage(
        id=f"msg_{uuid.uuid4().hex}",
        carpool_id=carpool_id,
        user_id=user_id,
        content=content,
        created_at=clock.now(),
    )
    MessageRepository(db).put(message)
    log_action(db=db, user_id=user_id, action="POST_MESSAGE", entity_type="CarpoolMessage", entity_id=message.id)
    return message


def list_messages(db: Session, carpool_id: str) -> List[CarpoolMessage]:
    _load(CarpoolRepository(db), carpool_id)
    return MessageRepository(db).list_for_carpool(carpool_id)
