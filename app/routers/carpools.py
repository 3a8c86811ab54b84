from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.clock import get_clock
from ..database.database import get_db
from ..domain.records import CarpoolStatus, TimeWindow
from ..schemas import schemas
from ..services import carpool_service

router = APIRouter(prefix="/carpools", tags=["Carpools"])


def _parse_statuses(raw: Optional[str]) -> Optional[List[CarpoolStatus]]:
    if not raw:
        return None
    try:
        return [CarpoolStatus(value.strip().upper()) for value in raw.split(",") if value.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status filter: {raw}")


def _time_window(window: Optional[schemas.TimeWindow]) -> Optional[TimeWindow]:
    return TimeWindow(start=window.start, end=window.end) if window else None


@router.get("", response_model=List[schemas.Carpool])
def read_carpools(
    status: Optional[str] = None,
    destination: Optional[str] = None,
    date: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return carpool_service.list_carpools(db, statuses=_parse_statuses(status), destination=destination, date=date)

@router.post("", response_model=schemas.Carpool, status_code=201)
def create_carpool(carpool: schemas.CarpoolCreate, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return carpool_service.create_carpool(
        db,
        clock,
        creator_id=carpool.creator_id,
        destination=carpool.destination,
        date=carpool.date,
        time_window=_time_window(carpool.time_window),
        pickup_area=carpool.pickup_area,
        seats_needed=carpool.seats_needed,
        notes=carpool.notes,
        status=carpool.status,
    )

@router.get("/{carpool_id}", response_model=schemas.Carpool)
def read_carpool(carpool_id: str, db: Session = Depends(get_db)):
    return carpool_service.get_carpool(db, carpool_id)

@router.patch("/{carpool_id}", response_model=schemas.Carpool)
def update_carpool(carpool_id: str, update: schemas.CarpoolUpdate, db: Session = Depends(get_db), clock=Depends(get_clock)):
    changes = update.model_dump(exclude_unset=True, exclude={"creator_id"})
    if "time_window" in changes:
        changes["time_window"] = _time_window(update.time_window)
    return carpool_service.update_carpool(db, clock, carpool_id, update.creator_id, changes)

@router.post("/{carpool_id}/join", response_model=schemas.Carpool)
def join_carpool(carpool_id: str, payload: schemas.ParticipantAction, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return carpool_service.join_carpool(db, clock, carpool_id, payload.user_id)

@router.post("/{carpool_id}/confirm", response_model=schemas.Carpool)
def confirm_carpool(carpool_id: str, payload: schemas.ConfirmAction, db: Session = Depends(get_db), clock=Depends(get_clock)):
    if payload.action == "unconfirm":
        return carpool_service.unconfirm_participation(db, clock, carpool_id, payload.user_id)
    return carpool_service.confirm_participation(db, clock, carpool_id, payload.user_id)

@router.post("/{carpool_id}/lock", response_model=schemas.Carpool)
def lock_carpool(carpool_id: str, payload: schemas.CreatorAction, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return carpool_service.lock_carpool(db, clock, carpool_id, payload.creator_id)

@router.post("/{carpool_id}/cancel", response_model=schemas.Carpool)
def cancel_carpool(carpool_id: str, payload: schemas.CreatorAction, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return carpool_service.cancel_carpool(db, clock, carpool_id, payload.creator_id)

@router.get("/{carpool_id}/messages", response_model=List[schemas.CarpoolMessage])
def read_messages(carpool_id: str, db: Session = Depends(get_db)):
    return carpool_service.list_messages(db, carpool_id)

@router.post("/{carpool_id}/messages", response_model=schemas.CarpoolMessage, status_code=201)
def post_message(carpool_id: str, message: schemas.MessageCreate, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return carpool_service.post_message(db, clock, carpool_id, message.user_id, message.content)
