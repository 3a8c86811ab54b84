from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.clock import get_clock
from ..database.database import get_db
from ..schemas import schemas
from ..services import driver_service

router = APIRouter(prefix="/users/{user_id}/driver", tags=["Driver"])


@router.post("", response_model=schemas.User)
def enable_driver(user_id: str, details: schemas.LicenseDetails, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return driver_service.enable_driver(
        db,
        clock,
        user_id,
        details.legal_name,
        details.license_number,
        details.license_expiration_date,
        details.issuing_state,
    )

@router.put("", response_model=schemas.User)
def update_driver_license(user_id: str, details: schemas.LicenseDetails, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return driver_service.update_driver_license(
        db,
        clock,
        user_id,
        details.legal_name,
        details.license_number,
        details.license_expiration_date,
        details.issuing_state,
    )

@router.post("/verify")
def verify_license(user_id: str, db: Session = Depends(get_db), clock=Depends(get_clock)):
    user = driver_service.verify_stored_license(db, clock, user_id)
    if user is None:
        return {"verified": False, "lastVerifiedAt": None}
    return {"verified": True, "lastVerifiedAt": user.driver_info.last_verified_at}

@router.post("/availability", response_model=schemas.User)
def set_availability(user_id: str, payload: schemas.DriverAvailabilityUpdate, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return driver_service.set_availability(db, clock, user_id, payload.is_available)

@router.get("/expiration", response_model=schemas.LicenseExpirationStatus)
def read_expiration_status(user_id: str, db: Session = Depends(get_db), clock=Depends(get_clock)):
    expiration = driver_service.license_expiration(db, clock, user_id)
    return schemas.LicenseExpirationStatus(
        is_expired=expiration.is_expired,
        days_until_expiration=expiration.days_until_expiration,
        alerts_needed=expiration.alerts_needed,
        reupload_allowed=driver_service.reupload_allowed(db, clock, user_id),
    )

@router.post("/alerts/{alert}", response_model=schemas.User)
def mark_alert_sent(user_id: str, alert: str, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return driver_service.mark_alert_sent(db, clock, user_id, alert)
