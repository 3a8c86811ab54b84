import uuid
from dataclasses import replace
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import Conflict, NotFound, PolicyError, ValidationError
from ..crud import UserRepository
from ..domain import driver_license as policy
from ..domain.records import ExpirationStatus, UserRecord
from .audit_service import log_action


def _window() -> dict:
    return {
        "max_years_ahead": settings.LICENSE_MAX_YEARS_AHEAD,
        "max_days_expired": settings.LICENSE_MAX_DAYS_EXPIRED,
    }


def _load(repo: UserRepository, user_id: str) -> UserRecord:
    user = repo.get(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def create_user(
    db: Session,
    clock,
    alias: str,
    name: str,
    legal_name: Optional[str] = None,
    license_number: Optional[str] = None,
    license_expiration_date=None,
    issuing_state: Optional[str] = None,
) -> UserRecord:
    alias = (alias or "").strip()
    if not alias:
        raise ValidationError("Alias is required")

    repo = UserRepository(db)
    if repo.get_by_alias(alias):
        raise Conflict("Alias already registered")

    now = clock.now()
    driver_info = None
    # Everyone is a rider; license details at signup also enable driving.
    if legal_name or license_number or license_expiration_date or issuing_state:
        policy.validate(legal_name, license_number, license_expiration_date, issuing_state, clock.today(), **_window())
        driver_info = policy.build_driver_info(legal_name, license_number, license_expiration_date, issuing_state, now)

    user = UserRecord(
        id=f"user_{uuid.uuid4().hex}",
        alias=alias,
        name=(name or "").strip(),
        created_at=now,
        updated_at=now,
        is_driver_available=driver_info is not None,
        driver_info=driver_info,
    )
    saved = repo.put(user)
    log_action(
        db=db,
        user_id=saved.id,
        action="CREATE_USER",
        entity_type="User",
        entity_id=saved.id,
        details=f"Alias: {saved.alias} | Driver: {saved.driver_info is not None}",
    )
    return saved


def get_user(db: Session, user_id: str) -> UserRecord:
    return _load(UserRepository(db), user_id)


def enable_driver(db: Session, clock, user_id: str, legal_name, license_number, license_expiration_date, issuing_state) -> UserRecord:
    repo = UserRepository(db)
    user = _load(repo, user_id)
    if user.driver_info is not None:
        raise Conflict("User already has driver capability enabled")

    policy.validate(legal_name, license_number, license_expiration_date, issuing_state, clock.today(), **_window())

    now = clock.now()
    updated = replace(
        user,
        driver_info=policy.build_driver_info(legal_name, license_number, license_expiration_date, issuing_state, now),
        is_driver_available=True,
        updated_at=now,
    )
    saved = repo.put(updated)
    log_action(db=db, user_id=user_id, action="ENABLE_DRIVER", entity_type="User", entity_id=user_id,
               details=f"State: {saved.driver_info.issuing_state}")
    return saved


def update_driver_license(db: Session, clock, user_id: str, legal_name, license_number, license_expiration_date, issuing_state) -> UserRecord:
    repo = UserRepository(db)
    user = _load(repo, user_id)
    if user.driver_info is None:
        raise NotFound("Driver capability not enabled")

    policy.validate(legal_name, license_number, license_expiration_date, issuing_state, clock.today(), **_window())

    now = clock.now()
    driver_info = policy.replace_license(
        user.driver_info, legal_name, license_number, license_expiration_date, issuing_state, now
    )
    saved = repo.put(replace(user, driver_info=driver_info, updated_at=now))
    log_action(db=db, user_id=user_id, action="UPDATE_DRIVER_LICENSE", entity_type="User", entity_id=user_id,
               details=f"Expires: {driver_info.license_expiration_date}")
    return saved


def verify_stored_license(db: Session, clock, user_id: str) -> Optional[UserRecord]:
    """Re-stamp the stored license as verified; None when there is none or it has expired."""
    repo = UserRepository(db)
    user = _load(repo, user_id)
    if user.driver_info is None:
        return None

    now = clock.now()
    verified = policy.verify_stored(user.driver_info, now, clock.today())
    if verified is None:
        return None
    saved = repo.put(replace(user, driver_info=verified, updated_at=now))
    log_action(db=db, user_id=user_id, action="VERIFY_DRIVER_LICENSE", entity_type="User", entity_id=user_id,
               details=f"Expires: {verified.license_expiration_date}")
    return saved


def set_availability(db: Session, clock, user_id: str, is_available: bool) -> UserRecord:
    repo = UserRepository(db)
    user = _load(repo, user_id)

    if is_available:
        if user.driver_info is None:
            raise PolicyError(
                "Driver capability not enabled. Please enable driver capability first by verifying your license details."
            )
        verified = verify_stored_license(db, clock, user_id)
        if verified is None:
            raise PolicyError(
                "Your driver's license has expired. Please re-enter your license details to continue driving."
            )
        user = verified

    saved = repo.put(replace(user, is_driver_available=is_available, updated_at=clock.now()))
    log_action(db=db, user_id=user_id, action="SET_DRIVER_AVAILABILITY", entity_type="User", entity_id=user_id,
               details=f"Available: {is_available}")
    return saved


def license_expiration(db: Session, clock, user_id: str) -> ExpirationStatus:
    user = _load(UserRepository(db), user_id)
    return policy.expiration_status(user.driver_info, clock.today())


def reupload_allowed(db: Session, clock, user_id: str) -> bool:
    user = _load(UserRepository(db), user_id)
    expiration = user.driver_info.license_expiration_date if user.driver_info else None
    return policy.reupload_allowed(expiration, clock.today(), settings.REUPLOAD_WINDOW_DAYS)


def mark_alert_sent(db: Session, clock, user_id: str, alert: str) -> UserRecord:
    repo = UserRepository(db)
    user = _load(repo, user_id)
    if user.driver_info is None:
        raise NotFound("Driver capability not enabled")

    now = clock.now()
    saved = repo.put(replace(user, driver_info=policy.mark_alert_sent(user.driver_info, alert, now), updated_at=now))
    log_action(db=db, user_id=user_id, action="MARK_EXPIRATION_ALERT", entity_type="User", entity_id=user_id,
               details=f"Alert: {alert}")
    return saved
