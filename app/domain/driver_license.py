"""
Driver license validity policy.

License details are entered manually. A driver may toggle availability on
only while the stored expiration date has not passed; reminders are due
7, 3 and 1 day(s) before expiration, each at most once per license.
"""

import copy
import re
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Dict, Optional

from ..core.errors import ValidationError
from .records import AlertType, DriverInfo, ExpirationStatus

US_STATE_CODES = {
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR", "GU", "VI", "AS", "MP",
}

ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

DEFAULT_MAX_YEARS_AHEAD = 10
DEFAULT_MAX_DAYS_EXPIRED = 365
DEFAULT_REUPLOAD_WINDOW_DAYS = 7


def is_valid_issuing_state(value: Optional[str]) -> bool:
    return bool(value) and value.strip().upper() in US_STATE_CODES


def parse_expiration_date(value) -> Optional[date]:
    """Accept a date, a `YYYY-MM-DD` string or a full ISO timestamp; anything else yields None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    day, separator, _ = text.partition("T")
    if not ISO_DATE.fullmatch(day):
        return None
    try:
        if separator:
            return datetime.fromisoformat(text).date()
        return datetime.strptime(day, "%Y-%m-%d").date()
    except ValueError:
        return None


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def license_errors(
    legal_name,
    license_number,
    license_expiration_date,
    issuing_state,
    today: date,
    max_years_ahead: int = DEFAULT_MAX_YEARS_AHEAD,
    max_days_expired: int = DEFAULT_MAX_DAYS_EXPIRED,
) -> Dict[str, str]:
    """Collect one message per failing field, in field order."""
    errors = OrderedDict()

    if not (legal_name or "").strip():
        errors["legalName"] = "Legal name is required"

    if not (license_number or "").strip():
        errors["licenseNumber"] = "License number is required"

    if license_expiration_date is None or (
        isinstance(license_expiration_date, str) and not license_expiration_date.strip()
    ):
        errors["licenseExpirationDate"] = "License expiration date is required"
    else:
        expiration = parse_expiration_date(license_expiration_date)
        if expiration is None:
            errors["licenseExpirationDate"] = "License expiration date must be a valid date (YYYY-MM-DD)"
        elif expiration > _add_years(today, max_years_ahead):
            errors["licenseExpirationDate"] = (
                f"License expiration date cannot be more than {max_years_ahead} years in the future"
            )
        elif expiration < today - timedelta(days=max_days_expired):
            errors["licenseExpirationDate"] = "License expiration date is too far in the past"

    if not (issuing_state or "").strip():
        errors["issuingState"] = "Issuing state is required"
    elif not is_valid_issuing_state(issuing_state):
        errors["issuingState"] = "Issuing state must be a valid US state code"

    return errors


def validate(legal_name, license_number, license_expiration_date, issuing_state, today: date, **window) -> None:
    errors = license_errors(legal_name, license_number, license_expiration_date, issuing_state, today, **window)
    if errors:
        # Only the first offending field is surfaced.
        raise ValidationError(next(iter(errors.values())))


def build_driver_info(legal_name, license_number, license_expiration_date, issuing_state, now: datetime) -> DriverInfo:
    return DriverInfo(
        legal_name=legal_name.strip(),
        license_number=license_number.strip(),
        issuing_state=issuing_state.strip().upper(),
        license_expiration_date=parse_expiration_date(license_expiration_date),
        verified=True,
        verified_at=now,
        last_verified_at=now,
        expiration_alerts_sent={},
    )


def replace_license(
    current: DriverInfo, legal_name, license_number, license_expiration_date, issuing_state, now: datetime
) -> DriverInfo:
    """New license details restart the alert cycle; the first verification time is kept."""
    updated = build_driver_info(legal_name, license_number, license_expiration_date, issuing_state, now)
    updated.verified_at = current.verified_at or now
    return updated


def days_until(expiration: date, today: date) -> int:
    return (expiration - today).days


def is_expired(driver_info: DriverInfo, today: date) -> bool:
    expiration = driver_info.license_expiration_date
    if expiration is None:
        return False
    return expiration < today


def verify_stored(driver_info: DriverInfo, now: datetime, today: date) -> Optional[DriverInfo]:
    """Return the driver info re-stamped as verified, or None when the license has expired."""
    if is_expired(driver_info, today):
        return None
    verified = copy.deepcopy(driver_info)
    verified.last_verified_at = now
    return verified


def reupload_allowed(expiration_date, today: date, window_days: int = DEFAULT_REUPLOAD_WINDOW_DAYS) -> bool:
    expiration = parse_expiration_date(expiration_date)
    if expiration is None:
        return True
    return days_until(expiration, today) <= window_days


def expiration_status(driver_info: Optional[DriverInfo], today: date) -> ExpirationStatus:
    no_alerts = {alert.value: False for alert in AlertType}
    if driver_info is None or driver_info.license_expiration_date is None:
        return ExpirationStatus(is_expired=False, days_until_expiration=None, alerts_needed=no_alerts)

    days = days_until(driver_info.license_expiration_date, today)
    sent = driver_info.expiration_alerts_sent or {}

    alerts_needed = {
        AlertType.ONE_WEEK.value: 3 < days <= 7 and AlertType.ONE_WEEK.value not in sent,
        AlertType.THREE_DAYS.value: 1 < days <= 3 and AlertType.THREE_DAYS.value not in sent,
        AlertType.ONE_DAY.value: days == 1 and AlertType.ONE_DAY.value not in sent,
    }
    return ExpirationStatus(
        is_expired=days < 0,
        days_until_expiration=None if days < 0 else days,
        alerts_needed=alerts_needed,
    )


def mark_alert_sent(driver_info: DriverInfo, alert: str, now: datetime) -> DriverInfo:
    try:
        alert_type = AlertType(alert)
    except ValueError:
        raise ValidationError(f"Unknown expiration alert: {alert}")

    updated = copy.deepcopy(driver_info)
    updated.expiration_alerts_sent = dict(updated.expiration_alerts_sent or {})
    updated.expiration_alerts_sent[alert_type.value] = now
    return updated
