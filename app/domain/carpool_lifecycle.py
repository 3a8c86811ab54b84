"""
Carpool lifecycle state machine.

Every transition takes the current thread and returns a new thread; the
input record is never mutated. A transition that has nothing to do returns
the input unchanged (same object), which callers use to skip the write.
"""

import copy
import re
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional

from ..core.errors import Forbidden, NotFound, PolicyError, ValidationError
from .records import (
    FROZEN_STATUSES,
    LOCKABLE_STATUSES,
    TERMINAL_STATUSES,
    CarpoolParticipant,
    CarpoolStatus,
    CarpoolThread,
    TimeWindow,
)

REQUIRED_DESCRIPTORS = ("destination", "date", "pickup_area")

# Zero-padded so that plain string comparison orders them chronologically.
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
TIME_PATTERN = re.compile(r"([01]\d|2[0-3]):[0-5]\d")

EDITABLE_FIELDS = {"destination", "date", "time_window", "pickup_area", "seats_needed", "notes"}


def new_carpool_id() -> str:
    return f"carpool_{uuid.uuid4().hex}"


def recompute(thread: CarpoolThread) -> CarpoolThread:
    """Derive the participant counters from the participant list."""
    return replace(
        thread,
        interested_count=len(thread.participants),
        confirmed_count=sum(1 for p in thread.participants if p.is_confirmed),
    )


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _is_calendar_date(value: str) -> bool:
    if not DATE_PATTERN.fullmatch(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _check_descriptors(destination, date, time_window, pickup_area, seats_needed):
    fields = {"destination": destination, "date": date, "pickup_area": pickup_area}
    for name in REQUIRED_DESCRIPTORS:
        if not _clean(fields[name]):
            raise ValidationError(f"{name} is required")
    if not _is_calendar_date(_clean(date)):
        raise ValidationError("date must be YYYY-MM-DD")
    if time_window is None or not _clean(time_window.start) or not _clean(time_window.end):
        raise ValidationError("time_window is required")
    for bound in ("start", "end"):
        if not TIME_PATTERN.fullmatch(_clean(getattr(time_window, bound))):
            raise ValidationError(f"time_window {bound} must be HH:MM")
    if seats_needed is None:
        raise ValidationError("seats_needed is required")
    if seats_needed < 1:
        raise ValidationError("Seats needed must be at least 1")


def create(
    creator_id: str,
    destination: str,
    date: str,
    time_window: TimeWindow,
    pickup_area: str,
    seats_needed: int,
    now: datetime,
    notes: Optional[str] = None,
    status: Optional[CarpoolStatus] = None,
    thread_id: Optional[str] = None,
) -> CarpoolThread:
    if not _clean(creator_id):
        raise ValidationError("creator_id is required")
    _check_descriptors(destination, date, time_window, pickup_area, seats_needed)

    creator = CarpoolParticipant(user_id=creator_id, joined_at=now, confirmed_at=now, is_creator=True)
    thread = CarpoolThread(
        id=thread_id or new_carpool_id(),
        creator_id=creator_id,
        destination=_clean(destination),
        date=_clean(date),
        time_window=TimeWindow(start=_clean(time_window.start), end=_clean(time_window.end)),
        pickup_area=_clean(pickup_area),
        seats_needed=seats_needed,
        target_group_size=seats_needed + 1,
        status=status or CarpoolStatus.OPEN,
        created_at=now,
        updated_at=now,
        notes=_clean(notes) or None,
        participants=[creator],
    )
    return recompute(thread)


def join(thread: CarpoolThread, user_id: str, now: datetime) -> CarpoolThread:
    if thread.participant(user_id) is not None or thread.status in FROZEN_STATUSES:
        return thread

    updated = copy.deepcopy(thread)
    # Checked before the append: a join never confirms anyone.
    had_confirmed = updated.confirmed_count > 0
    updated.participants.append(CarpoolParticipant(user_id=user_id, joined_at=now))
    updated = recompute(updated)
    updated.updated_at = now

    if updated.status == CarpoolStatus.OPEN and had_confirmed:
        updated.status = CarpoolStatus.PENDING_CONFIRMATIONS
    return updated


def confirm(thread: CarpoolThread, user_id: str, now: datetime) -> CarpoolThread:
    participant = thread.participant(user_id)
    if participant is None:
        raise NotFound("Participant not found in this carpool")
    if participant.is_confirmed or thread.status in FROZEN_STATUSES:
        return thread

    updated = copy.deepcopy(thread)
    updated.participant(user_id).confirmed_at = now
    updated = recompute(updated)
    updated.updated_at = now

    # Reaching the target size never locks; the creator does that explicitly.
    if updated.confirmed_count > 0:
        updated.status = CarpoolStatus.PENDING_CONFIRMATIONS
    return updated


def unconfirm(thread: CarpoolThread, user_id: str, now: datetime) -> CarpoolThread:
    participant = thread.participant(user_id)
    if participant is None or not participant.is_confirmed:
        return thread
    if participant.is_creator or thread.status in FROZEN_STATUSES:
        return thread

    updated = copy.deepcopy(thread)
    updated.participant(user_id).confirmed_at = None
    updated = recompute(updated)
    updated.updated_at = now

    if updated.confirmed_count == 0:
        updated.status = CarpoolStatus.OPEN
    else:
        updated.status = CarpoolStatus.PENDING_CONFIRMATIONS
    return updated


def _require_creator(thread: CarpoolThread, creator_id: str, action: str) -> None:
    if thread.creator_id != creator_id:
        raise Forbidden(f"Only the creator can {action} this carpool")


def lock(thread: CarpoolThread, creator_id: str, now: datetime) -> CarpoolThread:
    _require_creator(thread, creator_id, "lock")
    if thread.status not in LOCKABLE_STATUSES:
        raise PolicyError(f"Carpool cannot be locked from status {thread.status.value}")

    return replace(
        copy.deepcopy(thread),
        status=CarpoolStatus.CONFIRMED,
        locked_at=now,
        updated_at=now,
    )


def cancel(thread: CarpoolThread, creator_id: str, now: datetime) -> CarpoolThread:
    _require_creator(thread, creator_id, "cancel")
    return replace(
        copy.deepcopy(thread),
        status=CarpoolStatus.CANCELED,
        canceled_at=now,
        updated_at=now,
    )


def update_details(thread: CarpoolThread, creator_id: str, changes: dict, now: datetime) -> CarpoolThread:
    """Apply a partial edit of the trip descriptors. Status and membership are not editable here."""
    _require_creator(thread, creator_id, "edit")
    if thread.status in TERMINAL_STATUSES:
        raise PolicyError(f"Carpool is {thread.status.value} and can no longer be edited")

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

    updated = copy.deepcopy(thread)
    for name, value in changes.items():
        setattr(updated, name, value)

    _check_descriptors(
        updated.destination, updated.date, updated.time_window, updated.pickup_area, updated.seats_needed
    )
    updated.destination = _clean(updated.destination)
    updated.date = _clean(updated.date)
    updated.time_window = TimeWindow(start=_clean(updated.time_window.start), end=_clean(updated.time_window.end))
    updated.pickup_area = _clean(updated.pickup_area)
    updated.notes = _clean(updated.notes) or None
    updated.target_group_size = updated.seats_needed + 1
    updated.updated_at = now
    return updated


def filter_threads(
    threads: Iterable[CarpoolThread],
    statuses: Optional[Iterable[CarpoolStatus]] = None,
    destination: Optional[str] = None,
    date: Optional[str] = None,
) -> List[CarpoolThread]:
    wanted = set(statuses) if statuses else None
    needle = destination.lower() if destination else None

    result = []
    for thread in threads:
        if wanted is not None and thread.status not in wanted:
            continue
        if needle and needle not in thread.destination.lower():
            continue
        if date and thread.date != date:
            continue
        result.append(thread)
    return result


def sort_by_soonest(threads: Iterable[CarpoolThread]) -> List[CarpoolThread]:
    # sorted() is stable, so equal (date, start) keys keep their input order.
    return sorted(threads, key=lambda t: (t.date, t.time_window.start))
