# salon_booking/core.py

"""
Scheduling rules shared by the slot list and the booking validator.

Everything here is pure: callers load appointments, time blocks and working
hours from the database and pass them in.

All datetimes are naive and UTC by convention. The wall-clock time a client
picks is stored verbatim as the UTC time, so "10:00" chosen in any browser
timezone becomes T10:00:00Z. No timezone conversion happens anywhere; display
code relies on the same convention, so changing it means migrating stored data.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Union
from uuid import UUID

from salon_booking.errors import ValidationError
from salon_booking.schemas import TIME_REGEX, AppointmentStatus, TimeBlockType

REASON_TIME_TAKEN = "Time already taken"
REASON_TIME_BLOCKED = "Time blocked"
REASON_OUTSIDE_HOURS = "Outside working hours"

_TIME_RE = re.compile(TIME_REGEX)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap test: [a, b) and [b, c) do not overlap."""
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    @classmethod
    def starting_at(cls, start: datetime, minutes: int) -> "TimeInterval":
        return cls(start, start + timedelta(minutes=minutes))

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def within(self, other: "TimeInterval") -> bool:
        return other.start <= self.start and self.end <= other.end


@dataclass(frozen=True)
class WorkingHours:
    work_start_hour: int
    work_end_hour: int
    time_slot_interval_minutes: int

    def opening(self, day: date) -> datetime:
        return datetime.combine(day, time(hour=self.work_start_hour))

    def closing(self, day: date) -> datetime:
        return datetime.combine(day, time(hour=self.work_end_hour))

    def window(self, day: date) -> TimeInterval:
        return TimeInterval(self.opening(day), self.closing(day))


@dataclass(frozen=True)
class BookedSlot:
    """Interval held by an appointment. A canceled appointment holds nothing."""

    appointment_id: UUID
    interval: TimeInterval
    status: AppointmentStatus = AppointmentStatus.pending

    def occupies(self, interval: TimeInterval) -> bool:
        if self.status == AppointmentStatus.canceled:
            return False
        return self.interval.overlaps(interval)


@dataclass(frozen=True)
class BlockedSlot:
    """Interval closed by a day off, vacation or break."""

    time_block_id: UUID
    block_type: TimeBlockType
    interval: TimeInterval

    def occupies(self, interval: TimeInterval) -> bool:
        return self.interval.overlaps(interval)


def parse_time(value: str) -> time:
    if not value or not _TIME_RE.match(value):
        raise ValidationError("Invalid time format (HH:MM)", field="time")
    hours, minutes = value.split(":")
    return time(hour=int(hours), minute=int(minutes))


def format_time(moment: Union[datetime, time]) -> str:
    return moment.strftime("%H:%M")


def wall_clock_instant(day: date, slot_time: time) -> datetime:
    """The picked wall-clock time, kept verbatim as the UTC instant."""
    return datetime.combine(day, slot_time)


def day_bounds(day: date) -> TimeInterval:
    start = datetime.combine(day, time.min)
    return TimeInterval(start, start + timedelta(days=1))


def generate_time_slots(work_start_hour: int, work_end_hour: int, interval_minutes: int) -> List[str]:
    """
    Candidate slot starts from work_start_hour:00 up to and including
    work_end_hour:00. Whether a service actually fits before closing is
    decided later by the duration check.
    """
    if interval_minutes <= 0:
        raise ValueError(f"interval_minutes must be positive, got {interval_minutes}")

    slots = []
    hour, minute = work_start_hour, 0
    while hour < work_end_hour or (hour == work_end_hour and minute == 0):
        slots.append(f"{hour:02d}:{minute:02d}")
        minute += interval_minutes
        hour += minute // 60
        minute %= 60
    return slots


def find_conflict(
    interval: TimeInterval,
    appointments: Iterable[BookedSlot],
    time_blocks: Iterable[BlockedSlot],
) -> Optional[str]:
    for booked in appointments:
        if booked.occupies(interval):
            return REASON_TIME_TAKEN
    for block in time_blocks:
        if block.occupies(interval):
            return REASON_TIME_BLOCKED
    return None


def evaluate_booking(
    interval: TimeInterval,
    hours: WorkingHours,
    appointments: Iterable[BookedSlot],
    time_blocks: Iterable[BlockedSlot],
) -> Optional[str]:
    """Reason the interval cannot be booked, or None when it can."""
    reason = find_conflict(interval, appointments, time_blocks)
    if reason is not None:
        return reason
    if not interval.within(hours.window(interval.start.date())):
        return REASON_OUTSIDE_HOURS
    return None


def list_available_slots(
    service,
    day: date,
    hours: WorkingHours,
    appointments: Iterable[BookedSlot],
    time_blocks: Iterable[BlockedSlot],
) -> List[str]:
    """
    Slot starts ("HH:MM") on ``day`` where ``service`` fits.

    A slot is dropped when the service would run past closing time, or when
    its interval overlaps a non-canceled appointment (of any service) or a
    time block. The result is advisory; bookings are re-validated on write.
    """
    appointments = list(appointments)
    time_blocks = list(time_blocks)
    closing = hours.closing(day)

    available = []
    for slot in generate_time_slots(
        hours.work_start_hour, hours.work_end_hour, hours.time_slot_interval_minutes
    ):
        slot_interval = TimeInterval.starting_at(
            wall_clock_instant(day, parse_time(slot)), service.duration_minutes
        )
        if slot_interval.end > closing:
            continue
        if find_conflict(slot_interval, appointments, time_blocks) is not None:
            continue
        available.append(slot)
    return available


# PENDING -> CONFIRMED -> CANCELED, PENDING -> CANCELED. CANCELED is terminal.
ALLOWED_TRANSITIONS = {
    AppointmentStatus.pending: {AppointmentStatus.confirmed, AppointmentStatus.canceled},
    AppointmentStatus.confirmed: {AppointmentStatus.canceled},
    AppointmentStatus.canceled: set(),
}


def check_status_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(
            f"Cannot change status from {current.value} to {target.value}", field="status"
        )
