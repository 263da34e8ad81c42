# availability.py
import datetime
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ict_booking.catalog import EquipmentConfig, asset_codes
from ict_booking.data_models import ACTIVE_STATUSES, Booking, BookingStatus, normalize_time

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class AvailabilityQuery:
    """The equipment and time window a booking form is currently asking about."""
    equipment_id: Optional[str] = None
    date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.equipment_id and self.date and self.start_time and self.end_time)

    @classmethod
    def for_booking(cls, booking: Booking) -> "AvailabilityQuery":
        return cls(booking.equipment_id, booking.date, booking.start_time, booking.end_time)


@dataclass(frozen=True)
class AvailabilityReport:
    equipment_id: str
    all_codes: List[str]
    unavailable: List[str]
    available: List[str]

    def to_dict(self) -> dict:
        return {
            "equipment_id": self.equipment_id,
            "all_codes": self.all_codes,
            "unavailable": self.unavailable,
            "available": self.available,
        }


def to_minutes(value: str) -> int:
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * 60 + int(minutes)


def overlaps(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Half-open windows [start1, end1) and [start2, end2) intersect."""
    return to_minutes(start1) < to_minutes(end2) and to_minutes(end1) > to_minutes(start2)


def _booking_window(booking: Booking):
    try:
        return to_minutes(booking.start_time), to_minutes(booking.end_time)
    except ValueError:
        # An unreadable window keeps holding its units for the whole day
        logger.warning("Booking %s has an unreadable time window, blocking the whole day", booking.id)
        return 0, MINUTES_PER_DAY


def unavailable_asset_codes(
    candidate: AvailabilityQuery,
    all_bookings: Iterable[Booking],
    exclude_id: Optional[str] = None,
) -> List[str]:
    """
    Asset codes held by active (PENDING or APPROVED) bookings of the same
    equipment on the same date whose window overlaps the candidate's.

    The result is a flat list and may contain duplicates; callers use it for
    membership tests. An incomplete candidate yields an empty list.
    """
    if not candidate.is_complete:
        return []

    start = to_minutes(candidate.start_time)
    end = to_minutes(candidate.end_time)

    busy = []
    for booking in all_bookings:
        if booking.id == exclude_id:
            continue
        if booking.equipment_id != candidate.equipment_id:
            continue
        if booking.status not in ACTIVE_STATUSES:
            continue
        if booking.date != candidate.date:
            continue
        booking_start, booking_end = _booking_window(booking)
        if start < booking_end and end > booking_start:
            busy.extend(booking.asset_codes)
    return busy


def available_asset_codes(
    equipment: EquipmentConfig,
    candidate: AvailabilityQuery,
    all_bookings: Iterable[Booking],
) -> List[str]:
    busy = set(unavailable_asset_codes(candidate, all_bookings))
    return [code for code in asset_codes(equipment) if code not in busy]


def availability_report(
    equipment: EquipmentConfig,
    candidate: AvailabilityQuery,
    all_bookings: Iterable[Booking],
) -> AvailabilityReport:
    all_bookings = list(all_bookings)
    codes = asset_codes(equipment)
    busy = set(unavailable_asset_codes(candidate, all_bookings))
    return AvailabilityReport(
        equipment_id=equipment.id,
        all_codes=codes,
        unavailable=[code for code in codes if code in busy],
        available=[code for code in codes if code not in busy],
    )


def conflicting_asset_codes(booking: Booking, all_bookings: Iterable[Booking]) -> List[str]:
    """The booking's own codes that another active booking already holds for its window."""
    busy = set(unavailable_asset_codes(AvailabilityQuery.for_booking(booking), all_bookings, exclude_id=booking.id))
    return [code for code in booking.asset_codes if code in busy]


def stock_remaining(equipment: EquipmentConfig, all_bookings: Iterable[Booking]) -> int:
    in_use = sum(
        booking.quantity
        for booking in all_bookings
        if booking.equipment_id == equipment.id and booking.status == BookingStatus.APPROVED
    )
    return max(0, equipment.total_stock - in_use)
