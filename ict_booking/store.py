# store.py
import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from ict_booking.data_models import Booking, BookingStatus
from ict_booking.errors import BookingNotFoundError, ValidationError

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({"status", "approved_by", "returned_at"})


@dataclass(frozen=True)
class AdminView:
    pending: Tuple[Booking, ...]
    in_use: Tuple[Booking, ...]
    history: Tuple[Booking, ...]
    drafts: Tuple[Booking, ...]

    def to_dict(self) -> dict:
        return {
            "pending": [b.to_dict() for b in self.pending],
            "in_use": [b.to_dict() for b in self.in_use],
            "history": [b.to_dict() for b in self.history],
            "drafts": [b.to_dict() for b in self.drafts],
        }


class BookingStore:
    """In-memory set of bookings for the session, keyed by id."""

    def __init__(self, bookings: Iterable[Booking] = ()):
        self._bookings: Dict[str, Booking] = {}
        for booking in bookings:
            self._bookings[booking.id] = booking

    def __len__(self):
        return len(self._bookings)

    def __contains__(self, booking_id: str):
        return booking_id in self._bookings

    def get(self, booking_id: str) -> Booking:
        try:
            return self._bookings[booking_id]
        except KeyError:
            raise BookingNotFoundError(booking_id) from None

    def insert(self, booking: Booking) -> Booking:
        if booking.id in self._bookings:
            raise ValidationError(f"Booking {booking.id} already exists.")
        self._bookings[booking.id] = booking
        logger.debug("Inserted booking %s (%s)", booking.id, booking.status.value)
        return booking

    def patch(self, booking_id: str, **changes) -> Booking:
        unknown = set(changes) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be patched: {', '.join(sorted(unknown))}")
        updated = dataclasses.replace(self.get(booking_id), **changes)
        self._bookings[booking_id] = updated
        logger.debug("Patched booking %s: %s", booking_id, changes)
        return updated

    def remove(self, booking_id: str) -> Booking:
        booking = self.get(booking_id)
        del self._bookings[booking_id]
        logger.debug("Removed booking %s", booking_id)
        return booking

    def replace_all(self, bookings: Iterable[Booking]):
        self._bookings = {booking.id: booking for booking in bookings}

    def snapshot(self) -> Tuple[Booking, ...]:
        """All bookings, newest first; ties go to the most recently inserted."""
        newest_inserted_first = reversed(list(self._bookings.values()))
        return tuple(sorted(newest_inserted_first, key=lambda b: b.timestamp, reverse=True))

    def admin_view(self) -> AdminView:
        bookings = self.snapshot()

        def with_status(*statuses):
            return tuple(b for b in bookings if b.status in statuses)

        return AdminView(
            pending=with_status(BookingStatus.PENDING),
            in_use=with_status(BookingStatus.APPROVED),
            history=with_status(BookingStatus.REJECTED, BookingStatus.RETURNED),
            drafts=with_status(BookingStatus.DRAFT),
        )
