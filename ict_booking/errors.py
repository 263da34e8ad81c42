# errors.py
from typing import Optional


class BookingError(Exception):
    """Base class for booking service errors."""


class ValidationError(BookingError):
    """Input refused before any state change (re-prompt the user)."""


class InvalidTransitionError(ValidationError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move booking from {current.value} to {target.value}.")


class BookingNotFoundError(BookingError, LookupError):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found.")


class SyncError(BookingError):
    """A remote persistence call failed. Local state is kept as is."""

    def __init__(self, operation: str, message: str, booking_id: Optional[str] = None):
        self.operation = operation
        self.booking_id = booking_id
        super().__init__(message)

    def as_dict(self) -> dict:
        return {"operation": self.operation, "booking_id": self.booking_id, "error": str(self)}
