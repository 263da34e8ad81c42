# transitions.py
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from ict_booking.catalog import EquipmentConfig, asset_codes
from ict_booking.data_models import Booking, BookingStatus
from ict_booking.errors import InvalidTransitionError, ValidationError

ALLOWED_TRANSITIONS = {
    BookingStatus.DRAFT: {BookingStatus.PENDING},
    BookingStatus.PENDING: {BookingStatus.APPROVED, BookingStatus.REJECTED},
    BookingStatus.APPROVED: {BookingStatus.RETURNED},
    BookingStatus.REJECTED: set(),
    BookingStatus.RETURNED: set(),
}

RETURNED_AT_FORMAT = "%I:%M %p, %d/%m/%Y"


def format_returned_at(moment: datetime) -> str:
    return moment.strftime(RETURNED_AT_FORMAT)


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def apply_transition(
    booking: Booking,
    new_status: BookingStatus,
    admin_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """
    Checks that `booking` may move to `new_status` and returns the field
    changes the store should apply. Raises before anything is changed.
    """
    if not can_transition(booking.status, new_status):
        raise InvalidTransitionError(booking.status, new_status)

    changes: Dict[str, object] = {"status": new_status}

    if new_status == BookingStatus.PENDING:
        if not booking.asset_codes:
            raise ValidationError("Select at least one asset code before submitting.")

    elif new_status == BookingStatus.APPROVED:
        name = (admin_name or "").strip()
        if not name:
            raise ValidationError("An admin name is required to approve a booking.")
        changes["approved_by"] = name

    elif new_status == BookingStatus.RETURNED:
        changes["returned_at"] = format_returned_at(now or datetime.now())

    return changes


def validate_submission(equipment: EquipmentConfig, codes: Iterable[str]) -> Tuple[str, ...]:
    """Asset selection rules for a booking that is about to hold inventory."""
    codes = tuple(codes)
    if not codes:
        raise ValidationError("Select at least one asset code before submitting.")
    if len(set(codes)) != len(codes):
        raise ValidationError("Each asset code may only be selected once.")

    valid = set(asset_codes(equipment))
    unknown = [code for code in codes if code not in valid]
    if unknown:
        raise ValidationError(f"Unknown asset code(s) for {equipment.name}: {', '.join(unknown)}")

    _check_limit(equipment, len(codes))
    return codes


def toggle_asset_code(equipment: EquipmentConfig, selected: Iterable[str], code: str) -> Tuple[str, ...]:
    """Adds or removes `code` from a selection; the result length is the new quantity."""
    selected = tuple(selected)
    if code in selected:
        return tuple(c for c in selected if c != code)

    if code not in asset_codes(equipment):
        raise ValidationError(f"Unknown asset code for {equipment.name}: {code}")
    new_selection = selected + (code,)
    _check_limit(equipment, len(new_selection))
    return new_selection


def _check_limit(equipment: EquipmentConfig, count: int):
    if equipment.limit_per_booking and count > equipment.limit_per_booking:
        raise ValidationError(
            f"The maximum for {equipment.name} is {equipment.limit_per_booking} units per booking."
        )
