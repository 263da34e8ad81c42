# dashboard.py
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from ict_booking.availability import stock_remaining
from ict_booking.catalog import EQUIPMENT_LIST, EquipmentConfig, equipment_name
from ict_booking.data_models import ACTIVE_STATUSES, Booking, BookingStatus

MONTH_LABELS = ["Jan", "Feb", "Mac", "Apr", "Mei", "Jun", "Jul", "Ogo", "Sep", "Okt", "Nov", "Dis"]
STATUS_ALL = "ALL"


def filter_bookings(bookings: Iterable[Booking], search: str = "", status: str = STATUS_ALL) -> List[Booking]:
    """Borrower list filter: free-text search on name, class or equipment, plus a status filter."""
    term = (search or "").strip().lower()
    status = (status or STATUS_ALL).upper()

    def matches(booking: Booking) -> bool:
        if term and not (
            term in booking.student_name.lower()
            or term in booking.class_name.lower()
            or term in booking.equipment_id.lower()
        ):
            return False
        return status == STATUS_ALL or booking.status.value == status

    return [booking for booking in bookings if matches(booking)]


def monthly_usage(bookings: Iterable[Booking], year: Optional[int] = None) -> List[dict]:
    counts = [0] * 12
    for booking in bookings:
        if year is None or booking.date.year == year:
            counts[booking.date.month - 1] += 1
    return [{"name": label, "bookings": count} for label, count in zip(MONTH_LABELS, counts)]


def equipment_usage(bookings: Iterable[Booking], catalog: Sequence[EquipmentConfig] = EQUIPMENT_LIST) -> List[dict]:
    counts = Counter(equipment_name(b.equipment_id, catalog) for b in bookings)
    return [{"name": name, "value": value} for name, value in counts.items()]


def popular_item(bookings: Iterable[Booking], catalog: Sequence[EquipmentConfig] = EQUIPMENT_LIST) -> Optional[str]:
    usage = equipment_usage(bookings, catalog)
    if not usage:
        return None
    return max(usage, key=lambda entry: entry["value"])["name"]


def top_borrowers(bookings: Iterable[Booking], limit: int = 5) -> List[dict]:
    counts = Counter(b.student_name for b in bookings)
    return [{"name": name, "count": count} for name, count in counts.most_common(limit)]


def stock_summary(bookings: Sequence[Booking], catalog: Sequence[EquipmentConfig] = EQUIPMENT_LIST) -> List[dict]:
    return [
        {
            "equipment_id": equipment.id,
            "name": equipment.name,
            "total_stock": equipment.total_stock,
            "remaining": stock_remaining(equipment, bookings),
        }
        for equipment in catalog
    ]


def build_dashboard(
    bookings: Sequence[Booking],
    catalog: Sequence[EquipmentConfig] = EQUIPMENT_LIST,
    year: Optional[int] = None,
) -> dict:
    return {
        "total_bookings": len(bookings),
        "active_bookings": sum(1 for b in bookings if b.status in ACTIVE_STATUSES),
        "approved_bookings": sum(1 for b in bookings if b.status == BookingStatus.APPROVED),
        "popular_item": popular_item(bookings, catalog),
        "monthly_usage": monthly_usage(bookings, year),
        "equipment_usage": equipment_usage(bookings, catalog),
        "top_borrowers": top_borrowers(bookings),
        "stock": stock_summary(bookings, catalog),
    }
