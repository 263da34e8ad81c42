# data_models.py
import enum
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from ict_booking.catalog import DAY_NAMES

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Kuala_Lumpur"


class BookingStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RETURNED = "RETURNED"


# Statuses whose asset codes are held against other requests
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED})


def normalize_time(value: Any) -> str:
    """'8:00', '08:00' or '08:00:00' -> '08:00'. Raises ValueError otherwise."""
    text = str(value).strip()
    parts = text.split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time of day: {value!r}")
    return f"{hour:02d}:{minute:02d}"


def parse_date(value: Any, timezone: str = DEFAULT_TIMEZONE) -> date:
    """
    Plain days are taken as they are. Timestamps are read in `timezone`:
    Sheets send date cells back as UTC instants, so 2026-01-15 in Kuala Lumpur
    arrives as 2026-01-14T16:00:00.000Z.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value).strip()
        if len(text) <= 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(ZoneInfo(timezone)).date()


def day_name(day: date) -> str:
    return DAY_NAMES[day.weekday()]


@dataclass(frozen=True)
class Booking:
    """A reservation of one or more asset units for a same-day time window."""
    id: str
    student_name: str
    date: date
    start_time: str
    end_time: str
    equipment_id: str
    class_name: str = ""
    location: str = ""
    purpose: str = ""
    day: str = ""
    asset_codes: Tuple[str, ...] = field(default_factory=tuple)
    quantity: int = 0
    status: BookingStatus = BookingStatus.DRAFT
    timestamp: int = 0
    approved_by: Optional[str] = None
    returned_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["asset_codes"] = list(self.asset_codes)
        data["status"] = self.status.value
        return data

    def to_record(self) -> Dict[str, Any]:
        """camelCase record as stored in the remote booking sheet."""
        return {
            "id": self.id,
            "studentName": self.student_name,
            "date": self.date.isoformat(),
            "day": self.day,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "className": self.class_name,
            "location": self.location,
            "purpose": self.purpose,
            "equipmentId": self.equipment_id,
            "quantity": self.quantity,
            "assetCodes": list(self.asset_codes),
            "status": self.status.value,
            "timestamp": self.timestamp,
            "approvedBy": self.approved_by or "",
            "returnedAt": self.returned_at or "",
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any], timezone: str = DEFAULT_TIMEZONE) -> Optional["Booking"]:
        """
        Builds a Booking from a remote record, coercing loose shapes instead of
        raising. Returns None for records that cannot be identified at all.
        """
        booking_id = str(record.get("id") or "").strip()
        if not booking_id:
            logger.warning("Skipping record without id: %r", record)
            return None

        codes = _coerce_codes(record.get("assetCodes"))

        try:
            booking_date = parse_date(record.get("date"), timezone)
        except (TypeError, ValueError):
            logger.warning("Booking %s has an unreadable date %r", booking_id, record.get("date"))
            return None

        start_time = _coerce_time(record.get("startTime"), booking_id)
        end_time = _coerce_time(record.get("endTime"), booking_id)

        raw_status = str(record.get("status") or "").strip().upper()
        try:
            status = BookingStatus(raw_status)
        except ValueError:
            logger.warning("Booking %s has unknown status %r, treating as DRAFT", booking_id, raw_status)
            status = BookingStatus.DRAFT

        quantity = len(codes) if codes else _coerce_int(record.get("quantity"), 0)

        return cls(
            id=booking_id,
            student_name=str(record.get("studentName") or ""),
            date=booking_date,
            day=str(record.get("day") or day_name(booking_date)),
            start_time=start_time,
            end_time=end_time,
            class_name=str(record.get("className") or ""),
            location=str(record.get("location") or ""),
            purpose=str(record.get("purpose") or ""),
            equipment_id=str(record.get("equipmentId") or ""),
            quantity=quantity,
            asset_codes=codes,
            status=status,
            timestamp=_coerce_int(record.get("timestamp"), 0),
            approved_by=record.get("approvedBy") or None,
            returned_at=record.get("returnedAt") or None,
        )


def _coerce_codes(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(code).strip() for code in value if str(code).strip())
    if isinstance(value, str) and value.strip():
        return tuple(code.strip() for code in value.split(",") if code.strip())
    return ()


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _coerce_time(value: Any, booking_id: str) -> str:
    try:
        return normalize_time(value)
    except ValueError:
        logger.warning("Booking %s has an unreadable time %r", booking_id, value)
        return str(value or "")
