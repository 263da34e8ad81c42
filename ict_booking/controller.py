# controller.py
import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from ict_booking.availability import (
    AvailabilityQuery,
    AvailabilityReport,
    availability_report,
    conflicting_asset_codes,
)
from ict_booking.catalog import EQUIPMENT_LIST, EquipmentConfig, find_equipment
from ict_booking.dashboard import STATUS_ALL, build_dashboard, filter_bookings, stock_summary
from ict_booking.data_models import Booking, BookingStatus, day_name, normalize_time, parse_date
from ict_booking.errors import SyncError, ValidationError
from ict_booking.persistence import PersistenceAdapter
from ict_booking.store import AdminView, BookingStore
from ict_booking.sync import SyncQueue
from ict_booking.transitions import apply_transition, toggle_asset_code, validate_submission

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9

REQUIRED_FIELDS = ("student_name", "date", "start_time", "end_time", "class_name", "location", "equipment_id")
DRAFT_REQUIRED_FIELDS = ("student_name", "date", "equipment_id")


@dataclass
class BookingForm:
    """What the booking form sends for a new request or draft."""
    student_name: str = ""
    date: str = ""
    start_time: str = "08:00"
    end_time: str = "10:00"
    class_name: str = ""
    location: str = ""
    purpose: str = ""
    equipment_id: str = ""
    asset_codes: List[str] = field(default_factory=list)


class BookingController:
    """
    Owns the booking store for a session. Every mutation changes the store
    first and then queues the matching persistence call on the sync queue.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        sync_queue: Optional[SyncQueue] = None,
        catalog: Sequence[EquipmentConfig] = EQUIPMENT_LIST,
        timezone: str = "Asia/Kuala_Lumpur",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.adapter = adapter
        self.sync = sync_queue or SyncQueue()
        self.catalog = list(catalog)
        self.timezone = ZoneInfo(timezone)
        self.clock = clock or (lambda: datetime.now(self.timezone))
        self.store = BookingStore()

    # Lifecycle

    async def start(self):
        await self.adapter.connect()
        await self.load()
        self.sync.start()

    async def shutdown(self):
        await self.sync.stop()
        await self.adapter.close()

    async def load(self) -> int:
        """Replaces the store with the adapter's snapshot. Keeps the current state if that fails."""
        try:
            bookings = await self.adapter.fetch_all()
        except SyncError as e:
            logger.warning("Could not load bookings, keeping %d local bookings: %s", len(self.store), e)
            self.sync.record_failure(e)
            return len(self.store)
        self.store.replace_all(bookings)
        logger.info("Loaded %d bookings", len(bookings))
        return len(bookings)

    # Availability

    def equipment(self, equipment_id: str) -> EquipmentConfig:
        equipment = find_equipment(equipment_id, self.catalog)
        if equipment is None:
            raise ValidationError(f"Unknown equipment: {equipment_id}")
        return equipment

    def check_availability(self, query: AvailabilityQuery) -> AvailabilityReport:
        if not query.equipment_id:
            return AvailabilityReport(equipment_id="", all_codes=[], unavailable=[], available=[])
        return availability_report(self.equipment(query.equipment_id), query, self.store.snapshot())

    def toggle_asset_code(self, equipment_id: str, selected: Sequence[str], code: str) -> Tuple[str, ...]:
        return toggle_asset_code(self.equipment(equipment_id), selected, code)

    # Mutations

    def submit(self, form: BookingForm) -> Booking:
        _require(form, REQUIRED_FIELDS)
        equipment = self.equipment(form.equipment_id)
        codes = validate_submission(equipment, form.asset_codes)
        booking = self._build_booking(form, codes, BookingStatus.PENDING)
        self._refuse_conflicts(booking)

        self.store.insert(booking)
        logger.info("Booking %s submitted for %s (%s)", booking.id, equipment.id, ", ".join(codes))
        self.sync.dispatch("create", booking.id, lambda: self.adapter.create(booking))
        return booking

    def save_draft(self, form: BookingForm) -> Booking:
        _require(form, DRAFT_REQUIRED_FIELDS)
        equipment = self.equipment(form.equipment_id)
        codes = tuple(form.asset_codes)
        if codes:
            codes = validate_submission(equipment, codes)
        booking = self._build_booking(form, codes, BookingStatus.DRAFT)

        self.store.insert(booking)
        logger.info("Draft %s saved", booking.id)
        self.sync.dispatch("create", booking.id, lambda: self.adapter.create(booking))
        return booking

    def submit_draft(self, booking_id: str) -> Booking:
        booking = self.store.get(booking_id)
        changes = apply_transition(booking, BookingStatus.PENDING)
        validate_submission(self.equipment(booking.equipment_id), booking.asset_codes)
        self._refuse_conflicts(booking)
        return self._patch(booking_id, changes)

    def approve(self, booking_id: str, admin_name: str) -> Booking:
        changes = apply_transition(self.store.get(booking_id), BookingStatus.APPROVED, admin_name=admin_name)
        return self._patch(booking_id, changes)

    def reject(self, booking_id: str) -> Booking:
        changes = apply_transition(self.store.get(booking_id), BookingStatus.REJECTED)
        return self._patch(booking_id, changes)

    def mark_returned(self, booking_id: str, now: Optional[datetime] = None) -> Booking:
        changes = apply_transition(self.store.get(booking_id), BookingStatus.RETURNED, now=now or self.clock())
        return self._patch(booking_id, changes)

    def delete(self, booking_id: str) -> Booking:
        booking = self.store.remove(booking_id)
        logger.info("Booking %s deleted", booking_id)
        self.sync.dispatch("delete", booking_id, lambda: self.adapter.delete(booking_id))
        return booking

    # Read models

    def bookings(self, search: str = "", status: str = STATUS_ALL) -> List[Booking]:
        return filter_bookings(self.store.snapshot(), search, status)

    def admin_view(self) -> AdminView:
        return self.store.admin_view()

    def dashboard(self, year: Optional[int] = None) -> dict:
        return build_dashboard(self.store.snapshot(), self.catalog, year)

    def stock(self) -> List[dict]:
        return stock_summary(self.store.snapshot(), self.catalog)

    # Helpers

    def _patch(self, booking_id: str, changes: dict) -> Booking:
        updated = self.store.patch(booking_id, **changes)
        logger.info("Booking %s is now %s", booking_id, updated.status.value)
        self.sync.dispatch(
            "update_status",
            booking_id,
            lambda: self.adapter.update_status(
                booking_id, updated.status, approved_by=updated.approved_by, returned_at=updated.returned_at
            ),
        )
        return updated

    def _refuse_conflicts(self, booking: Booking):
        taken = conflicting_asset_codes(booking, self.store.snapshot())
        if taken:
            raise ValidationError(f"Already booked for this time: {', '.join(taken)}")

    def _build_booking(self, form: BookingForm, codes: Tuple[str, ...], status: BookingStatus) -> Booking:
        try:
            booking_date = parse_date(form.date)
            start_time = normalize_time(form.start_time)
            end_time = normalize_time(form.end_time)
        except (TypeError, ValueError) as e:
            raise ValidationError(str(e)) from e

        return Booking(
            id=self._new_id(),
            student_name=form.student_name.strip(),
            date=booking_date,
            day=day_name(booking_date),
            start_time=start_time,
            end_time=end_time,
            class_name=form.class_name,
            location=form.location,
            purpose=form.purpose,
            equipment_id=form.equipment_id,
            quantity=len(codes),
            asset_codes=codes,
            status=status,
            timestamp=int(self.clock().timestamp() * 1000),
        )

    def _new_id(self) -> str:
        while True:
            booking_id = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
            if booking_id not in self.store:
                return booking_id


def _require(form: BookingForm, fields: Sequence[str]):
    missing = [name for name in fields if not str(getattr(form, name) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
