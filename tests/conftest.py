from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from ict_booking.catalog import find_equipment
from ict_booking.controller import BookingController, BookingForm
from ict_booking.data_models import Booking, BookingStatus
from ict_booking.persistence import InMemoryPersistenceAdapter

FIXED_NOW = datetime(2026, 1, 15, 12, 30, tzinfo=ZoneInfo("Asia/Kuala_Lumpur"))


@pytest.fixture
def chromebook():
    return find_equipment("chromebook")


@pytest.fixture
def make_booking():
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "id": f"b{counter['n']}",
            "student_name": "Aisyah",
            "date": date(2026, 1, 15),
            "start_time": "08:00",
            "end_time": "10:00",
            "equipment_id": "chromebook",
            "class_name": "4 Ibnu Sina",
            "location": "Makmal Komputer",
            "asset_codes": ("CHR-1", "CHR-2"),
            "status": BookingStatus.APPROVED,
            "timestamp": 1000 * counter["n"],
        }
        fields.update(overrides)
        fields["asset_codes"] = tuple(fields["asset_codes"])
        fields.setdefault("quantity", len(fields["asset_codes"]))
        return Booking(**fields)

    return _make


@pytest.fixture
def adapter():
    return InMemoryPersistenceAdapter()


@pytest.fixture
def controller(adapter):
    return BookingController(adapter, clock=lambda: FIXED_NOW)


@pytest.fixture
def form():
    def _form(**overrides):
        fields = {
            "student_name": "Aisyah",
            "date": "2026-01-15",
            "start_time": "08:00",
            "end_time": "10:00",
            "class_name": "4 Ibnu Sina",
            "location": "Makmal Komputer",
            "purpose": "Coding club",
            "equipment_id": "chromebook",
            "asset_codes": ["CHR-1", "CHR-2"],
        }
        fields.update(overrides)
        return BookingForm(**fields)

    return _form
