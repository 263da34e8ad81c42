from datetime import date

import pytest

from ict_booking.availability import (
    AvailabilityQuery,
    availability_report,
    available_asset_codes,
    conflicting_asset_codes,
    overlaps,
    stock_remaining,
    to_minutes,
    unavailable_asset_codes,
)
from ict_booking.catalog import asset_codes, find_equipment
from ict_booking.data_models import BookingStatus

DAY = date(2026, 1, 15)
CHR_1_TO_5 = ["CHR-1", "CHR-2", "CHR-3", "CHR-4", "CHR-5"]


def query(start, end, equipment_id="chromebook", day=DAY):
    return AvailabilityQuery(equipment_id=equipment_id, date=day, start_time=start, end_time=end)


class TestOverlap:

    def test_touching_windows_do_not_overlap(self):
        assert overlaps("08:00", "10:00", "10:00", "12:00") is False
        assert overlaps("10:00", "12:00", "08:00", "10:00") is False

    def test_one_minute_past_boundary_overlaps(self):
        assert overlaps("08:00", "10:01", "10:00", "12:00") is True

    def test_contained_window_overlaps(self):
        assert overlaps("09:00", "09:30", "08:00", "10:00") is True

    def test_times_compare_numerically_not_as_text(self):
        # "9:00" > "10:00" as strings
        assert overlaps("9:00", "11:00", "10:00", "12:00") is True
        assert to_minutes("9:05") == 545

    def test_malformed_time_raises(self):
        with pytest.raises(ValueError):
            to_minutes("25:00")
        with pytest.raises(ValueError):
            to_minutes("noon")


class TestAssetCodes:

    def test_codes_are_prefixed_ordinals(self, chromebook):
        codes = asset_codes(chromebook)
        assert len(codes) == 15
        assert codes[0] == "CHR-1"
        assert codes[-1] == "CHR-15"

    def test_codes_are_stable(self, chromebook):
        assert asset_codes(chromebook) == asset_codes(chromebook)

    def test_prefix_with_dash(self):
        assert asset_codes(find_equipment("projector_kpm")) == ["PRJ-K-1", "PRJ-K-2"]


class TestUnavailableAssetCodes:

    def test_overlapping_approved_booking_blocks_its_codes(self, make_booking):
        bookings = [make_booking(asset_codes=CHR_1_TO_5)]
        assert sorted(unavailable_asset_codes(query("09:00", "11:00"), bookings)) == sorted(CHR_1_TO_5)

    def test_adjacent_window_is_free(self, make_booking):
        bookings = [make_booking(asset_codes=CHR_1_TO_5)]
        assert unavailable_asset_codes(query("10:00", "12:00"), bookings) == []

    def test_pending_booking_holds_codes(self, make_booking):
        bookings = [make_booking(status=BookingStatus.PENDING, asset_codes=["CHR-7"])]
        assert unavailable_asset_codes(query("09:00", "09:30"), bookings) == ["CHR-7"]

    @pytest.mark.parametrize("status", [BookingStatus.REJECTED, BookingStatus.RETURNED, BookingStatus.DRAFT])
    def test_inactive_bookings_never_hold_codes(self, make_booking, status):
        bookings = [make_booking(status=status, asset_codes=CHR_1_TO_5)]
        assert unavailable_asset_codes(query("08:00", "10:00"), bookings) == []

    def test_other_equipment_and_dates_are_ignored(self, make_booking):
        bookings = [
            make_booking(equipment_id="laptop", asset_codes=["LPT-1"]),
            make_booking(date=date(2026, 1, 16), asset_codes=["CHR-3"]),
        ]
        assert unavailable_asset_codes(query("08:00", "10:00"), bookings) == []

    def test_incomplete_candidate_yields_nothing(self, make_booking):
        bookings = [make_booking()]
        assert unavailable_asset_codes(AvailabilityQuery(equipment_id="chromebook"), bookings) == []
        assert unavailable_asset_codes(
            AvailabilityQuery(equipment_id="chromebook", date=DAY, start_time="08:00"), bookings
        ) == []
        assert unavailable_asset_codes(
            AvailabilityQuery(date=DAY, start_time="08:00", end_time="10:00"), bookings
        ) == []

    def test_result_is_flattened_without_dedup(self, make_booking):
        bookings = [
            make_booking(asset_codes=["CHR-1"], start_time="08:00", end_time="09:00"),
            make_booking(asset_codes=["CHR-1"], start_time="09:30", end_time="10:00"),
        ]
        assert unavailable_asset_codes(query("08:00", "10:00"), bookings) == ["CHR-1", "CHR-1"]

    def test_same_inputs_same_output(self, make_booking):
        bookings = [make_booking(asset_codes=CHR_1_TO_5), make_booking(status=BookingStatus.PENDING, asset_codes=["CHR-9"])]
        candidate = query("09:00", "11:00")
        assert unavailable_asset_codes(candidate, bookings) == unavailable_asset_codes(candidate, bookings)

    def test_unreadable_stored_window_blocks_whole_day(self, make_booking):
        bookings = [make_booking(start_time="", end_time="", asset_codes=["CHR-4"])]
        assert unavailable_asset_codes(query("16:00", "17:00"), bookings) == ["CHR-4"]

    def test_exclude_id_skips_that_booking(self, make_booking):
        booking = make_booking(asset_codes=["CHR-2"])
        assert unavailable_asset_codes(query("08:00", "10:00"), [booking], exclude_id=booking.id) == []


class TestReports:

    def test_available_codes_keep_ordinal_order(self, chromebook, make_booking):
        bookings = [make_booking(asset_codes=["CHR-2", "CHR-1"])]
        available = available_asset_codes(chromebook, query("09:00", "11:00"), bookings)
        assert available[:2] == ["CHR-3", "CHR-4"]
        assert len(available) == 13

    def test_report_partitions_codes(self, chromebook, make_booking):
        report = availability_report(chromebook, query("09:00", "11:00"), [make_booking(asset_codes=["CHR-3"])])
        assert report.unavailable == ["CHR-3"]
        assert "CHR-3" not in report.available
        assert len(report.all_codes) == 15

    def test_conflicting_codes_only_lists_shared_units(self, make_booking):
        held = make_booking(asset_codes=["CHR-1", "CHR-2"])
        candidate = make_booking(status=BookingStatus.PENDING, asset_codes=["CHR-2", "CHR-3"], start_time="09:00")
        assert conflicting_asset_codes(candidate, [held, candidate]) == ["CHR-2"]

    def test_stock_remaining_counts_approved_only(self, chromebook, make_booking):
        bookings = [
            make_booking(asset_codes=CHR_1_TO_5),
            make_booking(status=BookingStatus.PENDING, asset_codes=["CHR-6"]),
            make_booking(status=BookingStatus.RETURNED, asset_codes=["CHR-7"]),
        ]
        assert stock_remaining(chromebook, bookings) == 10

    def test_stock_remaining_never_negative(self, make_booking):
        drone = find_equipment("drone")
        bookings = [make_booking(equipment_id="drone", asset_codes=["DRN-1"], quantity=3)]
        assert stock_remaining(drone, bookings) == 0
