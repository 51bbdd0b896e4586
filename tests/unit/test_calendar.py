"""Tests for meeting/event time-slot checks."""
from datetime import date, datetime, timedelta

import pytest

from tms.errors import ServiceError
from tms.services.calendar import check_not_past, slot_times
from tms.timeutil import at_clock, today

DAY = date(2026, 3, 2)


class TestAtClock:
    @pytest.mark.parametrize("clock,expected", [
        ("09:30", datetime(2026, 3, 2, 9, 30)),
        (" 17:05:10 ", datetime(2026, 3, 2, 17, 5, 10)),
    ])
    def test_combines_day_and_clock(self, clock, expected):
        assert at_clock(DAY, clock) == expected

    @pytest.mark.parametrize("clock", ["10:00+05:00", "10:00-03:00"])
    def test_offset_rejected(self, clock):
        with pytest.raises(ValueError):
            at_clock(DAY, clock)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            at_clock(DAY, "noon")


class TestSlotTimes:
    def test_valid_slot(self):
        assert slot_times(DAY, "10:00", "11:15") == (datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 11, 15))

    def test_end_not_after_start(self):
        with pytest.raises(ServiceError) as exc:
            slot_times(DAY, "10:00", "10:00")
        assert exc.value.message == "End time must be after start time."
        assert exc.value.status_code == 400

    def test_offset_is_invalid_time(self):
        with pytest.raises(ServiceError) as exc:
            slot_times(DAY, "10:00+05:00", "11:00")
        assert exc.value.message == "Invalid start or end time."


class TestCheckNotPast:
    def test_today_allowed(self):
        check_not_past(today(), "Event")

    def test_yesterday_rejected(self):
        with pytest.raises(ServiceError) as exc:
            check_not_past(today() - timedelta(days=1), "Meeting")
        assert exc.value.message == "Meeting date cannot be in the past."
