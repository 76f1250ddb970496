"""
Unit tests for schedule/time window evaluation.
"""
from datetime import datetime, time, timezone

import hypothesis.strategies as st
from hypothesis import given, settings

from distribution.services.schedule import (
    Weekday,
    is_schedule_open,
    is_within_window,
    local_day_and_time,
    parse_time,
)


class TestParseTime:
    """Tests for parse_time."""

    def test_parses_hh_mm(self):
        assert parse_time('09:30') == time(9, 30)

    def test_parses_hh_mm_ss_to_minutes(self):
        assert parse_time('09:30:45') == time(9, 30)

    def test_time_instance_is_truncated(self):
        assert parse_time(time(9, 30, 59)) == time(9, 30)

    def test_empty_values_return_none(self):
        assert parse_time(None) is None
        assert parse_time('') is None

    def test_garbage_returns_none(self):
        assert parse_time('soon') is None


class TestIsWithinWindow:
    """Tests for flat windows, including overnight windows."""

    def test_inside_regular_window(self):
        assert is_within_window(time(12, 0), '09:00', '17:00') is True

    def test_bounds_are_inclusive(self):
        assert is_within_window(time(9, 0), '09:00', '17:00') is True
        assert is_within_window(time(17, 0), '09:00', '17:00') is True

    def test_outside_regular_window(self):
        assert is_within_window(time(8, 59), '09:00', '17:00') is False
        assert is_within_window(time(17, 1), '09:00', '17:00') is False

    def test_overnight_window_late_evening(self):
        assert is_within_window(time(23, 30), '22:00', '06:00') is True

    def test_overnight_window_early_morning(self):
        assert is_within_window(time(5, 0), '22:00', '06:00') is True

    def test_overnight_window_midday_excluded(self):
        assert is_within_window(time(12, 0), '22:00', '06:00') is False

    def test_missing_bound_is_open(self):
        assert is_within_window(time(3, 0), None, '06:00') is True
        assert is_within_window(time(3, 0), '09:00', None) is True

    @settings(max_examples=200)
    @given(
        start=st.times(),
        end=st.times(),
        current=st.times(),
    )
    def test_overnight_window_is_complement_of_daytime_gap(self, start, end, current):
        """
        For start > end, a time passes exactly when it is not strictly
        between end and start.
        """
        start = start.replace(second=0, microsecond=0)
        end = end.replace(second=0, microsecond=0)
        current = current.replace(second=0, microsecond=0)
        if start <= end:
            return

        expected = not (end < current < start)
        assert is_within_window(current, start, end) is expected


class TestLocalDayAndTime:
    """Tests for timezone conversion."""

    def test_converts_into_rule_timezone(self):
        # Monday 23:30 UTC is Tuesday 01:30 in Berlin (CEST, UTC+2)
        now = datetime(2024, 6, 3, 23, 30, tzinfo=timezone.utc)
        day, current = local_day_and_time(now, 'Europe/Berlin')
        assert day == Weekday.TUESDAY
        assert current == time(1, 30)

    def test_unknown_timezone_falls_back_to_utc(self):
        now = datetime(2024, 6, 3, 23, 30, tzinfo=timezone.utc)
        day, current = local_day_and_time(now, 'Mars/Olympus_Mons')
        assert day == Weekday.MONDAY
        assert current == time(23, 30)

    def test_empty_timezone_is_utc(self):
        now = datetime(2024, 6, 3, 8, 15, tzinfo=timezone.utc)
        assert local_day_and_time(now, None) == (Weekday.MONDAY, time(8, 15))


class TestIsScheduleOpen:
    """Tests for weekly schedule evaluation."""

    MONDAY_NOON = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)

    def test_inactive_day_is_closed(self):
        schedule = {'monday': {'is_active': False}}
        assert is_schedule_open(self.MONDAY_NOON, weekly_schedule=schedule) is False

    def test_missing_day_entry_is_closed(self):
        schedule = {'tuesday': {'is_active': True}}
        assert is_schedule_open(self.MONDAY_NOON, weekly_schedule=schedule) is False

    def test_active_day_without_hours_is_open(self):
        schedule = {'monday': {'is_active': True}}
        assert is_schedule_open(self.MONDAY_NOON, weekly_schedule=schedule) is True

    def test_active_day_with_hours(self):
        schedule = {'monday': {'is_active': True, 'start_time': '09:00', 'end_time': '11:00'}}
        assert is_schedule_open(self.MONDAY_NOON, weekly_schedule=schedule) is False

    def test_weekly_schedule_overrides_flat_window(self):
        schedule = {'monday': {'is_active': True}}
        assert is_schedule_open(
            self.MONDAY_NOON,
            weekly_schedule=schedule,
            start_time='00:00',
            end_time='01:00',
        ) is True

    def test_weekly_schedule_uses_rule_timezone(self):
        # 12:00 UTC is 21:00 in Tokyo
        schedule = {'monday': {'is_active': True, 'start_time': '20:00', 'end_time': '22:00'}}
        assert is_schedule_open(self.MONDAY_NOON, tz_name='Asia/Tokyo', weekly_schedule=schedule) is True
        assert is_schedule_open(self.MONDAY_NOON, tz_name='UTC', weekly_schedule=schedule) is False

    def test_overnight_day_entry(self):
        late = datetime(2024, 6, 3, 23, 0, tzinfo=timezone.utc)
        schedule = {'monday': {'is_active': True, 'start_time': '22:00', 'end_time': '02:00'}}
        assert is_schedule_open(late, weekly_schedule=schedule) is True

    def test_flat_window_without_schedule(self):
        assert is_schedule_open(self.MONDAY_NOON, start_time='09:00', end_time='17:00') is True
        assert is_schedule_open(self.MONDAY_NOON, start_time='13:00', end_time='17:00') is False

    def test_no_window_at_all_is_open(self):
        assert is_schedule_open(self.MONDAY_NOON) is True
