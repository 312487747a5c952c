"""Tests for the injectable clocks."""

from datetime import date, datetime, timedelta, timezone

from stock_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_frozen(self):
        clock = DeterministicClock(datetime(2025, 10, 20, 9, 0, tzinfo=timezone.utc))
        assert clock.now() == clock.now()
        assert clock.today() == date(2025, 10, 20)

    def test_naive_time_is_utc(self):
        clock = DeterministicClock(datetime(2025, 10, 20))
        assert clock.now().tzinfo is timezone.utc

    def test_aware_time_converted_to_utc(self):
        sydney = timezone(timedelta(hours=11))
        clock = DeterministicClock(datetime(2025, 10, 20, 8, 0, tzinfo=sydney))
        assert clock.now() == datetime(2025, 10, 19, 21, 0, tzinfo=timezone.utc)
        assert clock.today() == date(2025, 10, 19)


class TestSystemClock:
    def test_aware_utc(self):
        assert SystemClock().now().tzinfo is timezone.utc
