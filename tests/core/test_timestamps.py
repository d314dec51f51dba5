"""Tests for time-zone helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from bulkspine.core.timestamps import make_clock, to_timezone, utc_now


class TestUtcNow:
    def test_is_aware_utc(self) -> None:
        now = utc_now()
        assert now.tzinfo is UTC


class TestToTimezone:
    def test_naive_is_utc(self) -> None:
        converted = to_timezone(datetime(2024, 1, 1, 12), "America/Sao_Paulo")
        assert converted.hour == 9
        assert converted.utcoffset() == timedelta(hours=-3)

    def test_aware_value(self) -> None:
        value = datetime(2024, 1, 1, 12, tzinfo=timezone(timedelta(hours=2)))
        assert to_timezone(value, "UTC").hour == 10

    def test_tzinfo_object(self) -> None:
        assert to_timezone(datetime(2024, 1, 1), UTC).tzinfo is UTC


class TestMakeClock:
    def test_clock_uses_zone(self) -> None:
        clock = make_clock("Asia/Tokyo")
        assert clock().utcoffset() == timedelta(hours=9)

    def test_clocks_are_independent(self) -> None:
        utc = make_clock("UTC")
        tokyo = make_clock("Asia/Tokyo")
        assert utc().utcoffset() == timedelta(0)
        assert tokyo().utcoffset() == timedelta(hours=9)
