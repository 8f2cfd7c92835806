from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from time_tools import TimezoneResolver, DateTimeSnapshotBuilder
from time_tools.datetime_snapshot import epoch_millis, format_iso8601


INSTANT = datetime(2026, 10, 19, 8, 35, 9, 123456, tzinfo=timezone.utc)


def builder_at(instant, default_timezone=None):
    return DateTimeSnapshotBuilder(
        TimezoneResolver(default_timezone=default_timezone),
        clock=lambda: instant
    )


def test_snapshot_in_fallback_timezone():
    snap = builder_at(INSTANT).snapshot()

    assert snap.timezone == "Asia/Kolkata"
    assert snap.date == "Monday, October 19, 2026"
    assert snap.time == "02:05:09 PM GMT+5:30"
    assert snap.formatted == "Monday, October 19, 2026 at 02:05:09 PM GMT+5:30"
    assert snap.day_of_week == "Monday"
    assert snap.iso8601 == "2026-10-19T08:35:09.123Z"
    assert snap.unix_timestamp == int(INSTANT.replace(microsecond=0).timestamp())


def test_snapshot_in_requested_timezone():
    snap = builder_at(INSTANT).snapshot("America/New_York")

    assert snap.timezone == "America/New_York"
    assert snap.time == "04:35:09 AM EDT"
    assert snap.date == "Monday, October 19, 2026"


def test_iso_and_epoch_do_not_depend_on_timezone():
    builder = builder_at(INSTANT)
    a = builder.snapshot("Pacific/Honolulu")
    b = builder.snapshot("Asia/Tokyo")

    assert a.iso8601 == b.iso8601
    assert a.unix_timestamp == b.unix_timestamp


def test_local_date_can_differ_from_utc_date():
    instant = datetime(2026, 10, 19, 20, 0, 0, tzinfo=timezone.utc)
    snap = builder_at(instant).snapshot("Asia/Tokyo")

    assert snap.date == "Tuesday, October 20, 2026"
    assert snap.day_of_week == "Tuesday"
    assert snap.time == "05:00:00 AM GMT+9"
    assert snap.iso8601 == "2026-10-19T20:00:00.000Z"


@pytest.mark.parametrize("hour,expected", [(0, "12:00:00 AM UTC"), (12, "12:00:00 PM UTC"), (23, "11:00:00 PM UTC")])
def test_twelve_hour_clock(hour, expected):
    instant = datetime(2026, 1, 1, hour, 0, 0, tzinfo=timezone.utc)
    assert builder_at(instant).snapshot("UTC").time == expected


@pytest.mark.parametrize("tz,label", [
    ("America/Sao_Paulo", "GMT-3"),
    ("Asia/Kathmandu", "GMT+5:45"),
    ("Asia/Shanghai", "GMT+8"),
    ("Europe/Paris", "GMT+2"),
    ("America/Los_Angeles", "PDT"),
    ("Pacific/Honolulu", "HST"),
    ("Etc/UTC", "UTC"),
])
def test_zone_labels_follow_en_us(tz, label):
    snap = builder_at(INSTANT).snapshot(tz)
    assert snap.time.endswith(" " + label)


def test_configured_default_is_used_without_request():
    snap = builder_at(INSTANT, default_timezone="Europe/London").snapshot(None)
    assert snap.timezone == "Europe/London"
    assert snap.time == "09:35:09 AM GMT+1"


def test_naive_clock_is_treated_as_utc():
    snap = builder_at(INSTANT.replace(tzinfo=None)).snapshot("UTC")
    assert snap.iso8601 == "2026-10-19T08:35:09.123Z"


def test_epoch_seconds_is_floor_of_epoch_millis():
    for micro in (0, 999, 500000, 999999):
        instant = INSTANT.replace(microsecond=micro)
        snap = builder_at(instant).snapshot("UTC")
        assert snap.unix_timestamp == epoch_millis(instant) // 1000


def test_iso_truncates_to_milliseconds():
    assert format_iso8601(INSTANT.replace(microsecond=999999)) == "2026-10-19T08:35:09.999Z"


def test_clock_is_sampled_once_per_snapshot():
    calls = []

    def clock():
        calls.append(1)
        return INSTANT

    DateTimeSnapshotBuilder(TimezoneResolver(), clock=clock).snapshot("UTC")
    assert len(calls) == 1


def test_snapshot_is_immutable():
    snap = builder_at(INSTANT).snapshot()
    with pytest.raises(FrozenInstanceError):
        snap.timezone = "UTC"
    assert snap.to_dict()["timezone"] == "Asia/Kolkata"


def test_zero_offset_outside_utc_is_gmt():
    instant = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
    assert builder_at(instant).snapshot("Europe/London").time == "12:00:00 PM GMT"
