from datetime import date, datetime, timezone

import pytest

from carelog.utils.datetime_utils import (
    as_utc,
    get_zone,
    local_date,
    parse_iso_string,
    to_iso_string,
)


def test_as_utc_treats_naive_as_utc():
    naive = datetime(2025, 6, 1, 8, 0)

    assert as_utc(naive) == datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)


def test_iso_string_round_trip_uses_z_suffix():
    dt = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)

    rendered = to_iso_string(dt)

    assert rendered == "2025-06-01T08:30:00Z"
    assert parse_iso_string(rendered) == dt


@pytest.mark.parametrize(
    "tz_name, expected",
    [
        ("Asia/Singapore", date(2025, 6, 2)),
        ("UTC", date(2025, 6, 1)),
        ("America/New_York", date(2025, 6, 1)),
    ],
)
def test_local_date_follows_the_given_zone(tz_name, expected):
    at = datetime(2025, 6, 1, 17, 30, tzinfo=timezone.utc)

    assert local_date(tz_name, at) == expected


def test_get_zone_rejects_unknown_names():
    with pytest.raises(ValueError):
        get_zone("Mars/Olympus_Mons")
