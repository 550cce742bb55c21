from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from carebook.utils.datetime_utils import ensure_utc, isoformat_utc, local_day_bounds, parse_start_time

UTC = timezone.utc
NEW_YORK = ZoneInfo('America/New_York')


def test_ensure_utc_treats_naive_values_as_utc() -> None:
    assert ensure_utc(datetime(2030, 1, 7, 9, 0)) == datetime(2030, 1, 7, 9, 0, tzinfo=UTC)
    assert ensure_utc(None) is None


def test_parse_start_time_accepts_zulu_suffix_and_truncates_seconds() -> None:
    assert parse_start_time('2030-01-07T09:30:45Z') == datetime(2030, 1, 7, 9, 30, tzinfo=UTC)


def test_parse_start_time_reads_naive_values_as_clinic_time() -> None:
    assert parse_start_time('2030-01-07T09:30:00', NEW_YORK) == datetime(2030, 1, 7, 14, 30, tzinfo=UTC)


def test_parse_start_time_converts_offsets_to_utc() -> None:
    assert parse_start_time(datetime(2030, 1, 7, 11, 0, tzinfo=NEW_YORK)) == datetime(2030, 1, 7, 16, 0, tzinfo=UTC)


@pytest.mark.parametrize('value', ['', 'tomorrow at nine', '2030-13-01T09:00:00', 1234])
def test_parse_start_time_rejects_garbage(value) -> None:
    with pytest.raises(ValueError):
        parse_start_time(value)


def test_local_day_bounds_follow_clinic_timezone() -> None:
    start, end = local_day_bounds(date(2030, 1, 7), NEW_YORK)

    assert start == datetime(2030, 1, 7, 5, 0, tzinfo=UTC)
    assert end == datetime(2030, 1, 8, 5, 0, tzinfo=UTC)


def test_isoformat_utc() -> None:
    assert isoformat_utc(datetime(2030, 1, 7, 9, 0, tzinfo=NEW_YORK)) == '2030-01-07T14:00:00Z'
