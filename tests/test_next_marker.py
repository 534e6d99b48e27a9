from datetime import datetime, timedelta, timezone

import pytest

from rdstail.core.errors import MalformedMarker
from rdstail.core.models import FetchResult
from rdstail.core.use_cases.tail import get_next_marker

STARTING = "12:1234"
SLOW_QUERY = "this is a slow query log entry, really."  # 39 bytes


def test_response_marker_is_trusted(late_in_hour: datetime) -> None:
    resp = FetchResult(marker="12:2345")
    assert get_next_marker(STARTING, resp, late_in_hour) == "12:2345"


def test_unchanged_response_marker_is_kept(late_in_hour: datetime) -> None:
    resp = FetchResult(marker="12:1234")
    assert get_next_marker(STARTING, resp, late_in_hour) == "12:1234"


def test_sentinel_without_data_after_grace_window(late_in_hour: datetime) -> None:
    resp = FetchResult(marker="0")
    assert get_next_marker(STARTING, resp, late_in_hour) == "0"


def test_sentinel_without_data_inside_grace_window(early_in_hour: datetime) -> None:
    resp = FetchResult(marker="0")
    assert get_next_marker(STARTING, resp, early_in_hour) == STARTING


@pytest.mark.parametrize("minute", [3, 12])
def test_sentinel_with_data_advances_by_data_length(minute: int) -> None:
    now = datetime(2010, 6, 21, 15, minute, 5, tzinfo=timezone.utc)
    resp = FetchResult(data=SLOW_QUERY, marker="0")
    assert get_next_marker(STARTING, resp, now) == "12:1273"


def test_grace_window_boundary() -> None:
    resp = FetchResult(marker="0")
    at_five = datetime(2010, 6, 21, 15, 5, 59, tzinfo=timezone.utc)
    at_six = datetime(2010, 6, 21, 15, 6, 0, tzinfo=timezone.utc)
    assert get_next_marker(STARTING, resp, at_five) == STARTING
    assert get_next_marker(STARTING, resp, at_six) == "0"


def test_grace_window_uses_utc_minute() -> None:
    # 15:03 UTC expressed in a +05:30 zone reads as 20:33 locally
    now = datetime(2010, 6, 21, 20, 33, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert get_next_marker(STARTING, FetchResult(marker="0"), now) == STARTING


def test_grace_window_is_configurable(early_in_hour: datetime) -> None:
    resp = FetchResult(marker="0")
    assert get_next_marker(STARTING, resp, early_in_hour, grace_minutes=1) == "0"


def test_absent_response_keeps_previous(late_in_hour: datetime) -> None:
    assert get_next_marker(STARTING, None, late_in_hour) == STARTING
    assert get_next_marker(STARTING, FetchResult(data="x", marker=None), late_in_hour) == STARTING


def test_sentinel_with_data_from_probe_falls_back_to_sentinel(late_in_hour: datetime) -> None:
    resp = FetchResult(data=SLOW_QUERY, marker="0")
    assert get_next_marker(None, resp, late_in_hour) == "0"


def test_sentinel_with_data_and_malformed_previous_raises(late_in_hour: datetime) -> None:
    resp = FetchResult(data=SLOW_QUERY, marker="0")
    with pytest.raises(MalformedMarker):
        get_next_marker("12-1234", resp, late_in_hour)
