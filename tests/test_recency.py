import math
from datetime import datetime, timedelta, timezone

import pytest

from jobrelay.pipeline.recency import (
    parse_relative_minutes,
    record_age_minutes,
    sort_newest_first,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "text,minutes",
    [
        ("just now", 0),
        ("Just now", 0),
        ("5 mins ago", 5),
        ("1 minute ago", 1),
        ("2 hrs ago", 120),
        ("3 hours ago", 180),
        ("3 days ago", 4320),
        ("1 day", 1440),
        ("2 weeks", 20160),
        ("1 week ago", 10080),
    ],
)
def test_parse_relative_minutes_table(text, minutes):
    assert parse_relative_minutes(text) == minutes


@pytest.mark.parametrize("text", ["", "yesterday", "3 months ago", "30+ days ago", None, 42])
def test_parse_relative_minutes_unknown_is_infinitely_old(text):
    assert parse_relative_minutes(text) == math.inf


def test_record_age_prefers_iso_timestamp():
    record = {
        "postedAt": (NOW - timedelta(hours=2)).isoformat().replace("+00:00", "Z"),
        "postedTime": "5 days ago",
    }
    assert record_age_minutes(record, NOW) == pytest.approx(120)


def test_record_age_falls_back_to_relative_text():
    assert record_age_minutes({"postedTime": "3 days ago"}, NOW) == 4320


def test_record_age_unknown():
    assert record_age_minutes({"title": "x"}, NOW) == math.inf


def test_sort_newest_first_is_stable_and_unknown_last():
    records = [
        {"id": "a", "postedTime": "2 days ago"},
        {"id": "b"},
        {"id": "c", "postedTime": "1 hour ago"},
        {"id": "d", "postedTime": "2 days ago"},
        {"id": "e", "postedTime": "??"},
    ]
    ordered = [r["id"] for r in sort_newest_first(records, NOW)]
    assert ordered == ["c", "a", "d", "b", "e"]
