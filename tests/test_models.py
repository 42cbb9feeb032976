import pytest

from jobrelay.errors import ConfigError
from jobrelay.models import MAX_CHUNK, Combo, Destination, SearchQuery, to_list


@pytest.mark.parametrize("chunk, expected", [(0, 1), (-3, 1), (1, 1), (None, 10), (500, MAX_CHUNK), ("7", 7)])
def test_chunk_is_clamped(chunk, expected):
    assert SearchQuery(chunk=chunk).chunk == expected


def test_total_defaults_to_at_least_one():
    assert SearchQuery(total=0).total == 1
    assert SearchQuery(total=-4).total == 1


def test_query_normalizes_filter_lists():
    q = SearchQuery(job_types="F, ,C", exp_levels=["2", " "])
    assert q.job_types == ["F", "C"]
    assert q.exp_levels == ["2"]
    assert len(q.combos) == 2


def test_combos_default_to_any():
    assert SearchQuery().combos == [Combo()]
    assert Combo().describe() == {"job_type": "any", "exp_level": "any"}


@pytest.mark.parametrize("value, expected", [(None, []), ("", []), ("a,b", ["a", "b"]), ((" x ", ""), ["x"])])
def test_to_list(value, expected):
    assert to_list(value) == expected


def test_destination_require():
    assert Destination("abc").require().sheet_name == "Sheet1"
    with pytest.raises(ConfigError):
        Destination("  ").require()
