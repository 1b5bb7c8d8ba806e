import pytest

from utils.duration_utils import format_duration, parse_duration


@pytest.mark.parametrize("token", ["មួយព្រឹក", "មួយរសៀល", "ពេលយប់", " មួយព្រឹក "])
def test_half_day_tokens_are_half_a_day(token):
    assert parse_duration(token) == 0.5


@pytest.mark.parametrize("raw, expected", [("2", 2.0), ("1.5", 1.5), (3, 3.0), (0.5, 0.5)])
def test_numbers_parse_as_days(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", None, True, "nan", "inf", [1]])
def test_unparsable_values_are_zero(raw):
    assert parse_duration(raw) == 0


def test_format_duration():
    assert format_duration("មួយរសៀល") == "មួយរសៀល"
    assert format_duration("2") == "2 ថ្ងៃ"
    assert format_duration(1.5) == "1.5 ថ្ងៃ"
    assert format_duration("abc") == "abc"
    assert format_duration(None) == ""
