"""
Unit Tests for shared helpers and CSV export
"""

import re

import pytest
from bson import ObjectId

from classhub.utils.csv_export import rows_to_csv
from classhub.utils.helpers import (
    convert_objectid_to_str,
    round_half_up,
    is_valid_time,
    time_to_minutes,
    minutes_between,
    search_regex,
    paginate
)


class TestRounding:

    @pytest.mark.parametrize("value, digits, expected", [
        (12.5, 0, 13),
        (13.5, 0, 14),
        (74.99, 0, 75),
        (0.25, 1, 0.3),
        (33.333, 1, 33.3),
    ])
    def test_half_up(self, value, digits, expected):
        assert round_half_up(value, digits) == expected

    def test_integer_result_type(self):
        assert isinstance(round_half_up(2.5), int)


class TestTimes:

    @pytest.mark.parametrize("value", ["00:00", "09:30", "23:59"])
    def test_valid(self, value):
        assert is_valid_time(value)

    @pytest.mark.parametrize("value", ["24:00", "9:30", "09:60", "", None, "0930"])
    def test_invalid(self, value):
        assert not is_valid_time(value)

    def test_minutes(self):
        assert time_to_minutes("10:30") == 630
        assert minutes_between("09:00", "10:30") == 90

    def test_bad_time_raises(self):
        with pytest.raises(ValueError):
            time_to_minutes("25:00")


def test_search_regex_escapes_input():
    pattern = search_regex(" c++ ")

    assert pattern == {"$regex": re.escape("c++"), "$options": "i"}


def test_paginate():
    assert paginate(45, 2, 20) == {
        "total": 45,
        "page": 2,
        "limit": 20,
        "total_pages": 3,
        "has_next": True,
        "has_prev": True
    }
    assert paginate(0, 1, 20)["total_pages"] == 0


def test_convert_objectid_nested():
    oid = ObjectId()

    converted = convert_objectid_to_str({"_id": oid, "items": [{"ref": oid}]})

    assert converted == {"_id": str(oid), "items": [{"ref": str(oid)}]}


class TestCsv:

    def test_quotes_every_field(self):
        content = rows_to_csv(["Name", "Count"], [["Junior Coders", 3]])

        assert content == '"Name","Count"\n"Junior Coders","3"\n'

    def test_escapes_quotes_and_commas(self):
        content = rows_to_csv(["Name"], [['Chess, "Advanced"']])

        assert content.splitlines()[1] == '"Chess, ""Advanced"""'

    def test_none_becomes_empty(self):
        content = rows_to_csv(["A", "B"], [[None, "x"]])

        assert content.splitlines()[1] == '"","x"'
