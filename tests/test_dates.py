"""Tests for due-date parsing and today resolution."""

from datetime import date

import pytest

from daybook.core.dates import (
    NO_DUE_DATE,
    DueDate,
    DuePrecision,
    describe_today,
    parse_due_date,
    today_in,
)


def test_date_only():
    due = parse_due_date("2024-05-02")
    assert due == DueDate("2024-05-02", DuePrecision.DATE)
    assert due.to_columns() == {"due_date": "2024-05-02", "due_precision": "date"}


def test_date_time():
    due = parse_due_date("2024-05-02T09:30")
    assert due.precision == DuePrecision.DATETIME
    assert due.value == "2024-05-02T09:30:00"
    assert due.to_columns()["due_precision"] == "datetime"


def test_date_time_with_offset():
    due = parse_due_date("2024-05-02T09:30:00+03:30")
    assert due.precision == DuePrecision.DATETIME
    assert due.value.endswith("+03:30")


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_means_no_due_date(raw):
    assert parse_due_date(raw) is NO_DUE_DATE
    assert NO_DUE_DATE.to_columns() == {"due_date": None, "due_precision": None}


@pytest.mark.parametrize("raw", ["tomorrow", "2024-13-40", "2024-05", "05/02/2024", "2024-05-02T25:99"])
def test_unparseable_means_no_due_date(raw):
    assert parse_due_date(raw) == NO_DUE_DATE


def test_surrounding_whitespace_is_ignored():
    assert parse_due_date(" 2024-05-02 ").value == "2024-05-02"


def test_describe_today_includes_weekday():
    assert describe_today(date(2024, 5, 1)) == "2024-05-01 (Wednesday)"


def test_today_in_unknown_timezone_falls_back():
    assert isinstance(today_in("Not/AZone"), date)


def test_today_in_known_timezone():
    assert isinstance(today_in("Asia/Tehran"), date)
