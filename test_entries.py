from datetime import date

import pytest

from entries import CalorieDraft, InvalidEntryError, WeightDraft, draft_day, parse_iso_day, parse_number


def test_picker_dates_become_iso_strings():
    assert draft_day(date(2024, 1, 9)) == "2024-01-09"
    assert CalorieDraft(day=date(2024, 1, 9), intake="1800").to_fields()["day"] == "2024-01-09"
    assert WeightDraft(date=date(2024, 1, 9), weight="180").to_fields() == {"date": "2024-01-09", "weight": 180.0}


@pytest.mark.parametrize("text", ["2024-1-9", "Jan 9", "09/01/2024"])
def test_typed_dates_must_be_zero_padded_iso(text):
    with pytest.raises(InvalidEntryError):
        CalorieDraft(day=text, intake="1800").to_fields()
    with pytest.raises(InvalidEntryError):
        WeightDraft(date=text, weight="180").to_fields()


def test_blank_required_fields_abort():
    assert CalorieDraft(day="  ", intake="1800").to_fields() is None
    assert WeightDraft(date="2024-01-09", weight="").to_fields() is None
    assert WeightDraft(date="", weight="180").to_fields() is None


def test_parse_helpers():
    assert parse_iso_day("2024-01-09") == date(2024, 1, 9)
    assert parse_iso_day("2024-1-9") is None
    assert parse_number("1800") == 1800
    assert parse_number("1800.5") == 1800.5
    assert parse_number("") is None
    with pytest.raises(InvalidEntryError):
        parse_number("abc")
