from datetime import date

import pytest

from calendar_grid import aggregate_month, leading_padding, month_days, shift_month, weeks
from entries import CalorieEntry, WorkoutEntry


def test_consistency_score_for_thirty_day_month():
    # April 2024: 6 training days and 3 days with steps only
    workouts = {f"2024-04-{d:02d}": WorkoutEntry("Push") for d in (1, 3, 5, 8, 10, 12)}
    workouts["2024-04-20"] = WorkoutEntry("Rest")
    calories = [
        CalorieEntry(id=f"c{d}", day=f"2024-04-{d:02d}", steps=5000) for d in (15, 16, 17)
    ]
    calories.append(CalorieEntry(id="c0", day="2024-04-18", steps=0, intake=2000, target=2200))

    summary = aggregate_month(2024, 4, calories, workouts)
    assert len(summary.days) == 30
    assert summary.active_days == 9
    assert summary.consistency_score == 30


def test_day_records():
    calories = [
        CalorieEntry(id="a", day="2024-04-02", target=2000, intake=1500, exercise=100),
        CalorieEntry(id="b", day="2024-04-02", target=2000, intake=3000),
    ]
    summary = aggregate_month(2024, 4, calories, {"2024-04-02": WorkoutEntry("Legs")})
    record = summary.days[1]
    assert record.iso == "2024-04-02"
    assert record.label == "2"
    # First entry for the day wins
    assert record.calorie.id == "a"
    assert record.balance == 600
    assert record.has_calorie_data
    assert record.is_active
    assert not summary.days[0].has_calorie_data


def test_empty_month_scores_zero():
    summary = aggregate_month(2024, 2, [], {})
    assert len(summary.days) == 29
    assert summary.consistency_score == 0


@pytest.mark.parametrize("year,month,padding", [
    (2024, 4, 0),   # starts on a Monday
    (2024, 9, 6),   # starts on a Sunday
    (2024, 6, 5),   # starts on a Saturday
    (2024, 5, 2),   # starts on a Wednesday
])
def test_leading_padding_is_monday_first(year, month, padding):
    assert leading_padding(year, month) == padding


def test_weeks_layout():
    summary = aggregate_month(2024, 9, [], {})
    rows = weeks(summary)
    assert all(len(row) == 7 for row in rows)
    assert rows[0][:6] == [None] * 6
    assert rows[0][6].date == date(2024, 9, 1)
    filled = [cell for row in rows for cell in row if cell is not None]
    assert len(filled) == 30


def test_shift_month():
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2024, 12, 1) == (2025, 1)
    assert shift_month(2024, 5, 0) == (2024, 5)


def test_month_days_leap_year():
    assert month_days(2024, 2)[-1] == date(2024, 2, 29)
    assert month_days(2023, 2)[-1] == date(2023, 2, 28)


def test_aggregation_is_repeatable():
    calories = [CalorieEntry(id="a", day="2024-04-02", target=2000, intake=1500, steps=4000)]
    workouts = {"2024-04-03": WorkoutEntry("Pull")}
    first = aggregate_month(2024, 4, calories, workouts)
    second = aggregate_month(2024, 4, calories, workouts)
    assert first == second
    assert weeks(first) == weeks(second)


def test_malformed_dates_are_skipped():
    calories = [
        CalorieEntry(id="a", day="2024-4-2", steps=9000),
        CalorieEntry(id="b", day="garbage", steps=9000),
        CalorieEntry(id="c", day="2024-04-05", steps=3000),
    ]
    workouts = {"2024-4-3": WorkoutEntry("Push"), "": WorkoutEntry("Legs"), "2024-04-06": WorkoutEntry("Legs")}
    summary = aggregate_month(2024, 4, calories, workouts)
    assert summary.active_days == 2
    assert [d.iso for d in summary.days if d.is_active] == ["2024-04-05", "2024-04-06"]
    assert not summary.days[1].has_calorie_data
    assert summary.days[2].workout is None
