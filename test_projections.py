from datetime import date

from entries import CalorieEntry, WeightEntry
from projections import (
    calorie_table_entries,
    monthly_balance_series,
    monthly_balance_total,
    monthly_steps_series,
    monthly_weight_series,
    points_to_frame,
    trailing_net_series,
    weight_history_series,
)


def test_trailing_net_series_is_zero_filled(today):
    calories = [
        CalorieEntry(id="a", day="2024-03-15", target=2000, intake=1800, exercise=200),
        CalorieEntry(id="b", day="2024-03-01", intake=2500),
        CalorieEntry(id="c", day="2024-01-01", intake=9999),  # outside the window
    ]
    points = trailing_net_series(calories, today, days=30)
    assert len(points) == 30
    assert points[0].date == date(2024, 2, 15)
    assert points[-1].date == today
    assert points[-1].label == "03/15"
    assert points[-1].net == 1600
    assert points[-1].balance == 400
    assert points[-1].has_data
    assert sum(1 for p in points if p.has_data) == 2
    assert all(p.net == 0 for p in points if not p.has_data)


def test_monthly_balance_series():
    calories = [
        CalorieEntry(id="a", day="2024-02-10", target=2000, intake=1500),
        CalorieEntry(id="b", day="2024-02-11", target=2000, intake=2300),
        CalorieEntry(id="c", day="2024-03-01", target=2000, intake=1000),
    ]
    points = monthly_balance_series(calories, 2024, 2)
    assert len(points) == 29
    tenth = points[9]
    assert tenth.day_number == "10"
    assert tenth.day_name == "Sat"
    assert tenth.balance == 500
    assert points[10].balance == -300
    assert monthly_balance_total(points) == 200


def test_monthly_weight_series_sorted_and_filtered():
    weights = [
        WeightEntry("w1", "2024-03-20", 179.0),
        WeightEntry("w2", "2024-03-02", 181.0),
        WeightEntry("w3", "2024-02-28", 183.0),
        WeightEntry("w4", "garbage", 150.0),
    ]
    points = monthly_weight_series(weights, 2024, 3)
    assert [p.weight for p in points] == [181.0, 179.0]
    assert points[0].label == "03/02"


def test_weight_history_skips_bad_dates():
    weights = [WeightEntry("w1", "2024-03-20", 179.0), WeightEntry("w2", "2024-3-2", 181.0)]
    assert [p.weight for p in weight_history_series(weights)] == [179.0]


def test_monthly_steps_series_only_days_with_steps():
    calories = [
        CalorieEntry(id="a", day="2024-03-05", steps=8000),
        CalorieEntry(id="b", day="2024-03-01", steps=12000),
        CalorieEntry(id="c", day="2024-03-02", steps=0),
        CalorieEntry(id="d", day="2024-03-03"),
    ]
    points = monthly_steps_series(calories, 2024, 3)
    assert [p.steps for p in points] == [12000, 8000]


def test_points_to_frame(today):
    points = trailing_net_series([], today, days=3)
    df = points_to_frame(points, ["date", "net"])
    assert list(df.columns) == ["date", "net"]
    assert len(df) == 3
    assert points_to_frame([], ["date", "net"]).empty


def test_calorie_table_entries_newest_first():
    calories = [
        CalorieEntry(id="a", day="2024-03-01"),
        CalorieEntry(id="b", day="2024-3-9"),
        CalorieEntry(id="c", day="2024-03-05"),
        CalorieEntry(id="d", day="Mar 10"),
    ]
    assert [e.id for e in calorie_table_entries(calories)] == ["c", "a"]
