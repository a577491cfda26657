#!/usr/bin/env python3

"""
Chart series built from entry snapshots.

- Trailing windows (dashboard net-calorie trend): one point per calendar day,
  days without an entry appear as zero-valued points.
- Calendar months (weight and steps charts): only days with an actual entry,
  ascending by date string.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence

import pandas as pd

from calendar_grid import first_entry_by_day, month_days
from entries import CalorieEntry, WeightEntry, parse_iso_day
from metrics import balance, net


@dataclass(frozen=True)
class NetPoint:
    date: date
    label: str
    net: float
    target: float
    balance: float
    has_data: bool


@dataclass(frozen=True)
class BalancePoint:
    date: date
    day_name: str
    day_number: str
    net: float
    target: float
    balance: float
    has_data: bool


@dataclass(frozen=True)
class WeightPoint:
    date: date
    label: str
    weight: float


@dataclass(frozen=True)
class StepsPoint:
    date: date
    label: str
    steps: float


def _label(day: date) -> str:
    return day.strftime("%m/%d")


def _net_point(day: date, entry: Optional[CalorieEntry]) -> NetPoint:
    if entry is None:
        return NetPoint(day, _label(day), 0, 0, 0, False)
    return NetPoint(day, _label(day), net(entry), entry.target or 0, balance(entry), True)


def trailing_net_series(calories: Sequence[CalorieEntry], today: date, days: int = 30) -> List[NetPoint]:
    """Net calories for each of the ``days`` days ending ``today``, oldest first."""
    by_day = first_entry_by_day(calories)
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    return [_net_point(day, by_day.get(day.isoformat())) for day in window]


def monthly_balance_series(calories: Sequence[CalorieEntry], year: int, month: int) -> List[BalancePoint]:
    """Daily deficit/surplus for every day of a month, zero where nothing was logged."""
    by_day = first_entry_by_day(calories)
    points = []
    for day in month_days(year, month):
        entry = by_day.get(day.isoformat())
        if entry is None:
            points.append(BalancePoint(day, day.strftime("%a"), str(day.day), 0, 0, 0, False))
        else:
            points.append(BalancePoint(
                day, day.strftime("%a"), str(day.day), net(entry), entry.target or 0, balance(entry), True,
            ))
    return points


def monthly_balance_total(points: Sequence[BalancePoint]) -> float:
    return sum(p.balance for p in points)


def _in_month(value: str, year: int, month: int) -> Optional[date]:
    parsed = parse_iso_day(value)
    if parsed is None or (parsed.year, parsed.month) != (year, month):
        return None
    return parsed


def monthly_weight_series(weights: Sequence[WeightEntry], year: int, month: int) -> List[WeightPoint]:
    points = []
    for entry in sorted(weights, key=lambda w: w.date):
        day = _in_month(entry.date, year, month)
        if day is not None:
            points.append(WeightPoint(day, _label(day), entry.weight))
    return points


def weight_history_series(weights: Sequence[WeightEntry]) -> List[WeightPoint]:
    """Every weight entry with a valid date, ascending."""
    points = []
    for entry in sorted(weights, key=lambda w: w.date):
        day = parse_iso_day(entry.date)
        if day is not None:
            points.append(WeightPoint(day, _label(day), entry.weight))
    return points


def monthly_steps_series(calories: Sequence[CalorieEntry], year: int, month: int) -> List[StepsPoint]:
    points = []
    for entry in sorted(calories, key=lambda c: c.day):
        if not entry.steps:
            continue
        day = _in_month(entry.day, year, month)
        if day is not None:
            points.append(StepsPoint(day, _label(day), entry.steps))
    return points


def calorie_table_entries(calories: Sequence[CalorieEntry]) -> List[CalorieEntry]:
    """Newest first; entries with a malformed date are left out."""
    dated = [e for e in calories if parse_iso_day(e.day) is not None]
    return sorted(dated, key=lambda e: e.day, reverse=True)


def points_to_frame(points: Sequence[object], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Tabulate projector points for plotting or printing."""
    if not points:
        return pd.DataFrame(columns=list(columns or []))
    df = pd.DataFrame([asdict(p) for p in points])  # type: ignore[arg-type]
    df["date"] = pd.to_datetime(df["date"])
    return df[list(columns)] if columns else df
