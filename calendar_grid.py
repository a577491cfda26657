#!/usr/bin/env python3

"""
Monthly calendar aggregation: one record per day, a consistency score and the
padding needed to lay the month out on a Monday-first week grid.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from entries import CalorieEntry, WorkoutEntry
from metrics import balance, is_training_day


@dataclass(frozen=True)
class DayRecord:
    date: date
    label: str
    workout: Optional[WorkoutEntry]
    calorie: Optional[CalorieEntry]
    balance: float
    steps: Optional[float]
    is_active: bool

    @property
    def iso(self) -> str:
        return self.date.isoformat()

    @property
    def has_calorie_data(self) -> bool:
        return self.calorie is not None


@dataclass(frozen=True)
class MonthSummary:
    year: int
    month: int
    days: Tuple[DayRecord, ...]
    padding: int
    active_days: int
    consistency_score: int


def month_days(year: int, month: int) -> List[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, last + 1)]


def leading_padding(year: int, month: int) -> int:
    """Empty cells before day 1 on a Monday-first grid."""
    # date.weekday() is Monday=0; shift to the Sunday=0 convention first
    sunday_based = (date(year, month, 1).weekday() + 1) % 7
    return (sunday_based + 6) % 7


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def first_entry_by_day(calories: Sequence[CalorieEntry]) -> Dict[str, CalorieEntry]:
    index: Dict[str, CalorieEntry] = {}
    for entry in calories:
        index.setdefault(entry.day, entry)
    return index


def aggregate_month(
    year: int,
    month: int,
    calories: Sequence[CalorieEntry],
    workouts: Mapping[str, WorkoutEntry],
) -> MonthSummary:
    by_day = first_entry_by_day(calories)
    records = []
    active = 0
    for day in month_days(year, month):
        key = day.isoformat()
        workout = workouts.get(key)
        entry = by_day.get(key)
        steps = entry.steps if entry is not None else None
        is_active = is_training_day(workout) or bool(steps and steps > 0)
        if is_active:
            active += 1
        records.append(DayRecord(
            date=day,
            label=str(day.day),
            workout=workout,
            calorie=entry,
            balance=balance(entry) if entry is not None else 0,
            steps=steps,
            is_active=is_active,
        ))
    # half-up rounding, not banker's
    score = int(math.floor(100 * active / len(records) + 0.5)) if records else 0
    return MonthSummary(
        year=year,
        month=month,
        days=tuple(records),
        padding=leading_padding(year, month),
        active_days=active,
        consistency_score=score,
    )


def weeks(summary: MonthSummary) -> List[List[Optional[DayRecord]]]:
    """Rows of seven cells (Monday first); None marks an empty cell."""
    cells: List[Optional[DayRecord]] = [None] * summary.padding + list(summary.days)
    cells += [None] * (-len(cells) % 7)
    return [cells[i:i + 7] for i in range(0, len(cells), 7)]
