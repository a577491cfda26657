#!/usr/bin/env python3

"""
Derived metrics over logged entries.

Sign convention for balance, used everywhere it is shown:
    balance = target - net
    positive -> deficit (under target, favourable)
    negative -> surplus (over target, unfavourable)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

import numpy as np

from entries import CalorieEntry, WeightEntry, WorkoutEntry, WorkoutType, parse_iso_day


def net(entry: CalorieEntry) -> float:
    """Intake minus exercise; missing values count as zero."""
    return (entry.intake or 0) - (entry.exercise or 0)


def balance(entry: CalorieEntry) -> float:
    """Target minus net, or 0 when no target was logged."""
    return entry.target - net(entry) if entry.target else 0


def balance_label(value: float) -> str:
    return "Deficit" if value >= 0 else "Surplus"


def trailing_average_net(calories: Sequence[CalorieEntry], window: int = 7) -> float:
    """Mean net calories over the last ``window`` dated entries by position."""
    dated = [e for e in calories if parse_iso_day(e.day) is not None]
    recent = dated[-window:] if window > 0 else []
    if not recent:
        return 0.0
    return float(np.mean([net(e) for e in recent]))


def _by_date(weights: Sequence[WeightEntry]) -> list:
    # Lexicographic order is chronological for zero-padded ISO strings only
    return sorted((w for w in weights if parse_iso_day(w.date) is not None), key=lambda w: w.date)


def weight_delta(weights: Sequence[WeightEntry]) -> float:
    """Latest minus previous weight by date; 0 with fewer than two readings."""
    ordered = _by_date(weights)
    if len(ordered) < 2:
        return 0.0
    return ordered[-1].weight - ordered[-2].weight


@dataclass(frozen=True)
class WeightStats:
    latest: float
    start: float
    total_change: float
    average: float
    count: int


def weight_stats(weights: Sequence[WeightEntry]) -> WeightStats:
    ordered = _by_date(weights)
    if not ordered:
        return WeightStats(0.0, 0.0, 0.0, 0.0, 0)
    latest = ordered[-1].weight
    start = ordered[0].weight
    average = float(np.mean([w.weight for w in ordered]))
    return WeightStats(latest, start, latest - start, average, len(ordered))


def is_training_day(workout: Optional[WorkoutEntry]) -> bool:
    return workout is not None and workout.type not in (WorkoutType.REST, WorkoutType.UNSET)


def recent_workout_count(workouts: Mapping[str, WorkoutEntry], today: date, days: int = 7) -> int:
    """Training sessions dated within the last ``days`` days (today included)."""
    cutoff = today - timedelta(days=days)
    count = 0
    for day, workout in workouts.items():
        parsed = parse_iso_day(day)
        if parsed is None:
            continue
        if parsed > cutoff and is_training_day(workout):
            count += 1
    return count
