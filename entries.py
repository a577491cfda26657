#!/usr/bin/env python3

"""
Entry types for the fitness tracker.

Three collections make up a user's data:
- calorie entries (list, one per day expected but not enforced)
- workouts (mapping of ISO date -> workout entry, one per date)
- weight entries (list, several per date allowed)

All dates are zero-padded ISO strings (YYYY-MM-DD). Numeric fields are either
a finite number or None ("not logged"), never NaN and never a string.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Union


Number = Union[int, float]


class InvalidEntryError(ValueError):
    """Raised when a field value is not a finite number (or None)."""


class EntryStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class WorkoutType(str, Enum):
    PUSH = "Push"
    PULL = "Pull"
    LEGS = "Legs"
    REST = "Rest"
    UNSET = ""


# ---------------------------
# Value helpers
# ---------------------------

def parse_iso_day(value: object) -> Optional[date]:
    """Return the date for a zero-padded YYYY-MM-DD string, else None."""
    if not isinstance(value, str) or len(value) != 10:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def check_number(name: str, value: object) -> Optional[Number]:
    if value is None:
        return None
    # bool is an int subclass; a checkbox value is not a calorie count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidEntryError(f"{name} must be a number or None, got {value!r}")
    if not math.isfinite(value):
        raise InvalidEntryError(f"{name} must be finite, got {value!r}")
    return value


def parse_number(text: Optional[str], name: str = "value") -> Optional[Number]:
    """Convert form/CSV text to a number. Blank text means "not logged"."""
    if text is None:
        return None
    raw = str(text).strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise InvalidEntryError(f"{name} is not a number: {text!r}") from None
    if not math.isfinite(value):
        raise InvalidEntryError(f"{name} must be finite, got {text!r}")
    if value.is_integer() and "." not in raw and "e" not in raw.lower():
        return int(value)
    return value


# ---------------------------
# Data structures
# ---------------------------

CALORIE_FIELDS = ("day", "target", "exercise", "intake", "steps", "protein")
WEIGHT_FIELDS = ("date", "weight")


@dataclass(frozen=True)
class CalorieEntry:
    id: str
    day: str
    target: Optional[Number] = None
    exercise: Optional[Number] = None
    intake: Optional[Number] = None
    steps: Optional[Number] = None
    protein: Optional[Number] = None
    status: EntryStatus = field(default=EntryStatus.CONFIRMED, compare=False)

    def __post_init__(self) -> None:
        for name in ("target", "exercise", "intake", "steps", "protein"):
            check_number(name, getattr(self, name))

    def to_dict(self) -> Dict[str, object]:
        return {name: getattr(self, name) for name in ("id",) + CALORIE_FIELDS}


@dataclass(frozen=True)
class WorkoutEntry:
    type: WorkoutType = WorkoutType.UNSET
    notes: str = ""
    status: EntryStatus = field(default=EntryStatus.CONFIRMED, compare=False)

    def __post_init__(self) -> None:
        # Accept the raw string value from forms and storage
        if not isinstance(self.type, WorkoutType):
            object.__setattr__(self, "type", WorkoutType(self.type))
        if self.notes is None:
            object.__setattr__(self, "notes", "")

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type.value, "notes": self.notes}


@dataclass(frozen=True)
class WeightEntry:
    id: str
    date: str
    weight: float
    status: EntryStatus = field(default=EntryStatus.CONFIRMED, compare=False)

    def __post_init__(self) -> None:
        if self.weight is None:
            raise InvalidEntryError("weight is required")
        check_number("weight", self.weight)

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "date": self.date, "weight": self.weight}


@dataclass
class UserData:
    calories: List[CalorieEntry] = field(default_factory=list)
    workouts: Dict[str, WorkoutEntry] = field(default_factory=dict)
    weights: List[WeightEntry] = field(default_factory=list)


def entry_fields(entry: object) -> Dict[str, object]:
    """Field values of an entry without its id and status."""
    return {
        f.name: getattr(entry, f.name)
        for f in fields(entry)  # type: ignore[arg-type]
        if f.name not in ("id", "status")
    }


# ---------------------------
# Form drafts
# ---------------------------

def draft_day(value: Union[str, date, None]) -> Optional[str]:
    """ISO string for a date picker value or typed text; None when blank."""
    if isinstance(value, date):
        return value.isoformat()
    text = (value or "").strip()
    if not text:
        return None
    if parse_iso_day(text) is None:
        raise InvalidEntryError(f"date must look like YYYY-MM-DD, got {value!r}")
    return text


@dataclass
class CalorieDraft:
    """Raw text of the calorie form; converted only on submit."""
    day: Union[str, date] = ""
    target: str = ""
    exercise: str = ""
    intake: str = ""
    steps: str = ""

    @classmethod
    def from_entry(cls, entry: CalorieEntry) -> "CalorieDraft":
        def text(v: Optional[Number]) -> str:
            return "" if v is None else str(v)
        return cls(entry.day, text(entry.target), text(entry.exercise), text(entry.intake), text(entry.steps))

    def to_fields(self) -> Optional[Dict[str, object]]:
        """Return store fields, or None when the day is blank."""
        day = draft_day(self.day)
        if day is None:
            return None
        return {
            "day": day,
            "target": parse_number(self.target, "target"),
            "exercise": parse_number(self.exercise, "exercise"),
            "intake": parse_number(self.intake, "intake"),
            "steps": parse_number(self.steps, "steps"),
        }


@dataclass
class WorkoutDraft:
    type: str = ""
    notes: str = ""

    def to_fields(self) -> Dict[str, object]:
        return {"type": WorkoutType(self.type), "notes": self.notes or ""}


@dataclass
class WeightDraft:
    date: Union[str, date] = ""
    weight: str = ""

    def to_fields(self) -> Optional[Dict[str, object]]:
        day = draft_day(self.date)
        value = parse_number(self.weight, "weight")
        if day is None or value is None:
            return None
        return {"date": day, "weight": float(value)}
