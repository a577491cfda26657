#!/usr/bin/env python3

"""
In-memory source of truth for a user's calorie, workout and weight entries.

Every mutation is applied to the snapshot first (status ``pending``), then
written to the backend. A successful write marks the change ``confirmed``; a
failed write applies the inverse change, logs the failure and raises
``PersistenceError``. There is no retry.

Readers get immutable snapshots (tuples of frozen entries and a copied
workout dict) and cannot change the store's state.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from entries import (
    CALORIE_FIELDS,
    WEIGHT_FIELDS,
    CalorieEntry,
    EntryStatus,
    WeightEntry,
    WorkoutEntry,
    WorkoutType,
)

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """A durable write failed; the optimistic change was rolled back."""


class EntryStore:
    def __init__(self, backend: Any = None, user_id: str = "local", clock: Callable[[], float] = time.time):
        self.backend = backend
        self.user_id = user_id
        self._clock = clock
        self._sequence = itertools.count()
        self._calories: List[CalorieEntry] = []
        self._workouts: Dict[str, WorkoutEntry] = {}
        self._weights: List[WeightEntry] = []

    # ---------------------------
    # Snapshots
    # ---------------------------

    @property
    def calories(self) -> Tuple[CalorieEntry, ...]:
        return tuple(self._calories)

    @property
    def workouts(self) -> Dict[str, WorkoutEntry]:
        return dict(self._workouts)

    @property
    def weights(self) -> Tuple[WeightEntry, ...]:
        return tuple(self._weights)

    def load(self) -> None:
        """Replace the snapshot with the backend's durable state."""
        if self.backend is None:
            return
        data = self.backend.load_user_data(self.user_id)
        self._calories = list(data.calories)
        self._workouts = dict(data.workouts)
        self._weights = list(data.weights)

    # ---------------------------
    # Internals
    # ---------------------------

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{int(self._clock() * 1000)}-{next(self._sequence)}"

    @property
    def _initial_status(self) -> EntryStatus:
        return EntryStatus.CONFIRMED if self.backend is None else EntryStatus.PENDING

    def _commit(self, action: str, write: Callable[[Any], None], undo: Callable[[], None]) -> None:
        if self.backend is None:
            return
        try:
            write(self.backend)
        except Exception as exc:
            undo()
            logger.exception("Failed to %s for user %s; change rolled back", action, self.user_id)
            raise PersistenceError(f"Could not {action}: {exc}") from exc

    @staticmethod
    def _confirm(items: List[Any], ids: Iterable[str]) -> None:
        wanted = set(ids)
        for i, item in enumerate(items):
            if item.id in wanted:
                items[i] = dataclasses.replace(item, status=EntryStatus.CONFIRMED)

    @staticmethod
    def _index_of(items: List[Any], entry_id: str) -> int:
        for i, item in enumerate(items):
            if item.id == entry_id:
                return i
        raise KeyError(entry_id)

    @staticmethod
    def _check_changes(changes: Mapping[str, Any], allowed: Tuple[str, ...]) -> None:
        unknown = set(changes) - set(allowed)
        if unknown:
            raise TypeError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    # ---------------------------
    # Calories
    # ---------------------------

    def add_calorie(self, **fields: Any) -> str:
        entry = CalorieEntry(id=self._next_id("cal"), status=self._initial_status, **fields)
        self._calories.append(entry)

        def undo() -> None:
            self._calories = [e for e in self._calories if e.id != entry.id]

        self._commit("add calorie entry", lambda b: b.insert_calorie(self.user_id, entry), undo)
        self._confirm(self._calories, [entry.id])
        return entry.id

    def import_calories(self, batch: Iterable[Mapping[str, Any]]) -> List[str]:
        """Add a batch of calorie entries in one atomic write."""
        status = self._initial_status
        new_entries = [CalorieEntry(id=self._next_id("cal"), status=status, **dict(fields)) for fields in batch]
        if not new_entries:
            return []
        ids = [e.id for e in new_entries]
        self._calories.extend(new_entries)

        def undo() -> None:
            added = set(ids)
            self._calories = [e for e in self._calories if e.id not in added]

        self._commit("import calorie entries", lambda b: b.insert_calories(self.user_id, new_entries), undo)
        self._confirm(self._calories, ids)
        logger.info("Imported %d calorie entries for user %s", len(ids), self.user_id)
        return ids

    def update_calorie(self, entry_id: str, **changes: Any) -> CalorieEntry:
        self._check_changes(changes, CALORIE_FIELDS)
        index = self._index_of(self._calories, entry_id)
        previous = self._calories[index]
        updated = dataclasses.replace(previous, status=self._initial_status, **changes)
        self._calories[index] = updated

        def undo() -> None:
            self._calories = [previous if e.id == entry_id else e for e in self._calories]

        self._commit("update calorie entry", lambda b: b.update_calorie(self.user_id, updated), undo)
        self._confirm(self._calories, [entry_id])
        return self._calories[self._index_of(self._calories, entry_id)]

    def delete_calorie(self, entry_id: str) -> None:
        index = self._index_of(self._calories, entry_id)
        removed = self._calories.pop(index)

        def undo() -> None:
            self._calories.insert(index, removed)

        self._commit("delete calorie entry", lambda b: b.delete_calorie(self.user_id, entry_id), undo)

    # ---------------------------
    # Workouts
    # ---------------------------

    def add_workout(self, day: str, type: Any = WorkoutType.UNSET, notes: str = "") -> WorkoutEntry:
        """Save the workout for ``day``, replacing any existing one."""
        previous = self._workouts.get(day)
        entry = WorkoutEntry(type, notes, status=self._initial_status)
        self._workouts[day] = entry

        def undo() -> None:
            if previous is None:
                self._workouts.pop(day, None)
            else:
                self._workouts[day] = previous

        self._commit("save workout", lambda b: b.upsert_workout(self.user_id, day, entry), undo)
        confirmed = dataclasses.replace(entry, status=EntryStatus.CONFIRMED)
        self._workouts[day] = confirmed
        return confirmed

    def delete_workout(self, day: str) -> None:
        previous = self._workouts.pop(day, None)

        def undo() -> None:
            if previous is not None:
                self._workouts[day] = previous

        self._commit("delete workout", lambda b: b.delete_workout(self.user_id, day), undo)

    # ---------------------------
    # Weights
    # ---------------------------

    def add_weight(self, date: str, weight: float) -> str:
        entry = WeightEntry(id=self._next_id("weight"), date=date, weight=weight, status=self._initial_status)
        self._weights.append(entry)

        def undo() -> None:
            self._weights = [e for e in self._weights if e.id != entry.id]

        self._commit("add weight entry", lambda b: b.insert_weight(self.user_id, entry), undo)
        self._confirm(self._weights, [entry.id])
        return entry.id

    def update_weight(self, entry_id: str, **changes: Any) -> WeightEntry:
        self._check_changes(changes, WEIGHT_FIELDS)
        index = self._index_of(self._weights, entry_id)
        previous = self._weights[index]
        updated = dataclasses.replace(previous, status=self._initial_status, **changes)
        self._weights[index] = updated

        def undo() -> None:
            self._weights = [previous if e.id == entry_id else e for e in self._weights]

        self._commit("update weight entry", lambda b: b.update_weight(self.user_id, updated), undo)
        self._confirm(self._weights, [entry_id])
        return self._weights[self._index_of(self._weights, entry_id)]

    def delete_weight(self, entry_id: str) -> None:
        index = self._index_of(self._weights, entry_id)
        removed = self._weights.pop(index)

        def undo() -> None:
            self._weights.insert(index, removed)

        self._commit("delete weight entry", lambda b: b.delete_weight(self.user_id, entry_id), undo)

    # ---------------------------
    # Everything
    # ---------------------------

    def clear_all(self) -> None:
        """Irreversibly empty all three collections.

        Callers must get two explicit confirmations from the user first.
        """
        snapshot = (list(self._calories), dict(self._workouts), list(self._weights))
        self._calories, self._workouts, self._weights = [], {}, []

        def undo() -> None:
            self._calories, self._workouts, self._weights = snapshot

        self._commit("clear all data", lambda b: b.clear_all(self.user_id), undo)
        logger.info("Cleared all data for user %s", self.user_id)

    def find_calorie(self, entry_id: str) -> Optional[CalorieEntry]:
        for entry in self._calories:
            if entry.id == entry_id:
                return entry
        return None
