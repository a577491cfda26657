#!/usr/bin/env python3

"""
Storage backends for the fitness tracker.

Two interchangeable backends hold a user's three collections:

- ``Storage``: tabular store. SQLite (stdlib ``sqlite3``) by default; Postgres
  through SQLAlchemy when a ``postgres`` DATABASE_URL is configured and
  reachable. Also hosts the auth tables.
- ``JsonFileStorage``: local key-value store, one JSON document per user with
  ``calories``, ``workouts`` and ``weights`` buckets.

Both expose the same methods (``load_user_data``, ``insert_calorie``,
``insert_calories``, ``update_calorie``, ``delete_calorie``, ``upsert_workout``,
``delete_workout``, ``insert_weight``, ``update_weight``, ``delete_weight``,
``clear_all``). Multi-row writes run in a single transaction.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
import tempfile
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from entries import (
    CalorieEntry,
    EntryStatus,
    Number,
    UserData,
    WeightEntry,
    WorkoutEntry,
)

logger = logging.getLogger(__name__)

DB_FILENAME = "fitness_tracker.db"

DATABASE_ERRORS = (sqlite3.Error, SQLAlchemyError, OSError)


def _should_use_postgres(url: Optional[str]) -> bool:
    if not url:
        return False
    return url.lower().startswith("postgres")


def get_db_path(data_dir: str) -> str:
    os.makedirs(data_dir, exist_ok=True)
    return os.path.join(data_dir, DB_FILENAME)


def sanitize_user_id(user_id: str) -> str:
    """Sanitize a user identifier to be filesystem-safe."""
    if not isinstance(user_id, str):
        user_id = str(user_id)
    # Allow letters, numbers, dash, underscore; replace others with dash
    cleaned = re.sub(r"[^A-Za-z0-9_\-]", "-", user_id.strip())
    cleaned = re.sub(r"-+", "-", cleaned)
    return cleaned or f"guest-{uuid.uuid4().hex[:8]}"


def _number(value: Any) -> Optional[Number]:
    # REAL columns come back as floats; whole numbers were logged as ints
    if value is None:
        return None
    value = float(value)
    return int(value) if value.is_integer() else value


# -------------------------
# Connection handles
# -------------------------

class _SqliteHandle:
    def __init__(self, cur: sqlite3.Cursor):
        self._cur = cur

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[tuple]:
        self._cur.execute(sql, params or {})
        return self._cur.fetchall()

    def executemany(self, sql: str, rows: Sequence[Dict[str, Any]]) -> None:
        self._cur.executemany(sql, rows)


class _SqlAlchemyHandle:
    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[tuple]:
        result = self._conn.execute(text(sql), params or {})
        return [tuple(r) for r in result.fetchall()] if result.returns_rows else []

    def executemany(self, sql: str, rows: Sequence[Dict[str, Any]]) -> None:
        if rows:
            self._conn.execute(text(sql), list(rows))


_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS calorie_entries (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        day TEXT NOT NULL,  -- ISO8601 date string
        target DOUBLE PRECISION,
        exercise DOUBLE PRECISION,
        intake DOUBLE PRECISION,
        steps DOUBLE PRECISION,
        protein DOUBLE PRECISION
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS workouts (
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT '',
        notes TEXT NOT NULL DEFAULT '',
        PRIMARY KEY (user_id, date)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS weight_entries (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        date TEXT NOT NULL,
        weight DOUBLE PRECISION NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_calorie_entries_user ON calorie_entries(user_id, position);",
    "CREATE INDEX IF NOT EXISTS idx_weight_entries_user ON weight_entries(user_id, position);",
]

_INSERT_CALORIE = (
    "INSERT INTO calorie_entries(id, user_id, position, day, target, exercise, intake, steps, protein) "
    "VALUES (:id, :uid, :position, :day, :target, :exercise, :intake, :steps, :protein);"
)


class Storage:
    """SQLite- or Postgres-backed store for entries and auth records."""

    def __init__(self, data_dir: str = "data", database_url: Optional[str] = None):
        self._engine = None
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        if _should_use_postgres(database_url):
            try:
                engine = create_engine(database_url, pool_pre_ping=True)
                # Eagerly verify connectivity so we can gracefully fall back to SQLite
                with engine.connect():
                    pass
                self._engine = engine
            except SQLAlchemyError:
                logger.exception("Postgres unavailable, falling back to SQLite")
                self._engine = None
        if self._engine is None:
            self.db_path = get_db_path(data_dir)
            self._conn = self._create_connection(self.db_path)
        else:
            self.db_path = None

    @property
    def uses_sqlalchemy(self) -> bool:
        return self._engine is not None

    @staticmethod
    def _create_connection(path: str) -> sqlite3.Connection:
        conn = sqlite3.connect(
            path,
            check_same_thread=False,
            isolation_level=None,  # autocommit; we manage transactions explicitly
        )
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        if self._engine is not None:
            with self._engine.begin() as conn:
                yield _SqlAlchemyHandle(conn)
            return
        assert self._conn is not None
        with self._lock:
            cur = self._conn.cursor()
            cur.execute("BEGIN;")
            try:
                yield _SqliteHandle(cur)
                cur.execute("COMMIT;")
            except BaseException:
                cur.execute("ROLLBACK;")
                raise
            finally:
                cur.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        if self._engine is not None:
            self._engine.dispose()

    def init_database(self) -> None:
        """Create tables and indices if they don't exist."""
        with self.transaction() as db:
            for statement in _SCHEMA:
                db.execute(statement)

    # -------------------------
    # Reads
    # -------------------------

    def load_user_data(self, user_id: str) -> UserData:
        with self.transaction() as db:
            cal_rows = db.execute(
                "SELECT id, day, target, exercise, intake, steps, protein FROM calorie_entries "
                "WHERE user_id=:uid ORDER BY position ASC;",
                {"uid": user_id},
            )
            workout_rows = db.execute(
                "SELECT date, type, notes FROM workouts WHERE user_id=:uid ORDER BY date ASC;",
                {"uid": user_id},
            )
            weight_rows = db.execute(
                "SELECT id, date, weight FROM weight_entries WHERE user_id=:uid ORDER BY position ASC;",
                {"uid": user_id},
            )
        return UserData(
            calories=[
                CalorieEntry(
                    id=r[0], day=r[1], target=_number(r[2]), exercise=_number(r[3]),
                    intake=_number(r[4]), steps=_number(r[5]), protein=_number(r[6]),
                )
                for r in cal_rows
            ],
            workouts={d: WorkoutEntry(t, n) for (d, t, n) in workout_rows},
            weights=[WeightEntry(id=r[0], date=r[1], weight=float(r[2])) for r in weight_rows],
        )

    # -------------------------
    # Calories API
    # -------------------------

    @staticmethod
    def _next_position(db: Any, table: str, user_id: str) -> int:
        rows = db.execute(f"SELECT COALESCE(MAX(position), 0) FROM {table} WHERE user_id=:uid;", {"uid": user_id})
        return int(rows[0][0]) + 1

    @staticmethod
    def _calorie_row(user_id: str, entry: CalorieEntry, position: int) -> Dict[str, Any]:
        row: Dict[str, Any] = entry.to_dict()
        row.update({"uid": user_id, "position": position})
        return row

    def insert_calorie(self, user_id: str, entry: CalorieEntry) -> None:
        self.insert_calories(user_id, [entry])

    def insert_calories(self, user_id: str, entries: Sequence[CalorieEntry]) -> None:
        with self.transaction() as db:
            start = self._next_position(db, "calorie_entries", user_id)
            db.executemany(
                _INSERT_CALORIE,
                [self._calorie_row(user_id, e, start + i) for i, e in enumerate(entries)],
            )

    def update_calorie(self, user_id: str, entry: CalorieEntry) -> None:
        with self.transaction() as db:
            db.execute(
                "UPDATE calorie_entries SET day=:day, target=:target, exercise=:exercise, intake=:intake, "
                "steps=:steps, protein=:protein WHERE user_id=:uid AND id=:id;",
                self._calorie_row(user_id, entry, 0),
            )

    def delete_calorie(self, user_id: str, entry_id: str) -> None:
        with self.transaction() as db:
            db.execute("DELETE FROM calorie_entries WHERE user_id=:uid AND id=:id;", {"uid": user_id, "id": entry_id})

    # -------------------------
    # Workouts API
    # -------------------------

    def upsert_workout(self, user_id: str, day: str, entry: WorkoutEntry) -> None:
        with self.transaction() as db:
            db.execute(
                """
                INSERT INTO workouts (user_id, date, type, notes) VALUES (:uid, :date, :type, :notes)
                ON CONFLICT (user_id, date) DO UPDATE SET type=excluded.type, notes=excluded.notes;
                """,
                {"uid": user_id, "date": day, "type": entry.type.value, "notes": entry.notes},
            )

    def delete_workout(self, user_id: str, day: str) -> None:
        with self.transaction() as db:
            db.execute("DELETE FROM workouts WHERE user_id=:uid AND date=:date;", {"uid": user_id, "date": day})

    # -------------------------
    # Weights API
    # -------------------------

    def insert_weight(self, user_id: str, entry: WeightEntry) -> None:
        with self.transaction() as db:
            position = self._next_position(db, "weight_entries", user_id)
            db.execute(
                "INSERT INTO weight_entries(id, user_id, position, date, weight) VALUES (:id, :uid, :position, :date, :w);",
                {"id": entry.id, "uid": user_id, "position": position, "date": entry.date, "w": float(entry.weight)},
            )

    def update_weight(self, user_id: str, entry: WeightEntry) -> None:
        with self.transaction() as db:
            db.execute(
                "UPDATE weight_entries SET date=:date, weight=:w WHERE user_id=:uid AND id=:id;",
                {"id": entry.id, "uid": user_id, "date": entry.date, "w": float(entry.weight)},
            )

    def delete_weight(self, user_id: str, entry_id: str) -> None:
        with self.transaction() as db:
            db.execute("DELETE FROM weight_entries WHERE user_id=:uid AND id=:id;", {"uid": user_id, "id": entry_id})

    def clear_all(self, user_id: str) -> None:
        with self.transaction() as db:
            for table in ("calorie_entries", "workouts", "weight_entries"):
                db.execute(f"DELETE FROM {table} WHERE user_id=:uid;", {"uid": user_id})


class JsonFileStorage:
    """Per-user JSON documents under ``<data_dir>/users/<user>/tracker.json``."""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir
        self._lock = threading.Lock()

    def path_for(self, user_id: str) -> str:
        return os.path.join(self.data_dir, "users", sanitize_user_id(user_id), "tracker.json")

    def _read(self, user_id: str) -> Dict[str, Any]:
        path = self.path_for(user_id)
        if not os.path.exists(path):
            return {"calories": [], "workouts": {}, "weights": []}
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
        doc.setdefault("calories", [])
        doc.setdefault("workouts", {})
        doc.setdefault("weights", [])
        return doc

    def _write(self, user_id: str, doc: Dict[str, Any]) -> None:
        path = self.path_for(user_id)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        # Replace the whole document in one rename so a failed write leaves the old file
        fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @contextmanager
    def _document(self, user_id: str) -> Iterator[Dict[str, Any]]:
        with self._lock:
            doc = self._read(user_id)
            yield doc
            self._write(user_id, doc)

    def load_user_data(self, user_id: str) -> UserData:
        with self._lock:
            doc = self._read(user_id)
        return UserData(
            calories=[CalorieEntry(status=EntryStatus.CONFIRMED, **row) for row in doc["calories"]],
            workouts={d: WorkoutEntry(row.get("type", ""), row.get("notes", "")) for d, row in doc["workouts"].items()},
            weights=[WeightEntry(status=EntryStatus.CONFIRMED, **row) for row in doc["weights"]],
        )

    def insert_calorie(self, user_id: str, entry: CalorieEntry) -> None:
        self.insert_calories(user_id, [entry])

    def insert_calories(self, user_id: str, entries: Sequence[CalorieEntry]) -> None:
        with self._document(user_id) as doc:
            doc["calories"].extend(e.to_dict() for e in entries)

    def update_calorie(self, user_id: str, entry: CalorieEntry) -> None:
        with self._document(user_id) as doc:
            doc["calories"] = [entry.to_dict() if row["id"] == entry.id else row for row in doc["calories"]]

    def delete_calorie(self, user_id: str, entry_id: str) -> None:
        with self._document(user_id) as doc:
            doc["calories"] = [row for row in doc["calories"] if row["id"] != entry_id]

    def upsert_workout(self, user_id: str, day: str, entry: WorkoutEntry) -> None:
        with self._document(user_id) as doc:
            doc["workouts"][day] = entry.to_dict()

    def delete_workout(self, user_id: str, day: str) -> None:
        with self._document(user_id) as doc:
            doc["workouts"].pop(day, None)

    def insert_weight(self, user_id: str, entry: WeightEntry) -> None:
        with self._document(user_id) as doc:
            doc["weights"].append(entry.to_dict())

    def update_weight(self, user_id: str, entry: WeightEntry) -> None:
        with self._document(user_id) as doc:
            doc["weights"] = [entry.to_dict() if row["id"] == entry.id else row for row in doc["weights"]]

    def delete_weight(self, user_id: str, entry_id: str) -> None:
        with self._document(user_id) as doc:
            doc["weights"] = [row for row in doc["weights"] if row["id"] != entry_id]

    def clear_all(self, user_id: str) -> None:
        with self._document(user_id) as doc:
            doc["calories"] = []
            doc["workouts"] = {}
            doc["weights"] = []
