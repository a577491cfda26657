import json
import os

import pytest

from entries import CalorieEntry, WeightEntry, WorkoutEntry, WorkoutType
from storage import Storage, get_db_path, sanitize_user_id


def test_round_trip(backend):
    entries = [
        CalorieEntry("c1", "2024-01-02", target=2000, exercise=150, intake=1800, steps=9000, protein=140.5),
        CalorieEntry("c2", "2024-01-01", intake=2300),
    ]
    backend.insert_calories("u1", entries)
    backend.upsert_workout("u1", "2024-01-01", WorkoutEntry(WorkoutType.PULL, "rows"))
    backend.insert_weight("u1", WeightEntry("w1", "2024-01-01", 180.2))

    data = backend.load_user_data("u1")
    # Insertion order, not date order
    assert data.calories == entries
    assert isinstance(data.calories[0].target, int)
    assert data.calories[0].protein == 140.5
    assert data.calories[1].target is None
    assert data.workouts == {"2024-01-01": WorkoutEntry(WorkoutType.PULL, "rows")}
    assert data.weights == [WeightEntry("w1", "2024-01-01", 180.2)]


def test_users_are_isolated(backend):
    backend.insert_calorie("u1", CalorieEntry("c1", "2024-01-01"))
    backend.insert_calorie("u2", CalorieEntry("c2", "2024-01-01"))
    backend.clear_all("u1")
    assert backend.load_user_data("u1").calories == []
    assert [e.id for e in backend.load_user_data("u2").calories] == ["c2"]


def test_update_and_delete(backend):
    backend.insert_calorie("u1", CalorieEntry("c1", "2024-01-01", intake=1))
    backend.insert_calorie("u1", CalorieEntry("c2", "2024-01-02", intake=2))
    backend.update_calorie("u1", CalorieEntry("c1", "2024-01-01", intake=10))
    backend.delete_calorie("u1", "c2")
    backend.insert_weight("u1", WeightEntry("w1", "2024-01-01", 180.0))
    backend.update_weight("u1", WeightEntry("w1", "2024-01-03", 179.0))
    backend.upsert_workout("u1", "2024-01-01", WorkoutEntry("Push"))
    backend.upsert_workout("u1", "2024-01-01", WorkoutEntry("Legs", "again"))
    backend.upsert_workout("u1", "2024-01-02", WorkoutEntry("Rest"))
    backend.delete_workout("u1", "2024-01-02")

    data = backend.load_user_data("u1")
    assert [(e.id, e.intake) for e in data.calories] == [("c1", 10)]
    assert data.weights == [WeightEntry("w1", "2024-01-03", 179.0)]
    assert data.workouts == {"2024-01-01": WorkoutEntry("Legs", "again")}


def test_empty_user(backend):
    data = backend.load_user_data("nobody")
    assert (data.calories, data.workouts, data.weights) == ([], {}, [])


def test_sqlite_transaction_rolls_back(sqlite_storage):
    with pytest.raises(RuntimeError):
        with sqlite_storage.transaction() as db:
            db.execute(
                "INSERT INTO workouts (user_id, date, type, notes) VALUES (:u, :d, 'Push', '')",
                {"u": "u1", "d": "2024-01-01"},
            )
            raise RuntimeError("boom")
    assert sqlite_storage.load_user_data("u1").workouts == {}


def test_sqlite_is_default(tmp_path):
    storage = Storage(str(tmp_path))
    try:
        assert not storage.uses_sqlalchemy
        assert storage.db_path == get_db_path(str(tmp_path))
    finally:
        storage.close()


def test_json_document_layout(json_storage):
    json_storage.insert_calorie("a@b.com", CalorieEntry("c1", "2024-01-01", intake=1800))
    path = json_storage.path_for("a@b.com")
    assert path.endswith(os.path.join("users", "a-b-com", "tracker.json"))
    with open(path, encoding="utf-8") as f:
        doc = json.load(f)
    assert set(doc) == {"calories", "workouts", "weights"}
    assert doc["calories"][0]["intake"] == 1800
    assert not [name for name in os.listdir(os.path.dirname(path)) if name.endswith(".tmp")]


def test_json_failed_write_keeps_old_document(json_storage, monkeypatch):
    json_storage.insert_calorie("u1", CalorieEntry("c1", "2024-01-01"))

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(json, "dump", broken_dump)
    with pytest.raises(OSError):
        json_storage.insert_calorie("u1", CalorieEntry("c2", "2024-01-02"))
    monkeypatch.undo()
    assert [e.id for e in json_storage.load_user_data("u1").calories] == ["c1"]


@pytest.mark.parametrize("raw,expected", [
    ("alice", "alice"),
    ("a@b.com", "a-b-com"),
    ("  user 1  ", "user-1"),
    ("../../etc", "-etc"),
])
def test_sanitize_user_id(raw, expected):
    assert sanitize_user_id(raw) == expected


def test_sanitize_empty_user_id():
    assert sanitize_user_id("").startswith("guest-")
