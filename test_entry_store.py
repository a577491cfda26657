import pytest

from entries import CalorieEntry, EntryStatus, InvalidEntryError, UserData, WeightEntry, WorkoutEntry, WorkoutType
from entry_store import EntryStore, PersistenceError


def make_store(backend=None):
    ticks = iter(range(1_000, 1_000_000))
    return EntryStore(backend, user_id="u1", clock=lambda: next(ticks))


def test_add_without_backend_is_confirmed():
    store = make_store()
    entry_id = store.add_calorie(day="2024-01-01", intake=1800)
    (entry,) = store.calories
    assert entry.id == entry_id
    assert entry.status == EntryStatus.CONFIRMED


def test_ids_are_unique():
    store = EntryStore(clock=lambda: 1.0)
    ids = {store.add_calorie(day="2024-01-01") for _ in range(5)}
    assert len(ids) == 5


def test_invalid_numbers_are_rejected():
    store = make_store()
    with pytest.raises(InvalidEntryError):
        store.add_calorie(day="2024-01-01", intake=float("nan"))
    with pytest.raises(InvalidEntryError):
        store.add_calorie(day="2024-01-01", intake="1800")
    assert store.calories == ()


def test_persisted_changes_survive_reload(backend):
    store = make_store(backend)
    first = store.add_calorie(day="2024-01-01", target=2000, intake=1800)
    store.add_calorie(day="2024-01-02", target=2000, intake=2100)
    store.update_calorie(first, exercise=300)
    store.add_workout("2024-01-01", WorkoutType.PUSH, "bench")
    store.add_weight("2024-01-01", 181.5)

    reloaded = make_store(backend)
    reloaded.load()
    assert reloaded.calories == store.calories
    assert reloaded.calories[0].exercise == 300
    assert reloaded.workouts == store.workouts
    assert reloaded.weights == store.weights
    assert all(e.status == EntryStatus.CONFIRMED for e in store.calories)


def test_update_keeps_unchanged_fields():
    store = make_store()
    entry_id = store.add_calorie(day="2024-01-01", target=2000, intake=1800, steps=5000)
    updated = store.update_calorie(entry_id, intake=1900)
    assert (updated.target, updated.intake, updated.steps) == (2000, 1900, 5000)


def test_update_rejects_unknown_fields_and_ids():
    store = make_store()
    entry_id = store.add_calorie(day="2024-01-01")
    with pytest.raises(TypeError):
        store.update_calorie(entry_id, calories=5)
    with pytest.raises(KeyError):
        store.update_calorie("missing", intake=5)
    with pytest.raises(KeyError):
        store.delete_weight("missing")


def test_delete_keeps_other_entries(backend):
    store = make_store(backend)
    ids = [store.add_calorie(day=f"2024-01-0{d}", intake=d) for d in (1, 2, 3)]
    store.delete_calorie(ids[1])
    assert [e.id for e in store.calories] == [ids[0], ids[2]]

    reloaded = make_store(backend)
    reloaded.load()
    assert [e.id for e in reloaded.calories] == [ids[0], ids[2]]


def test_workout_upsert_is_idempotent(backend):
    store = make_store(backend)
    store.add_workout("2024-01-01", "Push", "bench")
    store.add_workout("2024-01-01", "Push", "bench")
    assert list(store.workouts) == ["2024-01-01"]

    store.add_workout("2024-01-01", "Legs", "squats")
    reloaded = make_store(backend)
    reloaded.load()
    assert reloaded.workouts["2024-01-01"].type == WorkoutType.LEGS
    assert reloaded.workouts["2024-01-01"].notes == "squats"


def test_snapshots_are_copies():
    store = make_store()
    store.add_workout("2024-01-01", "Pull")
    snapshot = store.workouts
    snapshot.pop("2024-01-01")
    assert "2024-01-01" in store.workouts
    assert isinstance(store.calories, tuple)


def test_import_calories_is_one_batch(backend):
    store = make_store(backend)
    ids = store.import_calories([{"day": "2024-01-01", "intake": 1}, {"day": "2024-01-02", "intake": 2}])
    assert len(ids) == 2
    assert store.import_calories([]) == []
    reloaded = make_store(backend)
    reloaded.load()
    assert [e.intake for e in reloaded.calories] == [1, 2]


def test_failed_add_rolls_back(failing_backend):
    store = make_store(failing_backend)
    with pytest.raises(PersistenceError):
        store.add_calorie(day="2024-01-01", intake=1800)
    with pytest.raises(PersistenceError):
        store.add_weight("2024-01-01", 180.0)
    with pytest.raises(PersistenceError):
        store.add_workout("2024-01-01", "Push")
    assert store.calories == ()
    assert store.weights == ()
    assert store.workouts == {}


def test_failed_update_and_delete_restore_previous_state(failing_backend):
    failing_backend.data = UserData(
        calories=[CalorieEntry("a", "2024-01-01", intake=1), CalorieEntry("b", "2024-01-02", intake=2)],
        workouts={"2024-01-01": WorkoutEntry("Push")},
        weights=[WeightEntry("w", "2024-01-01", 180.0)],
    )
    store = make_store(failing_backend)
    store.load()
    before = (store.calories, store.workouts, store.weights)

    with pytest.raises(PersistenceError):
        store.update_calorie("a", intake=99)
    with pytest.raises(PersistenceError):
        store.delete_calorie("a")
    with pytest.raises(PersistenceError):
        store.update_weight("w", weight=1.0)
    with pytest.raises(PersistenceError):
        store.delete_workout("2024-01-01")
    with pytest.raises(PersistenceError):
        store.add_workout("2024-01-01", "Rest")
    with pytest.raises(PersistenceError):
        store.clear_all()

    assert (store.calories, store.workouts, store.weights) == before
    assert [e.id for e in store.calories] == ["a", "b"]
    assert store.calories[0].intake == 1


def test_clear_all(backend):
    store = make_store(backend)
    store.add_calorie(day="2024-01-01")
    store.add_workout("2024-01-01", "Push")
    store.add_weight("2024-01-01", 180.0)
    store.clear_all()
    assert (store.calories, store.workouts, store.weights) == ((), {}, ())

    reloaded = make_store(backend)
    reloaded.load()
    assert (reloaded.calories, reloaded.workouts, reloaded.weights) == ((), {}, ())
