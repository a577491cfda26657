from datetime import date

import pytest

from entries import UserData
from storage import JsonFileStorage, Storage


@pytest.fixture
def today():
    return date(2024, 3, 15)


@pytest.fixture
def sqlite_storage(tmp_path):
    storage = Storage(str(tmp_path / "db"))
    storage.init_database()
    yield storage
    storage.close()


@pytest.fixture
def json_storage(tmp_path):
    return JsonFileStorage(str(tmp_path / "json"))


@pytest.fixture(params=["sqlite", "json"])
def backend(request, tmp_path):
    if request.param == "json":
        yield JsonFileStorage(str(tmp_path / "json"))
        return
    storage = Storage(str(tmp_path / "db"))
    storage.init_database()
    yield storage
    storage.close()


class FailingBackend:
    """Loads an empty document; every write raises."""

    def __init__(self, data=None):
        self.data = data or UserData()
        self.calls = []

    def load_user_data(self, user_id):
        return self.data

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            self.calls.append(name)
            raise OSError("disk full")
        return fail


@pytest.fixture
def failing_backend():
    return FailingBackend()
