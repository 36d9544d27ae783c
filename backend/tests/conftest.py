import uuid

import pytest
from fastapi.testclient import TestClient

from student_records.main import app
from student_records.models.student import StudentCreate, StudentRecord
from student_records.store import StudentStore, get_store


@pytest.fixture
def snapshot_path(tmp_path):
    """Path of the JSON snapshot used by the store under test."""
    return tmp_path / "students.json"


@pytest.fixture
def store(snapshot_path) -> StudentStore:
    """A fresh, empty store backed by a temporary snapshot file."""
    return StudentStore(str(snapshot_path))


@pytest.fixture
def client(store):
    """HTTP client whose routes use the temporary store."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_record():
    """Factory for in-memory StudentRecord objects (not stored)."""
    def _make(**fields) -> StudentRecord:
        fields.setdefault("id", str(uuid.uuid4()))
        return StudentRecord(**fields)
    return _make


@pytest.fixture
def add_student(store):
    """Insert a valid student straight into the store; fields override defaults."""
    counter = {"n": 0}

    def _add(**fields) -> StudentRecord:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "roll_number": f"R{n:03d}",
            "name": f"Student {n}",
            "email": f"student{n}@example.com",
            "course": "Physics",
        }
        data.update(fields)
        return store.insert(StudentCreate(**data))
    return _add
