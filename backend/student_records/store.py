"""
Student record store - the single owner of the student collection.

The collection lives in memory and is written to one JSON file (a snapshot
of the whole array) after every insert, update and delete. Snapshots are
written to a temp file and moved into place, so the file on disk is always
a complete snapshot. If writing the snapshot fails, the in-memory change is
undone and the error is re-raised, so memory and disk stay in step. A
process crash after the in-memory change but before the move loses that
last mutation; nothing else is lost.

Provides the process-wide store and a FastAPI dependency for routes.
"""

import json
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

from pydantic import ValidationError as SchemaError

from student_records.config import STUDENTS_FILE
from student_records.errors import MalformedInputError
from student_records.logging_config import get_logger, log_with_context
from student_records.models.student import (
    StudentRecord, StudentCreate, StudentPatch, DEFAULT_GENDER, DEFAULT_STATUS
)

logger = get_logger("store")


def utc_now() -> str:
    """ISO 8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T09:30:00.000Z"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class StudentStore:
    """
    In-memory student collection persisted to ``path`` on every mutation.

    Records are kept in insertion order; ``list_students`` returns them
    newest first. All mutations take ``self.lock`` so interleaved callers
    cannot lose each other's writes; callers that check uniqueness before
    writing should hold ``transaction()`` across both steps.
    """

    def __init__(self, path: str = STUDENTS_FILE):
        self.path = path
        self.lock = threading.RLock()
        self._records: List[StudentRecord] = []
        self.reload()

    # ── Loading / persistence ────────────────────────────────

    def reload(self):
        """Replace the in-memory collection with the snapshot on disk."""
        with self.lock:
            try:
                self._records = self._read_snapshot()
            except MalformedInputError as e:
                log_with_context(logger, "WARNING",
                    "Ignoring unreadable snapshot, starting empty: {}".format(e.message),
                    extra_data={"path": self.path})
                self._records = []
            log_with_context(logger, "INFO",
                "Loaded {} students".format(len(self._records)),
                extra_data={"path": self.path})

    def _read_snapshot(self) -> List[StudentRecord]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise MalformedInputError("could not read snapshot: {}".format(e))

        if not text.strip():
            return []
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedInputError("snapshot is not valid JSON: {}".format(e))
        if not isinstance(raw, list):
            raise MalformedInputError("snapshot must be a JSON array")
        try:
            return [StudentRecord.model_validate(item) for item in raw]
        except SchemaError as e:
            raise MalformedInputError("snapshot contains an invalid record: {}".format(e))

    def _persist(self):
        """Write the full collection to a temp file, fsync, then replace the snapshot."""
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        payload = [record.to_dict() for record in self._records]

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".students-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _flush_or_undo(self, undo: Callable[[], object], student_id: str):
        """Persist, or revert the in-memory change with ``undo`` and re-raise."""
        try:
            self._persist()
        except Exception as e:
            undo()
            log_with_context(logger, "ERROR",
                "Snapshot write failed, change rolled back: {}".format(e),
                context={"student_id": student_id},
                extra_data={"path": self.path})
            raise

    @contextmanager
    def transaction(self) -> Iterator["StudentStore"]:
        """Hold the mutation lock across a read-check-write sequence."""
        with self.lock:
            yield self

    # ── Reads ────────────────────────────────────────────────

    def list_students(self) -> List[StudentRecord]:
        """Snapshot of all records, most recently inserted first."""
        with self.lock:
            return list(reversed(self._records))

    def count(self) -> int:
        with self.lock:
            return len(self._records)

    def get(self, student_id: str) -> Optional[StudentRecord]:
        with self.lock:
            for record in self._records:
                if record.id == student_id:
                    return record
        return None

    def find_by_roll_number(self, roll_number: str) -> Optional[StudentRecord]:
        """Case-insensitive exact match on rollNumber."""
        wanted = str(roll_number).lower()
        with self.lock:
            for record in self._records:
                if record.roll_number.lower() == wanted:
                    return record
        return None

    def find_by_email(self, email: str) -> Optional[StudentRecord]:
        """Case-insensitive exact match on email."""
        wanted = str(email).lower()
        with self.lock:
            for record in self._records:
                if record.email.lower() == wanted:
                    return record
        return None

    # ── Mutations ────────────────────────────────────────────

    def insert(self, payload: StudentCreate) -> StudentRecord:
        """
        Add a student, filling defaults for every field not supplied.

        Does not check uniqueness; callers do that first (see
        services.students.create_student).
        """
        now = utc_now()
        record = StudentRecord(
            id=str(uuid.uuid4()),
            roll_number=payload.roll_number or "",
            name=payload.name or "",
            email=payload.email or "",
            phone=payload.phone or "",
            age=payload.age or "",
            course=payload.course or "",
            address=payload.address or "",
            admission_date=payload.admission_date or now,
            gender=payload.gender or DEFAULT_GENDER,
            status=payload.status or DEFAULT_STATUS,
            avatar_url=payload.avatar_url or "",
            created_at=now,
            updated_at=now
        )
        with self.lock:
            self._records.append(record)
            self._flush_or_undo(self._records.pop, record.id)

        log_with_context(logger, "INFO", "Inserted student {}".format(record.roll_number),
                         context={"student_id": record.id})
        return record

    def update(self, student_id: str, patch: StudentPatch) -> Optional[StudentRecord]:
        """Apply the fields present in ``patch``; None if the id is unknown."""
        with self.lock:
            for index, record in enumerate(self._records):
                if record.id != student_id:
                    continue
                changes = patch.changes()
                changes["updated_at"] = utc_now()
                updated = record.model_copy(update=changes)
                self._records[index] = updated

                def restore():
                    self._records[index] = record
                self._flush_or_undo(restore, student_id)
                break
            else:
                return None

        log_with_context(logger, "INFO", "Updated student {}".format(updated.roll_number),
                         context={"student_id": student_id},
                         extra_data={"fields": sorted(k for k in changes if k != "updated_at")})
        return updated

    def delete(self, student_id: str) -> bool:
        """Remove the student; False if the id is unknown."""
        with self.lock:
            for index, record in enumerate(self._records):
                if record.id == student_id:
                    del self._records[index]
                    self._flush_or_undo(lambda: self._records.insert(index, record), student_id)
                    break
            else:
                return False

        log_with_context(logger, "INFO", "Deleted student",
                         context={"student_id": student_id})
        return True


_store: Optional[StudentStore] = None


def get_store() -> StudentStore:
    """
    FastAPI dependency returning the process-wide store.

    The snapshot is loaded on first use. Tests override this dependency
    with a store pointed at a temporary file.
    """
    global _store
    if _store is None:
        _store = StudentStore(STUDENTS_FILE)
    return _store
