"""
Student write rules enforced above the store.

- rollNumber, name, email and course are required on create and may not
  be blanked by an update
- rollNumber and email are unique across the collection (case-insensitive)

Each operation holds the store's transaction so the uniqueness check and
the write cannot interleave with another writer.
"""

from student_records.errors import ConflictError, NotFoundError, ValidationError
from student_records.models.student import StudentCreate, StudentPatch, StudentRecord
from student_records.store import StudentStore

# Required text fields are stored trimmed
TRIMMED_FIELDS = ("roll_number", "name", "email", "course")


def create_student(store: StudentStore, payload: StudentCreate) -> StudentRecord:
    """Validate and insert a new student; raises ValidationError or ConflictError."""
    missing = payload.missing_required()
    if missing:
        raise ValidationError("{} is required".format(missing))

    payload = payload.model_copy(
        update={field: getattr(payload, field).strip() for field in TRIMMED_FIELDS})

    with store.transaction():
        if store.find_by_roll_number(payload.roll_number):
            raise ConflictError("rollNumber already exists")
        if store.find_by_email(payload.email):
            raise ConflictError("email already exists")
        return store.insert(payload)


def update_student(store: StudentStore, student_id: str, patch: StudentPatch) -> StudentRecord:
    """
    Apply a partial update; raises ValidationError, NotFoundError or
    ConflictError.

    Required fields may be left out but not blanked. Uniqueness is only
    checked for rollNumber/email values that actually change, and a student
    never conflicts with itself.
    """
    blank = patch.blank_required()
    if blank:
        raise ValidationError("{} is required".format(blank))
    patch = patch.model_copy(update={
        field: getattr(patch, field).strip()
        for field in TRIMMED_FIELDS if getattr(patch, field) is not None})

    with store.transaction():
        existing = store.get(student_id)
        if existing is None:
            raise NotFoundError()

        if patch.roll_number and patch.roll_number != existing.roll_number:
            clash = store.find_by_roll_number(patch.roll_number)
            if clash is not None and clash.id != student_id:
                raise ConflictError("rollNumber already exists")
        if patch.email and patch.email != existing.email:
            clash = store.find_by_email(patch.email)
            if clash is not None and clash.id != student_id:
                raise ConflictError("email already exists")

        updated = store.update(student_id, patch)
        if updated is None:
            raise NotFoundError()
        return updated


def delete_student(store: StudentStore, student_id: str):
    if not store.delete(student_id):
        raise NotFoundError()
