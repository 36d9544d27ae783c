from student_records.models.student import (
    StudentRecord, StudentCreate, StudentPatch, RECORD_FIELDS, REQUIRED_FIELDS
)

__all__ = ["StudentRecord", "StudentCreate", "StudentPatch", "RECORD_FIELDS", "REQUIRED_FIELDS"]
