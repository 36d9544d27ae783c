"""
Exception taxonomy for the student records service.

Each error carries a human-readable message and the HTTP status it maps to.
The handlers registered in main.py render all of them as {"error": message}.
"""


class StudentRecordsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StudentRecordsError):
    """A required field is missing or blank."""

    status_code = 400


class ConflictError(StudentRecordsError):
    """An insert or update would duplicate a rollNumber or email."""

    status_code = 400


class NotFoundError(StudentRecordsError):
    """No student exists with the requested id."""

    status_code = 404

    def __init__(self, message: str = "Student not found"):
        super().__init__(message)


class MalformedInputError(StudentRecordsError):
    """Payload or persisted snapshot has the wrong shape."""

    status_code = 400
