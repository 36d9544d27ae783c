"""
Bulk import of candidate student records.

Candidates come from the JSON import endpoint or from a decoded CSV file
and are processed in order:
1. Skip when rollNumber, name, email or course is missing or blank
2. Skip when the rollNumber or email already exists, including students
   added earlier in the same batch
3. Otherwise insert

A candidate that fails unexpectedly is reported in ``errors`` and the
batch carries on.
"""

import time
from typing import Any, List

from pydantic import BaseModel, Field

from student_records.logging_config import get_logger, log_with_context
from student_records.models.student import StudentCreate
from student_records.store import StudentStore

logger = get_logger("import")


class ImportFailure(BaseModel):
    """One failed candidate and the reason it failed."""
    item: Any
    error: str


class ImportResult(BaseModel):
    added: int = 0
    skipped: int = 0
    errors: List[ImportFailure] = Field(default_factory=list)


def bulk_import(store: StudentStore, candidates: List[Any]) -> ImportResult:
    """Insert every acceptable candidate; see module docstring for the rules."""
    start_time = time.time()
    result = ImportResult()

    with store.transaction():
        for item in candidates:
            try:
                if not isinstance(item, dict):
                    raise TypeError("candidate must be an object, got {}".format(type(item).__name__))

                payload = StudentCreate.model_validate(item)
                if payload.missing_required():
                    result.skipped += 1
                    continue
                if (store.find_by_roll_number(payload.roll_number)
                        or store.find_by_email(payload.email)):
                    result.skipped += 1
                    continue

                store.insert(payload)
                result.added += 1
            except Exception as e:
                result.errors.append(ImportFailure(item=item, error=str(e)))
                log_with_context(logger, "ERROR", "Failed to import candidate: {}".format(e),
                                 extra_data={"item": item})

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Import complete: {} added, {} skipped, {} errors".format(
            result.added, result.skipped, len(result.errors)),
        extra_data={"duration_ms": round(duration_ms, 2), "total_candidates": len(candidates)})
    return result
