"""
Student API routes - CRUD, listing, stats and CSV import/export.

Static paths (/students/stats, /students/export, /students/import) are
registered before /students/{student_id} so they are not captured as ids.
"""

import time
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from student_records.errors import MalformedInputError, NotFoundError
from student_records.models.student import StudentCreate, StudentPatch
from student_records.services.csv_codec import EXPORT_FILENAME, decode_csv, encode_csv
from student_records.services.importer import bulk_import
from student_records.services.query import QueryParams, compute_stats, query_students
from student_records.services.students import create_student, delete_student, update_student
from student_records.store import StudentStore, get_store
from student_records.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")


@router.get("/students")
def list_students(
    q: Optional[str] = Query(None, description="Search name, roll number, email or course"),
    course: Optional[str] = Query(None, description="Exact course filter"),
    sort: Optional[str] = Query(None, description="Field to sort by, e.g. name or admissionDate"),
    order: Optional[str] = Query(None, description="asc or desc"),
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Results per page"),
    store: StudentStore = Depends(get_store)
):
    """List students with search, course filter, sorting and pagination."""
    start_time = time.time()
    params = QueryParams.parse(q=q, course=course, sort=sort, order=order, page=page, limit=limit)
    result = query_students(store.list_students(), params)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Listed {} students (page {}, total {})".format(len(result.data), result.page, result.total),
        extra_data={"duration_ms": round(duration_ms, 2)})
    return result.to_dict()


@router.get("/students/stats")
def student_stats(store: StudentStore = Depends(get_store)):
    """Totals, average age, active count and per-course counts."""
    return compute_stats(store.list_students())


@router.get("/students/export")
def export_students(store: StudentStore = Depends(get_store)):
    """Download every student as CSV."""
    students = store.list_students()
    log_with_context(logger, "INFO", "Exporting {} students as CSV".format(len(students)))
    return Response(
        content=encode_csv(students),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(EXPORT_FILENAME)}
    )


@router.post("/students/import")
def import_students(body: Any = Body(None), store: StudentStore = Depends(get_store)):
    """Bulk import from {"students": [...]}; returns {added, skipped, errors}."""
    students = body.get("students") if isinstance(body, dict) else None
    if students is None:
        students = []
    if not isinstance(students, list):
        raise MalformedInputError("students must be an array")

    return bulk_import(store, students).model_dump()


@router.post("/students/import/csv")
async def import_students_csv(request: Request, store: StudentStore = Depends(get_store)):
    """Bulk import from a raw text/csv request body."""
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedInputError("CSV body must be UTF-8 text")

    candidates = decode_csv(text)
    log_with_context(logger, "INFO", "Decoded {} CSV rows for import".format(len(candidates)))
    result = await run_in_threadpool(bulk_import, store, candidates)
    return result.model_dump()


@router.get("/students/{student_id}")
def get_student(student_id: str, store: StudentStore = Depends(get_store)):
    student = store.get(student_id)
    if student is None:
        raise NotFoundError()
    return student.to_dict()


@router.post("/students", status_code=201)
def add_student(payload: Optional[StudentCreate] = None,
                store: StudentStore = Depends(get_store)):
    """Create a student. rollNumber, name, email and course are required."""
    student = create_student(store, payload or StudentCreate())
    log_with_context(logger, "INFO", "Student created: {}".format(student.roll_number),
                     context={"student_id": student.id})
    return student.to_dict()


@router.put("/students/{student_id}")
def edit_student(student_id: str, patch: Optional[StudentPatch] = None,
                 store: StudentStore = Depends(get_store)):
    """Partially update a student; only fields present in the body change."""
    student = update_student(store, student_id, patch or StudentPatch())
    return student.to_dict()


@router.delete("/students/{student_id}", status_code=204)
def remove_student(student_id: str, store: StudentStore = Depends(get_store)):
    delete_student(store, student_id)
    return Response(status_code=204)
