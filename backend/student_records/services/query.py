"""
Query Service - search, sort, paginate and summarise student records.

Works on a snapshot list from StudentStore and never mutates records.

Listing pipeline:
1. Free-text search: case-insensitive substring over name, rollNumber,
   email and course (any field may match)
2. Course filter: exact equality
3. Stable sort by one field, ascending or descending
4. Pagination with the page clamped into [1, totalPages]
"""

import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from student_records.config import DEFAULT_PAGE_SIZE, DEFAULT_SORT
from student_records.logging_config import get_logger, log_with_context
from student_records.models.student import StudentRecord

logger = get_logger("query")

SEARCH_FIELDS = ("name", "roll_number", "email", "course")

UNKNOWN_COURSE = "Other"

LEADING_INT = re.compile(r"\s*([+-]?\d+)")

# Sort key for values that cannot be parsed as a number or a date
EARLIEST = float("-inf")


def _default_sort_key():
    try:
        return SortKey(DEFAULT_SORT)
    except ValueError:
        log_with_context(logger, "WARNING",
            "DEFAULT_SORT '{}' is not a sortable field, using 'name'".format(DEFAULT_SORT))
        return SortKey.NAME


class SortKey(str, Enum):
    """Sortable fields, named as on the wire."""

    ROLL_NUMBER = "rollNumber"
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"
    AGE = "age"
    COURSE = "course"
    ADDRESS = "address"
    ADMISSION_DATE = "admissionDate"
    GENDER = "gender"
    STATUS = "status"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT_KEY = _default_sort_key()


def text_key(value: str) -> str:
    return value.lower()


def numeric_key(value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return EARLIEST
    return number if math.isfinite(number) else EARLIEST


def date_key(value: str) -> float:
    """Epoch seconds for an ISO 8601 value; missing or invalid dates sort earliest."""
    if not value:
        return EARLIEST
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return EARLIEST
    if parsed.tzinfo is None:
        # Naive values (e.g. "2024-06-01") are taken as UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.timestamp()
    except (OverflowError, OSError, ValueError):
        return EARLIEST


# SortKey -> (record attribute, comparator key function)
SORT_TABLE: Dict[SortKey, Tuple[str, Callable[[str], object]]] = {
    SortKey.ROLL_NUMBER: ("roll_number", text_key),
    SortKey.NAME: ("name", text_key),
    SortKey.EMAIL: ("email", text_key),
    SortKey.PHONE: ("phone", text_key),
    SortKey.AGE: ("age", numeric_key),
    SortKey.COURSE: ("course", text_key),
    SortKey.ADDRESS: ("address", text_key),
    SortKey.ADMISSION_DATE: ("admission_date", date_key),
    SortKey.GENDER: ("gender", text_key),
    SortKey.STATUS: ("status", text_key),
    SortKey.CREATED_AT: ("created_at", date_key),
    SortKey.UPDATED_AT: ("updated_at", date_key),
}


class QueryParams(BaseModel):
    """Normalised listing parameters. Build from raw query strings with ``parse``."""

    q: str = ""
    course: str = ""
    sort: SortKey = DEFAULT_SORT_KEY
    order: SortOrder = SortOrder.ASC
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def parse(cls, q: Optional[str] = None, course: Optional[str] = None,
              sort: Optional[str] = None, order: Optional[str] = None,
              page: Optional[str] = None, limit: Optional[str] = None) -> "QueryParams":
        """
        Lenient parsing of query-string values.

        Unknown sort fields fall back to the default sort, any order other
        than "desc" is ascending, and unparsable page/limit values fall back
        to their defaults. Range clamping happens in ``paginate``.
        """
        sort_key = DEFAULT_SORT_KEY
        if sort:
            try:
                sort_key = SortKey(sort)
            except ValueError:
                log_with_context(logger, "WARNING",
                    "Unknown sort field '{}', using '{}'".format(sort, DEFAULT_SORT_KEY.value))

        return cls(
            q=(q or "").strip(),
            course=(course or "").strip(),
            sort=sort_key,
            order=SortOrder.DESC if (order or "").strip().lower() == "desc" else SortOrder.ASC,
            page=_to_int(page, 1),
            limit=_to_int(limit, DEFAULT_PAGE_SIZE)
        )


class Page(BaseModel):
    data: List[StudentRecord]
    total: int
    page: int
    limit: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "data": [record.to_dict() for record in self.data],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages
        }


def _to_int(value: Optional[str], fallback: int) -> int:
    """parseInt-style conversion: leading integer of the string, else fallback."""
    if value is None:
        return fallback
    match = LEADING_INT.match(str(value))
    return int(match.group(1)) if match else fallback


def filter_records(records: List[StudentRecord], q: str = "", course: str = "") -> List[StudentRecord]:
    """Apply the free-text search, then the exact course filter."""
    result = records
    needle = q.strip().lower()
    if needle:
        result = [
            r for r in result
            if any(needle in getattr(r, field).lower() for field in SEARCH_FIELDS)
        ]
    if course:
        result = [r for r in result if r.course == course]
    return result


def sort_records(records: List[StudentRecord], sort: SortKey = SortKey.NAME,
                 order: SortOrder = SortOrder.ASC) -> List[StudentRecord]:
    """Stable sort; records with equal keys keep their incoming relative order."""
    attribute, key_func = SORT_TABLE[sort]
    # sorted(reverse=True) is still stable for equal keys
    return sorted(records, key=lambda r: key_func(getattr(r, attribute)),
                  reverse=order == SortOrder.DESC)


def paginate(records: List[StudentRecord], page: int, limit: int) -> Page:
    """Slice one page; limit is at least 1 and page is clamped into [1, totalPages]."""
    limit = max(1, limit)
    total = len(records)
    total_pages = max(1, math.ceil(total / limit))
    page = min(max(1, page), total_pages)
    start = (page - 1) * limit
    return Page(
        data=records[start:start + limit],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages
    )


def query_students(records: List[StudentRecord], params: QueryParams) -> Page:
    """Filter, sort and paginate ``records`` according to ``params``."""
    filtered = filter_records(records, params.q, params.course)
    ordered = sort_records(filtered, params.sort, params.order)
    result = paginate(ordered, params.page, params.limit)

    log_with_context(logger, "DEBUG",
        "Query matched {} of {} students (page {}/{})".format(
            result.total, len(records), result.page, result.total_pages),
        extra_data={"q": params.q, "course": params.course,
                    "sort": params.sort.value, "order": params.order.value})
    return result


def compute_stats(records: List[StudentRecord]) -> dict:
    """
    Dashboard aggregates over the whole collection.

    averageAge is the rounded mean of positive numeric ages, or None when no
    record has one. countsByCourse groups empty courses under "Other" and is
    ordered by course name.
    """
    ages = []
    for record in records:
        age = numeric_key(record.age)
        if age != EARLIEST and age > 0:
            ages.append(age)

    counts: Dict[str, int] = {}
    for record in records:
        course = record.course or UNKNOWN_COURSE
        counts[course] = counts.get(course, 0) + 1

    return {
        "total": len(records),
        "averageAge": _round_half_up(sum(ages) / len(ages)) if ages else None,
        "activeCount": sum(1 for r in records if r.status == "Active"),
        "countsByCourse": {course: counts[course] for course in sorted(counts)}
    }


def _round_half_up(value: float) -> int:
    # Python's round() uses banker's rounding; 20.5 should give 21
    return math.floor(value + 0.5)
