"""
Student schemas - the stored record plus the insert and patch payloads.

Wire and snapshot keys are camelCase (rollNumber, admissionDate, ...);
Python attributes are snake_case. Every stored value is text: numbers
such as age are kept in their string form so the JSON snapshot and the
CSV export reproduce records exactly.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

# Column order used by the CSV export (and the record's natural field order)
RECORD_FIELDS: List[str] = [
    "id", "rollNumber", "name", "email", "phone", "age", "course", "address",
    "admissionDate", "gender", "status", "avatarUrl", "createdAt", "updatedAt",
]

REQUIRED_FIELDS: List[str] = ["rollNumber", "name", "email", "course"]

DEFAULT_GENDER = "Other"
DEFAULT_STATUS = "Active"


def to_text(value: Any) -> str:
    """Normalise a scalar JSON value to its stored string form."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError("expected a text or numeric value, got {}".format(type(value).__name__))


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case keys; dumps camelCase with by_alias=True."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentRecord(CamelModel):
    """A stored student. Owned by StudentStore; treat instances as read-only."""

    id: str
    roll_number: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    age: str = ""
    course: str = ""
    address: str = ""
    admission_date: str = ""
    gender: str = DEFAULT_GENDER
    status: str = DEFAULT_STATUS
    avatar_url: str = ""
    created_at: str = ""
    updated_at: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return to_text(value)

    def to_dict(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class StudentFields(CamelModel):
    """Editable student fields, all optional. None means "not supplied"."""

    roll_number: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[str] = None
    course: Optional[str] = None
    address: Optional[str] = None
    admission_date: Optional[str] = None
    gender: Optional[str] = None
    status: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return None
        return to_text(value)


class StudentCreate(StudentFields):
    """Insert payload. Missing fields receive defaults in StudentStore.insert."""

    def missing_required(self) -> Optional[str]:
        """Return the camelCase name of the first blank required field, if any."""
        for field in REQUIRED_FIELDS:
            value = getattr(self, _snake(field))
            if value is None or value.strip() == "":
                return field
        return None


class StudentPatch(StudentFields):
    """
    Partial update. Only keys that were sent with a non-null value are
    applied; an explicit empty string is a real overwrite.
    """

    def changes(self) -> Dict[str, str]:
        return self.model_dump(exclude_unset=True, exclude_none=True)

    def blank_required(self) -> Optional[str]:
        """Return the camelCase name of the first required field sent as blank, if any."""
        for field in REQUIRED_FIELDS:
            value = getattr(self, _snake(field))
            if value is not None and value.strip() == "":
                return field
        return None


def _snake(camel: str) -> str:
    return "".join("_" + c.lower() if c.isupper() else c for c in camel)
