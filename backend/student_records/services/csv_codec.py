"""
CSV export and import for student records.

Export layout: a header row of bare field names in RECORD_FIELDS order,
then one row per record with every value double-quoted and embedded
quotes doubled. Rows are separated by "\n".

Import reads any CSV with a header row: columns are matched to record
fields by header name, unknown columns are ignored and missing ones come
back as "". decode_csv(encode_csv(records)) reproduces each record's dict.
"""

import csv
import io
from typing import Dict, Iterable, List

from student_records.models.student import RECORD_FIELDS, StudentRecord

EXPORT_FILENAME = "students_export.csv"

# Alternative header spellings accepted on import
HEADER_ALIASES = {
    "RollNumber": "rollNumber",
    "roll": "rollNumber",
    "Name": "name",
    "Email": "email",
}


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def encode_csv(records: Iterable[StudentRecord]) -> str:
    lines = [",".join(RECORD_FIELDS)]
    for record in records:
        row = record.to_dict()
        lines.append(",".join(_quote(row[field]) for field in RECORD_FIELDS))
    return "\n".join(lines)


def _field_for_header(header: str):
    name = header.strip()
    if name in RECORD_FIELDS:
        return name
    return HEADER_ALIASES.get(name)


def decode_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into candidate dicts keyed by record field name.

    Handles quoted values containing commas, newlines and doubled quotes.
    Blank lines are skipped. Returns [] for text with no header row.
    """
    rows = [row for row in csv.reader(io.StringIO(text, newline="")) if row]
    if not rows:
        return []

    header, body = rows[0], rows[1:]
    if header and header[0].startswith("\ufeff"):
        header[0] = header[0][1:]

    # column position -> field name; first occurrence of a field wins
    columns: Dict[int, str] = {}
    for position, name in enumerate(header):
        field = _field_for_header(name)
        if field and field not in columns.values():
            columns[position] = field

    candidates = []
    for row in body:
        candidate = {field: "" for field in RECORD_FIELDS}
        for position, field in columns.items():
            if position < len(row):
                candidate[field] = row[position]
        candidates.append(candidate)
    return candidates
