"""
Runtime configuration read from environment variables.

All settings have defaults suitable for local development, so the service
starts with no configuration at all. Values are read once at import time.
"""

import os

# Snapshot file holding the full student collection as a JSON array
STUDENTS_FILE = os.getenv("STUDENTS_FILE", "./students.json")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "4000"))

# Listing defaults used when the query string omits or garbles them
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "8"))
DEFAULT_SORT = os.getenv("DEFAULT_SORT", "name")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
