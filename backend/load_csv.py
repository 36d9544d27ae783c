"""
CSV Loader Script - imports a students CSV file into a running service.

Decodes the file locally (same header rules as the server) and posts the
rows to /students/import.

Usage:
    python load_csv.py students.csv                          # Uses default URL
    python load_csv.py students.csv http://localhost:4000    # Custom API URL
"""

import os
import sys

import httpx

from student_records.services.csv_codec import decode_csv


def post_json(url, data):
    with httpx.Client(timeout=30.0) as client:
        resp = client.post(url, json=data)
        resp.raise_for_status()
        return resp.json()


def main():
    if len(sys.argv) < 2:
        print("Usage: python load_csv.py <file.csv> [api_url]")
        sys.exit(1)

    csv_file = sys.argv[1]
    api_url = sys.argv[2] if len(sys.argv) > 2 else os.getenv("API_URL", "http://localhost:4000")
    import_url = f"{api_url}/students/import"

    if not os.path.exists(csv_file):
        print(f"Error: Could not find {csv_file}")
        sys.exit(1)

    print(f"Loading students from: {csv_file}")
    with open(csv_file, "r", encoding="utf-8-sig", newline="") as f:
        candidates = decode_csv(f.read())

    print(f"Found {len(candidates)} rows to import")
    print(f"Sending to: {import_url}")
    print()

    try:
        result = post_json(import_url, {"students": candidates})
    except httpx.HTTPStatusError as e:
        print(f"HTTP Error {e.response.status_code}: {e.response.text}")
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"Request failed: {e}")
        sys.exit(1)

    print("=" * 60)
    print("IMPORT SUMMARY")
    print("=" * 60)
    print(f"  Added:    {result.get('added', '?')}")
    print(f"  Skipped:  {result.get('skipped', '?')}")
    print(f"  Errors:   {len(result.get('errors', []))}")
    print("=" * 60)

    for failure in result.get("errors", []):
        item = failure.get("item") or {}
        roll = item.get("rollNumber", "?") if isinstance(item, dict) else "?"
        print(f"  ❌ {roll}: {failure.get('error', '?')}")


if __name__ == "__main__":
    main()
