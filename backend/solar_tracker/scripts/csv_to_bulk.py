#!/usr/bin/env python3
"""
Convert a CSV export into a bulk-import payload for POST /api/installations/bulk

Usage: solar-tracker-csv <input.csv> [output.json]

Headers are matched case-insensitively against common aliases
("Homeowner", "Zip Code", "System kW", ...). Blank rows are skipped. Rows that
would fail server-side validation are reported with their CSV line numbers
and nothing is written.
"""

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console

from solar_tracker.services.installation_validator import validate_fields


FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "homeownerName": ("homeownername", "homeowner name", "homeowner", "name"),
    "address": ("address", "street", "street address"),
    "city": ("city", "town"),
    "state": ("state", "state/province", "province", "region"),
    "zip": ("zip", "zipcode", "zip code", "postal", "postalcode", "postal code"),
    "systemSize": ("systemsize", "system size", "system_kw", "system kw", "system (kw)", "kw", "capacity"),
    "installDate": ("installdate", "install date", "date", "install"),
    "notes": ("notes", "note", "comments", "comment"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lng", "lon", "long"),
}

NUMERIC_FIELDS = ("systemSize", "latitude", "longitude")

# Header row is line 1
FIRST_DATA_LINE = 2

console = Console(stderr=True)


def _to_number(value: str) -> Any:
    try:
        return float(value)
    except ValueError:
        return value


def map_row(row: Dict[Optional[str], Any]) -> Optional[Dict[str, Any]]:
    """Map one CSV row onto installation keys; None for a blank row"""
    cells = {
        str(key).strip().lower(): str(value).strip()
        for key, value in row.items()
        if key and value is not None
    }
    if not any(cells.values()):
        return None

    mapped: Dict[str, Any] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        value = next((cells[alias] for alias in aliases if cells.get(alias)), "")
        if not value:
            continue
        mapped[field_name] = _to_number(value) if field_name in NUMERIC_FIELDS else value
    return mapped


def build_payload(rows: Sequence[Dict[Optional[str], Any]]) -> Tuple[Dict[str, List[Dict[str, Any]]], List[str]]:
    """Returns (payload, problems); problems are 'Row N: ...' strings"""
    installations: List[Dict[str, Any]] = []
    problems: List[str] = []

    for offset, row in enumerate(rows):
        mapped = map_row(row)
        if mapped is None:
            continue
        _, errors = validate_fields(mapped)
        if errors:
            problems.append(f"Row {offset + FIRST_DATA_LINE}: {'; '.join(errors)}")
        installations.append(mapped)

    return {"installations": installations}, problems


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Prepare a bulk installation payload from CSV")
    parser.add_argument("input", type=Path, help="CSV file with a header row")
    parser.add_argument("output", type=Path, nargs="?", default=Path("payload.json"),
                        help="Where to write the JSON payload (default: payload.json)")
    args = parser.parse_args(argv)

    if not args.input.exists():
        console.print(f"[red]Input CSV not found: {args.input}[/red]")
        return 1

    with args.input.open(newline="", encoding="utf-8-sig") as f:
        rows = list(csv.DictReader(f))

    payload, problems = build_payload(rows)
    if problems:
        console.print("[red]Validation failed for the following rows "
                      "(row numbers reflect CSV line numbers):[/red]")
        for problem in problems:
            console.print(f"  {problem}", markup=False)
        return 1

    args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {len(payload['installations'])} installations to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
