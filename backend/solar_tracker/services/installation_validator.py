"""
Installation record validation and normalization.

One set of rules serves single create, update and every row of a bulk
create. Problems come back as a list of human-readable strings instead of
being raised.
"""

import math
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from solar_tracker.modules.auth.identity import UserIdentity


REQUIRED_TEXT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("address", "Street address is required"),
    ("city", "City is required"),
    ("state", "State is required"),
    ("zip", "ZIP is required"),
)

HOMEOWNER_NAME_MIN_LENGTH = 2


@dataclass
class NormalizationResult:
    record: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_installation_id() -> str:
    """Epoch millis plus a random suffix so same-millisecond creates stay unique"""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_number(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _parse_coordinate(value: Any, label: str, errors: List[str]) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = _parse_number(value)
    if number is None:
        errors.append(f"{label} must be numeric")
    return number


def validate_fields(raw: Any) -> Tuple[Dict[str, Any], List[str]]:
    """Validate and coerce the user-editable fields of an installation payload"""
    if not isinstance(raw, dict):
        return {}, ["Installation payload must be an object"]

    errors: List[str] = []

    homeowner_name = _clean_text(raw.get("homeownerName"))
    if len(homeowner_name) < HOMEOWNER_NAME_MIN_LENGTH:
        errors.append("Homeowner name must be at least 2 characters")

    text_values = {}
    for key, message in REQUIRED_TEXT_FIELDS:
        text_values[key] = _clean_text(raw.get(key))
        if not text_values[key]:
            errors.append(message)

    system_size = _parse_number(raw.get("systemSize"))
    if system_size is None or system_size <= 0:
        errors.append("System size must be a positive number")

    latitude = _parse_coordinate(raw.get("latitude"), "Latitude", errors)
    longitude = _parse_coordinate(raw.get("longitude"), "Longitude", errors)

    install_date = raw.get("installDate")
    if install_date == "":
        install_date = None

    fields = {
        "homeownerName": homeowner_name,
        "address": text_values["address"],
        "city": text_values["city"],
        "state": text_values["state"].upper(),
        "zip": text_values["zip"],
        "systemSize": system_size,
        "installDate": install_date,
        "notes": _clean_text(raw.get("notes")),
        "latitude": latitude,
        "longitude": longitude,
    }
    return fields, errors


def normalize(raw: Any, identity: Optional[UserIdentity] = None) -> NormalizationResult:
    """Build a new canonical installation record from a raw payload"""
    fields, errors = validate_fields(raw)
    if errors:
        return NormalizationResult(errors=errors)

    record = {
        "id": generate_installation_id(),
        **fields,
        "createdAt": utc_now_iso(),
        "ownerId": identity.id if identity else None,
        "ownerUsername": identity.username if identity else None,
    }
    return NormalizationResult(record=record)


def normalize_batch(
    rows: List[Any],
    identity: Optional[UserIdentity] = None
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Normalize every row; returns (records, failures) with failures keyed by index"""
    records: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    for index, row in enumerate(rows):
        result = normalize(row, identity)
        if result.ok:
            records.append(result.record)
        else:
            failures.append({"index": index, "errors": result.errors})
    return records, failures
