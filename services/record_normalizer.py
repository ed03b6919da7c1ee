"""
Record normalizer: turns one parsed row into a canonical record.

Rules run in a fixed order: copy mapped fields, split full names, coerce
boolean-like status values, unpack JSON-array strings, sanitize dates, then
the per-kind validation gate. A row failing the gate raises
RowValidationError and never reaches the duplicate resolver.
"""

import json
import math
from datetime import datetime
from typing import Any, Optional

import pandas as pd
from pydantic import ValidationError as SchemaValidationError

from exceptions import RowValidationError, UnknownRecordKindError
from models.imports import RecordKind, FieldMapping, ParsedRecord
from models.canonical import (
    CanonicalRecord,
    CanonicalUser,
    CanonicalStaff,
    CanonicalPackage,
    CanonicalCheckIn,
    CanonicalMembership,
)
from utils.text_utils import clean_cell


# MySQL exports write these for "no date"
ZERO_DATE_SENTINELS = {"0000-00-00", "0000-00-00 00:00:00"}

TRUTHY_VALUES = {"1", "true", "yes", "y", "active"}
FALSY_VALUES = {"0", "false", "no", "n", "inactive"}

DATE_FIELDS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.USERS: ("date_of_birth", "membership_expiry"),
    RecordKind.STAFF: ("date_of_birth", "hire_date"),
    RecordKind.PACKAGES: (),
    RecordKind.CHECK_INS: ("check_in_date",),
    RecordKind.MEMBERSHIPS: ("start_date", "expiry_date"),
}

ARRAY_FIELDS = ("fitness_goal",)


# ===================
# INDIVIDUAL RULES
# ===================

def apply_mappings(record: ParsedRecord, mappings: list[FieldMapping]) -> dict[str, Any]:
    """
    Copy every mapped source value into a draft keyed by target field.

    Columns absent from the row are not copied; empty strings are.
    """
    draft: dict[str, Any] = {}
    for mapping in mappings:
        if mapping.source_field and mapping.source_field in record:
            draft[mapping.target_field] = record[mapping.source_field]
    return draft


def split_full_name(full_name: Any) -> tuple[str, str]:
    """
    Split a full name on whitespace runs.

    "Alice  Mary Jones" → ("Alice", "Mary Jones"); "Madonna" → ("Madonna", "").
    """
    parts = str(full_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def coerce_status(value: Any) -> Any:
    """Map boolean-like flags onto active/inactive; pass anything else through."""
    if value is True or value == "1" or value == "true":
        return "active"
    if value is False or value == "0" or value == "false":
        return "inactive"
    return value


def coerce_flag(value: Any, default: bool = True) -> bool:
    """
    Boolean columns such as is_active.

    Empty values and unrecognized text fall back to the default.
    """
    if isinstance(value, bool):
        return value
    text = clean_cell(value)
    if text is None:
        return default
    lowered = text.lower()
    if lowered in TRUTHY_VALUES:
        return True
    if lowered in FALSY_VALUES:
        return False
    return default


def parse_array_field(value: Any) -> Any:
    """
    Unpack a JSON-array string such as '["Weight loss", "Strength"]'.

    Lists are joined with ", "; anything unparseable is kept verbatim.
    """
    if not isinstance(value, str) or not value.startswith("["):
        return value
    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    if isinstance(parsed, list):
        return ", ".join(str(item) for item in parsed)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a date/time cell; None when empty, sentinel or invalid."""
    text = clean_cell(value)
    if text is None or text in ZERO_DATE_SENTINELS:
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def clean_date(value: Any) -> Optional[str]:
    """
    Sanitize a date cell to an ISO date.

    "0000-00-00" → None, "not a date" → None, "1990-05-01" → "1990-05-01".
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.date().isoformat()


def _parse_number(value: Any, field: str) -> float:
    text = clean_cell(value) or ""
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        raise RowValidationError(f"Invalid {field}: {text}", details={"field": field})
    if not math.isfinite(number):
        raise RowValidationError(f"Invalid {field}: {text}", details={"field": field})
    return number


def _parse_int(value: Any, field: str) -> int:
    number = _parse_number(value, field)
    if number != int(number):
        raise RowValidationError(f"Invalid {field}: {clean_cell(value)}", details={"field": field})
    return int(number)


def prepare_draft(
    record: ParsedRecord,
    mappings: list[FieldMapping],
    kind: RecordKind,
) -> dict[str, Any]:
    """
    Run the shared rules (everything before the validation gate).

    Args:
        record: Parsed row
        mappings: Field mappings for the run
        kind: Record kind (selects date fields)

    Returns:
        Draft dict keyed by target field
    """
    draft = apply_mappings(record, mappings)

    full_name = clean_cell(draft.get("full_name"))
    if full_name and not clean_cell(draft.get("first_name")) and not clean_cell(draft.get("last_name")):
        draft["first_name"], draft["last_name"] = split_full_name(full_name)

    if "status" in draft:
        draft["status"] = coerce_status(draft["status"])

    for field in ARRAY_FIELDS:
        if field in draft:
            draft[field] = parse_array_field(draft[field])

    for field in DATE_FIELDS[kind]:
        if field in draft:
            draft[field] = clean_date(draft[field])

    return draft


# ===================
# PER-KIND GATES
# ===================

def normalize_user(draft: dict[str, Any]) -> CanonicalUser:
    first_name = clean_cell(draft.get("first_name"))
    if not first_name:
        raise RowValidationError("Missing required field (first_name or full_name)")

    return CanonicalUser(
        first_name=first_name,
        last_name=clean_cell(draft.get("last_name")) or "",
        email=clean_cell(draft.get("email")),
        phone=clean_cell(draft.get("phone")) or "",
        gender=clean_cell(draft.get("gender")),
        date_of_birth=draft.get("date_of_birth"),
        emergency_name=clean_cell(draft.get("emergency_name")),
        emergency_phone=clean_cell(draft.get("emergency_phone")),
        relationship=clean_cell(draft.get("relationship")),
        fitness_goal=clean_cell(draft.get("fitness_goal")),
        status=clean_cell(draft.get("status")) or "active",
        membership_expiry=draft.get("membership_expiry"),
    )


def normalize_staff(draft: dict[str, Any]) -> CanonicalStaff:
    email = clean_cell(draft.get("email"))
    if not email:
        raise RowValidationError("Email is required for staff import")

    salary = clean_cell(draft.get("salary"))

    return CanonicalStaff(
        first_name=clean_cell(draft.get("first_name")) or "",
        last_name=clean_cell(draft.get("last_name")) or "",
        email=email,
        phone=clean_cell(draft.get("phone")),
        date_of_birth=draft.get("date_of_birth"),
        gender=clean_cell(draft.get("gender")),
        role_name=clean_cell(draft.get("role_name")),
        hire_date=draft.get("hire_date"),
        salary=_parse_number(salary, "salary") if salary else None,
        is_active=coerce_flag(draft.get("is_active"), default=True),
    )


def normalize_package(draft: dict[str, Any]) -> CanonicalPackage:
    name = clean_cell(draft.get("name"))
    price = clean_cell(draft.get("price"))
    duration = clean_cell(draft.get("duration"))
    if not name or not price or not duration:
        raise RowValidationError("Missing required fields (name, price, duration)")

    max_freezes = clean_cell(draft.get("max_freezes"))

    return CanonicalPackage(
        name=name,
        price=_parse_number(price, "price"),
        duration=_parse_int(duration, "duration"),
        duration_unit=clean_cell(draft.get("duration_unit")) or "months",
        access_type=clean_cell(draft.get("access_type")) or "all_hours",
        max_freezes=_parse_int(max_freezes, "max_freezes") if max_freezes else 0,
        description=clean_cell(draft.get("description")),
        is_active=coerce_flag(draft.get("is_active"), default=True),
    )


def normalize_check_in(draft: dict[str, Any]) -> CanonicalCheckIn:
    user_email = clean_cell(draft.get("user_email"))
    raw_time = clean_cell(draft.get("check_in_time"))
    if not user_email or not raw_time:
        raise RowValidationError("Missing required fields (user_email, check_in_time)")

    check_in_time = parse_timestamp(raw_time)
    if check_in_time is None:
        raise RowValidationError(f"Invalid check-in time: {raw_time}")

    return CanonicalCheckIn(
        user_email=user_email,
        check_in_time=check_in_time,
        check_in_date=draft.get("check_in_date") or check_in_time.date().isoformat(),
        check_out_time=parse_timestamp(draft.get("check_out_time")),
        notes=clean_cell(draft.get("notes")),
    )


def normalize_membership(draft: dict[str, Any]) -> CanonicalMembership:
    user_email = clean_cell(draft.get("user_email"))
    expiry_date = draft.get("expiry_date")
    if not user_email or not expiry_date:
        raise RowValidationError("Missing required fields (user_email, expiry_date)")

    start_date = draft.get("start_date")
    if start_date and start_date > expiry_date:
        raise RowValidationError(
            f"Expiry date {expiry_date} is before start date {start_date}"
        )

    return CanonicalMembership(
        user_email=user_email,
        package_name=clean_cell(draft.get("package_name")),
        start_date=start_date,
        expiry_date=expiry_date,
        status=clean_cell(draft.get("status")) or "active",
    )


_NORMALIZERS = {
    RecordKind.USERS: normalize_user,
    RecordKind.STAFF: normalize_staff,
    RecordKind.PACKAGES: normalize_package,
    RecordKind.CHECK_INS: normalize_check_in,
    RecordKind.MEMBERSHIPS: normalize_membership,
}


def normalize_record(
    record: ParsedRecord,
    mappings: list[FieldMapping],
    kind: RecordKind,
) -> CanonicalRecord:
    """
    Normalize one parsed row into the canonical record for its kind.

    Args:
        record: Parsed row (source column -> raw value)
        mappings: Field mappings for the run
        kind: Record kind

    Returns:
        Canonical record for the kind

    Raises:
        RowValidationError: Row fails the kind's required-field check
        UnknownRecordKindError: Kind has no normalizer
    """
    normalizer = _NORMALIZERS.get(kind)
    if normalizer is None:
        raise UnknownRecordKindError(str(kind))

    draft = prepare_draft(record, mappings, kind)
    try:
        return normalizer(draft)
    except SchemaValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise RowValidationError(f"Invalid {field}: {first['msg']}", details={"field": field})
