"""
Header mapper: proposes column mappings for an uploaded file.

Pure functions, no I/O. The mapping is only a default; operators can change
any pair before the run starts.
"""

import csv
import io
from typing import Union

from models.imports import RecordKind, TargetField, FieldMapping
from utils.text_utils import normalize_header


def _fields(*specs: tuple[str, str, bool]) -> list[TargetField]:
    return [TargetField(field=f, label=label, required=req) for f, label, req in specs]


TARGET_FIELDS: dict[RecordKind, list[TargetField]] = {
    RecordKind.USERS: _fields(
        ("full_name", "Full Name (will split into first/last)", False),
        ("first_name", "First Name", False),
        ("last_name", "Last Name", False),
        ("email", "Email", False),
        ("phone", "Phone", False),
        ("gender", "Gender", False),
        ("date_of_birth", "Date of Birth", False),
        ("emergency_name", "Emergency Contact Name", False),
        ("emergency_phone", "Emergency Contact Phone", False),
        ("relationship", "Emergency Contact Relationship", False),
        ("fitness_goal", "Fitness Goal", False),
        ("status", "Status (active/inactive)", False),
        ("membership_expiry", "Membership Expiry", False),
    ),
    RecordKind.MEMBERSHIPS: _fields(
        ("user_email", "User Email (to match)", True),
        ("package_name", "Package Name", False),
        ("start_date", "Start Date", False),
        ("expiry_date", "Expiry Date", True),
        ("status", "Status", False),
    ),
    RecordKind.CHECK_INS: _fields(
        ("user_email", "User Email (to match)", True),
        ("check_in_time", "Check-in Time", True),
        ("check_in_date", "Check-in Date", False),
        ("check_out_time", "Check-out Time", False),
        ("notes", "Notes", False),
    ),
    RecordKind.PACKAGES: _fields(
        ("name", "Package Name", True),
        ("price", "Price", True),
        ("duration", "Duration", True),
        ("duration_unit", "Duration Unit (days/weeks/months/years)", True),
        ("access_type", "Access Type", False),
        ("max_freezes", "Max Freezes", False),
        ("description", "Description", False),
        ("is_active", "Is Active", False),
    ),
    RecordKind.STAFF: _fields(
        ("full_name", "Full Name (will split into first/last)", False),
        ("first_name", "First Name", False),
        ("last_name", "Last Name", False),
        ("email", "Email", True),
        ("phone", "Phone", False),
        ("date_of_birth", "Date of Birth", False),
        ("gender", "Gender", False),
        ("role_name", "Role Name", False),
        ("hire_date", "Hire Date", False),
        ("salary", "Salary", False),
        ("is_active", "Is Active", False),
    ),
}


# Synonyms seen in exports from other gym systems, strongest first
COMMON_ALIASES: dict[str, list[str]] = {
    "full_name": ["fullname", "full_name", "name", "member_name", "client_name"],
    "first_name": ["first_name", "firstname", "first", "fname", "given_name", "givenname"],
    "last_name": ["last_name", "lastname", "last", "lname", "surname", "family_name", "familyname"],
    "email": ["email", "e_mail", "email_address", "emailaddress", "mail"],
    "phone": ["phone", "telephone", "tel", "mobile", "cell", "phone_number", "phonenumber", "contact"],
    "gender": ["gender", "sex"],
    "date_of_birth": ["date_of_birth", "dateofbirth", "dob", "birth_date", "birthdate", "birthday"],
    "status": ["status", "state", "isactive", "is_active", "active"],
    "membership_expiry": ["membership_expiry", "expiry", "expiry_date", "expires", "end_date", "valid_until"],
    "emergency_name": ["emergency_name", "emergencycontactname", "emergency_contact", "emergency_contact_name", "ice_name"],
    "emergency_phone": ["emergency_phone", "emergencycontactphone", "emergency_contact_phone", "emergency_number", "ice_phone"],
    "relationship": ["relationship", "emergencycontactrelationship", "emergency_relationship", "ice_relationship"],
    "fitness_goal": ["fitness_goal", "fitnessgoals", "fitnessgoal", "fitness_goals", "goals"],
    "name": ["name", "package_name", "title"],
    "price": ["price", "cost", "amount", "fee"],
    "duration": ["duration", "length", "period"],
    "duration_unit": ["duration_unit", "unit", "period_type"],
    "check_in_time": ["check_in_time", "checkin_time", "check_in", "checkin", "time_in", "arrival"],
    "check_out_time": ["check_out_time", "checkout_time", "check_out", "checkout", "time_out", "departure"],
    "user_email": ["user_email", "email", "member_email", "client_email"],
    "package_name": ["package_name", "package", "membership_type", "plan"],
    "start_date": ["start_date", "start", "begin_date", "from_date"],
    "expiry_date": ["expiry_date", "end_date", "expires", "valid_until", "to_date"],
    "role_name": ["role_name", "role", "position", "job_title", "title"],
    "hire_date": ["hire_date", "hired_date", "start_date", "join_date", "joined"],
    "salary": ["salary", "pay", "wage", "compensation"],
    "is_active": ["is_active", "active", "status", "enabled"],
}


# Example values for downloadable templates
_TEMPLATE_EXAMPLES: dict[str, str] = {
    "full_name": "John Doe",
    "first_name": "John",
    "last_name": "Doe",
    "email": "john@example.com",
    "user_email": "john@example.com",
    "phone": "+251911234567",
    "gender": "male",
    "date_of_birth": "1990-01-15",
    "status": "active",
    "membership_expiry": "2025-12-31",
    "expiry_date": "2025-12-31",
    "start_date": "2025-01-01",
    "name": "Basic Package",
    "package_name": "Basic Package",
    "price": "1000",
    "duration": "1",
    "duration_unit": "months",
    "access_type": "all_hours",
    "max_freezes": "0",
    "is_active": "true",
    "check_in_time": "2025-01-15 08:30:00",
    "check_in_date": "2025-01-15",
    "check_out_time": "2025-01-15 10:00:00",
    "role_name": "Trainer",
    "hire_date": "2024-06-01",
    "salary": "15000",
}


def _coerce_kind(kind: Union[RecordKind, str]) -> RecordKind:
    return kind if isinstance(kind, RecordKind) else RecordKind(kind)


def get_target_fields(kind: Union[RecordKind, str]) -> list[TargetField]:
    """Ordered target fields for a record kind."""
    return TARGET_FIELDS[_coerce_kind(kind)]


def auto_detect_mappings(
    source_headers: list[str],
    kind: Union[RecordKind, str],
) -> list[FieldMapping]:
    """
    Propose a source column for every target field of a record kind.

    For each target, aliases are tried in order; for each alias the first
    header (in file order) that equals or contains it wins.

    Args:
        source_headers: Column headers in file order
        kind: Record kind being imported

    Returns:
        One FieldMapping per target field; unmatched targets get ""
    """
    normalized_headers = [normalize_header(h) for h in source_headers]
    mappings: list[FieldMapping] = []

    for target in get_target_fields(kind):
        aliases = COMMON_ALIASES.get(target.field, [target.field])

        matched_source = ""
        for alias in aliases:
            alias_key = normalize_header(alias)
            index = next(
                (i for i, h in enumerate(normalized_headers) if h == alias_key or alias_key in h),
                None
            )
            if index is not None:
                matched_source = source_headers[index]
                break

        mappings.append(FieldMapping(source_field=matched_source, target_field=target.field))

    return mappings


def build_template_csv(kind: Union[RecordKind, str]) -> str:
    """
    CSV template with every target field as a header and one example row.

    Args:
        kind: Record kind

    Returns:
        CSV text
    """
    fields = [t.field for t in get_target_fields(kind)]

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(fields)
    writer.writerow([_TEMPLATE_EXAMPLES.get(f, "") for f in fields])
    return output.getvalue()
