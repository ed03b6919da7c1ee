"""
Test data factories.

Two kinds of data: parsed rows as they come out of an uploaded file (keyed
by the file's own headers) and stored rows used to seed the in-memory store.
"""

from typing import Optional
from uuid import uuid4

from models.imports import ImportConfig, RecordKind, DuplicateHandling
from services.header_mapper import auto_detect_mappings


GYM_ID = "gym-test-001"

MEMBER_HEADERS = ["Full Name", "Email", "Phone"]
STAFF_HEADERS = ["First Name", "Last Name", "Email", "Role"]
PACKAGE_HEADERS = ["Package Name", "Price", "Duration", "Unit"]
CHECK_IN_HEADERS = ["Member Email", "Check In", "Notes"]
MEMBERSHIP_HEADERS = ["Email", "Plan", "Starts", "Expires"]


def make_config(
    kind: RecordKind,
    headers: list[str],
    duplicate_handling: DuplicateHandling = DuplicateHandling.SKIP,
    tenant_id: str = GYM_ID,
) -> ImportConfig:
    """Config with auto-detected mappings for the given headers."""
    return ImportConfig(
        tenant_id=tenant_id,
        record_kind=kind,
        duplicate_handling=duplicate_handling,
        field_mappings=auto_detect_mappings(headers, kind),
    )


class MemberRowFactory:
    """
    Parsed member rows (MEMBER_HEADERS).

    Usage:
        row = MemberRowFactory.create(name="Ada Lovelace", email="ada@example.com")
        rows = MemberRowFactory.create_batch(3)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> dict:
        counter = cls._next_counter()
        return {
            "Full Name": name if name is not None else f"Member {counter} Test",
            "Email": email if email is not None else f"member{counter}@example.com",
            "Phone": phone if phone is not None else f"+25191100{counter:04d}",
        }

    @classmethod
    def create_batch(cls, count: int) -> list:
        return [cls.create() for _ in range(count)]


class StoredUserFactory:
    """Rows for seeding the users table."""

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        email: Optional[str] = None,
        phone: str = "",
        gym_id: str = GYM_ID,
        first_name: str = "Existing",
        last_name: str = "Member",
        membership_expiry: Optional[str] = None,
    ) -> dict:
        return {
            "id": id or str(uuid4()),
            "gym_id": gym_id,
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": phone,
            "status": "active",
            "membership_expiry": membership_expiry,
        }


def staff_row(first: str, last: str, email: str, role: str = "") -> dict:
    return {"First Name": first, "Last Name": last, "Email": email, "Role": role}


def package_row(name: str, price: str = "1000", duration: str = "1", unit: str = "months") -> dict:
    return {"Package Name": name, "Price": price, "Duration": duration, "Unit": unit}


def check_in_row(email: str, time: str, notes: str = "") -> dict:
    return {"Member Email": email, "Check In": time, "Notes": notes}


def membership_row(email: str, plan: str = "", starts: str = "", expires: str = "") -> dict:
    return {"Email": email, "Plan": plan, "Starts": starts, "Expires": expires}
