"""
Canonical records, one per importable kind.

Built only by the record normalizer. Each knows how to turn itself into the
row written to its table (tenant column is gym_id).
"""

import json
from datetime import date, datetime, timezone
from typing import Optional, Union
from pydantic import Field

from models.base import BaseSchema


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CanonicalUser(BaseSchema):
    """Gym member ready for the users table."""

    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    email: Optional[str] = None
    phone: str = ""
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None
    emergency_name: Optional[str] = None
    emergency_phone: Optional[str] = None
    relationship: Optional[str] = None
    fitness_goal: Optional[str] = None
    status: str = "active"
    membership_expiry: Optional[str] = None

    def qr_payload(self, user_id: str, tenant_id: str) -> str:
        """Data encoded in the member's check-in QR code."""
        return json.dumps({
            "userId": user_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "gymId": tenant_id,
        })

    def to_update_row(self) -> dict:
        """Mutable fields only. Email, phone and id are never rewritten."""
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "gender": self.gender,
            "date_of_birth": self.date_of_birth,
            "emergency_name": self.emergency_name,
            "emergency_phone": self.emergency_phone,
            "relationship": self.relationship,
            "fitness_goal": self.fitness_goal,
            "status": self.status,
            "updated_at": _now_iso(),
        }

    def to_insert_row(self, tenant_id: str, user_id: str) -> dict:
        # full_name is a generated column
        return {
            "id": user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,  # NOT NULL
            "gender": self.gender,
            "date_of_birth": self.date_of_birth,
            "emergency_name": self.emergency_name,
            "emergency_phone": self.emergency_phone,
            "relationship": self.relationship,
            "fitness_goal": self.fitness_goal,
            "status": self.status,
            "membership_expiry": self.membership_expiry,
            "gym_id": tenant_id,
            "qr_code_data": self.qr_payload(user_id, tenant_id),
            "created_at": _now_iso(),
        }


class CanonicalStaff(BaseSchema):
    """Team member ready for the staff table."""

    first_name: str = ""
    last_name: str = ""
    email: str = Field(..., min_length=1)
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    role_name: Optional[str] = None
    hire_date: Optional[str] = None
    salary: Optional[float] = None
    is_active: bool = True

    def qr_payload(self, staff_id: str, tenant_id: str, role_id: Optional[str]) -> str:
        return json.dumps({
            "staffId": staff_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "roleId": role_id,
            "gymId": tenant_id,
        })

    def to_update_row(self, role_id: Optional[str]) -> dict:
        """Only fields the file actually supplied, plus the active flag."""
        candidates = {
            "first_name": self.first_name or None,
            "last_name": self.last_name or None,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth,
            "gender": self.gender,
            "role_id": role_id,
            "hire_date": self.hire_date,
            "salary": self.salary,
        }
        row = {key: value for key, value in candidates.items() if value is not None}
        row["is_active"] = self.is_active
        return row

    def to_insert_row(self, tenant_id: str, staff_id: str, role_id: Optional[str]) -> dict:
        return {
            "id": staff_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth,
            "gender": self.gender,
            "role_id": role_id,
            "hire_date": self.hire_date or date.today().isoformat(),
            "salary": self.salary if self.salary is not None else 0,
            "is_active": self.is_active,
            "gym_id": tenant_id,
            "qr_code": self.qr_payload(staff_id, tenant_id, role_id),
            "created_at": _now_iso(),
        }


class CanonicalPackage(BaseSchema):
    """Membership package ready for the packages table."""

    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    duration: int = Field(..., ge=0)
    duration_unit: str = "months"
    access_type: str = "all_hours"
    max_freezes: int = 0
    description: Optional[str] = None
    is_active: bool = True

    def to_update_row(self) -> dict:
        return {
            "price": self.price,
            "duration": self.duration,
            "duration_unit": self.duration_unit,
            "access_type": self.access_type,
            "max_freezes": self.max_freezes,
            "description": self.description,
            "is_active": self.is_active,
        }

    def to_insert_row(self, tenant_id: str) -> dict:
        return {
            "name": self.name,
            **self.to_update_row(),
            "gym_id": tenant_id,
            "created_at": _now_iso(),
        }


class CanonicalCheckIn(BaseSchema):
    """Member visit ready for the client_checkins table."""

    user_email: str = Field(..., min_length=1)
    check_in_time: datetime
    check_in_date: str
    check_out_time: Optional[datetime] = None
    notes: Optional[str] = None

    def to_update_row(self) -> dict:
        return {
            "check_out_time": self.check_out_time.isoformat() if self.check_out_time else None,
            "notes": self.notes,
        }

    def to_insert_row(self, tenant_id: str, user_id: str) -> dict:
        return {
            "user_id": user_id,
            "check_in_time": self.check_in_time.isoformat(),
            "check_in_date": self.check_in_date,
            **self.to_update_row(),
            "gym_id": tenant_id,
        }


class CanonicalMembership(BaseSchema):
    """Membership period applied onto an existing member."""

    user_email: str = Field(..., min_length=1)
    package_name: Optional[str] = None
    start_date: Optional[str] = None
    expiry_date: str
    status: str = "active"

    def to_update_row(self, package_id: Optional[str]) -> dict:
        row = {
            "membership_expiry": self.expiry_date,
            "status": self.status,
            "updated_at": _now_iso(),
        }
        if package_id:
            row["package_id"] = package_id
        return row


CanonicalRecord = Union[
    CanonicalUser,
    CanonicalStaff,
    CanonicalPackage,
    CanonicalCheckIn,
    CanonicalMembership,
]
