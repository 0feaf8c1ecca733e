from datetime import date, datetime
from typing import Literal

from pydantic import EmailStr, Field

from greythr.core.schemas import Page, PartialUpdate, RequestModel, ResponseModel


class BankDetails(RequestModel):
    account_number: str | None = None
    ifsc_code: str | None = None
    bank_name: str | None = None


class EmergencyContact(RequestModel):
    name: str | None = None
    relationship: str | None = None
    phone: str | None = None


class EmployeeCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["admin", "hr", "employee"] = "employee"
    department: str | None = None
    designation: str | None = None
    phone: str | None = None
    dob: date | None = None
    gender: Literal["male", "female", "other"] | None = None
    address: str | None = None
    doj: date | None = None
    bank_details: BankDetails | None = None
    emergency_contact: EmergencyContact | None = None


class EmployeeUpdate(PartialUpdate):
    not_null = ("full_name", "status")

    # role is fixed at creation; sending it is rejected as an unknown field
    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = None
    dob: date | None = None
    gender: Literal["male", "female", "other"] | None = None
    address: str | None = None
    emergency_contact: EmergencyContact | None = None
    department: str | None = None
    designation: str | None = None
    doj: date | None = None
    bank_details: BankDetails | None = None
    status: Literal["active", "inactive"] | None = None


# fields an employee may change on their own record
SELF_EDITABLE = frozenset({"phone", "dob", "gender", "address", "emergency_contact"})


class EmployeeOut(ResponseModel):
    id: int
    user_id: int
    full_name: str
    email: str
    phone: str | None = None
    dob: date | None = None
    gender: str | None = None
    role: str
    address: str | None = None
    department: str | None = None
    designation: str | None = None
    doj: date | None = None
    bank_details: dict = {}
    emergency_contact: dict = {}
    status: str
    created_at: datetime | None = None


class EmployeeList(ResponseModel):
    data: list[EmployeeOut]
    pagination: Page


def update_changes(payload: EmployeeUpdate) -> dict:
    """Flatten the update body into column values, nested objects kept camelCase."""
    changes = payload.changes(exclude={"bank_details", "emergency_contact"})
    for field in ("bank_details", "emergency_contact"):
        if field in payload.model_fields_set:
            value = getattr(payload, field)
            changes[field] = value.model_dump(by_alias=True, exclude_none=True) if value else {}
    return changes
