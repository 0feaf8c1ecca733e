from datetime import date

from sqlalchemy.orm import Session

from greythr.core.logging import get_logger
from greythr.domains.employees import service as employee_service
from greythr.models import User

logger = get_logger(__name__)

DEMO_PASSWORD = "password"

DEMO_USERS = [
    {"name": "Admin User", "email": "admin@greyhr.com", "role": "admin", "department": "Administration"},
    {"name": "HR User", "email": "hr@greyhr.com", "role": "hr", "department": "Human Resources"},
    {"name": "Employee User", "email": "employee@greyhr.com", "role": "employee", "department": "Engineering"},
]

DESIGNATIONS = {"admin": "Administrator", "hr": "HR Manager", "employee": "Software Engineer"}


def seed(session: Session) -> list[User]:
    """Create the demo accounts that are missing; existing ones are left alone."""
    created = []
    for data in DEMO_USERS:
        if employee_service.email_taken(session, data["email"]):
            continue
        user, _ = employee_service.create_user_with_employee(
            session,
            name=data["name"],
            email=data["email"],
            password=DEMO_PASSWORD,
            role=data["role"],
            department=data["department"],
            phone="0000000000",
            dob=date(1990, 1, 1),
            gender="other",
            address="N/A",
            designation=DESIGNATIONS[data["role"]],
            doj=date(2020, 1, 1),
            bank_details={"accountNumber": "0000000000", "ifscCode": "IFSC0000", "bankName": "Demo Bank"},
            emergency_contact={"name": "John Doe", "relationship": "Friend", "phone": "0000000000"},
        )
        created.append(user)
        logger.info("seed_user_created", email=user.email, role=user.role)
    return created
