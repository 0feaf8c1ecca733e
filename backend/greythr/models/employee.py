from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from greythr.db.session import Base


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(30), nullable=True)
    dob = Column(Date, nullable=True)
    gender = Column(String(10), nullable=True)  # male|female|other
    role = Column(String(20), nullable=False, default="employee")
    address = Column(String(500), nullable=True)
    department = Column(String(100), nullable=True, index=True)
    designation = Column(String(100), nullable=True)
    doj = Column(Date, nullable=True)

    # {"accountNumber", "ifscCode", "bankName"}
    bank_details = Column(JSON, nullable=False, default=dict)
    # {"name", "relationship", "phone"}
    emergency_contact = Column(JSON, nullable=False, default=dict)

    status = Column(String(20), nullable=False, default="active")  # active|inactive

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")
