from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import relationship

from greythr.db.session import Base

LEAVE_TYPES = ("casual", "sick", "earned", "maternity", "paternity", "unpaid")


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


class Leave(Base):
    __tablename__ = "leaves"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days = Column(Integer, nullable=False, default=1)
    reason = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending|approved|rejected
    applied_on = Column(DateTime, default=datetime.utcnow)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_on = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = relationship("Employee")


@event.listens_for(Leave, "before_insert")
@event.listens_for(Leave, "before_update")
def _derive_days(mapper, connection, target: Leave) -> None:
    if target.start_date and target.end_date:
        target.days = inclusive_days(target.start_date, target.end_date)
