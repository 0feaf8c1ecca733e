from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, event
from sqlalchemy.orm import relationship

from greythr.db.session import Base


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    punch_in = Column(DateTime, nullable=True)
    punch_out = Column(DateTime, nullable=True)
    break_minutes = Column(Integer, nullable=False, default=0)
    total_hours = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="absent")  # present|absent|late|half-day
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = relationship("Employee")

    def compute_total_hours(self) -> float:
        if not (self.punch_in and self.punch_out):
            return 0.0
        worked = (self.punch_out - self.punch_in).total_seconds() / 3600
        return round(worked - (self.break_minutes or 0) / 60, 2)


@event.listens_for(Attendance, "before_insert")
@event.listens_for(Attendance, "before_update")
def _derive_total_hours(mapper, connection, target: Attendance) -> None:
    target.total_hours = target.compute_total_hours()
