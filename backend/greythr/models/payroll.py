from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, event
from sqlalchemy.orm import relationship

from greythr.db.session import Base

PAYROLL_STATUSES = ("draft", "processed", "paid")

Money = Numeric(12, 2, asdecimal=False)


class Payroll(Base):
    __tablename__ = "payrolls"
    __table_args__ = (UniqueConstraint("employee_id", "period", name="uq_payroll_employee_period"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    period = Column(String(7), nullable=False)  # YYYY-MM
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    basic_salary = Column(Money, nullable=False)
    allowances = Column(JSON, nullable=False, default=dict)
    deductions = Column(JSON, nullable=False, default=dict)
    gross_salary = Column(Money, nullable=False, default=0)
    net_salary = Column(Money, nullable=False, default=0)

    status = Column(String(20), nullable=False, default="draft", index=True)
    pay_date = Column(Date, nullable=True)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = relationship("Employee")

    @property
    def total_allowances(self) -> float:
        return round(sum(float(v) for v in (self.allowances or {}).values()), 2)

    @property
    def total_deductions(self) -> float:
        return round(sum(float(v) for v in (self.deductions or {}).values()), 2)

    @property
    def net_pay(self) -> float:
        return float(self.net_salary or 0)

    def recompute(self) -> None:
        self.gross_salary = round(float(self.basic_salary or 0) + self.total_allowances, 2)
        self.net_salary = round(self.gross_salary - self.total_deductions, 2)


@event.listens_for(Payroll, "before_insert")
@event.listens_for(Payroll, "before_update")
def _derive_totals(mapper, connection, target: Payroll) -> None:
    target.recompute()
