from datetime import datetime
from payroll_api.extensions import db


class SalaryCycle(db.Model):
    __tablename__ = "salary_cycles"

    id        = db.Column(db.Integer, primary_key=True)
    year      = db.Column(db.Integer, nullable=False)
    month     = db.Column(db.Integer, nullable=False)  # 1..12
    locked_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("year", "month", name="uq_salary_cycle_period"),
    )


class SalaryEarning(db.Model):
    """Write-once snapshot of one employee's gross pay for a locked cycle."""
    __tablename__ = "salary_earnings"

    id                          = db.Column(db.Integer, primary_key=True)
    cycle_id                    = db.Column(db.Integer, db.ForeignKey("salary_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id                 = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False, index=True)
    monthly_salary              = db.Column(db.Numeric(12, 2), nullable=False)
    total_eligible_working_days = db.Column(db.Integer, nullable=False)
    per_day_salary              = db.Column(db.Numeric(14, 6), nullable=False)
    gross_earned                = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    created_at                  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("cycle_id", "employee_id", name="uq_salary_earning_cycle_employee"),
    )


class SalaryPayment(db.Model):
    __tablename__ = "salary_payments"

    id          = db.Column(db.Integer, primary_key=True)
    cycle_id    = db.Column(db.Integer, db.ForeignKey("salary_cycles.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount      = db.Column(db.Numeric(12, 2), nullable=False)
    note        = db.Column(db.String(255), nullable=True)
    paid_at     = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_by  = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
