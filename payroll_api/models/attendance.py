from datetime import datetime
from payroll_api.extensions import db

STATUS_PRESENT = "present"
STATUS_HALF_DAY = "half_day"
STATUS_ABSENT = "absent"
STATUS_ON_LEAVE = "on_leave"


class Attendance(db.Model):
    __tablename__ = "attendance"

    id          = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    date        = db.Column(db.Date, nullable=False, index=True)
    status      = db.Column(db.String(16), nullable=False, default=STATUS_ABSENT)
    # None = pending, True = approved, False = denied
    is_approved = db.Column(db.Boolean, nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )


class Holiday(db.Model):
    __tablename__ = "holidays"

    id         = db.Column(db.Integer, primary_key=True)
    date       = db.Column(db.Date, nullable=False, unique=True)
    name       = db.Column(db.String(120), nullable=True)
    is_holiday = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
