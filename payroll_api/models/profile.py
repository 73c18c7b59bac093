from datetime import datetime
from payroll_api.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

ROLE_EMPLOYEE = "employee"
ROLE_ADMIN = "admin"


class Profile(db.Model):
    __tablename__ = "profiles"

    id             = db.Column(db.Integer, primary_key=True)
    email          = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash  = db.Column(db.String(255), nullable=True)
    full_name      = db.Column(db.String(255), nullable=False)
    role           = db.Column(db.String(20), nullable=False, default=ROLE_EMPLOYEE)  # employee/admin
    is_active      = db.Column(db.Boolean, nullable=False, default=True)
    join_date      = db.Column(db.Date, nullable=True)
    monthly_salary = db.Column(db.Numeric(12, 2), nullable=True)   # null => not on payroll
    created_at     = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_profiles_payroll", "role", "is_active"),
    )

    # --- helpers ---
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, raw)
