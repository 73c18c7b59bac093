import os
from datetime import date, timedelta
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.attendance import Attendance, Holiday
from payroll_api.models.profile import Profile
from payroll_api.models.salary import SalaryCycle, SalaryEarning, SalaryPayment
from payroll_api.services.salary_store import SqlSalaryStore


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ.pop("SALARY_STORE_BACKEND", None)
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def people(app):
    admin = Profile(email="admin@test.local", full_name="Admin", role="admin")
    admin.set_password("secret")
    emp = Profile(email="emp@test.local", full_name="Emp", role="employee",
                  join_date=date(2024, 1, 1), monthly_salary=Decimal("28000"))
    emp.set_password("secret")
    # not on payroll: no salary / inactive
    db.session.add_all([
        admin, emp,
        Profile(email="nosal@test.local", full_name="No Salary", role="employee", join_date=date(2024, 1, 1)),
        Profile(email="gone@test.local", full_name="Gone", role="employee", is_active=False,
                join_date=date(2024, 1, 1), monthly_salary=Decimal("50000")),
    ])
    db.session.commit()
    return admin.id, emp.id


def _auth(user_id):
    return {"Authorization": f"Bearer {create_access_token(identity=str(user_id))}"}


def _feb_attendance(emp_id, status="present", approved=True):
    d = date(2025, 2, 1)
    while d <= date(2025, 2, 28):
        if d.weekday() != 6 and d != date(2025, 2, 14):
            db.session.add(Attendance(employee_id=emp_id, date=d, status=status, is_approved=approved))
        d += timedelta(days=1)
    db.session.add(Holiday(date=date(2025, 2, 14), name="Founders Day", is_holiday=True))
    # flagged off: not a paid holiday
    db.session.add(Holiday(date=date(2025, 2, 20), name="Optional", is_holiday=False))
    db.session.commit()


# ---------- lock ----------

def test_lock_february_scenario(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)

    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(admin_id))
    assert r.status_code == 200, r.get_json()
    data = r.get_json()["data"]
    assert data["inserted"] == 1

    cycle = db.session.get(SalaryCycle, data["cycle_id"])
    assert (cycle.year, cycle.month, cycle.locked_by) == (2025, 2, admin_id)
    e = SalaryEarning.query.filter_by(cycle_id=cycle.id).one()
    assert e.employee_id == emp_id
    assert e.total_eligible_working_days == 24
    assert Decimal(e.per_day_salary) == Decimal("1166.666667")
    assert Decimal(e.gross_earned) == Decimal("28000.00")


def test_lock_refused_while_approvals_pending(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)
    row = Attendance.query.filter_by(employee_id=emp_id, date=date(2025, 2, 3)).one()
    row.is_approved = None
    db.session.commit()

    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(admin_id))
    assert r.status_code == 400
    err = r.get_json()["error"]
    assert err["code"] == "PENDING_APPROVALS"
    assert err["detail"] == {"count": 1}
    assert SalaryCycle.query.count() == 0


def test_pending_in_other_month_does_not_block(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)
    db.session.add(Attendance(employee_id=emp_id, date=date(2025, 3, 3), status="present", is_approved=None))
    db.session.commit()

    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(admin_id))
    assert r.status_code == 200


def test_second_lock_for_same_month_hits_constraint(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)

    assert client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(admin_id)).status_code == 200
    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(admin_id))
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "CONSTRAINT_ERROR"
    assert SalaryCycle.query.count() == 1
    assert SalaryEarning.query.count() == 1


def test_lock_requires_token(client, people):
    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2})
    assert r.status_code == 401
    assert r.get_json()["error"]["code"] == "MISSING_TOKEN"


def test_lock_rejects_garbage_token(client, people):
    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2},
                    headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.get_json()["error"]["code"] == "UNAUTHORIZED"


def test_lock_forbidden_for_employee(client, people):
    _, emp_id = people
    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(emp_id))
    assert r.status_code == 403
    err = r.get_json()["error"]
    assert err["code"] == "NOT_AUTHORIZED"
    assert "detail" not in err
    assert SalaryCycle.query.count() == 0


def test_lock_validates_body(client, people):
    admin_id, _ = people
    h = _auth(admin_id)

    r = client.post("/api/v1/salary/lock", headers=h)
    assert r.get_json()["error"]["code"] == "MISSING_PARAMETERS"

    r = client.post("/api/v1/salary/lock", data="{year: 2025", headers={**h, "Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "INVALID_BODY"

    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 13}, headers=h)
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "INVALID_PARAMETERS"

    r = client.post("/api/v1/salary/lock", json={"year": "abc", "month": 2}, headers=h)
    assert r.get_json()["error"]["code"] == "INVALID_PARAMETERS"

    for body in ({"year": 10000, "month": 1}, {"year": 2025.9, "month": 2},
                 {"year": 2025, "month": 2.5}, {"year": True, "month": 2}):
        r = client.post("/api/v1/salary/lock", json=body, headers=h)
        assert r.status_code == 400, body
        assert r.get_json()["error"]["code"] == "INVALID_PARAMETERS"

    r = client.get("/api/v1/salary/cycle?year=10000&month=1", headers=h)
    assert r.status_code == 400
    assert SalaryCycle.query.count() == 0


def test_lock_accepts_whole_number_period_as_float_or_string(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)
    r = client.post("/api/v1/salary/lock", json={"year": 2025.0, "month": "2"}, headers=_auth(admin_id))
    assert r.status_code == 200
    assert db.session.get(SalaryCycle, r.get_json()["data"]["cycle_id"]).month == 2


def test_failed_earnings_insert_leaves_no_cycle(app, people, monkeypatch):
    admin_id, emp_id = people
    _feb_attendance(emp_id)

    def boom(self, rows):
        raise RuntimeError("earnings insert failed")

    monkeypatch.setattr(SqlSalaryStore, "insert_earnings", boom)
    client = app.test_client()
    r = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2}, headers=_auth(admin_id))

    assert r.status_code == 500
    assert SalaryCycle.query.count() == 0
    assert SalaryEarning.query.count() == 0


# ---------- cycle projection & payments ----------

def test_get_cycle_when_not_locked(client, people):
    admin_id, _ = people
    r = client.get("/api/v1/salary/cycle?year=2025&month=2", headers=_auth(admin_id))
    assert r.status_code == 200
    assert r.get_json()["data"] == {"cycle": None, "earnings": [], "payments": []}


def test_get_cycle_requires_period(client, people):
    admin_id, _ = people
    r = client.get("/api/v1/salary/cycle?year=2025", headers=_auth(admin_id))
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "MISSING_PARAMETERS"


def test_payment_flow(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)
    cycle_id = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2},
                           headers=_auth(admin_id)).get_json()["data"]["cycle_id"]

    r = client.post("/api/v1/salary/payments",
                    json={"cycle_id": cycle_id, "employee_id": emp_id, "amount": "15000", "note": "first half"},
                    headers=_auth(admin_id))
    assert r.status_code == 201, r.get_json()
    pay = r.get_json()["data"]
    assert pay["amount"] == 15000.0
    assert pay["note"] == "first half"
    assert pay["paid_at"]
    assert SalaryPayment.query.one().created_by == admin_id

    r = client.get("/api/v1/salary/cycle?year=2025&month=2", headers=_auth(admin_id))
    data = r.get_json()["data"]
    assert data["cycle"]["id"] == cycle_id
    assert [e["gross_earned"] for e in data["earnings"]] == [28000.0]
    assert [p["amount"] for p in data["payments"]] == [15000.0]


@pytest.mark.parametrize("body,code", [
    ({"cycle_id": 1, "employee_id": 2}, "MISSING_PARAMETERS"),
    ({"cycle_id": 1, "amount": 10}, "MISSING_PARAMETERS"),
    ({"cycle_id": 1, "employee_id": 2, "amount": "ten"}, "INVALID_PARAMETERS"),
    ({"cycle_id": 1, "employee_id": 2, "amount": -5}, "INVALID_PARAMETERS"),
])
def test_payment_validation(client, people, body, code):
    admin_id, _ = people
    r = client.post("/api/v1/salary/payments", json=body, headers=_auth(admin_id))
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == code
    assert SalaryPayment.query.count() == 0


def test_payment_forbidden_for_employee(client, people):
    _, emp_id = people
    r = client.post("/api/v1/salary/payments", json={"cycle_id": 1, "employee_id": emp_id, "amount": 1},
                    headers=_auth(emp_id))
    assert r.status_code == 403


# ---------- self service & auth ----------

def test_employee_sees_own_salary(client, people):
    admin_id, emp_id = people
    _feb_attendance(emp_id)
    cycle_id = client.post("/api/v1/salary/lock", json={"year": 2025, "month": 2},
                           headers=_auth(admin_id)).get_json()["data"]["cycle_id"]
    client.post("/api/v1/salary/payments", json={"cycle_id": cycle_id, "employee_id": emp_id, "amount": 28000},
                headers=_auth(admin_id))

    r = client.get("/api/v1/self/salary", headers=_auth(emp_id))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert [e["cycle_id"] for e in data["earnings"]] == [cycle_id]
    assert data["earnings"][0]["total_eligible_working_days"] == 24
    assert [p["amount"] for p in data["payments"]] == [28000.0]

    # admin has no earnings of their own
    r = client.get("/api/v1/self/salary", headers=_auth(admin_id))
    assert r.get_json()["data"] == {"earnings": [], "payments": []}


def test_login_issues_token_usable_for_lock(client, people):
    admin_id, _ = people
    r = client.post("/api/v1/auth/login", json={"email": "ADMIN@test.local", "password": "secret"})
    assert r.status_code == 200
    token = r.get_json()["access"]

    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.get_json()["data"] == {"id": admin_id, "role": "admin"}

    r = client.post("/api/v1/auth/login", json={"email": "admin@test.local", "password": "nope"})
    assert r.status_code == 401


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json()["db"] is True
