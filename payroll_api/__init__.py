import logging
import os
from datetime import timedelta

import click
from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from sqlalchemy.exc import IntegrityError

from payroll_api.extensions import db, migrate, init_db
from payroll_api.common.errors import APIError, register_error_handlers
from payroll_api.models import load_all

jwt = JWTManager()


def create_app(config_object: str | None = None):
    app = Flask(__name__)

    # Basic inline config (defaults)
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=2)
    app.config["JWT_DECODE_LEEWAY"] = 120  # 2 minutes grace for clock skew
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg://postgres@127.0.0.1:5432/payroll_dev",
    )
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Record store: "sql" (own tables) or "rest" (PostgREST / Supabase)
    app.config["SALARY_STORE_BACKEND"] = os.getenv("SALARY_STORE_BACKEND", "sql")
    app.config["POSTGREST_URL"] = os.getenv("SUPABASE_URL") or os.getenv("VITE_SUPABASE_URL")
    app.config["POSTGREST_SERVICE_KEY"] = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    app.config["POSTGREST_TIMEOUT"] = float(os.getenv("POSTGREST_TIMEOUT", "30"))

    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()

    # Try loading external config, but don't crash if missing
    if config_object:
        try:
            app.config.from_object(config_object)
        except Exception as e:
            app.logger.warning("Could not import config object %r: %s", config_object, e)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # CORS (dev)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Extensions
    init_db(app)
    register_error_handlers(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # Ensure models are loaded so metadata is complete
    with app.app_context():
        load_all()

    # Blueprints
    from payroll_api.blueprints.health import bp as health_bp
    from payroll_api.blueprints.auth_v1 import bp as auth_v1_bp
    from payroll_api.blueprints.salary import bp as salary_bp
    from payroll_api.blueprints.self_service import self_service_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_v1_bp)
    app.register_blueprint(salary_bp)
    app.register_blueprint(self_service_bp)

    # ----------------- CLI COMMANDS -----------------

    @app.cli.command("lock-salary")
    @click.option("--year", "-y", type=click.IntRange(1, 9999), required=True, help="Calendar year, e.g. 2025")
    @click.option("--month", "-m", type=click.IntRange(1, 12), required=True, help="Month 1..12")
    @click.option("--admin", "-a", "admin_id", required=True, help="Profile id of the locking admin")
    def lock_salary(year: int, month: int, admin_id: str):
        """Lock the salary cycle for a month and record earnings."""
        from payroll_api.services.salary_engine import lock_salary_cycle
        from payroll_api.services.salary_store import get_salary_store

        admin = int(admin_id) if admin_id.isdigit() else admin_id
        click.echo(f"Locking salary cycle for {year}-{month:02d}...")
        try:
            result = lock_salary_cycle(get_salary_store(), year, month, admin)
        except IntegrityError:
            db.session.rollback()
            raise click.ClickException(f"Cannot lock: salary cycle for {year}-{month:02d} already exists")
        except APIError as e:
            msg = f"Cannot lock: {e.message}"
            if isinstance(e.payload, dict) and "count" in e.payload:
                msg += f" (pending count: {e.payload['count']})"
            raise click.ClickException(msg)
        click.echo(
            f"Salary cycle {result.cycle_id} locked and {result.inserted} earnings recorded."
        )

    @app.cli.command("seed-core")
    def seed_core():
        """Seed a demo admin and a demo salaried employee profile."""
        from datetime import date
        from payroll_api.models.profile import Profile, ROLE_ADMIN, ROLE_EMPLOYEE

        def ensure_profile(email: str, full_name: str, role: str, salary=None, password: str = "4445"):
            p = Profile.query.filter_by(email=email).first()
            if p:
                return p, False
            p = Profile(email=email, full_name=full_name, role=role, is_active=True,
                        join_date=date.today().replace(day=1), monthly_salary=salary)
            p.set_password(password)
            db.session.add(p)
            db.session.commit()
            return p, True

        admin, admin_created = ensure_profile("admin@demo.local", "Demo Admin", ROLE_ADMIN)
        emp, emp_created = ensure_profile("emp@demo.local", "Demo Employee", ROLE_EMPLOYEE, salary=30000)

        click.echo(
            "Seeded/ensured: "
            f"admin@demo.local ({'created' if admin_created else 'existing'}, id={admin.id}) / 4445; "
            f"emp@demo.local ({'created' if emp_created else 'existing'}, id={emp.id}) / 4445"
        )

    return app
