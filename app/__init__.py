"""
AI Governance Platform
Flask Application Factory.

Usage:
    from app import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import json
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from app.config import config
from app.models import db
from app.middleware.actor_context import init_actor_context
from app.middleware.logging_config import configure_logging
from app.middleware.rate_limiter import init_rate_limits
from app.middleware.timing import init_request_timing
from app.utils.errors import register_error_handlers

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins == "*":
        CORS(app)
    elif cors_origins:
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    # empty: same-origin only

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Actor context (gateway identity headers → g.actor) ───────────────
    init_actor_context(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        from flask import request as _req, abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and _req.content_length and _req.content_length > max_len:
            abort(413, description="Request body too large")
        if _req.method in ("POST", "PUT", "PATCH") and _req.path.startswith("/api/"):
            ct = _req.content_type or ""
            if _req.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from app.models import governance as _governance_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ──
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from app.blueprints.health_bp import health_bp
    from app.blueprints.rbac_bp import rbac_bp
    from app.blueprints.intake_bp import intake_bp
    from app.blueprints.exception_bp import exception_bp
    from app.blueprints.roi_bp import roi_bp
    from app.blueprints.vendor_bp import vendor_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(rbac_bp)
    app.register_blueprint(intake_bp)
    app.register_blueprint(exception_bp)
    app.register_blueprint(roi_bp)
    app.register_blueprint(vendor_bp)

    # ── Domain error → JSON envelope ─────────────────────────────────────
    register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("scan-exception-expirations")
    def scan_exception_expirations_cmd():
        """Run the exception expiry scan and mark reminders."""
        from app.services.scheduler_service import SchedulerService
        run = SchedulerService.run_job("exception_expiry_scan")
        click.echo(json.dumps(run.to_dict(), indent=2, default=str))
        if not run.ok:
            raise SystemExit(1)

    @app.cli.command("run-job")
    @click.argument("job_name")
    def run_job_cmd(job_name):
        """Run a registered scheduled job by name."""
        from app.services.scheduler_service import SchedulerService
        run = SchedulerService.run_job(job_name)
        click.echo(json.dumps(run.to_dict(), indent=2, default=str))
        if not run.ok:
            raise SystemExit(1)

    @app.cli.command("list-jobs")
    def list_jobs_cmd():
        """List registered jobs and their last run in this process."""
        from app.services.scheduler_service import SchedulerService
        for job in SchedulerService.list_jobs():
            last = job["last_run"]
            status = last["status"] if last else "never run"
            click.echo(f"{job['job_name']:<28} {status:<12} {job['description']}")

    # ── Plain health check (component checks at /health/live) ─────────────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "AI Governance Platform"}

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── Scheduler initialization (import jobs to register them) ──────────
    import importlib
    importlib.import_module("app.services.scheduled_jobs")  # registers @register_job handlers
    from app.services.scheduler_service import SchedulerService as _SchedulerSvc
    _SchedulerSvc.init_app(app)

    return app
