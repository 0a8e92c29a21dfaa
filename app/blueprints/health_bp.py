"""
Health Blueprint — probes for the load balancer and the orchestrator.

Endpoints:
    GET /api/v1/health/ready  — process is up (no dependency calls)
    GET /api/v1/health/live   — database round-trip, rule tables, scheduler

Both are exempt from rate limiting and need no actor headers.
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from app.models import db
from app.services.intake_scorecard import INTAKE_QUESTIONS
from app.services.rbac import ROLE_PERMISSIONS, Role

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


def _check_database() -> dict:
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except Exception as exc:
        logger.error("Liveness: database unreachable: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


def _check_rule_tables() -> dict:
    # Static tables load at import; a missing role row means a broken deploy.
    missing = [r.value for r in Role if r not in ROLE_PERMISSIONS]
    if missing:
        return {"status": "error", "missing_roles": missing}
    return {
        "status": "ok",
        "roles": len(ROLE_PERMISSIONS),
        "intake_questions": len(INTAKE_QUESTIONS),
    }


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {
        "database": _check_database(),
        "rules": _check_rule_tables(),
    }
    scheduler = current_app.extensions.get("scheduler")
    checks["scheduler"] = {
        "status": "ok" if scheduler else "error",
        "jobs": [j["job_name"] for j in scheduler.list_jobs()] if scheduler else [],
    }
    checks["rate_limit_storage"] = {
        "status": "ok",
        "backend": current_app.config.get("RATELIMIT_STORAGE_URI", "memory://").split("://")[0],
    }

    healthy = all(c["status"] == "ok" for c in checks.values())
    body = {"status": "ok" if healthy else "degraded", "checks": checks}
    return jsonify(body), 200 if healthy else 503
