"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category. Requests over the
limit are rejected with 429 before any governance logic runs.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import request as flask_request

logger = logging.getLogger(__name__)

RATE_LIMIT_DEFAULT = "60/minute"
RATE_LIMIT_EXPORT = "20/minute"
RATE_LIMIT_READ = "200/minute"

# blueprint name -> limit
BLUEPRINT_LIMITS = {
    "exceptions": RATE_LIMIT_DEFAULT,
    "intake": RATE_LIMIT_DEFAULT,
    "roi": RATE_LIMIT_DEFAULT,
    "vendors": RATE_LIMIT_DEFAULT,
    "rbac": RATE_LIMIT_READ,
}

# endpoint -> limit (report-style routes that scan a whole organization)
ENDPOINT_LIMITS = {
    "exceptions.check_expirations": RATE_LIMIT_EXPORT,
}


def rate_limit_key():
    """Key by the gateway-supplied organization header, else by client address."""
    org_id = flask_request.headers.get("X-Organization-Id", "").strip()
    if org_id:
        return f"org:{org_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Exceptions / intake / ROI / vendors: 60/minute
        - Expiration report:                  20/minute
        - RBAC lookups:                       200/minute
        - Health check:                       exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name, limit in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(limit, key_func=rate_limit_key)(bp)

    for endpoint, limit in ENDPOINT_LIMITS.items():
        view = app.view_functions.get(endpoint)
        if view:
            limiter.limit(limit, key_func=rate_limit_key)(view)

    # Health check is exempt
    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    logger.info(
        "Rate limiter configured: %s",
        ", ".join(f"{name}: {limit}" for name, limit in BLUEPRINT_LIMITS.items()),
    )
