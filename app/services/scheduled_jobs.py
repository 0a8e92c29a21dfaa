"""
AI Governance Platform
Scheduled Jobs.

Jobs:
    - exception_expiry_scan: finds approved risk exceptions that have expired
      or expire within the warning window, and marks reminders
"""

from __future__ import annotations

import logging
from typing import Any

from app.services import exception_service
from app.services.scheduler_service import register_job

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Job 1: Exception Expiry Scan
# ═══════════════════════════════════════════════════════════════════════════

@register_job("exception_expiry_scan")
def scan_exception_expirations(app) -> dict[str, Any]:
    """Scan approved risk exceptions for expiry across all organizations."""
    warning_days = app.config.get("EXCEPTION_EXPIRY_WARNING_DAYS", 7)
    report, reminded = exception_service.scan_expirations(
        warning_days=warning_days, mark_reminders=True,
    )

    for exc in report.expired:
        logger.warning(
            "Risk exception %s expired at %s (org=%s project=%s)",
            exc.id, exc.expires_at.isoformat(), exc.organization_id, exc.project_id,
        )

    results = {
        "expired": len(report.expired),
        "expiring_soon": len(report.expiring_soon),
        "reminders_marked": reminded,
        "warning_days": warning_days,
    }
    logger.info("Exception expiry scan: %s", results)
    return results
