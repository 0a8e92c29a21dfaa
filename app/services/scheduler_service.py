"""
AI Governance Platform
Scheduler Service.

Jobs are plain functions registered by name with ``@register_job`` and run
inside the Flask app context. Nothing here owns a clock: an external cron or
worker triggers them through ``flask run-job <name>`` /
``flask scan-exception-expirations`` or ``SchedulerService.run_job``.

The outcome of the most recent run of each job is kept in memory so
operators can see it via ``SchedulerService.list_jobs``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from flask import Flask

logger = logging.getLogger(__name__)

JobFn = Callable[[Flask], Any]

_job_registry: dict[str, JobFn] = {}


def register_job(name: str):
    """Register ``fn(app)`` under ``name``.

    Usage:
        @register_job("exception_expiry_scan")
        def scan_exception_expirations(app):
            ...
    """
    def decorator(fn: JobFn) -> JobFn:
        if name in _job_registry and _job_registry[name] is not fn:
            raise ValueError(f"Job already registered: {name}")
        _job_registry[name] = fn
        return fn
    return decorator


def get_registered_jobs() -> dict[str, JobFn]:
    return dict(_job_registry)


@dataclass
class JobRun:
    """Outcome of one job execution."""

    job_name: str
    status: str  # success | failed | unknown_job | not_initialized
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: int = 0
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


class SchedulerService:
    """Runs registered jobs against the app bound by ``init_app``."""

    _app: Flask | None = None
    _last_runs: dict[str, JobRun] = {}

    @classmethod
    def init_app(cls, app: Flask) -> None:
        cls._app = app
        cls._last_runs = {}
        app.extensions["scheduler"] = cls
        logger.info("Scheduler bound with jobs: %s", ", ".join(sorted(_job_registry)) or "none")

    @classmethod
    def run_job(cls, job_name: str) -> JobRun:
        """Execute one job; failures are captured on the JobRun, never raised."""
        fn = _job_registry.get(job_name)
        if fn is None:
            return JobRun(job_name, "unknown_job", error=f"Unknown job: {job_name}")
        if cls._app is None:
            return JobRun(job_name, "not_initialized", error="Scheduler not initialized")

        run = JobRun(job_name, "success")
        start = time.monotonic()
        try:
            with cls._app.app_context():
                run.result = fn(cls._app)
        except Exception as exc:
            run.status = "failed"
            run.error = str(exc)
            logger.exception("Job %s failed", job_name)
        run.duration_ms = int((time.monotonic() - start) * 1000)

        cls._last_runs[job_name] = run
        logger.info("Job %s finished: status=%s duration=%dms",
                    job_name, run.status, run.duration_ms)
        return run

    @classmethod
    def last_run(cls, job_name: str) -> JobRun | None:
        return cls._last_runs.get(job_name)

    @classmethod
    def list_jobs(cls) -> list[dict]:
        jobs = []
        for name, fn in sorted(_job_registry.items()):
            last = cls._last_runs.get(name)
            jobs.append({
                "job_name": name,
                "description": (fn.__doc__ or "").strip().split("\n")[0],
                "last_run": last.to_dict() if last else None,
            })
        return jobs
