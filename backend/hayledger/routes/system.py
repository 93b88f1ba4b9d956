# backend/hayledger/routes/system.py
"""
System health and version endpoints.

Unauthenticated; used by load balancers and for deployment debugging.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Round-trip a trivial query and time it."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
