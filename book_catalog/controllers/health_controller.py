import os
import platform
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from book_catalog.extensions import db

health_bp = Blueprint("health", __name__)


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _check_database():
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "status": "UP",
            "database": db.engine.dialect.name,
            "validationQuery": "SELECT 1",
        }
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[health] Database health check failed: {e}")
        return {"status": "DOWN", "error": str(e)}


def _format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    return f"{days} days, {hours} hours, {minutes} minutes, {seconds} seconds"


@health_bp.get("")
def health():
    return jsonify({"ok": True})


@health_bp.get("/status")
def status():
    current_app.logger.debug("[health] Health check requested")
    return jsonify({
        "status": "UP",
        "timestamp": _now_iso(),
        "application": current_app.config.get("APP_NAME"),
        "version": current_app.config.get("APP_VERSION"),
        "system": {
            "pythonVersion": platform.python_version(),
            "implementation": platform.python_implementation(),
            "osName": platform.system(),
            "osVersion": platform.release(),
            "availableProcessors": os.cpu_count(),
            "pid": os.getpid(),
        },
        "database": _check_database(),
    })


@health_bp.get("/ready")
def ready():
    db_health = _check_database()
    is_ready = db_health["status"] == "UP"
    body = {
        "ready": is_ready,
        "status": "READY" if is_ready else "NOT_READY",
        "message": "" if is_ready else "Database not available.",
        "timestamp": _now_iso(),
    }
    return jsonify(body), (200 if is_ready else 503)


@health_bp.get("/live")
def live():
    started_at = current_app.extensions.get("book_catalog.started_at", time.time())
    return jsonify({
        "alive": True,
        "status": "ALIVE",
        "uptime": _format_uptime(time.time() - started_at),
        "timestamp": _now_iso(),
    })
