"""
Health Check Endpoints

Endpoints:
- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (invitation signing is configured)
- /health/deep  - Detailed diagnostics for debugging
"""

from fastapi import APIRouter, HTTPException, status
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any
import time

from app.core.config import settings
from app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])

VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_email_config() -> Dict[str, Any]:
    """Check email service configuration (not actual connectivity)"""
    if settings.USE_SENDGRID and settings.SENDGRID_API_KEY:
        return {
            "status": "healthy",
            "provider": "sendgrid",
            "configured": True,
            "message": "SendGrid API key configured"
        }
    elif settings.SMTP_USER and settings.SMTP_PASSWORD:
        return {
            "status": "healthy",
            "provider": "smtp",
            "configured": True,
            "host": settings.SMTP_HOST,
            "message": "SMTP credentials configured"
        }
    return {
        "status": "degraded",
        "provider": "none",
        "configured": False,
        "message": "Email not configured - invitation emails will not be delivered"
    }


def check_report_fonts() -> Dict[str, Any]:
    """Check that configured PDF fonts exist on disk"""
    missing = [
        path for path in (settings.REPORT_FONT_PATH, settings.REPORT_BOLD_FONT_PATH)
        if path and not Path(path).is_file()
    ]
    if missing:
        return {
            "status": "degraded",
            "missing": missing,
            "message": "Report fonts not found - PDFs fall back to Helvetica"
        }
    return {
        "status": "healthy",
        "custom_font": bool(settings.REPORT_FONT_PATH),
        "message": "Report fonts OK"
    }


def check_critical_env_vars() -> Dict[str, Any]:
    """Verify all critical environment variables are set"""
    missing = []
    warnings = []

    # Invitations cannot be issued or verified without these
    critical_vars = {
        "INVITE_TOKEN_SECRET": settings.INVITE_TOKEN_SECRET,
    }

    # Invite links point at localhost without one of these
    if not (settings.PUBLIC_HOST or settings.SITE_URL):
        warnings.append("PUBLIC_HOST/SITE_URL")

    for name, value in critical_vars.items():
        if not value or value in ["CHANGE_ME", "your-secret-key"]:
            missing.append(name)

    if missing:
        return {
            "status": "unhealthy",
            "missing_critical": missing,
            "warnings": warnings,
            "message": f"Missing critical env vars: {', '.join(missing)}"
        }
    elif warnings:
        return {
            "status": "degraded",
            "missing_critical": [],
            "warnings": warnings,
            "message": f"Some env vars not configured: {', '.join(warnings)}"
        }
    return {
        "status": "healthy",
        "missing_critical": [],
        "warnings": [],
        "message": "All critical environment variables configured"
    }


@router.get("/live")
async def liveness_check():
    """
    Liveness check - indicates the application is running.

    Returns 200 if the process is alive.
    """
    return {
        "status": "alive",
        "timestamp": _now(),
        "app": settings.APP_NAME,
        "version": VERSION
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - indicates the application can handle requests.

    Returns 503 when invitation signing is not configured.
    """
    env_check = check_critical_env_vars()
    is_ready = env_check["status"] != "unhealthy"

    response = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": _now(),
        "checks": {
            "environment": env_check
        }
    }

    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response
        )

    return response


@router.get("/deep")
async def deep_health_check():
    """
    Deep health check with full diagnostics.

    Use this for debugging and monitoring dashboards.
    """
    start_time = time.time()

    checks = {
        "environment": check_critical_env_vars(),
        "email": check_email_config(),
        "report_fonts": check_report_fonts(),
    }

    statuses = [c.get("status", "unknown") for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    response = {
        "status": overall,
        "timestamp": _now(),
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "total_check_time_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }

    if overall == "unhealthy":
        logger.error(f"[HealthCheck] Deep check unhealthy: {response}")

    return response
