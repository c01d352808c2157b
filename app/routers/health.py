# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + collaborator (notification gateway, badge renderer) reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.config import settings
from datetime import datetime

router = APIRouter()


def _probe(url: str) -> str:
    try:
        resp = requests.head(url, timeout=3)
        return "ok" if resp.status_code < 500 else f"http_{resp.status_code}"
    except requests.exceptions.ConnectionError:
        return "unreachable"
    except requests.exceptions.RequestException as e:
        return f"error: {str(e)}"


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Notification gateway / badge renderer reachability ("disabled" when not configured)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "collaborators": {},
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    # Collaborators are fire-and-forget; an outage degrades notifications only
    for name, url in (("notifications", settings.NOTIFY_WEBHOOK_URL), ("badge_renderer", settings.BADGE_RENDERER_URL)):
        if not url:
            result["collaborators"][name] = "disabled"
            continue
        result["collaborators"][name] = _probe(url)
        if result["collaborators"][name] != "ok":
            result["status"] = "degraded"

    return result
