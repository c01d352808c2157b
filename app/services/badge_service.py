# app/services/badge_service.py
"""
Badge service — asks the external renderer to produce the printable PDF
badge for a freshly issued pass.

Endpoint: POST {BADGE_RENDERER_URL}  (JSON: pass + visitor + host)
The renderer stores the file under PDF_BASE_URL/pass-<passNumber>.pdf;
the URL is known up front and saved on the pass at issuance.
Fire-and-forget: failures are logged, never raised to the caller.
"""

from dataclasses import dataclass, asdict
from typing import Optional

import httpx

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BadgeRequest:
    pass_number: str
    pdf_url: str
    qr_data: str
    access_level: str
    valid_from: str
    valid_to: str
    visitor_name: str
    visitor_company: Optional[str]
    host_name: Optional[str]


def badge_pdf_url(pass_number: str) -> str:
    return f"{settings.PDF_BASE_URL.rstrip('/')}/pass-{pass_number}.pdf"


def build_badge_request(pass_, visitor) -> BadgeRequest:
    """Snapshot the ORM rows into plain data; the request session is gone by the time the task runs."""
    return BadgeRequest(
        pass_number=pass_.pass_number,
        pdf_url=pass_.pdf_url,
        qr_data=pass_.qr_data,
        access_level=pass_.access_level,
        valid_from=pass_.valid_from.isoformat(),
        valid_to=pass_.valid_to.isoformat(),
        visitor_name=visitor.name,
        visitor_company=visitor.company,
        host_name=visitor.host.name if visitor.host else None,
    )


async def request_badge_render(badge: BadgeRequest) -> bool:
    """Send the render request. Returns True when the renderer accepted it."""
    if not settings.BADGE_RENDERER_URL:
        logger.info(f"[BADGE] Renderer not configured, {badge.pass_number} badge not rendered")
        return False

    try:
        async with httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.BADGE_RENDERER_URL, json=asdict(badge))
        if response.status_code < 300:
            logger.info(f"[BADGE] Render requested for {badge.pass_number} → {badge.pdf_url}")
            return True
        logger.warning(f"[BADGE] Renderer returned HTTP {response.status_code} for {badge.pass_number}")
        return False
    except httpx.HTTPError as e:
        logger.error(f"[BADGE] Failed for {badge.pass_number}: {e}")
        return False
