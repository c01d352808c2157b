"""
Shared notification service (email + SMS).
Routers build Notification objects from the rows a request touched and hand
them to FastAPI BackgroundTasks; delivery goes through the gateway webhook at
NOTIFY_WEBHOOK_URL. Failures are logged and never reach the request.
"""

from dataclasses import dataclass, asdict
from typing import Iterable

import httpx
from fastapi import BackgroundTasks

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

EMAIL = "email"
SMS = "sms"

DATE_FMT = "%Y-%m-%d %H:%M"


@dataclass
class Notification:
    channel: str        # email | sms
    to: str
    subject: str
    body: str


async def send_notification(notification: Notification) -> bool:
    """Deliver one notification. Returns True when the gateway accepted it."""
    label = f"[NOTIFY][{notification.channel.upper()}] {notification.to}: {notification.subject}"
    if not settings.NOTIFY_WEBHOOK_URL:
        logger.info(f"{label} (gateway not configured, logged only)")
        return False

    try:
        async with httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.NOTIFY_WEBHOOK_URL, json=asdict(notification))
        if response.status_code < 300:
            logger.info(f"{label} sent")
            return True
        logger.warning(f"{label} rejected: HTTP {response.status_code}")
        return False
    except httpx.HTTPError as e:
        logger.error(f"{label} failed: {e}")
        return False


def dispatch(background_tasks: BackgroundTasks, notifications: Iterable[Notification]):
    for notification in notifications:
        background_tasks.add_task(send_notification, notification)


# ── Message builders ─────────────────────────────────────────────────────────
def visitor_registered(visitor) -> list[Notification]:
    host = visitor.host
    if not host or not host.email:
        return []
    return [Notification(
        channel=EMAIL,
        to=host.email,
        subject="New Visitor Registration - Action Required",
        body=(
            f"Dear {host.name},\n\n"
            f"{visitor.name} ({visitor.company or 'N/A'}) has registered to visit you.\n"
            f"Purpose: {visitor.purpose}\n"
            f"Expected: {visitor.expected_arrival.strftime(DATE_FMT)} - "
            f"{visitor.expected_departure.strftime(DATE_FMT)}\n\n"
            f"Please approve or reject the visit at {settings.FRONTEND_URL}/login"
        ),
    )]


def visitor_status_changed(visitor) -> list[Notification]:
    if visitor.status == "approved":
        subject = "Your visit has been approved"
        body = (f"Dear {visitor.name},\n\nYour visit on {visitor.expected_arrival.strftime(DATE_FMT)} "
                f"has been approved. Your pass will be issued by our security team.")
    elif visitor.status == "rejected":
        subject = "Your visit request was declined"
        body = f"Dear {visitor.name},\n\nUnfortunately your visit request has been declined."
    else:
        return []
    return [Notification(channel=EMAIL, to=visitor.email, subject=subject, body=body)]


def pass_issued(pass_, visitor) -> list[Notification]:
    sms = Notification(
        channel=SMS,
        to=visitor.phone,
        subject="Visitor Pass Approved",
        body=(f"Visitor Pass Approved! Pass #: {pass_.pass_number}. "
              f"Valid: {pass_.valid_from.strftime('%Y-%m-%d')} - {pass_.valid_to.strftime('%Y-%m-%d')}. "
              f"Show QR code at reception."),
    )
    email = Notification(
        channel=EMAIL,
        to=visitor.email,
        subject="Visitor Pass Approved - Welcome!",
        body=(f"Dear {visitor.name},\n\nYour pass {pass_.pass_number} ({pass_.access_level}) is valid "
              f"from {pass_.valid_from.strftime(DATE_FMT)} to {pass_.valid_to.strftime(DATE_FMT)}.\n"
              f"Badge: {pass_.pdf_url}"),
    )
    return [sms, email]


def checked_in(check_log, visitor) -> list[Notification]:
    notifications = [Notification(
        channel=SMS,
        to=visitor.phone,
        subject="Check-in confirmed",
        body=(f"Check-in confirmed at {check_log.timestamp.strftime(DATE_FMT)}. "
              f"Welcome to our premises! Please follow security protocols."),
    )]
    host = visitor.host
    if host and host.email:
        notifications.append(Notification(
            channel=EMAIL,
            to=host.email,
            subject=f"Your visitor {visitor.name} has arrived",
            body=f"{visitor.name} checked in at {check_log.location or 'reception'} "
                 f"on {check_log.timestamp.strftime(DATE_FMT)}.",
        ))
    return notifications


def checked_out(check_log, visitor) -> list[Notification]:
    host = visitor.host
    if not host or not host.email:
        return []
    return [Notification(
        channel=EMAIL,
        to=host.email,
        subject=f"Your visitor {visitor.name} has left",
        body=f"{visitor.name} checked out at {check_log.timestamp.strftime(DATE_FMT)}.",
    )]
