"""
Pass verification — resolves a scanned QR payload against stored state.

Checks run in a fixed order and the first failure wins:
  1. payload decodes            → InvalidPayloadError
  2. pass exists                → NotFoundError
     (scanned token matches the stored one when VERIFY_PASS_TOKEN is on)
  3. pass status is active      → InvalidStateError("Pass is <status>")
  4. pass not past expires_at   → flip to expired, InvalidStateError("Pass has expired")
  5. visitor is approved        → InvalidStateError("Visitor is not approved")
Nothing is written except the expiry flip in step 4.
"""

import hmac
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, lazyload

from app.config import settings
from app.database import transaction
from app.errors import InvalidPayloadError, InvalidStateError, NotFoundError
from app.models.visitor import STATUS_APPROVED
from app.models.visitor_pass import Pass, PASS_ACTIVE, PASS_EXPIRED
from app.services.access_policy import authorize
from app.utils.logger import get_logger
from app.utils.qr_payload import INVALID_QR_MESSAGE, PassPayload, decode_pass_payload

logger = get_logger(__name__)


def pass_state(pass_: Pass) -> dict:
    """Current pass state echoed back to the scanner alongside a rejection."""
    return {"pass": {
        "id": pass_.id,
        "passNumber": pass_.pass_number,
        "visitorId": pass_.visitor_id,
        "status": pass_.status,
        "expiresAt": pass_.expires_at.isoformat() if pass_.expires_at else None,
    }}


def _token_matches(pass_: Pass, token) -> bool:
    if not token:
        return False
    return hmac.compare_digest(pass_.token.encode(), token.encode())


def resolve_pass(db: Session, payload: PassPayload) -> Pass:
    pass_ = db.get(Pass, payload.pass_id)
    if not pass_:
        raise NotFoundError("Pass not found")
    if settings.VERIFY_PASS_TOKEN and not _token_matches(pass_, payload.token):
        logger.warning(f"[VERIFY] Token mismatch for pass {pass_.pass_number}")
        raise InvalidPayloadError(INVALID_QR_MESSAGE)
    return pass_


def expire_pass(db: Session, pass_: Pass):
    """
    Conditional write active → expired. Racing scanners may both run it;
    the WHERE clause makes every run after the first a no-op.
    """
    with transaction(db):
        changed = (
            db.query(Pass)
            .filter(Pass.id == pass_.id, Pass.status == PASS_ACTIVE)
            .update(
                {Pass.status: PASS_EXPIRED, Pass.version: Pass.version + 1, Pass.updated_at: datetime.utcnow()},
                synchronize_session=False,
            )
        )
    db.refresh(pass_)
    if changed:
        logger.info(f"[VERIFY] Pass {pass_.pass_number} expired at {pass_.expires_at}")


def get_pass_for_update(db: Session, pass_id: int) -> Optional[Pass]:
    """Re-read a pass inside a transaction, locked where the backend supports it."""
    return (
        db.query(Pass)
        .options(lazyload("*"))
        .filter(Pass.id == pass_id)
        .with_for_update(of=Pass)
        .populate_existing()
        .first()
    )


def assert_pass_active(pass_: Pass):
    if pass_.status != PASS_ACTIVE:
        raise InvalidStateError(f"Pass is {pass_.status}", current_state=pass_.status, context=pass_state(pass_))


def ensure_pass_usable(db: Session, pass_: Pass):
    """Steps 3 and 4: status first, then expiry."""
    assert_pass_active(pass_)

    if datetime.utcnow() > pass_.expires_at:
        expire_pass(db, pass_)
        raise InvalidStateError("Pass has expired", current_state=PASS_EXPIRED, context=pass_state(pass_))


def verify_pass(db: Session, actor, qr_data):
    """Returns (pass, visitor) for a scan that would be admitted right now."""
    authorize("pass.verify", actor)

    payload = decode_pass_payload(qr_data)
    pass_ = resolve_pass(db, payload)
    ensure_pass_usable(db, pass_)

    visitor = pass_.visitor
    if not visitor:
        raise NotFoundError("Visitor not found")
    if visitor.status != STATUS_APPROVED:
        raise InvalidStateError("Visitor is not approved", current_state=visitor.status, context=pass_state(pass_))

    logger.info(f"[VERIFY] Pass {pass_.pass_number} valid for visitor {visitor.id}")
    return pass_, visitor
