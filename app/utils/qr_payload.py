"""
Helpers for the JSON payload printed in a pass QR code.

Payload shape (camelCase, as read by the front-desk scanner):
    {"passId": 12, "visitorId": 7, "passNumber": "PASS-123456-AB12CD",
     "token": "<64 hex chars>", "issuedAt": "...", "expiresAt": "..."}
"""

import base64
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import qrcode

from app.errors import InvalidPayloadError

INVALID_QR_MESSAGE = "Invalid QR code data"


@dataclass
class PassPayload:
    pass_id: int
    visitor_id: Optional[int] = None
    pass_number: Optional[str] = None
    token: Optional[str] = None
    issued_at: Optional[str] = None
    expires_at: Optional[str] = None


def safe_parse_json(raw: str) -> Optional[dict]:
    """Parse a JSON object safely. Returns None on error or when the top level is not an object."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def decode_pass_payload(qr_data: Optional[str]) -> PassPayload:
    """Decode scanned QR text. Raises InvalidPayloadError for anything unusable."""
    if not qr_data:
        raise InvalidPayloadError("QR data is required")

    data = safe_parse_json(qr_data)
    if data is None:
        raise InvalidPayloadError(INVALID_QR_MESSAGE)

    pass_id = _as_int(data.get("passId"))
    if pass_id is None:
        raise InvalidPayloadError(INVALID_QR_MESSAGE)

    token = data.get("token")
    return PassPayload(
        pass_id=pass_id,
        visitor_id=_as_int(data.get("visitorId")),
        pass_number=data.get("passNumber"),
        token=token if isinstance(token, str) else None,
        issued_at=data.get("issuedAt"),
        expires_at=data.get("expiresAt"),
    )


def encode_pass_payload(pass_id: int, visitor_id: int, pass_number: str, token: str,
                        issued_at: datetime, expires_at: datetime) -> str:
    return json.dumps({
        "passId": pass_id,
        "visitorId": visitor_id,
        "passNumber": pass_number,
        "token": token,
        "issuedAt": issued_at.isoformat(),
        "expiresAt": expires_at.isoformat(),
    }, separators=(",", ":"))


def render_qr_data_url(payload: str) -> str:
    """Render the payload as a PNG QR code and return it as a data URL."""
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=1)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
