from datetime import datetime
from typing import Literal, Optional

from pydantic import Field
from app.schemas.base import CamelModel, UTCDateTime
from app.schemas.user import UserSummary


class PassCreate(CamelModel):
    visitor_id: int
    valid_from: UTCDateTime
    valid_to: UTCDateTime
    access_level: Literal["standard", "vip", "restricted"] = "standard"


class PassVerifyRequest(CamelModel):
    qr_data: Optional[str] = None      # JSON string scanned from the badge


class PassVisitorSummary(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    company: Optional[str]
    status: str


class PassOut(CamelModel):
    id: int
    visitor_id: int
    visitor: Optional[PassVisitorSummary] = None
    pass_number: str
    qr_data: Optional[str]
    qr_code: Optional[str]
    pdf_url: Optional[str]
    issued_by: int
    issuer: Optional[UserSummary] = None
    issued_at: datetime
    expires_at: datetime
    valid_from: datetime
    valid_to: datetime
    status: str
    access_level: str


class PassListOut(CamelModel):
    passes: list[PassOut]
    total_pages: int
    current_page: int
    total: int


class PassResponse(CamelModel):
    message: Optional[str] = None
    pass_: PassOut = Field(..., alias="pass")
