from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field
from app.schemas.base import CamelModel, UTCDateTime
from app.schemas.user import UserSummary


class VisitorCreate(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    company: Optional[str] = None
    purpose: str = Field(..., min_length=1)
    host_id: int
    expected_arrival: UTCDateTime
    expected_departure: UTCDateTime
    notes: Optional[str] = None


class VisitorUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    purpose: Optional[str] = None
    expected_arrival: Optional[UTCDateTime] = None
    expected_departure: Optional[UTCDateTime] = None
    notes: Optional[str] = None
    # admin/security only; checked_in/checked_out belong to the check-in engine
    status: Optional[Literal["pending", "approved", "rejected"]] = None


class VisitorStatusUpdate(CamelModel):
    status: str


class VisitorOut(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    company: Optional[str]
    purpose: str
    host_id: int
    host: Optional[UserSummary] = None
    photo_url: Optional[str] = None
    status: str
    expected_arrival: datetime
    expected_departure: datetime
    actual_arrival: Optional[datetime]
    actual_departure: Optional[datetime]
    notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class VisitorListOut(CamelModel):
    visitors: list[VisitorOut]
    total_pages: int
    current_page: int
    total: int


class VisitorResponse(CamelModel):
    message: Optional[str] = None
    visitor: VisitorOut
