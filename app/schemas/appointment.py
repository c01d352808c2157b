from datetime import datetime
from typing import Optional

from pydantic import Field
from app.schemas.base import CamelModel, UTCDateTime
from app.schemas.user import UserSummary

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentCreate(CamelModel):
    visitor_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: UTCDateTime
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    location: Optional[str] = None
    attendees: list[int] = []
    notes: Optional[str] = None


class AppointmentUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[UTCDateTime] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location: Optional[str] = None
    attendees: Optional[list[int]] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class AppointmentStatusUpdate(CamelModel):
    status: str


class AppointmentVisitorSummary(CamelModel):
    id: int
    name: str
    email: str
    company: Optional[str]


class AppointmentOut(CamelModel):
    id: int
    visitor_id: int
    visitor: Optional[AppointmentVisitorSummary] = None
    host_id: int
    host: Optional[UserSummary] = None
    title: str
    description: Optional[str]
    date: datetime
    start_time: str
    end_time: str
    status: str
    location: Optional[str]
    notes: Optional[str]
    attendees: list[UserSummary] = []
    created_at: Optional[datetime]


class AppointmentListOut(CamelModel):
    appointments: list[AppointmentOut]
    total_pages: int
    current_page: int
    total: int


class AppointmentResponse(CamelModel):
    message: Optional[str] = None
    appointment: AppointmentOut
