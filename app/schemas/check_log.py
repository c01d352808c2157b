from datetime import datetime
from typing import Literal, Optional

from pydantic import Field
from app.schemas.base import CamelModel
from app.schemas.user import UserSummary
from app.schemas.visitor import VisitorOut


class CheckInRequest(CamelModel):
    qr_data: Optional[str] = None
    location: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=30, le=45)
    notes: Optional[str] = None
    method: Literal["qr_scan", "manual", "facial_recognition"] = "qr_scan"
    device_info: Optional[str] = None


class CheckOutRequest(CamelModel):
    qr_data: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    method: Literal["qr_scan", "manual", "facial_recognition"] = "qr_scan"
    device_info: Optional[str] = None


class CheckLogPassSummary(CamelModel):
    id: int
    pass_number: str


class CheckLogOut(CamelModel):
    id: int
    visitor_id: int
    pass_id: Optional[int]
    visitor_pass: Optional[CheckLogPassSummary] = Field(None, alias="pass")
    type: str
    timestamp: datetime
    location: Optional[str]
    checked_by: int
    checker: Optional[UserSummary] = None
    method: str
    notes: Optional[str]
    temperature: Optional[float]
    device_info: Optional[str]


class CheckLogListOut(CamelModel):
    check_logs: list[CheckLogOut]
    total_pages: int
    current_page: int
    total: int


class CheckLogHistoryOut(CamelModel):
    check_logs: list[CheckLogOut]


class CheckLogResponse(CamelModel):
    message: Optional[str] = None
    check_log: CheckLogOut
    visitor: Optional[VisitorOut] = None


class CheckLogStatsOut(CamelModel):
    period: str
    total_check_ins: int
    total_check_outs: int
    current_checked_in: int
    check_in_out_ratio: str
