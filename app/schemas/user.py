from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr
from app.schemas.base import CamelModel

Role = Literal["admin", "security", "employee"]


class UserCreate(CamelModel):
    name: str
    email: EmailStr
    role: Role = "employee"
    department: Optional[str] = None
    phone: Optional[str] = None


class UserUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None          # admin only
    department: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None     # admin only


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: str
    department: Optional[str]
    phone: Optional[str]
    is_active: bool
    created_at: Optional[datetime]
