"""
Request identity.
The upstream auth layer resolves the caller and forwards the user id in the
X-User-Id header; this dependency turns it into a User row.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AuthenticationError
from app.models.user import User
from app.services.user_service import get_user_by_id


def get_current_user(x_user_id: Optional[str] = Header(None), db: Session = Depends(get_db)) -> User:
    if not x_user_id:
        raise AuthenticationError()
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise AuthenticationError("Invalid user identity")

    user = get_user_by_id(db, user_id)
    if not user:
        raise AuthenticationError("Invalid user identity")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    return user
