# app/routers/users.py
"""Staff user management (admin) and self-service profile."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services import user_service

router = APIRouter()


def _out(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(by_alias=True, mode="json")


@router.post("/users", status_code=status.HTTP_201_CREATED, summary="Create a user (admin)")
def create_user(body: UserCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    created = user_service.create_user(db, user, body.model_dump())
    return {"message": "User created successfully", "user": _out(created)}


@router.get("/users", summary="List users (admin)")
def list_users(page: int = 1, limit: int = 10, role: Optional[str] = None, search: Optional[str] = None,
               db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    result = user_service.list_users(db, user, page, limit, role, search)
    return {"users": [_out(u) for u in result.items], "totalPages": result.total_pages,
            "currentPage": result.current_page, "total": result.total}


@router.get("/users/stats", summary="User counts by role (admin)")
def user_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    stats = user_service.user_stats(db, user)
    return {"total": stats["total"], "active": stats["active"], "inactive": stats["inactive"],
            "byRole": stats["by_role"]}


@router.get("/users/{user_id}", summary="Get a user (self or admin)")
def get_user(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"user": _out(user_service.get_user(db, user, user_id))}


@router.put("/users/{user_id}", summary="Update a user (self or admin)")
def update_user(user_id: int, body: UserUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    updated = user_service.update_user(db, user, user_id, body.model_dump(exclude_unset=True))
    return {"message": "User updated successfully", "user": _out(updated)}


@router.delete("/users/{user_id}", summary="Delete a user (admin)")
def delete_user(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    user_service.delete_user(db, user, user_id)
    return {"message": "User deleted successfully"}
