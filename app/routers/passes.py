# app/routers/passes.py
"""Pass issuance, listing, revocation and QR verification."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.visitor_pass import PassCreate, PassListOut, PassOut, PassResponse, PassVerifyRequest
from app.schemas.visitor import VisitorOut
from app.services import pass_service, verification_service
from app.services.badge_service import build_badge_request, request_badge_render
from app.services.notification_service import dispatch, pass_issued

router = APIRouter()


@router.post("/passes", response_model=PassResponse, status_code=status.HTTP_201_CREATED,
             summary="Issue a pass to an approved visitor")
def issue_pass(body: PassCreate, background_tasks: BackgroundTasks,
               db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    pass_ = pass_service.issue_pass(db, user, body.visitor_id, body.valid_from, body.valid_to, body.access_level)
    visitor = pass_.visitor

    background_tasks.add_task(request_badge_render, build_badge_request(pass_, visitor))
    dispatch(background_tasks, pass_issued(pass_, visitor))
    return {"message": "Pass issued successfully", "pass": pass_}


@router.get("/passes", response_model=PassListOut, summary="List passes")
def list_passes(page: int = 1, limit: int = 10, status: Optional[str] = None,
                visitor_id: Optional[int] = Query(None, alias="visitorId"), search: Optional[str] = None,
                db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Employees only see passes of visitors they host."""
    result = pass_service.list_passes(db, user, page, limit, status, visitor_id, search)
    return {"passes": result.items, "total_pages": result.total_pages,
            "current_page": result.current_page, "total": result.total}


@router.post("/passes/verify", summary="Verify a scanned QR code")
def verify_pass(body: PassVerifyRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """200 with pass + visitor when the scan would be admitted; 400/404 with the reason otherwise."""
    pass_, visitor = verification_service.verify_pass(db, user, body.qr_data)
    return {
        "message": "Pass is valid",
        "pass": PassOut.model_validate(pass_).model_dump(by_alias=True, mode="json"),
        "visitor": VisitorOut.model_validate(visitor).model_dump(by_alias=True, mode="json"),
    }


@router.get("/passes/{pass_id}", summary="Get a pass")
def get_pass(pass_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    pass_ = pass_service.get_pass(db, user, pass_id)
    return {"pass": PassOut.model_validate(pass_).model_dump(by_alias=True, mode="json")}


@router.put("/passes/{pass_id}/revoke", response_model=PassResponse, summary="Revoke a pass")
def revoke_pass(pass_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    pass_ = pass_service.revoke_pass(db, user, pass_id)
    return {"message": "Pass revoked successfully", "pass": pass_}
