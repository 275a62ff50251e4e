from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Optional, Union
import logging

from printshop.api.auth import get_current_user
from printshop.db.session import get_session
from printshop.models.party import User
from printshop.services.errors import ValidationError
from printshop.services.paper_matcher import PaperMatcher
from printshop.services.paper_requests import approve_request, reject_request

logger = logging.getLogger(__name__)
router = APIRouter()

REQUIRED_FIELDS = ("barcode_id", "paper_type", "gsm", "width", "length")


class ValidateRequest(BaseModel):
    barcode_id: Optional[str] = None
    paper_type: Optional[str] = None
    gsm: Optional[Union[str, float]] = None
    width: Optional[Union[str, float]] = None
    length: Optional[Union[str, float]] = None


class ApproveRequest(BaseModel):
    id: Optional[str] = None
    barcode_id: Optional[str] = None


class RejectRequest(BaseModel):
    id: Optional[str] = None
    admin_notes: Optional[str] = None


def _missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@router.post("/validate")
def validate_barcode(req: ValidateRequest, user: User = Depends(get_current_user)):
    """Check a scanned roll against the requested paper spec.

    200 carries the verdict whether or not it matched; an unknown barcode is a 404.
    """
    missing = [name for name in REQUIRED_FIELDS if _missing(getattr(req, name))]
    if missing:
        raise ValidationError(
            "Missing required fields",
            details="Barcode ID, paper type, GSM, width, and length are required",
        )

    logger.info("Validating barcode=%s for user=%s", req.barcode_id, user.id)
    session = get_session()
    try:
        result = PaperMatcher(session).validate(req.barcode_id, req.paper_type, req.gsm, req.width, req.length)
        return result.to_dict()
    finally:
        session.close()


@router.post("/approve")
def approve(req: ApproveRequest, user: User = Depends(get_current_user)):
    if _missing(req.id):
        raise ValidationError("Missing request ID")
    session = get_session()
    try:
        return approve_request(session, req.id, actor=user, barcode=req.barcode_id)
    finally:
        session.close()


@router.post("/reject")
def reject(req: RejectRequest, user: User = Depends(get_current_user)):
    if _missing(req.id):
        raise ValidationError("Missing request ID")
    session = get_session()
    try:
        return reject_request(session, req.id, actor=user, admin_notes=req.admin_notes)
    finally:
        session.close()
