import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from printshop.models.order import utcnow
from printshop.models.paper import PaperLog, PaperRequest
from printshop.models.party import User
from printshop.services.errors import NotFound, ServiceError, ValidationError, translate_store_error
from printshop.services.paper_matcher import PaperMatcher
from printshop.utils.serialize import serialize_record

logger = logging.getLogger(__name__)


def _pending_request(session: Session, request_id: str) -> PaperRequest:
    request = session.get(PaperRequest, request_id)
    if request is None:
        raise NotFound("Paper request not found")
    if request.status != "PENDING":
        raise ValidationError("Request has already been processed")
    return request


def _user_name(session: Session, user_id: Optional[str]) -> Optional[str]:
    user = session.get(User, user_id) if user_id else None
    return user.name if user is not None else None


def approve_request(session: Session, request_id: str, actor: User, barcode: Optional[str] = None) -> Dict[str, Any]:
    """Approve a pending paper request, optionally binding it to a scanned roll.

    With a barcode the roll must pass the matcher first; a failing verdict is
    returned to the caller as a 400 with the itemized mismatches.
    """
    try:
        request = _pending_request(session, request_id)

        if barcode:
            verdict = PaperMatcher(session).validate(
                barcode, request.paper_type, request.gsm, request.width, request.length
            )
            if not verdict.valid:
                raise ValidationError("Barcode does not match paper specifications", details=verdict.to_dict())
            request.paper_stock_id = verdict.stock.id

        request.status = "APPROVED"
        request.approved_by = actor.id
        request.updated_at = utcnow()
        session.add(request)
        session.add(PaperLog(
            action="APPROVED",
            performed_by=actor.id,
            notes=f"Approved request for {request.paper_type}, {request.gsm} GSM, {request.width}x{request.length}cm",
            request_id=request.id,
        ))
        session.commit()
        session.refresh(request)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Approving paper request failed id=%s", request_id)
        raise translate_store_error(e)
    except ServiceError:
        session.rollback()
        raise

    logger.info("Paper request id=%s approved by user=%s stock=%s", request_id, actor.id, request.paper_stock_id)
    data = serialize_record(request, ())
    data["requester_name"] = _user_name(session, request.user_id)
    return data


def reject_request(session: Session, request_id: str, actor: User, admin_notes: Optional[str] = None) -> Dict[str, Any]:
    """Reject a pending paper request; the admin's reason is kept on the row."""
    try:
        request = _pending_request(session, request_id)
        request.status = "REJECTED"
        request.rejected_by = actor.id
        if admin_notes:
            request.admin_notes = admin_notes
        request.updated_at = utcnow()
        session.add(request)
        session.add(PaperLog(
            action="REJECTED",
            performed_by=actor.id,
            notes=f"Rejected request for {request.paper_type}, {request.gsm} GSM, {request.width}x{request.length}cm",
            request_id=request.id,
        ))
        session.commit()
        session.refresh(request)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Rejecting paper request failed id=%s", request_id)
        raise translate_store_error(e)
    except ServiceError:
        session.rollback()
        raise

    logger.info("Paper request id=%s rejected by user=%s", request_id, actor.id)
    data = serialize_record(request, ())
    data["requester_name"] = _user_name(session, request.user_id)
    data["rejecter_name"] = actor.name
    return data
