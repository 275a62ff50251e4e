from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from printshop.api.auth import get_current_user
from printshop.db.session import get_session
from printshop.models.party import User
from printshop.services.orders import OrderService

router = APIRouter()


class ProcessDesignRequest(BaseModel):
    orderId: str = Field(..., min_length=1)
    designerId: str = Field(..., min_length=1)


@router.post("/process")
def process_design(req: ProcessDesignRequest, user: User = Depends(get_current_user)):
    """Hand an order in the DESIGN stage to a designer."""
    session = get_session()
    try:
        order = OrderService(session).assign_designer(req.orderId, req.designerId, actor=user)
    finally:
        session.close()
    return {"message": "Order assigned to designer successfully", "order": order}
