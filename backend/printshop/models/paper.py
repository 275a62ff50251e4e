from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from printshop.models.order import _new_id, timestamp_column, utcnow


class PaperStock(SQLModel, table=True):
    __tablename__ = "paper_stock"

    id: str = Field(default_factory=_new_id, primary_key=True)
    qr_code: str = Field(index=True, unique=True)
    name: Optional[str] = None
    type: Optional[str] = None
    gsm: float = 0
    width: float = 0
    # 0 / None means the roll length is not tracked
    length: Optional[float] = None
    remaining_length: Optional[float] = None
    approved: bool = False


class PaperRequest(SQLModel, table=True):
    __tablename__ = "paper_request"

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: Optional[str] = None
    paper_type: str
    gsm: str
    width: str
    length: str
    status: str = "PENDING"
    paper_stock_id: Optional[str] = Field(default=None, foreign_key="paper_stock.id")
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    user_notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column(nullable=False))
    updated_at: Optional[datetime] = Field(default=None, sa_column=timestamp_column())


class PaperLog(SQLModel, table=True):
    __tablename__ = "paper_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    action: str
    performed_by: Optional[str] = None
    notes: Optional[str] = None
    request_id: Optional[str] = Field(default=None, foreign_key="paper_request.id")
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column(nullable=False))
