from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey
from sqlmodel import SQLModel, Field

from printshop.models.party import BIG_ID


def _new_id() -> str:
    return uuid4().hex


# all timestamps are UTC-aware, in memory and in the database
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_column(nullable: bool = True) -> Column:
    return Column(DateTime(timezone=True), nullable=nullable)


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: str = Field(default_factory=_new_id, primary_key=True)
    spk: Optional[str] = Field(default=None, index=True, unique=True)
    no_project: Optional[str] = None
    tanggal: Optional[datetime] = Field(default=None, sa_column=timestamp_column())
    # estimated completion date ("target selesai" on the intake form)
    est_order: Optional[datetime] = Field(default=None, sa_column=timestamp_column())

    customer_id: Optional[int] = Field(
        default=None, sa_column=Column(BIG_ID, ForeignKey("customer.id"), nullable=True)
    )
    # fabric origin relation; points at a customer row
    asal_bahan_id: Optional[int] = Field(
        default=None, sa_column=Column(BIG_ID, ForeignKey("customer.id"), nullable=True)
    )
    tipe_bahan: Optional[str] = None

    # either a user id or a free-text display name
    marketing: Optional[str] = None
    designer_id: Optional[str] = None
    user_id: Optional[str] = None

    produk: Optional[str] = None
    tipe_produk: Optional[str] = None
    kategori: Optional[str] = None
    statusprod: Optional[str] = None

    nama_kain: Optional[str] = None
    jumlah_kain: Optional[str] = None
    lebar_kain: Optional[str] = None
    nama_produk: Optional[str] = None

    gramasi: Optional[str] = None
    lebar_kertas: Optional[str] = None
    lebar_file: Optional[str] = None
    warna_acuan: Optional[str] = None

    path: Optional[str] = None
    capture: Optional[str] = None
    capture_name: Optional[str] = None

    qty: Optional[str] = None
    harga_satuan: Optional[str] = None
    diskon: Optional[str] = None
    # free-text column; also carries the "Tax: N%" annotation
    tambah_bahan: Optional[str] = None
    catatan: Optional[str] = None

    status: Optional[str] = None
    statusm: Optional[str] = None

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column(nullable=False))
    updated_at: Optional[datetime] = Field(default=None, sa_column=timestamp_column())


# columns the update payload may never touch
PROTECTED_COLUMNS = frozenset({"id", "created_at", "version"})


def writable_columns() -> frozenset:
    return frozenset(c.name for c in Order.__table__.columns) - PROTECTED_COLUMNS
