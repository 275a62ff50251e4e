from fastapi import APIRouter, Depends
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Literal, Optional, Union
import logging

from printshop.api.auth import get_current_user
from printshop.db.session import get_session
from printshop.models.party import User
from printshop.services.orders import OrderService

logger = logging.getLogger(__name__)
router = APIRouter()

Text = Union[str, int, float]


class ProductFlags(BaseModel):
    PRINT: bool = False
    PRESS: bool = False
    CUTTING: bool = False
    DTF: bool = False
    SEWING: bool = False


class OrderUpdate(BaseModel):
    """Edit-form payload. Both form names and column names are accepted;
    unknown keys are kept here and dropped by the normalizer."""

    model_config = ConfigDict(extra="allow")

    customerId: Optional[Text] = None
    customer_id: Optional[Text] = None
    spk: Optional[str] = None
    no_project: Optional[str] = None
    projectNumber: Optional[str] = None
    tanggal: Optional[datetime] = None
    targetSelesai: Optional[datetime] = None
    target_selesai: Optional[datetime] = None
    est_order: Optional[datetime] = None
    marketing: Optional[str] = None
    jenisProduk: Optional[Union[ProductFlags, str]] = None
    dtfPass: Optional[Literal["4 PASS", "6 PASS"]] = None
    produk: Optional[str] = None
    tipe_produk: Optional[str] = None
    asalBahan: Optional[str] = None
    asal_bahan: Optional[str] = None
    namaBahan: Optional[str] = None
    nama_kain: Optional[str] = None
    fabricLength: Optional[Text] = None
    jumlah_kain: Optional[Text] = None
    lebarKain: Optional[Text] = None
    lebar_kain: Optional[Text] = None
    aplikasiProduk: Optional[str] = None
    nama_produk: Optional[str] = None
    gsmKertas: Optional[Text] = None
    gramasi: Optional[Text] = None
    lebarKertas: Optional[Text] = None
    lebar_kertas: Optional[Text] = None
    fileWidth: Optional[Text] = None
    lebar_file: Optional[Text] = None
    fileDesain: Optional[str] = None
    path: Optional[str] = None
    matchingColor: Optional[Union[Literal["YES", "NO"], bool]] = None
    discountType: Optional[Literal["none", "percentage", "fixed"]] = None
    discountValue: Optional[Text] = None
    tax: Optional[bool] = None
    taxPercentage: Optional[Text] = None
    jumlah: Optional[Text] = None
    qty: Optional[Text] = None
    harga: Optional[Text] = None
    notes: Optional[str] = None
    catatan: Optional[str] = None
    status: Optional[str] = None
    statusm: Optional[str] = None
    # optimistic concurrency: stale versions are rejected with 409
    version: Optional[int] = None

    @field_validator("tanggal", "targetSelesai", "target_selesai", "est_order", mode="before")
    @classmethod
    def blank_date_is_none(cls, v):
        # the form posts "" for a cleared date picker
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DesignPatch(BaseModel):
    fileWidth: Optional[Text] = None
    lebar_file: Optional[Text] = None
    matchingColor: Optional[Union[Literal["YES", "NO"], bool]] = None
    warna_acuan: Optional[str] = None
    jumlah: Optional[Text] = None
    qty: Optional[Text] = None
    notes: Optional[str] = None
    catatan: Optional[str] = None
    status: Optional[str] = None
    statusm: Optional[str] = None
    capture: Optional[str] = None
    captureName: Optional[str] = None
    capture_name: Optional[str] = None


@router.get("/repeat/{spk}")
def get_repeat_order(spk: str, user: User = Depends(get_current_user)):
    """Prefill data for a repeat order, in the intake form's field names."""
    session = get_session()
    try:
        return OrderService(session).repeat_form(spk)
    finally:
        session.close()


@router.get("/{order_id}")
def get_order(order_id: str, user: User = Depends(get_current_user)):
    session = get_session()
    try:
        service = OrderService(session)
        return service.to_dict(service.get(order_id))
    finally:
        session.close()


@router.put("/{order_id}")
def update_order(order_id: str, upd: OrderUpdate, user: User = Depends(get_current_user)):
    data = upd.model_dump(exclude_unset=True)
    expected_version = data.pop("version", None)
    logger.debug("PUT order id=%s keys=%s", order_id, sorted(data))
    session = get_session()
    try:
        return OrderService(session).update(order_id, data, actor=user, expected_version=expected_version)
    finally:
        session.close()


@router.patch("/{order_id}")
def patch_order(order_id: str, patch: DesignPatch, user: User = Depends(get_current_user)):
    session = get_session()
    try:
        return OrderService(session).patch_design(order_id, patch.model_dump(exclude_unset=True), actor=user)
    finally:
        session.close()


@router.delete("/{order_id}")
def delete_order(order_id: str, user: User = Depends(get_current_user)):
    session = get_session()
    try:
        OrderService(session).delete(order_id, actor=user)
    finally:
        session.close()
    return {"message": "Order deleted successfully"}
