import logging
import re
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from printshop.models.order import Order, utcnow
from printshop.models.party import Customer, User
from printshop.services.errors import Conflict, NotFound, ServiceError, ValidationError, translate_store_error
from printshop.services.order_normalizer import (
    COLOR_MATCH,
    FIELD_ALIASES,
    ORIGIN_CUSTOMER,
    ORIGIN_SMARTONE,
    PRODUCT_TYPES,
    OrderNormalizer,
    as_text,
    encode_color_match,
    resolve_aliases,
)
from printshop.utils.serialize import format_timestamp, serialize_record

logger = logging.getLogger(__name__)

DESIGN_STAGE = "DESIGN"
DESIGN_FIELDS = ("lebar_file", "warna_acuan", "qty", "catatan", "status", "statusm", "capture", "capture_name")
DESIGN_ALIASES = [a for a in FIELD_ALIASES if a.canonical in DESIGN_FIELDS]

DTF_PASS_RE = re.compile(r"(\d+ PASS)")


class UserMarketing(BaseModel):
    kind: Literal["user"] = "user"
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class FreeTextMarketing(BaseModel):
    kind: Literal["freeText"] = "freeText"
    name: str


MarketingRef = Union[UserMarketing, FreeTextMarketing]


def resolve_marketing(session: Session, value: Optional[str]) -> Optional[MarketingRef]:
    """The marketing column holds either a user id or a display name."""
    if not value:
        return None
    user = session.get(User, value)
    if user is not None:
        return UserMarketing(id=user.id, name=user.name, email=user.email)
    return FreeTextMarketing(name=value)


def _user_summary(session: Session, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not user_id:
        return None
    user = session.get(User, user_id)
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


class OrderService:
    """Order reads and writes on top of a caller-owned session.

    Every mutating call takes the acting user explicitly; nothing here looks
    up a request-global session.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, order_id: str) -> Order:
        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    def to_dict(self, order: Order) -> Dict[str, Any]:
        data = serialize_record(order)
        customer = self.session.get(Customer, order.customer_id) if order.customer_id is not None else None
        origin = self.session.get(Customer, order.asal_bahan_id) if order.asal_bahan_id is not None else None
        data["customer"] = serialize_record(customer, {"id"})
        data["originCustomer"] = serialize_record(origin, {"id"})
        data["user"] = _user_summary(self.session, order.user_id)
        data["designer"] = _user_summary(self.session, order.designer_id)
        marketing = resolve_marketing(self.session, order.marketing)
        data["marketingInfo"] = marketing.model_dump() if marketing is not None else None
        return data

    def update(self, order_id: str, data: Dict[str, Any], actor: User,
               expected_version: Optional[int] = None) -> Dict[str, Any]:
        """Normalize ``data`` and write it in a single transaction."""
        try:
            order = self.get(order_id)
            values = OrderNormalizer(self.session).normalize(data, order)
            logger.info("Updating order id=%s by user=%s columns=%s", order_id, actor.id, sorted(values))
            self._write(order, values, expected_version)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Order update failed id=%s", order_id)
            raise translate_store_error(e)
        except ServiceError:
            self.session.rollback()
            raise
        return self.to_dict(self.get(order_id))

    def patch_design(self, order_id: str, data: Dict[str, Any], actor: User) -> Dict[str, Any]:
        """Design-workflow edits; the acting user is always recorded as designer."""
        try:
            order = self.get(order_id)
            resolved = resolve_aliases(data, DESIGN_ALIASES)
            values = {k: as_text(v) for k, v in resolved.items()}
            color = encode_color_match(data.get("matchingColor"))
            if color is not None:
                values["warna_acuan"] = color
            values["designer_id"] = actor.id
            logger.info("Design patch order id=%s designer=%s columns=%s", order_id, actor.id, sorted(values))
            self._write(order, values)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Design patch failed id=%s", order_id)
            raise translate_store_error(e)
        except ServiceError:
            self.session.rollback()
            raise
        return self.to_dict(self.get(order_id))

    def assign_designer(self, order_id: str, designer_id: str, actor: User) -> Dict[str, Any]:
        try:
            order = self.get(order_id)
            if order.statusm != DESIGN_STAGE:
                raise ValidationError("Order is not in design stage")
            logger.info("Assigning designer=%s to order id=%s (by %s)", designer_id, order_id, actor.id)
            self._write(order, {"designer_id": designer_id})
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise translate_store_error(e)
        except ServiceError:
            self.session.rollback()
            raise
        return self.to_dict(self.get(order_id))

    def delete(self, order_id: str, actor: User) -> None:
        try:
            order = self.get(order_id)
            self.session.delete(order)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Order delete failed id=%s", order_id)
            raise translate_store_error(e)
        except ServiceError:
            self.session.rollback()
            raise
        logger.info("Deleted order id=%s by user=%s", order_id, actor.id)

    def _write(self, order: Order, values: Dict[str, Any], expected_version: Optional[int] = None) -> None:
        if expected_version is not None and expected_version != order.version:
            raise Conflict(
                "Order was modified by another user",
                details={"expected_version": expected_version, "current_version": order.version},
            )
        table = Order.__table__
        values = dict(values, updated_at=utcnow(), version=order.version + 1)
        stmt = (
            update(table)
            .where(table.c.id == order.id, table.c.version == order.version)
            .values(**values)
        )
        result = self.session.connection().execute(stmt)
        if result.rowcount == 0:
            still_there = self.session.exec(select(Order.id).where(Order.id == order.id)).first()
            if still_there is None:
                raise NotFound("Record to update not found")
            raise Conflict("Order was modified by another user")
        # the row changed underneath the identity map
        self.session.expire(order)

    def repeat_form(self, spk: str) -> Dict[str, Any]:
        """Load an order by SPK and map it back onto the intake form fields."""
        order = self.session.exec(select(Order).where(Order.spk == spk)).first()
        if order is None:
            raise NotFound("Order not found")

        flags = {name: False for name in PRODUCT_TYPES}
        dtf_pass = None
        for item in (order.produk or order.tipe_produk or "").split(","):
            item = item.strip()
            if item.startswith("DTF"):
                flags["DTF"] = True
                m = DTF_PASS_RE.search(item)
                if m:
                    dtf_pass = m.group(1)
            elif item in flags:
                flags[item] = True

        customer = self.session.get(Customer, order.customer_id) if order.customer_id is not None else None
        form = {
            "customerId": str(order.customer_id) if order.customer_id is not None else "",
            "spk": order.spk or "",
            "jenisProduk": flags,
            "jumlah": order.qty or "",
            "asalBahan": self._origin_for_form(order),
            "statusProduksi": "REPEAT",
            "kategori": "REGULAR ORDER",
            "targetSelesai": format_timestamp(order.est_order),
            "namaBahan": order.nama_kain or "",
            "aplikasiProduk": order.nama_produk or "",
            "gsmKertas": order.gramasi or "",
            "lebarKertas": order.lebar_kertas or "",
            "fileWidth": order.lebar_file or "",
            "matchingColor": "YES" if order.warna_acuan == COLOR_MATCH else "NO",
            "notes": order.catatan or "",
            "harga": order.harga_satuan or "",
            "discountType": "none",
            "discountValue": "",
            "tax": False,
            "fileDesain": order.path or "",
            "marketing": order.marketing or "",
            "customerName": customer.nama if customer is not None else "",
            "tanggal": format_timestamp(order.tanggal),
            "id": order.id,
        }
        if dtf_pass:
            form["dtfPass"] = dtf_pass
        return form

    def _origin_for_form(self, order: Order) -> str:
        if order.asal_bahan_id is not None:
            if order.asal_bahan_id == order.customer_id:
                return ORIGIN_CUSTOMER
            in_house = OrderNormalizer(self.session).find_in_house_customer()
            if in_house is not None and in_house.id == order.asal_bahan_id:
                return ORIGIN_SMARTONE
            return str(order.asal_bahan_id)
        return order.tipe_bahan or ""
