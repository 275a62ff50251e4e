"""Order field normalization.

The edit form and older clients post the same logical field under different
names (``fileWidth`` from the form, ``lebar_file`` from rows that were loaded
straight from the table). ``OrderNormalizer.normalize`` folds all of them into
a single ``{column: value}`` mapping that can be written in one statement.

Rules applied on top of the alias pass:

- DTF orders never reference fabric: fabric name/length/width become ``""``
  and the fabric origin (relation and free text) is cleared. A payload that
  says nothing about the product type is judged by the stored order.
- ``asalBahan`` is not a column. ``CUSTOMER`` links the fabric origin to the
  order's customer, ``SMARTONE`` links it to the in-house customer row, any
  other value lands in ``tipe_bahan``.
- Product-type flags are joined into ``produk``; DTF orders may carry a pass
  selector (``4 PASS`` / ``6 PASS``).
- Discount and tax are kept typed (``DiscountSpec`` / ``TaxSpec``) and only
  encoded to the legacy strings when the payload is built.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from printshop.models.order import Order, writable_columns
from printshop.models.party import Customer
from printshop.services.errors import ValidationError

logger = logging.getLogger(__name__)

MISSING = object()

PRODUCT_TYPES = ("PRINT", "PRESS", "CUTTING", "DTF", "SEWING")
DTF_PASSES = ("4 PASS", "6 PASS")

ORIGIN_CUSTOMER = "CUSTOMER"
ORIGIN_SMARTONE = "SMARTONE"

FABRIC_COLUMNS = ("nama_kain", "jumlah_kain", "lebar_kain")
DATE_COLUMNS = ("tanggal", "est_order")

COLOR_MATCH = "ADA"
COLOR_NO_MATCH = "TIDAK ADA"


@dataclass(frozen=True)
class FieldAlias:
    canonical: str
    # lookup order: form-style name(s) first, database-style name last
    aliases: Tuple[str, ...]


FIELD_ALIASES: List[FieldAlias] = [
    FieldAlias("est_order", ("targetSelesai", "target_selesai", "est_order")),
    FieldAlias("nama_produk", ("aplikasiProduk", "nama_produk")),
    FieldAlias("jumlah_kain", ("fabricLength", "jumlah_kain")),
    FieldAlias("lebar_kain", ("lebarKain", "lebar_kain")),
    FieldAlias("gramasi", ("gsmKertas", "gramasi")),
    FieldAlias("lebar_kertas", ("lebarKertas", "lebar_kertas")),
    FieldAlias("lebar_file", ("fileWidth", "lebar_file")),
    FieldAlias("path", ("fileDesain", "path")),
    FieldAlias("nama_kain", ("namaBahan", "nama_kain")),
    # not a column; resolved into asal_bahan_id / tipe_bahan
    FieldAlias("asal_bahan", ("asalBahan", "asal_bahan")),
    FieldAlias("customer_id", ("customerId", "customer_id")),
    FieldAlias("no_project", ("projectNumber", "no_project")),
    FieldAlias("catatan", ("notes", "catatan")),
    FieldAlias("harga_satuan", ("harga", "harga_satuan")),
    FieldAlias("qty", ("jumlah", "qty")),
    FieldAlias("statusprod", ("statusProduksi", "statusprod")),
    FieldAlias("tipe_produk", ("tipeProduk", "tipe_produk")),
    FieldAlias("warna_acuan", ("warna_acuan",)),
    FieldAlias("produk", ("produk",)),
    FieldAlias("spk", ("spk",)),
    FieldAlias("tanggal", ("tanggal",)),
    FieldAlias("marketing", ("marketing",)),
    FieldAlias("kategori", ("kategori",)),
    FieldAlias("status", ("status",)),
    FieldAlias("statusm", ("statusm",)),
    FieldAlias("capture", ("capture",)),
    FieldAlias("capture_name", ("captureName", "capture_name")),
]


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def resolve_alias(data: Dict[str, Any], alias: FieldAlias) -> Any:
    """First non-empty value wins; otherwise the first supplied one (possibly empty)."""
    supplied = MISSING
    for name in alias.aliases:
        if name not in data:
            continue
        value = data[name]
        if not _is_empty(value):
            return value
        if supplied is MISSING:
            supplied = value
    return supplied


def resolve_aliases(data: Dict[str, Any], table: List[FieldAlias] = FIELD_ALIASES) -> Dict[str, Any]:
    resolved = {}
    for alias in table:
        value = resolve_alias(data, alias)
        if value is not MISSING:
            resolved[alias.canonical] = value
    return resolved


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def as_utc(value: Any, field: str) -> Optional[datetime]:
    """Dates arrive already parsed; naive values are taken to be UTC."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValidationError(details={field: f"Expected a datetime, got {type(value).__name__}"})
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_dtf_order(data: Dict[str, Any], resolved: Dict[str, Any], order: Optional[Order] = None) -> bool:
    """Three independent signals, checked in priority order.

    When the payload carries none of them the stored ``order`` is checked instead.
    """
    flags = data.get("jenisProduk")
    if flags is None and "produk" not in resolved and "tipe_produk" not in resolved and order is not None:
        resolved = {"produk": order.produk, "tipe_produk": order.tipe_produk}
    product_text = flags if isinstance(flags, str) else resolved.get("produk")
    if isinstance(product_text, str) and "DTF" in product_text.upper():
        return True
    if isinstance(flags, dict) and flags.get("DTF") is True:
        return True
    category = resolved.get("tipe_produk")
    return isinstance(category, str) and category.strip().upper() == "DTF"


def encode_product_types(flags: Dict[str, Any], dtf_pass: Optional[str] = None) -> str:
    selected = [name for name in PRODUCT_TYPES if flags.get(name) is True]
    joined = ", ".join(selected)
    if "DTF" in selected and dtf_pass in DTF_PASSES:
        joined = f"{joined} {dtf_pass}"
    return joined


def encode_color_match(value: Any) -> Optional[str]:
    if value is True or (isinstance(value, str) and value.upper() == "YES"):
        return COLOR_MATCH
    if value is False or (isinstance(value, str) and value.upper() == "NO"):
        return COLOR_NO_MATCH
    return None


@dataclass
class DiscountSpec:
    kind: str = "none"
    value: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "DiscountSpec":
        kind = (data.get("discountType") or "none").lower()
        return cls(kind=kind, value=as_text(data.get("discountValue")))

    def to_column(self) -> Optional[str]:
        if _is_empty(self.value):
            return None
        if self.kind == "percentage":
            return f"{self.value}%"
        if self.kind == "fixed":
            return self.value
        return None


@dataclass
class TaxSpec:
    enabled: bool = False
    percentage: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> Optional["TaxSpec"]:
        """None when the payload says nothing about tax at all."""
        if "tax" not in data and "taxPercentage" not in data:
            return None
        return cls(enabled=data.get("tax") is True, percentage=as_text(data.get("taxPercentage")))

    def to_column(self) -> Optional[str]:
        if self.enabled and not _is_empty(self.percentage):
            return f"Tax: {self.percentage}%"
        return None


class OrderNormalizer:
    """Builds the column payload for an order update.

    Needs a session for the two lookups the rules depend on: the customer
    referenced by the payload and the in-house SMARTONE customer.
    """

    def __init__(self, session: Session):
        self.session = session

    def normalize(self, data: Dict[str, Any], order: Order) -> Dict[str, Any]:
        resolved = resolve_aliases(data)
        values: Dict[str, Any] = {}

        customer_id = self._resolve_customer(resolved)
        if customer_id is not None:
            values["customer_id"] = customer_id
        else:
            customer_id = order.customer_id

        for column, value in resolved.items():
            if column in ("customer_id", "asal_bahan", "produk", "warna_acuan") or column in FABRIC_COLUMNS:
                continue
            if column in DATE_COLUMNS:
                values[column] = as_utc(value, column)
            else:
                values[column] = as_text(value)

        if is_dtf_order(data, resolved, order):
            logger.debug("DTF order %s: clearing fabric fields and origin", order.id)
            for column in FABRIC_COLUMNS:
                values[column] = ""
            values["asal_bahan_id"] = None
            values["tipe_bahan"] = None
        else:
            for column in FABRIC_COLUMNS:
                if column in resolved:
                    values[column] = as_text(resolved[column])
            origin = resolved.get("asal_bahan")
            if not _is_empty(origin):
                values.update(self._resolve_fabric_origin(str(origin).strip(), customer_id))

        produk = self._resolve_product_types(data, resolved)
        if produk is not None:
            values["produk"] = produk

        color = encode_color_match(data.get("matchingColor"))
        if color is not None:
            values["warna_acuan"] = color
        elif "warna_acuan" in resolved:
            values["warna_acuan"] = as_text(resolved["warna_acuan"])

        values["diskon"] = DiscountSpec.from_payload(data).to_column()

        tax = TaxSpec.from_payload(data)
        if tax is not None:
            values["tambah_bahan"] = tax.to_column()
        elif not (order.tambah_bahan and "Tax:" in order.tambah_bahan):
            values["tambah_bahan"] = None

        allowed = writable_columns()
        dropped = sorted(k for k in values if k not in allowed)
        if dropped:
            logger.debug("Dropping non-column keys from order payload: %s", dropped)
        return {k: v for k, v in values.items() if k in allowed}

    def _resolve_customer(self, resolved: Dict[str, Any]) -> Optional[int]:
        raw = resolved.get("customer_id")
        if _is_empty(raw):
            return None
        try:
            customer_id = int(str(raw).strip())
        except ValueError:
            raise ValidationError("Customer not found", details={"customer_id": f"Invalid customer id: {raw}"})
        if self.session.get(Customer, customer_id) is None:
            raise ValidationError("Customer not found", details={"customer_id": str(customer_id)})
        return customer_id

    def _resolve_fabric_origin(self, origin: str, customer_id: Optional[int]) -> Dict[str, Any]:
        if origin.upper() == ORIGIN_CUSTOMER:
            if customer_id is None:
                logger.warning("Fabric origin CUSTOMER but order has no customer; skipping relation")
                return {}
            return {"asal_bahan_id": customer_id}

        if origin.upper() == ORIGIN_SMARTONE:
            in_house = self.find_in_house_customer()
            if in_house is None:
                logger.warning("No customer named like %s; fabric origin relation skipped", ORIGIN_SMARTONE)
                return {}
            return {"asal_bahan_id": in_house.id}

        return {"tipe_bahan": origin}

    def find_in_house_customer(self) -> Optional[Customer]:
        stmt = (
            select(Customer)
            .where(Customer.nama.ilike(f"%{ORIGIN_SMARTONE}%"))
            .order_by(Customer.id)
        )
        return self.session.exec(stmt).first()

    def _resolve_product_types(self, data: Dict[str, Any], resolved: Dict[str, Any]) -> Optional[str]:
        flags = data.get("jenisProduk")
        if isinstance(flags, dict):
            return encode_product_types(flags, data.get("dtfPass"))
        if isinstance(flags, str):
            return flags
        if "produk" in resolved:
            return as_text(resolved["produk"])
        return None
