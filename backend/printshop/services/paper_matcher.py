import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from printshop.models.paper import PaperStock
from printshop.services.errors import NotFound, StoreError

logger = logging.getLogger(__name__)

TOLERANCE = 0.05


@dataclass
class PaperSpec:
    paper_type: str
    gsm: float
    width: float
    length: float


@dataclass
class MatchResult:
    stock: PaperStock
    type_matches: bool
    gsm_matches: bool
    width_matches: bool
    length_matches: bool
    available: bool
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def stock_summary(self) -> Dict[str, Any]:
        s = self.stock
        return {
            "id": s.id,
            "name": s.name,
            "type": s.type,
            "gsm": s.gsm,
            "width": s.width,
            "length": s.length,
            "remainingLength": s.remaining_length or 0,
            "approved": s.approved,
        }

    def to_dict(self) -> Dict[str, Any]:
        if self.valid:
            return {
                "valid": True,
                "message": "Barcode validated successfully. Paper stock matches request specifications.",
                "stock": self.stock_summary(),
            }
        return {"valid": False, "errors": list(self.errors), "stock": self.stock_summary()}


def coerce_number(value: Any, name: str) -> float:
    """Unparseable input counts as 0; the caller still gets a verdict."""
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        logger.warning("Invalid %s value from request: %r", name, value)
        return 0.0
    if number != number:  # NaN
        logger.warning("Invalid %s value from request: %r", name, value)
        return 0.0
    return number


def _fmt(number: Optional[float]) -> str:
    if number is None:
        return "0"
    if float(number).is_integer():
        return str(int(number))
    return str(number)


def within_tolerance(requested: float, actual: float, tolerance: float = TOLERANCE) -> bool:
    return abs(requested - actual) <= actual * tolerance


class PaperMatcher:
    """Checks a scanned paper roll against a requested specification.

    Checks (all independent, one message per failure):
    - type: case-insensitive equality
    - gsm, width: within 5% of the stock value
    - length: untracked stock length, or stock at least as long, or within 5%
    - availability: the stock row must be approved
    """

    def __init__(self, session: Session, tolerance: float = TOLERANCE):
        self.session = session
        self.tolerance = tolerance

    def find_stock(self, code: str) -> PaperStock:
        try:
            stock = self.session.exec(select(PaperStock).where(PaperStock.qr_code == code)).first()
        except SQLAlchemyError as e:
            logger.exception("Database error when looking up paper stock code=%s: %s", code, e)
            raise StoreError("Database error", details="Failed to query the database for the barcode")
        if stock is None:
            logger.info("No paper stock found with QR code: %s", code)
            raise NotFound("Barcode not found in inventory", details=f"No paper stock found with barcode: {code}")
        return stock

    def match(self, stock: PaperStock, spec: PaperSpec) -> MatchResult:
        stock_length = stock.length or 0
        type_matches = (stock.type or "").lower() == (spec.paper_type or "").lower()
        gsm_matches = within_tolerance(spec.gsm, stock.gsm, self.tolerance)
        width_matches = within_tolerance(spec.width, stock.width, self.tolerance)
        length_matches = (
            stock_length == 0
            or stock_length >= spec.length
            or within_tolerance(spec.length, stock_length, self.tolerance)
        )
        available = stock.approved is True

        errors = []
        if not type_matches:
            errors.append(f"Paper type mismatch: Requested {spec.paper_type}, found {stock.type}")
        if not gsm_matches:
            errors.append(f"GSM mismatch: Requested {_fmt(spec.gsm)}, found {_fmt(stock.gsm)}")
        if not width_matches:
            errors.append(f"Width mismatch: Requested {_fmt(spec.width)}cm, found {_fmt(stock.width)}cm")
        if not length_matches:
            errors.append(f"Length mismatch: Requested {_fmt(spec.length)}cm, found {_fmt(stock_length)}cm")
        if not available:
            errors.append("Paper stock not available: Status Not Approved")

        logger.debug(
            "Match code=%s type=%s gsm=%s width=%s length=%s available=%s",
            stock.qr_code, type_matches, gsm_matches, width_matches, length_matches, available,
        )
        return MatchResult(
            stock=stock,
            type_matches=type_matches,
            gsm_matches=gsm_matches,
            width_matches=width_matches,
            length_matches=length_matches,
            available=available,
            errors=errors,
        )

    def validate(self, code: str, paper_type: str, gsm: Any, width: Any, length: Any) -> MatchResult:
        stock = self.find_stock(code)
        spec = PaperSpec(
            paper_type=paper_type,
            gsm=coerce_number(gsm, "GSM"),
            width=coerce_number(width, "width"),
            length=coerce_number(length, "length"),
        )
        return self.match(stock, spec)
