"""Service-level errors and their HTTP mapping.

Every error carries the status code the API answers with, a short ``error``
string and an optional ``details`` payload. Anything that is not a
``ServiceError`` is rendered as a generic 500 by the app.
"""
import logging
import re
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, error: Optional[str] = None, details: Any = None):
        self.error = error or self.error
        self.details = details
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthorized(ServiceError):
    status_code = 401
    error = "Unauthorized"


class ValidationError(ServiceError):
    status_code = 400
    error = "Validation failed"


class NotFound(ServiceError):
    status_code = 404
    error = "Not found"


class Conflict(ServiceError):
    status_code = 409
    error = "Conflict"


class ConstraintViolation(ServiceError):
    status_code = 400
    error = "Constraint violation"

    def __init__(self, error: str, field: Optional[str]):
        self.field = field
        super().__init__(error, details={"field": field})


class StoreError(ServiceError):
    status_code = 500
    error = "Database error"


# sqlite: "UNIQUE constraint failed: orders.spk"
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(\w+)")
# postgres: 'Key (spk)=(0125001) already exists.' / 'Key (customer_id)=(9) is not present in table'
_PG_KEY_RE = re.compile(r"Key \(([\w, ]+)\)=")
_PG_CONSTRAINT_RE = re.compile(r'constraint "(\w+)"')


def _offending_field(message: str) -> Optional[str]:
    for pattern in (_SQLITE_UNIQUE_RE, _PG_KEY_RE, _PG_CONSTRAINT_RE):
        m = pattern.search(message)
        if m:
            return m.group(1)
    return None


def translate_store_error(exc: SQLAlchemyError) -> ServiceError:
    """Map a storage exception onto the service error taxonomy."""
    if isinstance(exc, (StaleDataError, NoResultFound)):
        return NotFound("Record to update not found")
    if isinstance(exc, IntegrityError):
        message = str(exc.orig) if exc.orig is not None else str(exc)
        field = _offending_field(message)
        lowered = message.lower()
        if "unique" in lowered or "already exists" in lowered:
            return ConstraintViolation(f"Unique constraint failed on {field or 'a field'}", field)
        if "foreign key" in lowered or "is not present" in lowered:
            return ConstraintViolation(f"Foreign key constraint failed on {field or 'a field'}", field)
        return ConstraintViolation("Constraint violation", field)
    logger.error("Unhandled store error: %s", exc)
    return StoreError("Database error")
