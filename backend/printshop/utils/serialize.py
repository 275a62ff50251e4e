from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Optional

from sqlmodel import SQLModel

# ids stored as BIGINT; sent to clients as decimal strings
BIGINT_FIELDS = frozenset({"customer_id", "asal_bahan_id"})


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """UTC, millisecond precision, trailing Z (e.g. 2025-01-31T08:00:00.000Z)."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    # naive values (SQLite reads) are already UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return format_timestamp(value)
    return value


def serialize_record(record: Optional[SQLModel], bigint_fields: Iterable[str] = BIGINT_FIELDS) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    bigint_fields = set(bigint_fields)
    out = {}
    for key, value in record.model_dump().items():
        if key in bigint_fields and value is not None:
            out[key] = str(value)
        else:
            out[key] = to_jsonable(value)
    return out
