from datetime import datetime
from typing import Any, Optional, Union

from bson.objectid import ObjectId
from bson.errors import InvalidId

from errors import ValidationError


def serialize_doc(doc):
    """Mongo document -> JSON-ready dict (``_id`` -> ``id``, ObjectIds and datetimes as strings)."""
    if not doc:
        return doc
    return _serialize(dict(doc))


def _serialize(value: Any):
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if k == "_id":
                out["id"] = _serialize(v)
            else:
                out[k] = _serialize(v)
        return out
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def parse_object_id(value: str, label: str = "id") -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label}")


def parse_bool(value: Union[str, bool, None]) -> bool:
    return value is True or value == "true"


def parse_number(value: Union[str, int, float, None], field: str) -> Optional[float]:
    """Form/JSON numbers arrive as numbers or strings; empty string means absent."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number.")


def parse_int(value: Union[str, int, None], field: str) -> Optional[int]:
    number = parse_number(value, field)
    if number is None:
        return None
    if not number.is_integer():
        raise ValidationError(f"{field} must be a whole number.")
    return int(number)


def format_amount(value: Union[int, float]) -> str:
    """Exact text for a stored amount: 100 -> "100", 1234.567 -> "1234.567"."""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)
