from datetime import date
from decimal import Decimal, InvalidOperation

from ..errors import ValidationError


def require_fields(data, fields):
    if data is None:
        raise ValidationError("invalid_json")

    missing = [f for f in fields if f not in data or data[f] in ("", None)]
    if missing:
        raise ValidationError("missing_fields", fields=missing)

    return data


def parse_date(value, field):
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        raise ValidationError("invalid_date", field=field, expected="YYYY-MM-DD")


def parse_int(value, field, minimum=None):
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError("invalid_integer", field=field)
    if minimum is not None and n < minimum:
        raise ValidationError("invalid_integer", field=field, minimum=minimum)
    return n


_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def parse_bool(value, field):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError("invalid_boolean", field=field)


def parse_money(value, field, allow_negative=False):
    try:
        v = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValidationError("invalid_amount", field=field)
    if not v.is_finite() or (v < 0 and not allow_negative):
        raise ValidationError("invalid_amount", field=field)
    return v
