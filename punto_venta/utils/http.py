"""Request parsing helpers shared by the JSON blueprints."""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from flask import request
from flask.json.provider import DefaultJSONProvider

from punto_venta.exceptions import ValidationError


class PosJSONProvider(DefaultJSONProvider):
    """Dates as ISO 8601 instead of HTTP dates; Decimals stay strings."""

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def get_payload() -> dict:
    """JSON body or form fields, whichever the client sent."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def require_int(payload: dict, field: str, message: Optional[str] = None) -> int:
    """Whole number from the payload. Booleans and fractions like 1.5 are rejected."""
    value = payload.get(field)
    error = message or f'El campo {field} es inválido'
    if isinstance(value, bool) or value is None:
        raise ValidationError(error)
    if isinstance(value, int):
        return value
    try:
        as_decimal = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(error)
    if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
        raise ValidationError(error)
    return int(as_decimal)


def parse_date_arg(name: str) -> Optional[date]:
    """Read a YYYY-MM-DD query argument."""
    raw = request.args.get(name, '').strip()
    if not raw:
        return None
    try:
        return datetime.strptime(raw, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Fecha inválida: {raw}')
