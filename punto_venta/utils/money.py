"""
Monetary math: tax decomposition, currency conversion and price strings.

Amounts are ``Decimal`` at full precision. Rounding happens only in
``round_display`` (presentation) and ``quantize_amount`` (storage).
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from punto_venta.exceptions import ValidationError

Number = Union[int, float, Decimal, str]

TAX_RATE = Decimal('0.16')  # IVA

DISPLAY_QUANT = Decimal('0.01')
CENTS_QUANT = Decimal('0.01')
STORAGE_QUANT = Decimal('0.0001')
PRICE_DECIMALS = 3

_NON_PRICE_CHARS = re.compile(r'[^0-9.]')


def to_decimal(value: Number, field: str = 'monto') -> Decimal:
    """
    Convert user or database input to Decimal.

    Floats go through ``str`` so ``0.1`` stays ``0.1``.

    Raises:
        ValidationError: if the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        if value is None or isinstance(value, bool):
            raise ValidationError(f'El {field} es inválido')
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f'El {field} es inválido')
    if not result.is_finite():
        raise ValidationError(f'El {field} es inválido')
    return result


def decompose_price(price_with_tax: Number, rate: Decimal = TAX_RATE) -> dict:
    """
    Split a tax-inclusive price into its net and tax parts.

    Returns:
        dict with ``without_tax``, ``tax`` and ``with_tax`` (unrounded)
    """
    with_tax = to_decimal(price_with_tax, 'precio')
    without_tax = with_tax / (Decimal('1') + rate)
    return {
        'without_tax': without_tax,
        'tax': with_tax - without_tax,
        'with_tax': with_tax,
    }


def validate_exchange_rate(exchange_rate) -> Decimal:
    """Return the rate as Decimal or raise if it is unset or not positive."""
    if exchange_rate is None or exchange_rate == '':
        raise ValidationError('Debes configurar la tasa de cambio antes de vender')
    rate = to_decimal(exchange_rate, 'tasa de cambio')
    if rate <= 0:
        raise ValidationError('La tasa de cambio debe ser mayor a 0')
    return rate


def to_local(amount_usd: Number, exchange_rate: Number) -> Decimal:
    """Convert a USD amount to local currency."""
    return to_decimal(amount_usd) * validate_exchange_rate(exchange_rate)


def round_display(value: Number) -> Decimal:
    """Round half-up to two decimals for presentation."""
    return to_decimal(value).quantize(DISPLAY_QUANT, rounding=ROUND_HALF_UP)


def quantize_amount(value: Number) -> Decimal:
    """Round to the four fractional digits stored in the database."""
    return to_decimal(value).quantize(STORAGE_QUANT, rounding=ROUND_HALF_UP)


def quantize_cents(value: Number, field: str = 'monto') -> Decimal:
    """
    Round half-up to cents.

    Fund amounts, balances and fee percentages are stored with two
    fractional digits, so inputs are rounded before any computation.
    """
    return to_decimal(value, field).quantize(CENTS_QUANT, rounding=ROUND_HALF_UP)


def format_price(raw) -> str:
    """
    Normalize a typed price to a string with exactly 3 fractional digits.

    Non-numeric characters are stripped, only the first dot is kept as the
    decimal separator, extra digits are truncated and missing ones padded.
    Empty or invalid input yields ``'0.000'``.

    Examples:
        format_price('12') -> '12.000'
        format_price('$1,5.23456') -> '15.234'
        format_price('abc') -> '0.000'
    """
    if raw is None or isinstance(raw, bool):
        return '0.000'
    if isinstance(raw, float):
        raw = repr(raw)
    elif isinstance(raw, Decimal):
        raw = format(raw, 'f')

    cleaned = _NON_PRICE_CHARS.sub('', str(raw))
    if '.' in cleaned:
        integer_part, _, fraction = cleaned.partition('.')
        fraction = fraction.replace('.', '')
    else:
        integer_part, fraction = cleaned, ''

    if not integer_part and not fraction:
        return '0.000'

    integer_part = str(int(integer_part)) if integer_part else '0'
    fraction = (fraction + '0' * PRICE_DECIMALS)[:PRICE_DECIMALS]
    return f'{integer_part}.{fraction}'


def parse_price(raw) -> Decimal:
    """Decimal value of ``format_price(raw)``."""
    return Decimal(format_price(raw))
