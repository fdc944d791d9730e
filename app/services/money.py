"""Money / rounding helpers.

Centralized so the calculator, converter and estimate endpoint use identical
rounding semantics.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

from app.constants import MAX_INPUT_EXPONENT, MONEY_PLACES

# Enough digits to quantize a product of three bounded inputs
_ROUNDING_PRECISION = 60


def round2(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half-up."""
    with localcontext() as ctx:
        ctx.prec = _ROUNDING_PRECISION
        return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """Coerce a wire value (int, float, numeric string, Decimal) to Decimal.

    Floats go through str() so 0.1 stays 0.1. Booleans are rejected even
    though bool is an int subclass.

    Raises:
        ValueError: if the value is not a finite number, or is 10**16 or
            larger in magnitude.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f'not a number: {value!r}')
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f'not a number: {value!r}')
    else:
        raise ValueError(f'not a number: {value!r}')
    if not result.is_finite():
        raise ValueError(f'not a finite number: {value!r}')
    if result and result.adjusted() > MAX_INPUT_EXPONENT:
        raise ValueError(f'number too large: {value!r}')
    return result


def to_json_number(value: Decimal) -> float:
    """Render a Decimal as a JSON number."""
    return float(value)
