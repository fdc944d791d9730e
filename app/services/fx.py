"""Currency conversion service."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from app.data.currencies import normalize_code
from app.services.errors import UnsupportedCurrencyError, ValidationError
from app.services.money import round2, to_decimal, to_json_number
from app.services.snapshots import CurrencyRateSnapshot
from app.services.time_provider import get_now, isoformat

ONE = Decimal('1')


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Decimal
    converted_amount: Decimal
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            'amount': to_json_number(self.amount),
            'from': self.from_currency,
            'to': self.to_currency,
            'rate': to_json_number(self.rate),
            'convertedAmount': to_json_number(self.converted_amount),
            'timestamp': isoformat(self.timestamp),
        }


def cross_rate(from_currency: str, to_currency: str, snapshot: CurrencyRateSnapshot) -> Decimal:
    """Units of `to_currency` per 1 unit of `from_currency`.

    Rates not quoted directly are triangulated through the snapshot's base:
    rate = rates[to] / rates[from].
    """
    if not snapshot.supports(to_currency):
        raise UnsupportedCurrencyError(to_currency)
    if not snapshot.supports(from_currency):
        raise UnsupportedCurrencyError(from_currency)
    if from_currency == to_currency:
        return ONE

    if from_currency == snapshot.base:
        return snapshot.rates[to_currency]
    if to_currency == snapshot.base:
        return ONE / snapshot.rates[from_currency]
    return snapshot.rates[to_currency] / snapshot.rates[from_currency]


def convert(amount, from_currency: str, to_currency: str, snapshot: CurrencyRateSnapshot,
            now: Optional[datetime] = None) -> ConversionResult:
    """Convert `amount` between currencies using one snapshot.

    Raises:
        ValidationError: if amount is not a non-negative number.
        UnsupportedCurrencyError: if either code is unknown to the snapshot.
    """
    try:
        amount = to_decimal(amount)
    except ValueError:
        raise ValidationError('amount must be a number below 1e16', 'amount')
    if amount < 0:
        raise ValidationError('amount must not be negative', 'amount')

    from_code = normalize_code(from_currency)
    to_code = normalize_code(to_currency)
    if not from_code:
        raise ValidationError('from is required', 'from')
    if not to_code:
        raise ValidationError('to is required', 'to')

    rate = cross_rate(from_code, to_code, snapshot)
    if from_code == to_code:
        converted = amount
    elif amount == 0:
        converted = round2(Decimal('0'))
    else:
        converted = round2(amount * rate)

    return ConversionResult(
        amount=amount,
        from_currency=from_code,
        to_currency=to_code,
        rate=rate,
        converted_amount=converted,
        timestamp=now if now is not None else get_now(),
    )


def rebase(snapshot: CurrencyRateSnapshot, base: str, codes: Optional[Iterable[str]] = None) -> dict[str, Decimal]:
    """Express the snapshot's rates against another base.

    Args:
        base: New base currency; must be known to the snapshot.
        codes: Optional subset of target codes. Unknown codes are skipped.

    Returns:
        {code: units of code per 1 `base`}, including base itself as 1.
    """
    base = normalize_code(base)
    if not snapshot.supports(base):
        raise UnsupportedCurrencyError(base)

    wanted = list(codes) if codes else snapshot.codes()
    rates = {}
    for code in wanted:
        if snapshot.supports(code):
            rates[code] = cross_rate(base, code, snapshot)
    return rates
