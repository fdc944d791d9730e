"""Storefront currencies and the built-in fallback exchange rates.

Priority tiers:
  1. INR (store currency, always first)
  2. DISPLAY_CURRENCIES (offered in the currency selector)
  3. Anything else the rate provider returns, alphabetically
"""
import re
from decimal import Decimal

DEFAULT_CURRENCY = 'INR'

# Currencies offered in the storefront selector
# Format: code -> (name, symbol)
DISPLAY_CURRENCIES: dict[str, tuple[str, str]] = {
    'INR': ('Indian Rupee', '₹'),
    'USD': ('US Dollar', '$'),
    'EUR': ('Euro', '€'),
    'GBP': ('British Pound', '£'),
    'AED': ('UAE Dirham', 'د.إ'),
}

# Units of each currency per 1 INR, used until a live fetch succeeds
FALLBACK_FX_BASE = 'INR'
FALLBACK_FX_RATES: dict[str, Decimal] = {
    'INR': Decimal('1'),
    'USD': Decimal('0.012'),
    'EUR': Decimal('0.011'),
    'GBP': Decimal('0.0095'),
    'AED': Decimal('0.044'),
}

_CODE_PATTERN = re.compile(r'^[A-Z]{3}$')


def normalize_code(code) -> str:
    """Upper-case and strip a currency code; non-strings become ''."""
    if not isinstance(code, str):
        return ''
    return code.strip().upper()


def is_valid_currency(code: str) -> bool:
    """Check if a string looks like an ISO 4217 code."""
    return bool(_CODE_PATTERN.match(normalize_code(code)))


def parse_currency_list(csv: str | None) -> list[str]:
    """Parse a comma-separated code list, dropping blanks and duplicates."""
    if not csv:
        return []
    codes = []
    for part in csv.split(','):
        code = normalize_code(part)
        if code and code not in codes:
            codes.append(code)
    return codes


def get_ordered_currencies(available: list[str] | None = None) -> list[dict]:
    """Return currencies in display priority order.

    Args:
        available: Codes known to the current rate snapshot. Codes outside
            DISPLAY_CURRENCIES are appended alphabetically.
    """
    result = []
    seen = set()

    for code, (name, symbol) in DISPLAY_CURRENCIES.items():
        result.append({
            'code': code,
            'name': name,
            'symbol': symbol,
            'priority': 1 if code == DEFAULT_CURRENCY else 2,
        })
        seen.add(code)

    for code in sorted(available or []):
        if code not in seen:
            result.append({'code': code, 'name': code, 'symbol': code, 'priority': 3})
            seen.add(code)

    return result
