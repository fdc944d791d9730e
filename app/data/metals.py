"""Metal purities and the built-in fallback metal rates."""
import re
from decimal import Decimal

# Conversion constant: troy ounce to grams
TROY_OZ_TO_GRAMS = Decimal('31.1035')

# Purity ids and the snapshot field each one reads
PURITY_24K = '24k'
PURITY_22K = '22k'
PURITY_18K = '18k'
PURITY_SILVER = 'silver'

PURITY_FIELDS = {
    PURITY_24K: 'rate24k',
    PURITY_22K: 'rate22k',
    PURITY_18K: 'rate18k',
    PURITY_SILVER: 'silver_rate',
}

# Gold purity as a fraction of the 24k rate
GOLD_PURITY_FRACTIONS = {
    PURITY_24K: Decimal('1'),
    PURITY_22K: Decimal('0.916'),
    PURITY_18K: Decimal('0.75'),
}

# Gold without a karat marker is billed as 22k
DEFAULT_GOLD_PURITY = PURITY_22K

# "24k", "24 k", "24kt", "24 karat", "24ct", "24 carat"
_KARAT_PATTERN = re.compile(r'\b(24|22|18)\s*(?:k|kt|karat|carat|ct)\b')
_SILVER_WORDS = ('silver', 'sterling')

# INR per gram, used until a live fetch succeeds
FALLBACK_METAL_RATES = {
    'rate24k': Decimal('6800.00'),
    'rate22k': Decimal('6200.00'),
    'rate18k': Decimal('5100.00'),
    'silver_rate': Decimal('82.50'),
}
FALLBACK_METAL_CURRENCY = 'INR'
FALLBACK_METAL_SOURCE = 'fallback'


class UnresolvablePurity(ValueError):
    """Material text names no metal we can price."""


def resolve_purity(material: str) -> str:
    """Map a free-text material to a purity id.

    A karat marker wins over any metal word, so "22k gold plated silver"
    resolves to 22k. Otherwise silver/sterling resolve to silver, and plain
    gold falls back to DEFAULT_GOLD_PURITY.

    Raises:
        UnresolvablePurity: if the text mentions neither a karat, silver
            nor gold.
    """
    text = (material or '').strip().lower()
    if not text:
        raise UnresolvablePurity('material is empty')

    match = _KARAT_PATTERN.search(text)
    if match:
        return f'{match.group(1)}k'
    if any(word in text for word in _SILVER_WORDS):
        return PURITY_SILVER
    if 'gold' in text:
        return DEFAULT_GOLD_PURITY
    raise UnresolvablePurity(f'cannot resolve purity from material: {material!r}')


def is_valid_purity(purity: str) -> bool:
    """Check if a purity id is valid."""
    return (purity or '').lower() in PURITY_FIELDS


def get_valid_purities() -> list[str]:
    """Get list of valid purity ids."""
    return list(PURITY_FIELDS.keys())
