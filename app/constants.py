"""Shared constants for jewellery pricing."""
from decimal import Decimal

# GST applied to the pre-tax subtotal (3%)
GST_RATE = Decimal('0.03')

# Refresh cadence per rate family, in seconds
METAL_REFRESH_SECONDS = 300
CURRENCY_REFRESH_SECONDS = 60

# A snapshot older than this is reported as stale (two missed ticks)
METAL_STALE_AFTER_SECONDS = METAL_REFRESH_SECONDS * 2
CURRENCY_STALE_AFTER_SECONDS = CURRENCY_REFRESH_SECONDS * 2

# Rate families held by the cache
FAMILY_METAL = 'metal'
FAMILY_CURRENCY = 'currency'
RATE_FAMILIES = (FAMILY_METAL, FAMILY_CURRENCY)

# Product types and billing modes
PRODUCT_TYPES = ('real', 'imitation')
BILLING_LIVE_RATE = 'live_rate'
BILLING_FIXED_RATE = 'fixed_rate'
BILLING_MODES = (BILLING_LIVE_RATE, BILLING_FIXED_RATE)

# Default multiplier for the simple market-rate estimate
DEFAULT_MARKUP = Decimal('1.3')

# Monetary precision
MONEY_PLACES = Decimal('0.01')

# Largest accepted input is just under 10**16 (weights, charges, amounts, markup)
MAX_INPUT_EXPONENT = 15
