"""Jewellery price calculation from live or fixed metal rates.

The calculator is a pure function of (request, metal snapshot, now): no
cache reads, no network, no global state besides the injected clock.

Breakdown for one item:
    ratePerGram  live rate for the material's purity, or the fixed rate
    metalCost    round2(weight * ratePerGram)
    subtotal     metalCost + makingCharges + gemstonesCost + diamondsCost
    gstAmount    round2(subtotal * GST_RATE)
    finalPrice   round2((subtotal + gstAmount) * quantity)
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.constants import (
    BILLING_FIXED_RATE,
    BILLING_LIVE_RATE,
    BILLING_MODES,
    DEFAULT_MARKUP,
    GST_RATE,
    PRODUCT_TYPES,
)
from app.data.metals import UnresolvablePurity, get_valid_purities, is_valid_purity, resolve_purity
from app.services.errors import ValidationError
from app.services.money import round2, to_decimal, to_json_number
from app.services.snapshots import MetalRateSnapshot
from app.services.time_provider import get_now, isoformat

ZERO = Decimal('0')


@dataclass(frozen=True)
class PricingRequest:
    product_type: str
    material: str
    weight_grams: Decimal
    making_charges: Decimal = ZERO
    gemstones_cost: Decimal = ZERO
    diamonds_cost: Decimal = ZERO
    billing_mode: str = BILLING_LIVE_RATE
    fixed_rate_per_gram: Decimal = ZERO
    quantity: int = 1


@dataclass(frozen=True)
class PricingBreakdown:
    weight_in_grams: Decimal
    purity: Optional[str]
    billing_mode: str
    rate_per_gram: Decimal
    metal_cost: Decimal
    making_charges: Decimal
    gemstones_cost: Decimal
    diamonds_cost: Decimal
    subtotal: Decimal
    gst_amount: Decimal
    quantity: int
    final_price: Decimal
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            'weightInGrams': to_json_number(self.weight_in_grams),
            'purity': self.purity,
            'billingMode': self.billing_mode,
            'ratePerGram': to_json_number(self.rate_per_gram),
            'metalCost': to_json_number(self.metal_cost),
            'makingCharges': to_json_number(self.making_charges),
            'gemstonesCost': to_json_number(self.gemstones_cost),
            'diamondsCost': to_json_number(self.diamonds_cost),
            'subtotal': to_json_number(self.subtotal),
            'gstAmount': to_json_number(self.gst_amount),
            'quantity': self.quantity,
            'finalPrice': to_json_number(self.final_price),
            'timestamp': isoformat(self.timestamp),
        }


# ==================== WIRE PARSING ====================

def _number(body: dict, key: str, default=None, required: bool = False) -> Decimal:
    value = body.get(key)
    if value is None or value == '':
        if required:
            raise ValidationError(f'{key} is required', key)
        return default
    try:
        result = to_decimal(value)
    except ValueError:
        raise ValidationError(f'{key} must be a number below 1e16', key)
    if result < 0:
        raise ValidationError(f'{key} must not be negative', key)
    return result


def _quantity(body: dict) -> int:
    value = body.get('quantity')
    if value is None or value == '':
        return 1
    try:
        number = to_decimal(value)
    except ValueError:
        raise ValidationError('quantity must be a whole number below 1e16', 'quantity')
    if number != number.to_integral_value():
        raise ValidationError('quantity must be a whole number', 'quantity')
    if number < 1:
        raise ValidationError('quantity must be at least 1', 'quantity')
    return int(number)


def parse_pricing_request(body) -> PricingRequest:
    """Coerce a wire body into a PricingRequest.

    Accepts numeric strings, defaults optional charges to 0 and quantity to
    1. `silverBillingMode` is the wire name for the billing mode.

    Raises:
        ValidationError: on missing or malformed fields.
    """
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')

    product_type = body.get('productType', 'real')
    if product_type not in PRODUCT_TYPES:
        raise ValidationError(f"productType must be one of: {', '.join(PRODUCT_TYPES)}", 'productType')

    material = body.get('material') or ''
    if not isinstance(material, str):
        raise ValidationError('material must be a string', 'material')

    billing_mode = body.get('silverBillingMode', body.get('billingMode')) or BILLING_LIVE_RATE
    if billing_mode not in BILLING_MODES:
        raise ValidationError(f"silverBillingMode must be one of: {', '.join(BILLING_MODES)}", 'silverBillingMode')

    fixed_rate = _number(body, 'fixedRatePerGram', default=ZERO, required=(billing_mode == BILLING_FIXED_RATE))

    return PricingRequest(
        product_type=product_type,
        material=material.strip(),
        weight_grams=_number(body, 'weight', required=True),
        making_charges=_number(body, 'makingCharges', default=ZERO),
        gemstones_cost=_number(body, 'gemstonesCost', default=ZERO),
        diamonds_cost=_number(body, 'diamondsCost', default=ZERO),
        billing_mode=billing_mode,
        fixed_rate_per_gram=fixed_rate,
        quantity=_quantity(body),
    )


# ==================== CALCULATION ====================

def validate_request(request: PricingRequest) -> None:
    """Reject requests the calculator cannot price."""
    if request.product_type == 'imitation':
        raise ValidationError('Imitation jewellery has a fixed price and is not priced by weight', 'productType')
    if not request.material:
        raise ValidationError('material is required for real jewellery', 'material')
    if request.weight_grams <= 0:
        raise ValidationError('weight must be greater than 0', 'weight')
    if request.billing_mode == BILLING_FIXED_RATE and request.fixed_rate_per_gram <= 0:
        raise ValidationError('fixedRatePerGram must be greater than 0 in fixed_rate mode', 'fixedRatePerGram')
    if request.quantity < 1:
        raise ValidationError('quantity must be at least 1', 'quantity')
    for field_name in ('making_charges', 'gemstones_cost', 'diamonds_cost'):
        if getattr(request, field_name) < 0:
            raise ValidationError(f'{field_name} must not be negative', field_name)


def resolve_rate(request: PricingRequest, snapshot: MetalRateSnapshot) -> tuple[Optional[str], Decimal]:
    """Return (purity, rate per gram) for a validated request."""
    if request.billing_mode == BILLING_FIXED_RATE:
        return None, request.fixed_rate_per_gram
    try:
        purity = resolve_purity(request.material)
    except UnresolvablePurity as e:
        raise ValidationError(str(e), 'material')
    return purity, snapshot.rate_for(purity)


def metal_cost(weight_grams: Decimal, rate_per_gram: Decimal) -> Decimal:
    """Weight times rate, rounded half-up to 2 places."""
    if weight_grams == 0:
        return round2(ZERO)
    return round2(weight_grams * rate_per_gram)


def compute(request: PricingRequest, snapshot: MetalRateSnapshot, now: Optional[datetime] = None) -> PricingBreakdown:
    """Price one line item.

    Raises:
        ValidationError: for imitation items, empty material, non-positive
            weight, a missing fixed rate, or an unresolvable purity.
    """
    validate_request(request)
    purity, rate_per_gram = resolve_rate(request, snapshot)

    making = round2(request.making_charges)
    gemstones = round2(request.gemstones_cost)
    diamonds = round2(request.diamonds_cost)

    cost = metal_cost(request.weight_grams, rate_per_gram)
    subtotal = cost + making + gemstones + diamonds
    gst_amount = round2(subtotal * GST_RATE)
    final_price = round2((subtotal + gst_amount) * request.quantity)

    return PricingBreakdown(
        weight_in_grams=request.weight_grams,
        purity=purity,
        billing_mode=request.billing_mode,
        rate_per_gram=rate_per_gram,
        metal_cost=cost,
        making_charges=making,
        gemstones_cost=gemstones,
        diamonds_cost=diamonds,
        subtotal=subtotal,
        gst_amount=gst_amount,
        quantity=request.quantity,
        final_price=final_price,
        timestamp=now if now is not None else get_now(),
    )


def estimate_price(weight, purity: str, markup, snapshot: MetalRateSnapshot) -> dict:
    """Quick markup estimate: weight * rate(purity) * markup.

    Used for rough quotes where making charges and tax are not itemised.
    """
    try:
        weight = to_decimal(weight)
    except ValueError:
        raise ValidationError('weight must be a number below 1e16', 'weight')
    if weight < 0:
        raise ValidationError('weight must not be negative', 'weight')

    purity = (purity or '').strip().lower() if isinstance(purity, str) else ''
    if not is_valid_purity(purity):
        raise ValidationError(f"purity must be one of: {', '.join(get_valid_purities())}", 'purity')

    if markup is None or markup == '':
        markup = DEFAULT_MARKUP
    try:
        markup = to_decimal(markup)
    except ValueError:
        raise ValidationError('markup must be a number below 1e16', 'markup')
    if markup <= 0:
        raise ValidationError('markup must be greater than 0', 'markup')

    price = round2(weight * snapshot.rate_for(purity) * markup)
    return {
        'price': to_json_number(price),
        'weight': to_json_number(weight),
        'purity': purity,
        'markup': to_json_number(markup),
    }
