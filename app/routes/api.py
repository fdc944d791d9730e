"""API routes for live pricing and currency conversion.

Handlers only read the rate cache; they never call a rate provider, so
request latency does not depend on upstream latency.
"""
from flask import Blueprint, jsonify, request, current_app

from app.constants import (
    CURRENCY_STALE_AFTER_SECONDS,
    FAMILY_CURRENCY,
    FAMILY_METAL,
    METAL_STALE_AFTER_SECONDS,
)
from app.data.currencies import get_ordered_currencies, is_valid_currency, normalize_code, parse_currency_list
from app.services.cache import get_rate_cache
from app.services.errors import PricingError, ValidationError
from app.services.fx import convert, rebase
from app.services.money import to_json_number
from app.services.pricing import compute, estimate_price, parse_pricing_request
from app.services.time_provider import get_now, isoformat

api_bp = Blueprint('api', __name__)


@api_bp.errorhandler(PricingError)
def _pricing_error(error: PricingError):
    current_app.logger.info(f"Rejected {request.method} {request.path}: {error}")
    return jsonify(error.to_dict()), error.status_code


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        raise ValidationError('Request body must be JSON')
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    return body


@api_bp.route('/currencies')
def currencies():
    """Return currencies in selector order, plus any the live snapshot knows."""
    snapshot = get_rate_cache().get(FAMILY_CURRENCY)
    currency_list = get_ordered_currencies(snapshot.codes())
    return jsonify({
        'currencies': currency_list,
        'default': snapshot.base,
        'count': len(currency_list),
    })


@api_bp.route('/currency/rates')
def currency_rates():
    """Return exchange rates against a base currency.

    Query Parameters:
        base: Base currency code (default: the snapshot's base)
        currencies: Comma-separated target codes (default: all known)

    Returns:
        {base, date, rates, timestamp} plus `fallback: true` when the
        built-in rates are being served.
    """
    snapshot = get_rate_cache().get(FAMILY_CURRENCY)
    base = normalize_code(request.args.get('base')) or snapshot.base
    if not is_valid_currency(base):
        raise ValidationError(f'Invalid currency: {base}', 'base')

    codes = parse_currency_list(request.args.get('currencies'))
    rates = rebase(snapshot, base, codes or None)

    response = {
        'base': base,
        'date': snapshot.fetched_at.date().isoformat(),
        'rates': {code: to_json_number(rate) for code, rate in rates.items()},
        'timestamp': isoformat(snapshot.fetched_at),
    }
    if snapshot.is_fallback:
        response['fallback'] = True
    return jsonify(response)


@api_bp.route('/currency/convert', methods=['POST'])
def currency_convert():
    """Convert an amount between two currencies.

    Request body:
    {
        "amount": "1000",
        "from": "INR",
        "to": "USD"
    }
    """
    body = _json_body()
    snapshot = get_rate_cache().get(FAMILY_CURRENCY)
    if 'amount' not in body or body.get('amount') in (None, ''):
        raise ValidationError('amount is required', 'amount')

    result = convert(body.get('amount'), body.get('from'), body.get('to'), snapshot)

    response = result.to_dict()
    if snapshot.is_fallback:
        response['fallback'] = True
    return jsonify(response)


@api_bp.route('/calculate-pricing', methods=['POST'])
def calculate_pricing():
    """Price a real-jewellery line item from the current metal rates.

    Request body:
    {
        "productType": "real",
        "material": "22k gold",
        "weight": 10,
        "makingCharges": 500,
        "gemstonesCost": 0,
        "diamondsCost": 0,
        "silverBillingMode": "live_rate",   // or "fixed_rate"
        "fixedRatePerGram": 0,              // required in fixed_rate mode
        "quantity": 1,
        "currency": "USD"                   // optional display currency
    }
    """
    body = _json_body()
    pricing_request = parse_pricing_request(body)

    cache = get_rate_cache()
    metal_snapshot = cache.get(FAMILY_METAL)
    now = get_now()

    target = normalize_code(body.get('currency'))
    if target and not is_valid_currency(target):
        raise ValidationError(f"Invalid currency: {body.get('currency')}", 'currency')

    # Compute everything before building the response so a failure in
    # either step returns no partial result.
    breakdown = compute(pricing_request, metal_snapshot, now=now)
    conversion = None
    currency_snapshot = None
    if target and target != metal_snapshot.currency:
        currency_snapshot = cache.get(FAMILY_CURRENCY)
        conversion = convert(breakdown.final_price, metal_snapshot.currency, target, currency_snapshot, now=now)

    response = {
        'breakdown': breakdown.to_dict(),
        'currency': metal_snapshot.currency,
        'rateSource': metal_snapshot.source,
        'timestamp': isoformat(now),
    }
    if conversion is not None:
        response['conversion'] = conversion.to_dict()
    if metal_snapshot.is_fallback or (currency_snapshot is not None and currency_snapshot.is_fallback):
        response['fallback'] = True
    return jsonify(response)


@api_bp.route('/market-rates')
def market_rates():
    """Return the latest metal rate snapshot."""
    cache = get_rate_cache()
    snapshot = cache.get(FAMILY_METAL)
    stored_at = cache.stored_at(FAMILY_METAL)

    response = snapshot.to_dict()
    response['id'] = cache.version(FAMILY_METAL)
    response['createdAt'] = isoformat(stored_at or snapshot.effective_at)
    response['stale'] = cache.is_stale(FAMILY_METAL, METAL_STALE_AFTER_SECONDS)
    if snapshot.is_fallback:
        response['fallback'] = True
    return jsonify(response)


@api_bp.route('/market-rates/calculate-price', methods=['POST'])
def market_rates_calculate_price():
    """Estimate a price as weight * rate(purity) * markup.

    Request body:
    {
        "weight": 10,
        "purity": "22k",
        "markup": 1.3     // optional, default 1.3
    }
    """
    body = _json_body()
    if body.get('weight') in (None, ''):
        raise ValidationError('weight is required', 'weight')
    if not body.get('purity'):
        raise ValidationError('purity is required', 'purity')

    snapshot = get_rate_cache().get(FAMILY_METAL)
    return jsonify(estimate_price(body.get('weight'), body.get('purity'), body.get('markup'), snapshot))


@api_bp.route('/rates/status')
def rates_status():
    """Report cache freshness and refresh thread state."""
    cache = get_rate_cache()
    scheduler = current_app.extensions.get('rate_scheduler')

    families = cache.status()
    families[FAMILY_METAL]['stale'] = cache.is_stale(FAMILY_METAL, METAL_STALE_AFTER_SECONDS)
    families[FAMILY_CURRENCY]['stale'] = cache.is_stale(FAMILY_CURRENCY, CURRENCY_STALE_AFTER_SECONDS)

    from app.services.config import get_refresh_config
    from app.services.providers.registry import get_provider_status
    return jsonify({
        'cache': families,
        'scheduler': scheduler.status() if scheduler else None,
        'providers': get_provider_status(),
        'config': get_refresh_config(),
        'generated_at': isoformat(get_now()),
    })

