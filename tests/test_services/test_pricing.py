"""Tests for the pricing calculator."""
from decimal import Decimal

import pytest

from app.services.errors import ValidationError
from app.services.pricing import (
    PricingRequest,
    compute,
    estimate_price,
    metal_cost,
    parse_pricing_request,
)


def _request(**overrides):
    values = dict(
        product_type='real',
        material='24k gold',
        weight_grams=Decimal('10'),
        making_charges=Decimal('500'),
    )
    values.update(overrides)
    return PricingRequest(**values)


class TestCompute:
    """Tests for compute()."""

    def test_live_rate_24k_breakdown(self, metal_snapshot, frozen_now):
        """10g of 24k at 6000/g with 500 making charges."""
        breakdown = compute(_request(), metal_snapshot, now=frozen_now)

        assert breakdown.purity == '24k'
        assert breakdown.rate_per_gram == Decimal('6000')
        assert breakdown.metal_cost == Decimal('60000.00')
        assert breakdown.subtotal == Decimal('60500.00')
        assert breakdown.gst_amount == Decimal('1815.00')
        assert breakdown.final_price == Decimal('62315.00')
        assert breakdown.timestamp == frozen_now

    def test_fixed_rate_ignores_snapshot(self, metal_snapshot, frozen_now):
        """Fixed-rate billing uses the merchant rate, not the market one."""
        request = _request(
            material='silver',
            weight_grams=Decimal('5'),
            making_charges=Decimal('0'),
            billing_mode='fixed_rate',
            fixed_rate_per_gram=Decimal('5000'),
        )
        breakdown = compute(request, metal_snapshot, now=frozen_now)

        assert breakdown.purity is None
        assert breakdown.rate_per_gram == Decimal('5000')
        assert breakdown.metal_cost == Decimal('25000.00')
        assert breakdown.subtotal == Decimal('25000.00')
        assert breakdown.gst_amount == Decimal('750.00')
        assert breakdown.final_price == Decimal('25750.00')

    def test_subtotal_is_sum_of_parts(self, metal_snapshot):
        request = _request(
            material='18k gold',
            weight_grams=Decimal('3.337'),
            making_charges=Decimal('120.505'),
            gemstones_cost=Decimal('99.99'),
            diamonds_cost=Decimal('1500'),
        )
        breakdown = compute(request, metal_snapshot)

        parts = (breakdown.metal_cost + breakdown.making_charges
                 + breakdown.gemstones_cost + breakdown.diamonds_cost)
        assert breakdown.subtotal == parts
        assert breakdown.making_charges == Decimal('120.51')

    def test_quantity_multiplies_taxed_total(self, metal_snapshot):
        single = compute(_request(), metal_snapshot)
        triple = compute(_request(quantity=3), metal_snapshot)

        assert triple.final_price == single.final_price * 3
        assert triple.subtotal == single.subtotal

    def test_final_price_rounded_half_up(self, metal_snapshot):
        """0.5 cents of GST rounds up."""
        request = _request(
            billing_mode='fixed_rate',
            fixed_rate_per_gram=Decimal('1'),
            weight_grams=Decimal('0.5'),
            making_charges=Decimal('0'),
        )
        breakdown = compute(request, metal_snapshot)

        # subtotal 0.50, GST 0.015 -> 0.02
        assert breakdown.gst_amount == Decimal('0.02')
        assert breakdown.final_price == Decimal('0.52')

    def test_same_inputs_same_result(self, metal_snapshot, frozen_now):
        first = compute(_request(), metal_snapshot, now=frozen_now)
        second = compute(_request(), metal_snapshot, now=frozen_now)
        assert first == second

    def test_timestamp_comes_from_time_provider(self, metal_snapshot, frozen_time, frozen_now):
        breakdown = compute(_request(), metal_snapshot)
        assert breakdown.timestamp == frozen_now

    @pytest.mark.parametrize('field', ['weight_grams', 'making_charges', 'gemstones_cost', 'diamonds_cost'])
    def test_final_price_never_decreases_when_an_input_grows(self, metal_snapshot, field):
        base = _request(weight_grams=Decimal('4'), making_charges=Decimal('10'))
        bigger = _request(**{
            'weight_grams': Decimal('4'),
            'making_charges': Decimal('10'),
            field: getattr(base, field) + Decimal('0.37'),
        })
        assert compute(bigger, metal_snapshot).final_price >= compute(base, metal_snapshot).final_price

    def test_to_dict_uses_wire_names(self, metal_snapshot, frozen_now):
        data = compute(_request(), metal_snapshot, now=frozen_now).to_dict()

        assert data['metalCost'] == 60000.0
        assert data['gstAmount'] == 1815.0
        assert data['finalPrice'] == 62315.0
        assert data['billingMode'] == 'live_rate'
        assert data['timestamp'] == '2026-01-15T09:30:00Z'


class TestComputeValidation:
    """Requests the calculator refuses to price."""

    def test_imitation_rejected(self, metal_snapshot):
        with pytest.raises(ValidationError) as exc:
            compute(_request(product_type='imitation'), metal_snapshot)
        assert exc.value.field == 'productType'

    def test_empty_material_rejected(self, metal_snapshot):
        with pytest.raises(ValidationError) as exc:
            compute(_request(material=''), metal_snapshot)
        assert exc.value.field == 'material'

    @pytest.mark.parametrize('weight', [Decimal('0'), Decimal('-1')])
    def test_non_positive_weight_rejected(self, metal_snapshot, weight):
        with pytest.raises(ValidationError) as exc:
            compute(_request(weight_grams=weight), metal_snapshot)
        assert exc.value.field == 'weight'

    def test_fixed_rate_mode_needs_rate(self, metal_snapshot):
        with pytest.raises(ValidationError) as exc:
            compute(_request(billing_mode='fixed_rate'), metal_snapshot)
        assert exc.value.field == 'fixedRatePerGram'

    def test_unresolvable_material_rejected(self, metal_snapshot):
        with pytest.raises(ValidationError) as exc:
            compute(_request(material='platinum'), metal_snapshot)
        assert exc.value.field == 'material'


class TestPurityRates:
    """The material text selects the snapshot rate."""

    @pytest.mark.parametrize('material,purity,rate', [
        ('24k gold', '24k', Decimal('6000')),
        ('22K Gold Necklace', '22k', Decimal('5496')),
        ('18 kt gold', '18k', Decimal('4500')),
        ('gold', '22k', Decimal('5496')),
        ('Sterling Silver', 'silver', Decimal('80')),
        ('22k gold plated silver', '22k', Decimal('5496')),
    ])
    def test_rate_selected_by_material(self, metal_snapshot, material, purity, rate):
        breakdown = compute(_request(material=material), metal_snapshot)
        assert breakdown.purity == purity
        assert breakdown.rate_per_gram == rate


class TestMetalCost:
    def test_zero_weight_costs_nothing(self):
        assert metal_cost(Decimal('0'), Decimal('6000')) == Decimal('0.00')

    def test_rounds_half_up(self):
        assert metal_cost(Decimal('0.125'), Decimal('1')) == Decimal('0.13')


class TestParsePricingRequest:
    """Tests for wire body parsing."""

    def test_defaults(self):
        request = parse_pricing_request({'material': '22k gold', 'weight': 10})

        assert request.product_type == 'real'
        assert request.weight_grams == Decimal('10')
        assert request.making_charges == Decimal('0')
        assert request.billing_mode == 'live_rate'
        assert request.quantity == 1

    def test_numeric_strings_accepted(self):
        request = parse_pricing_request({
            'material': 'silver',
            'weight': '12.5',
            'makingCharges': '150',
            'quantity': '2',
        })
        assert request.weight_grams == Decimal('12.5')
        assert request.making_charges == Decimal('150')
        assert request.quantity == 2

    def test_float_kept_exact(self):
        request = parse_pricing_request({'material': 'gold', 'weight': 0.1})
        assert request.weight_grams == Decimal('0.1')

    def test_silver_billing_mode_wire_name(self):
        request = parse_pricing_request({
            'material': 'silver',
            'weight': 5,
            'silverBillingMode': 'fixed_rate',
            'fixedRatePerGram': 90,
        })
        assert request.billing_mode == 'fixed_rate'
        assert request.fixed_rate_per_gram == Decimal('90')

    def test_missing_weight(self):
        with pytest.raises(ValidationError) as exc:
            parse_pricing_request({'material': 'gold'})
        assert exc.value.field == 'weight'

    def test_non_numeric_weight(self):
        with pytest.raises(ValidationError) as exc:
            parse_pricing_request({'material': 'gold', 'weight': 'heavy'})
        assert exc.value.field == 'weight'

    def test_negative_charge(self):
        with pytest.raises(ValidationError) as exc:
            parse_pricing_request({'material': 'gold', 'weight': 1, 'makingCharges': -5})
        assert exc.value.field == 'makingCharges'

    def test_fixed_mode_requires_rate(self):
        with pytest.raises(ValidationError) as exc:
            parse_pricing_request({'material': 'silver', 'weight': 1, 'billingMode': 'fixed_rate'})
        assert exc.value.field == 'fixedRatePerGram'

    @pytest.mark.parametrize('quantity', [0, 1.5, 'two', True])
    def test_bad_quantity(self, quantity):
        with pytest.raises(ValidationError) as exc:
            parse_pricing_request({'material': 'gold', 'weight': 1, 'quantity': quantity})
        assert exc.value.field == 'quantity'

    def test_unknown_product_type(self):
        with pytest.raises(ValidationError) as exc:
            parse_pricing_request({'productType': 'vintage', 'material': 'gold', 'weight': 1})
        assert exc.value.field == 'productType'

    def test_unknown_billing_mode(self):
        with pytest.raises(ValidationError):
            parse_pricing_request({'material': 'gold', 'weight': 1, 'billingMode': 'haggle'})

    def test_body_must_be_object(self):
        with pytest.raises(ValidationError):
            parse_pricing_request(['gold', 1])


class TestEstimatePrice:
    """Tests for the weight * rate * markup estimate."""

    def test_default_markup(self, metal_snapshot):
        result = estimate_price(10, '22k', None, metal_snapshot)

        # 10 * 5496 * 1.3
        assert result['price'] == 71448.0
        assert result['markup'] == 1.3
        assert result['purity'] == '22k'

    def test_custom_markup(self, metal_snapshot):
        result = estimate_price('2', 'silver', '1.5', metal_snapshot)
        assert result['price'] == 240.0

    def test_zero_weight(self, metal_snapshot):
        assert estimate_price(0, '24k', 1, metal_snapshot)['price'] == 0.0

    def test_purity_case_insensitive(self, metal_snapshot):
        assert estimate_price(1, '24K', 1, metal_snapshot)['purity'] == '24k'

    def test_unknown_purity(self, metal_snapshot):
        with pytest.raises(ValidationError) as exc:
            estimate_price(1, '14k', 1, metal_snapshot)
        assert exc.value.field == 'purity'

    @pytest.mark.parametrize('markup', [0, -1, 'lots'])
    def test_bad_markup(self, metal_snapshot, markup):
        with pytest.raises(ValidationError) as exc:
            estimate_price(1, '24k', markup, metal_snapshot)
        assert exc.value.field == 'markup'

    def test_negative_weight(self, metal_snapshot):
        with pytest.raises(ValidationError) as exc:
            estimate_price(-1, '24k', 1, metal_snapshot)
        assert exc.value.field == 'weight'
