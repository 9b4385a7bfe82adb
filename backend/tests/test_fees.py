"""
Unit Tests for sample fee calculation

Tests cover:
- per-sample pricing
- per-pound pricing from metric tons or bag count and weight
- the 0.25 cents/lb floor
- pricing validation messages

Run with: pytest backend/tests/test_fees.py -v
"""

from decimal import Decimal

from qclab.models.enums import PricingModel
from qclab.services.fees import Pricing, calculate_sample_fee, validate_pricing


class TestCalculateSampleFee:

    def test_per_sample(self):
        result = calculate_sample_fee(
            Pricing(PricingModel.PER_SAMPLE, price_per_sample=Decimal("45"))
        )
        assert result.fee == Decimal("45.00")
        assert result.currency == "USD"

    def test_per_pound_from_metric_tons(self):
        pricing = Pricing(PricingModel.PER_POUND, price_per_pound_cents=Decimal("0.5"))
        result = calculate_sample_fee(pricing, bags_quantity_mt=Decimal("19.2"))
        # 19.2 * 2204.62 lbs * 0.5 cents
        assert result.fee == Decimal("211.64")
        assert result.breakdown["lot_size"] == "19.2 M/T"

    def test_per_pound_from_bags(self):
        pricing = Pricing(PricingModel.PER_POUND, price_per_pound_cents=Decimal("1"))
        result = calculate_sample_fee(pricing, bag_count=320, bag_weight_kg=Decimal("60"))
        # 320 * 60 kg * 2.20462 = 42328.704 lbs
        assert result.fee == Decimal("423.29")

    def test_rate_floor(self):
        pricing = Pricing(PricingModel.PER_POUND, price_per_pound_cents=Decimal("0.10"))
        result = calculate_sample_fee(pricing, bags_quantity_mt=Decimal("1"))
        assert result.breakdown["price_per_pound_cents"] == Decimal("0.25")
        assert result.fee == Decimal("5.51")

    def test_missing_lot_size(self):
        pricing = Pricing(PricingModel.PER_POUND, price_per_pound_cents=Decimal("1"))
        assert calculate_sample_fee(pricing) is None

    def test_no_pricing_model(self):
        assert calculate_sample_fee(Pricing(None)) is None


class TestValidatePricing:

    def test_per_sample_requires_positive_price(self):
        assert validate_pricing(PricingModel.PER_SAMPLE, Decimal("0")) == [
            "Price per sample must be greater than 0"
        ]

    def test_per_pound_minimum(self):
        errors = validate_pricing(PricingModel.PER_POUND, None, Decimal("0.2"))
        assert errors == ["Price per pound must be at least 0.25¢"]

    def test_valid(self):
        assert validate_pricing(PricingModel.PER_POUND, None, Decimal("0.25")) == []
