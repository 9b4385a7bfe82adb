"""Sample fee calculation from a client's (or origin's) pricing model and the lot size."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from qclab.models.enums import PricingModel

MT_TO_LBS = Decimal("2204.62")
KG_TO_LBS = Decimal("2.20462")
MIN_CENTS_PER_POUND = Decimal("0.25")
CENT = Decimal("0.01")


@dataclass
class Pricing:
    pricing_model: PricingModel | None
    price_per_sample: Decimal | None = None
    price_per_pound_cents: Decimal | None = None
    currency: str = "USD"


@dataclass
class FeeCalculation:
    fee: Decimal
    currency: str
    breakdown: dict = field(default_factory=dict)


def _to_decimal(value) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def calculate_sample_fee(
    pricing: Pricing,
    bags_quantity_mt=None,
    bag_count: int | None = None,
    bag_weight_kg=None,
) -> FeeCalculation | None:
    """Fee for one sample, or None when pricing or lot size is missing.

    Per-pound pricing uses ``bags_quantity_mt`` when present, otherwise
    ``bag_count * bag_weight_kg``. The rate never drops below 0.25 cents/lb.
    """
    currency = pricing.currency or "USD"

    if pricing.pricing_model == PricingModel.PER_SAMPLE:
        price = _to_decimal(pricing.price_per_sample)
        if not price:
            return None
        return FeeCalculation(
            fee=price.quantize(CENT, rounding=ROUND_HALF_UP),
            currency=currency,
            breakdown={"pricing_model": PricingModel.PER_SAMPLE.value, "price_per_sample": price},
        )

    if pricing.pricing_model == PricingModel.PER_POUND:
        cents = _to_decimal(pricing.price_per_pound_cents)
        if not cents:
            return None

        mt = _to_decimal(bags_quantity_mt)
        weight = _to_decimal(bag_weight_kg)
        if mt:
            total_pounds = mt * MT_TO_LBS
            lot_size = f"{mt} M/T"
        elif bag_count and weight:
            total_pounds = bag_count * weight * KG_TO_LBS
            lot_size = f"{bag_count} bags × {weight}kg"
        else:
            return None

        cents_per_pound = max(cents, MIN_CENTS_PER_POUND)
        fee = total_pounds * cents_per_pound / 100
        return FeeCalculation(
            fee=fee.quantize(CENT, rounding=ROUND_HALF_UP),
            currency=currency,
            breakdown={
                "pricing_model": PricingModel.PER_POUND.value,
                "total_pounds": total_pounds.quantize(CENT, rounding=ROUND_HALF_UP),
                "price_per_pound_cents": cents_per_pound,
                "lot_size": lot_size,
            },
        )

    return None


def validate_pricing(
    pricing_model: PricingModel,
    price_per_sample=None,
    price_per_pound_cents=None,
) -> list[str]:
    errors = []
    if pricing_model == PricingModel.PER_SAMPLE:
        price = _to_decimal(price_per_sample)
        if price is None or price <= 0:
            errors.append("Price per sample must be greater than 0")
    elif pricing_model == PricingModel.PER_POUND:
        cents = _to_decimal(price_per_pound_cents)
        if cents is None or cents < MIN_CENTS_PER_POUND:
            errors.append("Price per pound must be at least 0.25¢")
    return errors
