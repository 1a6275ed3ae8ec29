"""
Authoritative order pricing rule.

Both the persisted order totals and the cart quote go through
``compute_prices`` so the tax rate and shipping fee can only differ by
configuration, never by code path.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from storefront.config import settings

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round a float/str/Decimal amount half-up to cents"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float


def compute_prices(
    lines: Iterable[Tuple[float, int]],
    tax_rate: Optional[float] = None,
    free_shipping_threshold: Optional[float] = None,
    flat_shipping_fee: Optional[float] = None,
) -> PriceBreakdown:
    """
    Compute order prices from (unit price, quantity) pairs
    
    Shipping is free strictly above the threshold; an order of exactly the
    threshold pays the flat fee.
    """
    tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate
    threshold = settings.FREE_SHIPPING_THRESHOLD if free_shipping_threshold is None else free_shipping_threshold
    flat_fee = settings.FLAT_SHIPPING_FEE if flat_shipping_fee is None else flat_shipping_fee
    
    items = sum(
        (Decimal(str(price)) * quantity for price, quantity in lines),
        Decimal("0")
    )
    items = to_money(items)
    tax = to_money(items * Decimal(str(tax_rate)))
    shipping = Decimal("0.00") if items > Decimal(str(threshold)) else to_money(flat_fee)
    total = to_money(items + tax + shipping)
    
    return PriceBreakdown(
        items_price=float(items),
        tax_price=float(tax),
        shipping_price=float(shipping),
        total_price=float(total)
    )
