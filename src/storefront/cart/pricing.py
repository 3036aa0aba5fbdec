"""Cart pricing: pure computation of line totals and cart totals.

Every cart write path funnels through ``compute_totals`` so that persisted
totals are never stale:

    subtotal = sum(line totals), each line = round(price * quantity, 2)
    tax      = round(subtotal * 0.18, 2)
    shipping = 0 when subtotal >= 500, else 29.99 (and 0 for an empty cart)
    discount = min(discount, subtotal + tax + shipping)
    total    = subtotal + tax + shipping - discount

No I/O happens here. Guest checkout prices its ad-hoc lines with the same
functions.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

TAX_RATE = Decimal("0.18")
FREE_SHIPPING_THRESHOLD = Decimal("500")
FLAT_SHIPPING = Decimal("29.99")

_CENT = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def round_money(value) -> float:
    """Round half-up to cents, as money is displayed and stored."""
    return float(_quantize(_to_decimal(value)))


def line_total(unit_price, quantity) -> float:
    return float(_quantize(_to_decimal(unit_price) * Decimal(int(quantity))))


def percent_of(amount, percent) -> float:
    return float(_quantize(_to_decimal(amount) * _to_decimal(percent) / Decimal(100)))


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    discount: float
    tax: float
    shipping: float
    total: float

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
        }


def compute_totals(line_totals, discount=0.0) -> PriceBreakdown:
    """Recompute cart totals from line totals and the stored discount amount."""
    line_totals = list(line_totals)
    subtotal = _quantize(sum((_to_decimal(t) for t in line_totals), Decimal("0")))
    tax = _quantize(subtotal * TAX_RATE)

    if not line_totals or subtotal >= FREE_SHIPPING_THRESHOLD:
        shipping = Decimal("0.00")
    else:
        shipping = FLAT_SHIPPING

    gross = subtotal + tax + shipping
    applied_discount = _quantize(max(Decimal("0"), min(_to_decimal(discount), gross)))
    total = _quantize(gross - applied_discount)

    return PriceBreakdown(
        subtotal=float(subtotal),
        discount=float(applied_discount),
        tax=float(tax),
        shipping=float(shipping),
        total=float(total),
    )
