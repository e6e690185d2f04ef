"""Checkout cost breakdown.

Tax is a flat 8% of the discounted subtotal; there is no jurisdiction logic.
Every amount is an integer number of cents, and the total always equals
subtotal - discount + tax + shipping.
"""

from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError
from pydantic import BaseModel

TAX_RATE = Decimal("0.08")


def compute_tax(taxable_cents: int) -> int:
    return int((Decimal(taxable_cents) * TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CartItem(BaseModel):
    """A cart line as the buyer's client holds it; the price is the snapshot at checkout."""

    product_id: str
    unit_price_cents: int
    quantity: int
    name: str | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


def check_cart(items: list[CartItem]) -> None:
    if not items:
        raise ValidationError({"cart": ["The cart is empty"]})
    errors = []
    for index, item in enumerate(items):
        if not item.product_id:
            errors.append(f"Item {index + 1}: product is required")
        if item.quantity <= 0:
            errors.append(f"Item {index + 1}: quantity must be positive")
        if item.unit_price_cents < 0:
            errors.append(f"Item {index + 1}: price cannot be negative")
    if errors:
        raise ValidationError({"cart": errors})


class CostBreakdown(BaseModel):
    subtotal_cents: int
    discount_cents: int = 0
    tax_cents: int
    shipping_cost_cents: int = 0
    total_cents: int

    @classmethod
    def compute(cls, items: list[CartItem], discount_cents: int = 0, shipping_cost_cents: int = 0) -> "CostBreakdown":
        check_cart(items)
        subtotal = sum(item.line_total_cents for item in items)
        if discount_cents < 0 or discount_cents > subtotal:
            raise ValidationError({"discount_cents": ["Discount must be between zero and the subtotal"]})
        if shipping_cost_cents < 0:
            raise ValidationError({"shipping_cost_cents": ["Shipping cost cannot be negative"]})

        tax = compute_tax(subtotal - discount_cents)
        return cls(
            subtotal_cents=subtotal,
            discount_cents=discount_cents,
            tax_cents=tax,
            shipping_cost_cents=shipping_cost_cents,
            total_cents=subtotal - discount_cents + tax + shipping_cost_cents,
        )

    def verify(self, items: list[CartItem]) -> None:
        """Recompute from the cart and reject any breakdown that does not match."""
        expected = CostBreakdown.compute(items, self.discount_cents, self.shipping_cost_cents)
        errors = {}
        for name in ("subtotal_cents", "tax_cents", "total_cents"):
            if getattr(self, name) != getattr(expected, name):
                errors[name] = [f"Expected {getattr(expected, name)}, got {getattr(self, name)}"]
        if errors:
            raise ValidationError(errors)
        if self.total_cents <= 0:
            raise ValidationError({"total_cents": ["Order total must be positive"]})
