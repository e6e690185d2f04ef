"""Tests for the checkout cost breakdown."""

import pytest
from ordering.checkout.pricing import CartItem, CostBreakdown, compute_tax
from protean.exceptions import ValidationError


def _items():
    return [
        CartItem(product_id="p1", unit_price_cents=1200, quantity=2),
        CartItem(product_id="p2", unit_price_cents=1500, quantity=1),
    ]


class TestComputeTax:
    def test_eight_percent(self):
        assert compute_tax(10000) == 800

    def test_rounds_half_up(self):
        # 108.48, 108.56, 109.52
        assert compute_tax(1356) == 108
        assert compute_tax(1357) == 109
        assert compute_tax(1369) == 110

    def test_integral_tax_unchanged(self):
        assert compute_tax(1875) == 150


class TestCostBreakdown:
    def test_compute(self):
        costs = CostBreakdown.compute(_items(), discount_cents=400, shipping_cost_cents=500)

        assert costs.subtotal_cents == 3900
        assert costs.discount_cents == 400
        assert costs.tax_cents == 280
        assert costs.shipping_cost_cents == 500
        assert costs.total_cents == 3900 - 400 + 280 + 500

    def test_total_matches_invariant(self):
        costs = CostBreakdown.compute(_items(), shipping_cost_cents=599)
        assert costs.total_cents == (
            costs.subtotal_cents - costs.discount_cents + costs.tax_cents + costs.shipping_cost_cents
        )

    def test_empty_cart_rejected(self):
        with pytest.raises(ValidationError) as exc:
            CostBreakdown.compute([])
        assert "cart" in exc.value.messages

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError) as exc:
            CostBreakdown.compute([CartItem(product_id="p1", unit_price_cents=100, quantity=0)])
        assert "Item 1: quantity must be positive" in exc.value.messages["cart"]

    def test_discount_larger_than_subtotal_rejected(self):
        with pytest.raises(ValidationError) as exc:
            CostBreakdown.compute(_items(), discount_cents=5000)
        assert "discount_cents" in exc.value.messages

    def test_negative_shipping_rejected(self):
        with pytest.raises(ValidationError):
            CostBreakdown.compute(_items(), shipping_cost_cents=-1)

    def test_verify_accepts_matching_breakdown(self):
        items = _items()
        CostBreakdown.compute(items, shipping_cost_cents=500).verify(items)

    def test_verify_rejects_tampered_total(self):
        items = _items()
        costs = CostBreakdown.compute(items).model_copy(update={"total_cents": 1})

        with pytest.raises(ValidationError) as exc:
            costs.verify(items)
        assert "total_cents" in exc.value.messages

    def test_verify_rejects_zero_total(self):
        items = [CartItem(product_id="p1", unit_price_cents=0, quantity=1)]
        with pytest.raises(ValidationError) as exc:
            CostBreakdown.compute(items).verify(items)
        assert "total_cents" in exc.value.messages
