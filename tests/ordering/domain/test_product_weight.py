"""Tests for product weight conversion, stock counters and parcel building."""

import pytest
from ordering.carrier.parcel import build_parcel
from ordering.config import PackagePreset
from ordering.order.order import LineItem
from ordering.product.product import DEFAULT_ITEM_WEIGHT_G, Product, to_grams
from protean import current_domain


class TestToGrams:
    @pytest.mark.parametrize(
        "weight, unit, expected",
        [
            (100, "g", 100.0),
            (1, "oz", 28.3495),
            (1, "lb", 453.592),
            (2, "kg", 2000.0),
        ],
    )
    def test_units(self, weight, unit, expected):
        assert to_grams(weight, unit) == pytest.approx(expected)

    def test_missing_weight_uses_default(self):
        assert to_grams(None, "g") == DEFAULT_ITEM_WEIGHT_G
        assert to_grams(0, "oz") == DEFAULT_ITEM_WEIGHT_G

    def test_missing_unit_means_grams(self):
        assert to_grams(50, None) == 50


class TestStockCounter:
    def test_decrement(self):
        product = Product(name="Mug", price_cents=1200, stock_quantity=5)
        assert product.decrement_stock(2) == 0
        assert product.stock_quantity == 3

    def test_oversell_clamps_at_zero(self):
        product = Product(name="Poster", price_cents=1500, stock_quantity=1)
        assert product.decrement_stock(3) == 2
        assert product.stock_quantity == 0


class TestBuildParcel:
    def _items(self):
        return [
            LineItem(product_id="prod-mug", quantity=2, unit_price_cents=1200),
            LineItem(product_id="prod-missing", quantity=1, unit_price_cents=500),
        ]

    def test_weight_sums_items_and_preset(self):
        current_domain.repository_for(Product).add(
            Product(id="prod-mug", name="Mug", price_cents=1200, weight=350, weight_unit="g")
        )
        preset = PackagePreset(id="box", name="Box", length_cm=20, width_cm=15, height_cm=10, weight_g=120)

        parcel = build_parcel(self._items(), preset)

        # 120 g box + 2 x 350 g mugs + 200 g for the product with no record
        assert parcel.weight_g == 1020
        assert (parcel.length_cm, parcel.width_cm, parcel.height_cm) == (20, 15, 10)

    def test_unset_dimensions_fall_back(self):
        preset = PackagePreset(id="bag", name="Bag", length_cm=0, width_cm=0, height_cm=0)

        parcel = build_parcel(self._items()[1:], preset)

        assert (parcel.length_cm, parcel.width_cm, parcel.height_cm) == (10, 10, 5)
        assert parcel.weight_g == DEFAULT_ITEM_WEIGHT_G
