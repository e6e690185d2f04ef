"""Product read model.

The catalogue owns products; checkout and fulfillment only read price and
weight from them. The one write this domain makes is the best-effort stock
decrement after payment.
"""

from enum import Enum

from protean.fields import Boolean, Float, Integer, String

from ordering.domain import ordering

# Weight used for an item whose product carries no weight metadata
DEFAULT_ITEM_WEIGHT_G = 200.0


class WeightUnit(Enum):
    GRAM = "g"
    OUNCE = "oz"
    POUND = "lb"
    KILOGRAM = "kg"


GRAMS_PER_UNIT = {
    WeightUnit.GRAM: 1.0,
    WeightUnit.OUNCE: 28.3495,
    WeightUnit.POUND: 453.592,
    WeightUnit.KILOGRAM: 1000.0,
}


def to_grams(weight: float | None, unit: str | None) -> float:
    """Convert a catalogue weight to grams, defaulting when the weight is missing."""
    if weight is None or weight <= 0:
        return DEFAULT_ITEM_WEIGHT_G
    try:
        factor = GRAMS_PER_UNIT[WeightUnit(unit or WeightUnit.GRAM.value)]
    except ValueError:
        factor = 1.0
    return weight * factor


@ordering.aggregate
class Product:
    name = String(required=True, max_length=255)
    price_cents = Integer(required=True, min_value=0)
    weight = Float(min_value=0.0)
    weight_unit = String(choices=WeightUnit, default=WeightUnit.GRAM.value)
    stock_quantity = Integer(default=0)
    is_active = Boolean(default=True)

    @property
    def weight_g(self) -> float:
        return to_grams(self.weight, self.weight_unit)

    def decrement_stock(self, quantity: int) -> int:
        """Take ``quantity`` units off the shelf, flooring at zero.

        Returns the shortfall, i.e. how many units were sold beyond what the
        counter held.
        """
        on_hand = self.stock_quantity or 0
        shortfall = max(0, quantity - on_hand)
        self.stock_quantity = max(0, on_hand - quantity)
        return shortfall
