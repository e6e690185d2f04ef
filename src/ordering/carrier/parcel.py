"""Build the parcel for an order from its line items and a package preset."""

from protean import current_domain
from protean.exceptions import ObjectNotFoundError

from ordering.carrier.port import Parcel
from ordering.config import PackagePreset
from ordering.product.product import DEFAULT_ITEM_WEIGHT_G, Product

# Dimensions used when a preset leaves one unset
FALLBACK_DIMENSIONS_CM = (10.0, 10.0, 5.0)


def line_items_weight_g(line_items) -> float:
    """Total item weight in grams, using catalogue weight metadata."""
    repo = current_domain.repository_for(Product)
    total = 0.0
    for item in line_items:
        try:
            grams = repo.get(item.product_id).weight_g
        except ObjectNotFoundError:
            grams = DEFAULT_ITEM_WEIGHT_G
        total += grams * item.quantity
    return total


def build_parcel(line_items, preset: PackagePreset) -> Parcel:
    length, width, height = FALLBACK_DIMENSIONS_CM
    weight_g = (preset.weight_g or 0.0) + line_items_weight_g(line_items)
    return Parcel(
        weight_g=max(1.0, round(weight_g, 1)),
        length_cm=preset.length_cm or length,
        width_cm=preset.width_cm or width,
        height_cm=preset.height_cm or height,
    )
