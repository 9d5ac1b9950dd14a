"""Category popularity from a product collection."""

from collections.abc import Iterable, Mapping
from typing import Any

from catalog_browser.types import Product


def _category_of(product: Product | Mapping[str, Any]) -> str:
    if isinstance(product, Mapping):
        return product["category"]
    return product.category


def category_frequency(products: Iterable[Product | Mapping[str, Any]]) -> dict[str, int]:
    """Count products per category label.

    Labels are matched exactly (case-sensitive, no trimming). The result keeps
    the order in which each label was first seen.
    """
    frequency: dict[str, int] = {}
    for product in products:
        category = _category_of(product)
        frequency[category] = frequency.get(category, 0) + 1
    return frequency


def popular_categories(products: Iterable[Product | Mapping[str, Any]]) -> list[str]:
    """Distinct category labels, most frequent first.

    Equal counts keep first-seen order.
    """
    frequency = category_frequency(products)
    # sorted() is stable, so ties stay in insertion (first-seen) order
    return sorted(frequency, key=lambda category: frequency[category], reverse=True)
