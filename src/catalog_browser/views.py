"""Plain-text rendering of query results."""

from __future__ import annotations

from typing import Any

from catalog_browser.types import Product, QueryResult

OFFLINE_BANNER = "You're offline - showing cached data"
OFFLINE_NO_DATA = "Offline - no data available"
WELCOME = (
    "Welcome to our Product Store\n"
    "Select a product from the sidebar to view details."
)


def offline_banner(online: bool) -> str | None:
    return None if online else OFFLINE_BANNER


def format_price(product: Product) -> str:
    return f"${product.price}"


def render_products(result: QueryResult[Any]) -> str:
    if result.is_loading:
        return "Loading products..."
    if result.is_error and result.data is None:
        return "Error loading products"
    if result.data is None:
        return OFFLINE_NO_DATA if result.is_paused else "No products"
    lines = ["Products"]
    for product in result.data:
        lines.append(
            f"  #{product.id} {product.title} - {format_price(product)} [{product.category}]"
        )
    return "\n".join(lines)


def render_product_detail(product_id: int | None, result: QueryResult[Any]) -> str:
    product = result.data
    if result.is_paused and product is None:
        return OFFLINE_NO_DATA
    if not product_id:
        return WELCOME
    if result.is_loading:
        return "Loading product details..."
    if result.is_error:
        return "Error loading product details"
    if product is None:
        return "Product not found"
    return "\n".join(
        [
            product.title,
            format_price(product),
            f"Category: {product.category}",
            f"Rating: {product.rating.rate}/5 ({product.rating.count} reviews)",
            "",
            "Description",
            product.description,
        ]
    )


def render_popular_categories(result: QueryResult[Any]) -> str:
    if result.is_loading:
        return "Loading categories..."
    if result.is_error:
        return "Error loading categories"
    if result.data is None:
        return OFFLINE_NO_DATA if result.is_paused else "Famous Categories: none"
    categories = ", ".join(result.data) if result.data else "none"
    return f"Famous Categories: {categories}"
