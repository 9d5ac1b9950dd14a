"""Tests for plain-text rendering."""

from typing import Any

import pytest

from catalog_browser import Product, QueryResult, RequestFailed
from catalog_browser.views import (
    OFFLINE_BANNER,
    OFFLINE_NO_DATA,
    WELCOME,
    offline_banner,
    render_popular_categories,
    render_product_detail,
    render_products,
)


def result(
    data: Any = None,
    *,
    status: str = "success",
    fetch_status: str = "idle",
    error: BaseException | None = None,
) -> QueryResult[Any]:
    return QueryResult(
        data=data,
        error=error,
        status=status,  # type: ignore[arg-type]
        fetch_status=fetch_status,  # type: ignore[arg-type]
        is_stale=False,
        data_updated_at=1 if data is not None else 0,
    )


@pytest.fixture
def mug(make_product) -> Product:
    return Product.from_dict(
        make_product(7, "kitchen", title="Mug", price=9.5, description="A blue mug")
    )


LOADING = result(status="pending", fetch_status="fetching")
FAILED = result(status="error", error=RequestFailed("/products", 500))
PAUSED = result(status="pending", fetch_status="paused")


class TestOfflineBanner:
    def test_shown_only_offline(self) -> None:
        assert offline_banner(False) == OFFLINE_BANNER
        assert offline_banner(True) is None


class TestProducts:
    def test_loading(self) -> None:
        assert render_products(LOADING) == "Loading products..."

    def test_error(self) -> None:
        assert render_products(FAILED) == "Error loading products"

    def test_paused_without_data(self) -> None:
        assert render_products(PAUSED) == OFFLINE_NO_DATA

    def test_lists_products(self, mug: Product) -> None:
        text = render_products(result([mug]))
        assert text.splitlines() == ["Products", "  #7 Mug - $9.5 [kitchen]"]

    def test_cached_list_survives_a_failed_refetch(self, mug: Product) -> None:
        stale = result([mug], status="error", error=RequestFailed("/products", None))
        assert "#7 Mug" in render_products(stale)


class TestProductDetail:
    def test_welcome_without_selection(self) -> None:
        assert render_product_detail(None, result(status="pending")) == WELCOME
        assert render_product_detail(0, result(status="pending")) == WELCOME

    def test_offline_without_data(self) -> None:
        assert render_product_detail(7, PAUSED) == OFFLINE_NO_DATA

    def test_loading(self) -> None:
        assert render_product_detail(7, LOADING) == "Loading product details..."

    def test_error(self) -> None:
        assert render_product_detail(7, FAILED) == "Error loading product details"

    def test_not_found(self) -> None:
        assert render_product_detail(7, result(None)) == "Product not found"

    def test_detail(self, mug: Product) -> None:
        lines = render_product_detail(7, result(mug)).splitlines()
        assert lines[0] == "Mug"
        assert lines[1] == "$9.5"
        assert "Category: kitchen" in lines
        assert "Rating: 4.1/5 (120 reviews)" in lines
        assert lines[-1] == "A blue mug"

    def test_paused_with_cached_data_shows_it(self, mug: Product) -> None:
        cached = result(mug, fetch_status="paused")
        assert render_product_detail(7, cached).startswith("Mug")


class TestPopularCategories:
    def test_loading(self) -> None:
        assert render_popular_categories(LOADING) == "Loading categories..."

    def test_error(self) -> None:
        assert render_popular_categories(FAILED) == "Error loading categories"

    def test_ranking(self) -> None:
        text = render_popular_categories(result(["electronics", "jewelery"]))
        assert text == "Famous Categories: electronics, jewelery"

    def test_empty(self) -> None:
        assert render_popular_categories(result([])) == "Famous Categories: none"
