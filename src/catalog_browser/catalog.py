"""Catalog queries and mutations wired onto a QueryClient."""

from __future__ import annotations

import logging

from catalog_browser.aggregate import popular_categories
from catalog_browser.api import AsyncCatalogClient
from catalog_browser.errors import ValidationIncomplete
from catalog_browser.query_client import Mutation, QueryClient, QueryObserver
from catalog_browser.types import (
    CreateProductRequest,
    CreateProductResponse,
    Duration,
    MutationResult,
    Product,
    QueryKey,
    QueryOptions,
)

logger = logging.getLogger(__name__)

PRODUCTS_KEY: QueryKey = ("products",)
CATEGORIES_KEY: QueryKey = ("categories",)

# Always refetched on mount and dropped as soon as nothing observes it
PRODUCTS_STALE_TIME: Duration = 0
PRODUCTS_GC_TIME: Duration = 0
PRODUCT_STALE_TIME: Duration = "5m"
CATEGORIES_STALE_TIME: Duration = "30m"


def product_key(product_id: int | None) -> QueryKey:
    return ("product", product_id)


class CatalogQueries:
    """Query definitions for the catalog browser.

    Usage:
        queries = CatalogQueries(client, api)
        sidebar = queries.products()
        detail = queries.product(7)
        unsubscribe = sidebar.subscribe(render_sidebar)
    """

    def __init__(self, client: QueryClient, api: AsyncCatalogClient) -> None:
        self.client = client
        self.api = api

    def products_options(self) -> QueryOptions[list[Product]]:
        return QueryOptions(
            key=PRODUCTS_KEY,
            fn=self.api.list_products,
            stale_time=PRODUCTS_STALE_TIME,
            gc_time=PRODUCTS_GC_TIME,
        )

    def product_options(self, product_id: int | None) -> QueryOptions[Product]:
        # Disabled for a falsy id, so GET /products/0 is never issued
        async def fetch() -> Product:
            return await self.api.get_product(product_id)  # type: ignore[arg-type]

        return QueryOptions(
            key=product_key(product_id),
            fn=fetch,
            stale_time=PRODUCT_STALE_TIME,
            enabled=bool(product_id),
        )

    def categories_options(self, enabled: bool = True) -> QueryOptions[list[str]]:
        return QueryOptions(
            key=CATEGORIES_KEY,
            fn=self.api.list_categories,
            stale_time=CATEGORIES_STALE_TIME,
            enabled=enabled,
        )

    def popular_categories_options(self) -> QueryOptions[list[Product]]:
        """Ranking derived from the product-list entry; shares its fetch."""
        return QueryOptions(
            key=PRODUCTS_KEY,
            fn=self.api.list_products,
            stale_time=PRODUCTS_STALE_TIME,
            gc_time=PRODUCTS_GC_TIME,
            select=popular_categories,
        )

    def products(self) -> QueryObserver[list[Product]]:
        return self.client.observe(self.products_options())

    def product(self, product_id: int | None) -> QueryObserver[Product]:
        return self.client.observe(self.product_options(product_id))

    def categories(self, enabled: bool = True) -> QueryObserver[list[str]]:
        return self.client.observe(self.categories_options(enabled))

    def popular_categories(self) -> QueryObserver[list[Product]]:
        return self.client.observe(self.popular_categories_options())

    def create_product(self) -> Mutation[[CreateProductRequest], CreateProductResponse]:
        """Mutation that posts a new product and invalidates the product list.

        The created record is not merged into any cached list.
        """

        async def create(
            request: CreateProductRequest,
        ) -> MutationResult[CreateProductResponse]:
            missing = request.missing_fields()
            if missing:
                raise ValidationIncomplete(missing)
            created = await self.api.create_product(request)
            return MutationResult(result=created, invalidates=[PRODUCTS_KEY])

        return self.client.mutation(create)
