"""Create-product form state."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from catalog_browser.catalog import CatalogQueries
from catalog_browser.errors import CatalogError
from catalog_browser.types import CreateProductRequest, CreateProductResponse, QueryResult

logger = logging.getLogger(__name__)

FIELDS = ("title", "price", "description", "category", "image")

SUCCESS_MESSAGE = "Product created successfully!"


def _empty_fields() -> dict[str, str]:
    return {name: "" for name in FIELDS}


def _parse_price(raw: str) -> Decimal | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        price = Decimal(raw)
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


class CreateProductForm:
    """Input state and submission flow of the create-product form.

    Categories are only requested once the form is opened. A failed
    submission keeps the input as typed; a successful one clears and closes
    the form.
    """

    def __init__(self, queries: CatalogQueries) -> None:
        self._mutation = queries.create_product()
        self._queries = queries
        self._categories = queries.categories(enabled=False)
        self._unsubscribe = self._categories.subscribe(self._on_categories)
        self.is_visible = False
        self.fields = _empty_fields()
        self.error_message: str | None = None
        self.success_message: str | None = None
        self.categories: list[str] = []
        self.categories_loading = False

    @property
    def is_submitting(self) -> bool:
        return self._mutation.is_pending

    def open(self) -> None:
        self.is_visible = True
        self._categories.set_options(self._queries.categories_options(enabled=True))

    def close(self) -> None:
        self.is_visible = False
        self._categories.set_options(self._queries.categories_options(enabled=False))

    def update(self, name: str, value: Any) -> None:
        if name not in FIELDS:
            raise KeyError(f"Unknown field: {name}")
        self.fields[name] = "" if value is None else str(value)

    def to_request(self) -> CreateProductRequest:
        return CreateProductRequest(
            title=self.fields["title"],
            price=_parse_price(self.fields["price"]),
            description=self.fields["description"],
            category=self.fields["category"],
            image=self.fields["image"],
        )

    async def submit(self) -> CreateProductResponse | None:
        """Submit the current input. Returns the created product, or None on failure."""
        self.error_message = None
        self.success_message = None
        try:
            created = await self._mutation.mutate(self.to_request())
        except CatalogError as e:
            self.error_message = f"Error: {e}"
            return None

        self.fields = _empty_fields()
        self.success_message = SUCCESS_MESSAGE
        self.close()
        return created

    def dispose(self) -> None:
        self._unsubscribe()

    def _on_categories(self, result: QueryResult[Any]) -> None:
        self.categories = list(result.data or [])
        self.categories_loading = result.is_loading
