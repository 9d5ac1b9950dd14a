"""Remote catalog client over HTTP."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from catalog_browser.errors import RequestFailed
from catalog_browser.types import CreateProductRequest, CreateProductResponse, Product

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://fakestoreapi.com"


class AsyncCatalogClient:
    """Async client for the remote catalog service.

    Knows nothing about caching. Every call is one request; failures raise
    RequestFailed and are never retried.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    async def _request(
        self,
        method: str,
        endpoint: str,
        decode: Callable[[Any], T],
        body: dict[str, Any] | None = None,
    ) -> T:
        """Make a request and decode the JSON payload."""
        try:
            response = await self._client.request(method, endpoint, json=body)
        except httpx.TransportError as e:
            logger.warning("%s %s transport failure: %s", method, endpoint, e)
            raise RequestFailed(endpoint, None, method=method, reason=str(e)) from e

        if not response.is_success:
            logger.warning("%s %s returned %s", method, endpoint, response.status_code)
            raise RequestFailed(endpoint, response.status_code, method=method)

        try:
            return decode(response.json())
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s %s returned an unexpected payload: %s", method, endpoint, e)
            raise RequestFailed(
                endpoint,
                response.status_code,
                method=method,
                reason=f"unexpected payload: {e}",
            ) from e

    async def list_products(self) -> list[Product]:
        """GET /products."""
        return await self._request(
            "GET",
            "/products",
            lambda items: [Product.from_dict(item) for item in _as_list(items)],
        )

    async def get_product(self, product_id: int) -> Product:
        """GET /products/{id}. Only valid for a positive id."""
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValueError(f"product id must be an integer, got {product_id!r}")
        if product_id <= 0:
            raise ValueError(f"product id must be positive, got {product_id}")
        return await self._request("GET", f"/products/{product_id}", Product.from_dict)

    async def list_categories(self) -> list[str]:
        """GET /products/categories."""
        return await self._request(
            "GET",
            "/products/categories",
            lambda items: [_as_str(item) for item in _as_list(items)],
        )

    async def create_product(self, request: CreateProductRequest) -> CreateProductResponse:
        """POST /products. Returns the server echo with its assigned id."""
        created = await self._request(
            "POST", "/products", Product.from_dict, request.to_dict()
        )
        logger.info("Created product %s (%s)", created.id, created.title)
        return created

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncCatalogClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _as_list(payload: Any) -> list[Any]:
    if not isinstance(payload, list):
        raise TypeError(f"expected a JSON array, got {type(payload).__name__}")
    return payload


def _as_str(item: Any) -> str:
    if not isinstance(item, str):
        raise TypeError(f"expected a string, got {type(item).__name__}")
    return item
