"""Tests for the remote catalog client using mocked HTTP responses."""

import json
from decimal import Decimal

import httpx
import pytest
import respx

from catalog_browser import AsyncCatalogClient, CreateProductRequest, RequestFailed


class TestReads:
    """GET endpoints."""

    async def test_list_products(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter, products_json
    ) -> None:
        mock_api.get("/products").mock(return_value=httpx.Response(200, json=products_json))

        products = await api.list_products()
        assert [p.id for p in products] == [1, 2, 3, 4]
        first = products[0]
        assert first.title == "Product 1"
        assert first.price == Decimal("10.5")
        assert first.category == "electronics"
        assert first.rating.rate == Decimal("4.1")
        assert first.rating.count == 120

    async def test_get_product(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter, make_product
    ) -> None:
        route = mock_api.get("/products/7").mock(
            return_value=httpx.Response(200, json=make_product(7, "jewelery"))
        )

        product = await api.get_product(7)
        assert route.called
        assert product.id == 7
        assert product.category == "jewelery"

    async def test_get_product_rejects_falsy_ids(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter
    ) -> None:
        route = mock_api.route()
        for bad in (0, -3):
            with pytest.raises(ValueError, match="positive"):
                await api.get_product(bad)
        with pytest.raises(ValueError, match="integer"):
            await api.get_product(None)  # type: ignore[arg-type]
        assert not route.called

    async def test_list_categories(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter
    ) -> None:
        mock_api.get("/products/categories").mock(
            return_value=httpx.Response(200, json=["electronics", "jewelery"])
        )
        assert await api.list_categories() == ["electronics", "jewelery"]


class TestCreate:
    """POST /products."""

    async def test_create_posts_json_body(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter
    ) -> None:
        route = mock_api.post("/products").mock(
            return_value=httpx.Response(
                201,
                json={
                    "id": 21,
                    "title": "Mug",
                    "price": 9.5,
                    "description": "",
                    "category": "kitchen",
                    "image": "",
                },
            )
        )

        created = await api.create_product(
            CreateProductRequest(title="Mug", price=Decimal("9.5"), category="kitchen")
        )

        assert created.id == 21
        assert created.rating.count == 0
        body = json.loads(route.calls[0].request.content)
        assert body == {
            "title": "Mug",
            "price": 9.5,
            "description": "",
            "category": "kitchen",
            "image": "",
        }


class TestFailures:
    """Every failure becomes RequestFailed, without retries."""

    async def test_non_success_status(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter
    ) -> None:
        route = mock_api.get("/products").mock(return_value=httpx.Response(500))

        with pytest.raises(RequestFailed) as info:
            await api.list_products()

        assert info.value.endpoint == "/products"
        assert info.value.status == 500
        assert info.value.method == "GET"
        assert str(info.value) == "GET /products failed: 500"
        assert route.call_count == 1

    async def test_not_found(self, api: AsyncCatalogClient, mock_api: respx.MockRouter) -> None:
        mock_api.get("/products/99").mock(return_value=httpx.Response(404))
        with pytest.raises(RequestFailed) as info:
            await api.get_product(99)
        assert info.value.status == 404

    async def test_transport_failure(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter
    ) -> None:
        mock_api.get("/products/categories").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(RequestFailed) as info:
            await api.list_categories()

        assert info.value.status is None
        assert isinstance(info.value.__cause__, httpx.ConnectError)
        assert "no response" in str(info.value)

    async def test_invalid_json(self, api: AsyncCatalogClient, mock_api: respx.MockRouter) -> None:
        mock_api.get("/products").mock(return_value=httpx.Response(200, content=b"<html>"))
        with pytest.raises(RequestFailed, match="unexpected payload") as info:
            await api.list_products()
        assert info.value.status == 200

    async def test_wrong_shape(
        self, api: AsyncCatalogClient, mock_api: respx.MockRouter, make_product
    ) -> None:
        mock_api.get("/products").mock(return_value=httpx.Response(200, json={"items": []}))
        mock_api.get("/products/1").mock(
            return_value=httpx.Response(200, json=make_product(1, price=-2))
        )
        mock_api.get("/products/categories").mock(return_value=httpx.Response(200, json=[1, 2]))

        with pytest.raises(RequestFailed, match="unexpected payload"):
            await api.list_products()
        with pytest.raises(RequestFailed, match="unexpected payload"):
            await api.get_product(1)
        with pytest.raises(RequestFailed, match="unexpected payload"):
            await api.list_categories()

    async def test_post_failure(self, api: AsyncCatalogClient, mock_api: respx.MockRouter) -> None:
        mock_api.post("/products").mock(return_value=httpx.Response(500))
        with pytest.raises(RequestFailed) as info:
            await api.create_product(CreateProductRequest(title="x", price=Decimal(1), category="y"))
        assert info.value.method == "POST"
        assert info.value.status == 500


class TestLifecycle:
    """Client ownership."""

    async def test_external_client_is_not_closed(self) -> None:
        http = httpx.AsyncClient(base_url="https://catalog.test")
        async with AsyncCatalogClient(client=http) as api:
            assert api.base_url.startswith("https://catalog.test")
        assert not http.is_closed
        await http.aclose()

    async def test_owned_client_is_closed(self) -> None:
        api = AsyncCatalogClient(base_url="https://catalog.test")
        await api.aclose()
        assert api._client.is_closed
