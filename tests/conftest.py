"""Shared pytest fixtures."""

from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest
import respx

from catalog_browser import AsyncCatalogClient, CatalogQueries, NetworkStatus, QueryClient

BASE_URL = "https://catalog.test"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def product_payload(product_id: int, category: str = "electronics", **overrides: Any) -> dict:
    payload = {
        "id": product_id,
        "title": f"Product {product_id}",
        "price": 10.5,
        "description": f"Description of product {product_id}",
        "category": category,
        "image": f"https://img.test/{product_id}.png",
        "rating": {"rate": 4.1, "count": 120},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def network() -> NetworkStatus:
    """Create a fresh, online NetworkStatus for each test."""
    return NetworkStatus()


@pytest.fixture
async def client(network: NetworkStatus, clock: FakeClock) -> AsyncIterator[QueryClient]:
    """Create a mounted QueryClient driven by the fake clock."""
    query_client = QueryClient(network, clock=clock)
    query_client.mount()
    yield query_client
    await query_client.unmount()


@pytest.fixture
async def api() -> AsyncIterator[AsyncCatalogClient]:
    """Create a catalog client pointed at the mocked base URL."""
    catalog = AsyncCatalogClient(base_url=BASE_URL)
    yield catalog
    await catalog.aclose()


@pytest.fixture
def queries(client: QueryClient, api: AsyncCatalogClient) -> CatalogQueries:
    return CatalogQueries(client, api)


@pytest.fixture
def products_json() -> list[dict]:
    return [
        product_payload(1, "electronics"),
        product_payload(2, "jewelery"),
        product_payload(3, "electronics"),
        product_payload(4, "men's clothing"),
    ]


@pytest.fixture
def make_product() -> Callable[..., dict]:
    return product_payload


@pytest.fixture
def mock_api() -> Iterator[respx.MockRouter]:
    """Mock the catalog service. Unmatched requests fail the test."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router
