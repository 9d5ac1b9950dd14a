"""catalog-browser - Cached, offline-aware client for a remote product catalog."""

# Aggregation
from catalog_browser.aggregate import category_frequency, popular_categories

# Remote catalog
from catalog_browser.api import AsyncCatalogClient

# Catalog queries
from catalog_browser.catalog import CatalogQueries

# Duration parsing
from catalog_browser.duration import parse_duration
from catalog_browser.errors import CatalogError, RequestFailed, ValidationIncomplete
from catalog_browser.forms import CreateProductForm

# Network status
from catalog_browser.network import ConnectivityWatcher, NetworkStatus

# Query cache
from catalog_browser.query_client import Mutation, QueryClient, QueryObserver
from catalog_browser.settings import CatalogSettings

# Core types
from catalog_browser.types import (
    CreateProductRequest,
    CreateProductResponse,
    Duration,
    MutationResult,
    Product,
    QueryKey,
    QueryOptions,
    QueryResult,
    QueryState,
    Rating,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncCatalogClient",
    "CatalogError",
    "CatalogQueries",
    "CatalogSettings",
    "ConnectivityWatcher",
    "CreateProductForm",
    "CreateProductRequest",
    "CreateProductResponse",
    "Duration",
    "Mutation",
    "MutationResult",
    "NetworkStatus",
    "Product",
    "QueryClient",
    "QueryKey",
    "QueryObserver",
    "QueryOptions",
    "QueryResult",
    "QueryState",
    "Rating",
    "RequestFailed",
    "ValidationIncomplete",
    "category_frequency",
    "parse_duration",
    "popular_categories",
]
