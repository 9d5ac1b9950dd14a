"""Core types for the catalog browser."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")

# Request identity, e.g. ("products",) or ("product", 7)
QueryKey = tuple[Any, ...]

# Duration type alias
Duration = str | int | float  # "30s", "5m", "inf" or milliseconds

QueryStatus = Literal["pending", "success", "error"]
FetchStatus = Literal["idle", "fetching", "paused"]
MutationStatus = Literal["idle", "pending", "success", "error"]


def _decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


@dataclass(frozen=True, slots=True)
class Rating:
    """Aggregate customer rating."""

    rate: Decimal
    count: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rating":
        rate = _decimal(data["rate"], "rating.rate")
        count = int(data["count"])
        if not rate.is_finite() or not 0 <= rate <= 5:
            raise ValueError(f"rating.rate out of range: {rate}")
        if count < 0:
            raise ValueError(f"rating.count must be non-negative: {count}")
        return cls(rate=rate, count=count)


@dataclass(frozen=True, slots=True)
class Product:
    """A catalog product. Only the server assigns ids or mutates products."""

    id: int
    title: str
    price: Decimal
    description: str
    category: str
    image: str
    rating: Rating = field(default_factory=lambda: Rating(Decimal(0), 0))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        """Decode a product from its wire representation.

        Raises:
            KeyError: a required field is missing
            ValueError: a field has the wrong type or range
        """
        product_id = data["id"]
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValueError(f"id must be an integer, got {product_id!r}")
        price = _decimal(data["price"], "price")
        if not price.is_finite() or price < 0:
            raise ValueError(f"price must be non-negative: {price}")
        rating = data.get("rating")
        return cls(
            id=product_id,
            title=str(data["title"]),
            price=price,
            description=str(data.get("description", "")),
            category=str(data["category"]),
            image=str(data.get("image", "")),
            rating=Rating.from_dict(rating) if rating else Rating(Decimal(0), 0),
        )


# The server echoes the created record back with its assigned id
CreateProductResponse = Product


@dataclass(frozen=True, slots=True)
class CreateProductRequest:
    """A product proposed by the client. Has no id until the server assigns one."""

    title: str = ""
    price: Decimal | None = None
    description: str = ""
    category: str = ""
    image: str = ""

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        missing = []
        if not self.title.strip():
            missing.append("title")
        if self.price is None:
            missing.append("price")
        if not self.category.strip():
            missing.append("category")
        return missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "price": float(self.price) if self.price is not None else None,
            "description": self.description,
            "category": self.category,
            "image": self.image,
        }


@dataclass(frozen=True, slots=True)
class QueryState(Generic[T]):
    """Cached state for one query key."""

    data: T | None = None
    error: BaseException | None = None
    status: QueryStatus = "pending"
    fetch_status: FetchStatus = "idle"
    data_updated_at: int = 0  # Unix timestamp ms, 0 if never fetched
    error_updated_at: int = 0
    is_invalidated: bool = False
    fetch_count: int = 0


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[T]):
    """Snapshot of a query as seen by one observer."""

    data: T | None
    error: BaseException | None
    status: QueryStatus
    fetch_status: FetchStatus
    is_stale: bool
    data_updated_at: int

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @property
    def is_fetching(self) -> bool:
        return self.fetch_status == "fetching"

    @property
    def is_paused(self) -> bool:
        return self.fetch_status == "paused"

    @property
    def is_loading(self) -> bool:
        """First fetch in progress: no data yet and a request on the wire."""
        return self.is_pending and self.is_fetching


@dataclass(frozen=True, slots=True)
class QueryOptions(Generic[T]):
    """Configuration for a cached query."""

    key: QueryKey
    fn: Callable[[], Awaitable[T]]
    stale_time: Duration | None = None  # None: client default
    gc_time: Duration | None = None
    enabled: bool = True
    select: Callable[[T], Any] | None = None


@dataclass(frozen=True, slots=True)
class MutationResult(Generic[T]):
    """Result of a mutation with query keys to invalidate."""

    result: T
    invalidates: list[QueryKey]
