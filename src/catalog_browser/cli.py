"""Command-line interface for the catalog browser."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any

from dotenv import load_dotenv

from catalog_browser.api import AsyncCatalogClient
from catalog_browser.catalog import CatalogQueries
from catalog_browser.errors import CatalogError
from catalog_browser.forms import CreateProductForm
from catalog_browser.network import ConnectivityWatcher, NetworkStatus
from catalog_browser.query_client import QueryClient, QueryObserver
from catalog_browser.settings import CatalogSettings
from catalog_browser.types import QueryResult
from catalog_browser.views import (
    OFFLINE_NO_DATA,
    offline_banner,
    render_popular_categories,
    render_product_detail,
    render_products,
)

logger = logging.getLogger(__name__)


def build_parser(settings: CatalogSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-browser",
        description="Browse a remote product catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  catalog-browser products                      # List all products
  catalog-browser product 7                     # Show one product
  catalog-browser popular                       # Categories ranked by product count
  catalog-browser create --title Mug --price 9.5 --category kitchen

Environment:
  CATALOG_BASE_URL, CATALOG_TIMEOUT and CATALOG_LOG_LEVEL are read from the
  environment or a .env file.
        """,
    )
    parser.add_argument("--base-url", default=settings.base_url, help="Catalog service URL")
    parser.add_argument(
        "--timeout", type=float, default=settings.timeout, help="HTTP timeout in seconds"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument(
        "--no-probe", action="store_true", help="Skip the connectivity check"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("products", help="List all products")
    product = commands.add_parser("product", help="Show one product")
    product.add_argument("id", type=int)
    commands.add_parser("categories", help="List category labels")
    commands.add_parser("popular", help="Rank categories by product count")

    create = commands.add_parser("create", help="Submit a new product")
    create.add_argument("--title", default="")
    create.add_argument("--price", default="")
    create.add_argument("--category", default="")
    create.add_argument("--description", default="")
    create.add_argument("--image", default="")
    return parser


async def _settle(observer: QueryObserver[Any]) -> QueryResult[Any]:
    """Subscribe, wait for the fetch the subscription started, and detach."""
    unsubscribe = observer.subscribe(lambda result: None)
    try:
        return await observer.refetch()
    finally:
        unsubscribe()


async def run(args: argparse.Namespace) -> int:
    network = NetworkStatus()
    async with AsyncCatalogClient(base_url=args.base_url, timeout=args.timeout) as api:
        if not args.no_probe:
            watcher = ConnectivityWatcher(network, api.base_url, timeout=args.timeout)
            try:
                await watcher.check()
            finally:
                await watcher.stop()
            if not network.is_online:
                print(offline_banner(False))
                print(OFFLINE_NO_DATA)
                return 1

        async with QueryClient(network) as client:
            queries = CatalogQueries(client, api)

            if args.command == "products":
                result = await _settle(queries.products())
                print(render_products(result))
            elif args.command == "product":
                result = await _settle(queries.product(args.id))
                print(render_product_detail(args.id, result))
            elif args.command == "categories":
                result = await _settle(queries.categories())
                if result.is_error:
                    print("Error loading categories")
                else:
                    print("\n".join(result.data or []))
            elif args.command == "popular":
                result = await _settle(queries.popular_categories())
                print(render_popular_categories(result))
            else:
                return await _create(queries, args)

    if result.is_error:
        logger.debug("Query failed", exc_info=result.error)
        return 1
    return 0


async def _create(queries: CatalogQueries, args: argparse.Namespace) -> int:
    form = CreateProductForm(queries)
    try:
        for name in ("title", "price", "category", "description", "image"):
            form.update(name, getattr(args, name))
        created = await form.submit()
    finally:
        form.dispose()
    if created is None:
        print(form.error_message)
        return 1
    print(f"{form.success_message} (id {created.id})")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    try:
        settings = CatalogSettings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    args = build_parser(settings).parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        return asyncio.run(run(args))
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
