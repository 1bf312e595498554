"""Command-line interface for the storefront ingester."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path to allow imports when run as script
sys.path.insert(0, str(Path(__file__).parent.parent))

__all__ = ["main", "parse_args", "run_bulk"]

from storefront.bulk import JobManager
from storefront.config import (
    INGEST_BATCH_DELAY,
    INGEST_CONCURRENCY,
    INGEST_RETRIES,
    INGEST_TIMEOUT,
    SEARCH_MAX_RESULTS,
    BulkSettings,
)
from storefront.errors import StorefrontError
from storefront.formatting import format_product_full
from storefront.logging_config import setup_logging
from storefront.service import ProductService
from storefront.shutdown import get_shutdown_handler
from storefront.url_validation import parse_handle_list


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Storefront product ingester: fetch, normalize and search catalog products",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print one product's normalized sections
  python -m storefront.cli --product nordic-4-person-sauna

  # Same, as JSON
  python -m storefront.cli --product nordic-4-person-sauna --json

  # Search the catalog
  python -m storefront.cli --search "outdoor barrel sauna"

  # Ingest the first 100 catalog products, 10 at a time
  python -m storefront.cli --bulk --limit 100 --concurrency 10

  # Ingest specific handles
  python -m storefront.cli --bulk --handles a,b,c

  # Check the store is reachable
  python -m storefront.cli --health
        """,
    )

    # Single product
    parser.add_argument("--product", metavar="HANDLE", help="Fetch and print one product")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--facets", metavar="HANDLE", help="Print inferred facets for a product")

    # Search
    parser.add_argument("--search", metavar="PHRASE", help="Three-tier catalog search")
    parser.add_argument(
        "--max-results",
        type=int,
        default=SEARCH_MAX_RESULTS,
        help=f"Maximum search results (default: {SEARCH_MAX_RESULTS})",
    )

    # Bulk ingest
    parser.add_argument("--bulk", action="store_true", help="Bulk-ingest handles or the whole catalog")
    parser.add_argument("--handles", metavar="A,B,C", help="Comma-separated handles for --bulk")
    parser.add_argument("--limit", type=int, default=0, help="Ingest at most N handles (0: all)")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=INGEST_CONCURRENCY,
        help=f"Parallel ingests (default: {INGEST_CONCURRENCY})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=INGEST_TIMEOUT,
        help=f"Per-attempt timeout in seconds (default: {INGEST_TIMEOUT:g})",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=INGEST_RETRIES,
        help=f"Retries per handle (default: {INGEST_RETRIES})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=INGEST_BATCH_DELAY,
        help=f"Pacing delay between launches in seconds (default: {INGEST_BATCH_DELAY:g})",
    )

    # Info
    parser.add_argument("--health", action="store_true", help="Check store reachability and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    return parser.parse_args(argv)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def run_bulk(service: ProductService, args: argparse.Namespace) -> dict:
    """Run one bulk ingest to completion; Ctrl+C cancels it cooperatively."""
    settings = BulkSettings(
        concurrency=args.concurrency,
        timeout=args.timeout,
        retries=args.retries,
        batch_delay=args.delay,
    )

    handles = parse_handle_list(args.handles)
    if not handles:
        print("Listing catalog handles...")
        handles = await service.search.list_all_handles()
    if args.limit and args.limit > 0:
        handles = handles[: args.limit]
    if not handles:
        print("No products found")
        return {}

    manager = JobManager(service.ingest, settings)
    handler = get_shutdown_handler().install()
    handler.on_shutdown(manager.cancel)
    try:
        job = await manager.start(handles)
        print(f"Started bulk ingest of {job.total} products ({settings.describe()})")
        return await manager.wait()
    finally:
        handler.uninstall()
        handler.reset()


async def _run(args: argparse.Namespace) -> int:
    async with ProductService() as service:
        if args.health:
            _print_json(await service.health())
            return 0

        if args.product:
            record = await service.require_product(args.product)
            if args.json:
                _print_json(record.to_dict())
            else:
                print(format_product_full(record))
            return 0

        if args.facets:
            _print_json((await service.facets(args.facets)).to_dict())
            return 0

        if args.search:
            hits = await service.search.search(args.search, max_results=args.max_results)
            if args.json:
                _print_json([h.to_dict() for h in hits])
            elif not hits:
                print("No matches")
            else:
                for h in hits:
                    print(f"  {h.handle}: {h.title}")
            return 0

        if args.bulk:
            summary = await run_bulk(service, args)
            if not summary:
                return 1
            print(f"\n{'='*50}")
            print(f"Done: {summary['done']}  Failed: {summary['failed']}  Total: {summary['total']}")
            print(f"Duration: {summary['duration_ms'] / 1000:.1f}s")
            if summary["cancelled"]:
                print("(cancelled before the queue was drained)")
            for err in summary["errors"]:
                print(f"  ✗ {err['handle']}: {err['error']}")
            return 0 if not summary["failed"] else 2

    print("Nothing to do. See --help.")
    return 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        code = asyncio.run(_run(args))
    except StorefrontError as e:
        print(f"Error: {e}")
        code = 1
    except ValueError as e:
        print(f"Invalid option: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
