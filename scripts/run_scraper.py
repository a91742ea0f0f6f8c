"""Manual scraper runner for testing and debugging.

Scrape a single product URL through the full fetch / extract / retry
pipeline and print the outcome, or run one full price-check sweep
against the configured database.

Usage:
    python scripts/run_scraper.py --url https://www.amazon.com/dp/B0EXAMPLE
    python scripts/run_scraper.py --url https://www.amazon.com/dp/B0EXAMPLE --strategy browser
    python scripts/run_scraper.py --sweep
"""

import argparse
import asyncio
import os
import sys
from decimal import Decimal

# Add backend to path so we can import pricewatch modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from pricewatch.config import settings
from pricewatch.scrapers.base import ScrapeTarget
from pricewatch.scrapers.policy import ScrapePolicy
from pricewatch.scrapers.scraper import ProductScraper
from pricewatch.scrapers.utils.normalizer import normalize_url
from pricewatch.scrapers.utils.retry import RetryController
from pricewatch.services.price_check import build_fetcher, run_price_check


async def scrape_url(url: str) -> int:
    """Scrape one URL and print the result. Returns a process exit code."""
    policy = ScrapePolicy.from_settings(settings)
    scraper = ProductScraper(build_fetcher(settings, policy))
    controller = RetryController(scraper.scrape, policy)

    print(f"\n{'='*70}")
    print(f"  Scraping ({settings.SCRAPER_STRATEGY}): {url[:60]}")
    print(f"{'='*70}\n")

    outcome = await controller.run(ScrapeTarget(target_id="cli", url=normalize_url(url)))

    if not outcome.ok:
        print(f"Failed after {outcome.attempts} attempt(s): {outcome.reason}\n")
        return 1

    product = outcome.data
    print(f"  Title:     {product.title}")
    print(f"  Price:     {_format_price(product.price, product.currency)}")
    print(f"  Available: {'yes' if product.availability else 'no'}")
    if product.image_url:
        print(f"  Image:     {product.image_url[:80]}")
    print(f"  Attempts:  {outcome.attempts}\n")
    return 0


async def sweep() -> int:
    """Run one full sweep and print its summary."""
    summary = await run_price_check()

    print(f"\n{'='*70}")
    print("  Sweep Summary")
    print(f"{'='*70}")
    print(f"  Total:     {summary.total}")
    print(f"  Succeeded: {summary.succeeded}")
    print(f"  Failed:    {summary.failed}")
    if summary.truncated:
        print(f"  Skipped:   {summary.skipped} (time budget exhausted)")
    print(f"  Duration:  {summary.duration_seconds:.1f}s")
    for failure in summary.failures:
        print(f"    - {failure.target_id}: {failure.reason}")
    print(f"{'='*70}\n")
    return 0 if not summary.failed else 1


def _format_price(price: Decimal, currency: str) -> str:
    symbols = {"USD": "$", "GBP": "£", "EUR": "€", "INR": "₹", "JPY": "¥"}
    symbol = symbols.get(currency)
    if symbol:
        return f"{symbol}{price:,.2f}"
    return f"{price:,.2f} {currency}"


def main():
    """Parse arguments and run."""
    parser = argparse.ArgumentParser(
        description="Scrape a product URL or run a price-check sweep",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py --url https://www.amazon.com/dp/B0EXAMPLE
  python scripts/run_scraper.py --sweep
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--url", help="Product page URL to scrape once")
    mode.add_argument("--sweep", action="store_true", help="Run a full sweep over all active products")

    parser.add_argument(
        "--strategy",
        choices=["http", "browser"],
        help="Override SCRAPER_STRATEGY for this run",
    )

    args = parser.parse_args()

    if args.strategy:
        settings.SCRAPER_STRATEGY = args.strategy

    if args.sweep:
        exit_code = asyncio.run(sweep())
    else:
        exit_code = asyncio.run(scrape_url(args.url))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
