"""Manual item shop scraper runner for testing and debugging.

Runs one scrape through the browser, rebuilds a catalog from a saved page,
or checks the configured proxies.

Usage:
    python scripts/run_scraper.py live
    python scripts/run_scraper.py live --output data/snapshot.json
    python scripts/run_scraper.py offline --html page.html --state state.json --integrity
    python scripts/run_scraper.py proxies
"""

import asyncio
import argparse
import json
import sys
import os

# Add backend to path so we can import itemshop modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from itemshop.config import settings
from itemshop.schemas.catalog import CatalogSnapshot
from itemshop.scrapers.pipeline import build_catalog
from itemshop.scrapers.scraper_service import ScraperService
from itemshop.scrapers.utils.browser_manager import get_browser_manager
from itemshop.scrapers.utils.proxy_manager import ProxyEntry, check_proxy
from itemshop.services.catalog_store import CatalogStore


def print_summary(snapshot: CatalogSnapshot, limit: int = 0) -> None:
    """Print per-category counts and offer id coverage."""
    products = [p for c in snapshot.categories for p in c.products]
    matched = sum(1 for p in products if p.offer_id)
    new = sum(1 for p in products if p.is_new)
    discounted = sum(1 for p in products if p.discount)
    rate = (matched / len(products) * 100) if products else 0.0

    print(f"\n{'='*70}")
    print(f"  Catalog of {snapshot.scraping_date.isoformat()}")
    print(f"{'='*70}")
    for category in snapshot.categories:
        print(f"  📁 {category.name}: {len(category.products)} products")
        for product in category.products[:limit]:
            offer = product.offer_id or product.offer_status.value
            print(f"      - {product.name} ({product.price} VBucks) [{offer}]")

    print(f"{'='*70}")
    print(f"  Summary")
    print(f"{'='*70}")
    print(f"  Categories:   {snapshot.total_categories}")
    print(f"  Products:     {snapshot.total_products}")
    print(f"  New:          {new}")
    print(f"  Discounted:   {discounted}")
    print(f"  With offerId: {matched} ({rate:.1f}%)")
    print(f"{'='*70}\n")


def print_report(report: dict) -> None:
    print("🔍 Integrity report")
    for key, value in report.items():
        if key == "duplicates":
            continue
        print(f"   {key}: {value}")
    if report.get("duplicates"):
        print(f"   ⚠️  {len(report['duplicates'])} duplicated offer ids:")
        for duplicate in report["duplicates"]:
            print(f"      - {duplicate}")
    else:
        print("   ✅ No duplicated offer ids")
    print()


async def run_live(output: str, limit: int, integrity: bool) -> int:
    store = CatalogStore(output)
    service = ScraperService(store)
    print(f"\n🔍 Scraping {settings.SHOP_URL} (up to {service.retries} attempts)...\n")
    try:
        stats = await service.run()
    except Exception as e:
        print(f"\n❌ Scrape failed: {type(e).__name__}: {e}\n")
        return 1
    finally:
        await get_browser_manager().stop()
        print("🧹 Browser closed\n")

    print(f"✅ Saved snapshot to {output} after {stats['attempts']} attempt(s) in {stats['duration_seconds']}s")
    print_summary(store.require(), limit)
    if integrity:
        print_report(stats["integrity"])
    return 0


def run_offline(html_path: str, state_path: str, output: str, limit: int, integrity: bool) -> int:
    with open(html_path, encoding="utf-8") as f:
        html = f.read()
    state = None
    if state_path:
        with open(state_path, encoding="utf-8") as f:
            state = json.load(f)

    catalog = build_catalog(html, state, settings.BASE_URL)
    snapshot = CatalogSnapshot.from_catalog(catalog)
    print(f"\n✅ Built catalog from {html_path} ({catalog.total_entries} state entries, root offer {catalog.root_offer_id})")
    if output:
        CatalogStore(output).save(snapshot)
        print(f"💾 Saved snapshot to {output}")

    print_summary(snapshot, limit)
    if integrity and catalog.integrity:
        print_report(catalog.integrity.to_dict())
    return 0


async def run_proxy_check() -> int:
    proxies = settings.get_proxy_list()
    if not proxies:
        print("\n⚠️  PROXY_LIST is empty\n")
        return 1

    failures = 0
    for raw in proxies:
        try:
            proxy = ProxyEntry.parse(raw)
        except ValueError as e:
            print(f"❌ {e}")
            failures += 1
            continue
        ip = await check_proxy(proxy)
        if ip:
            print(f"✅ {proxy.label} -> egress IP {ip}")
        else:
            print(f"❌ {proxy.label} unreachable")
            failures += 1
    return 1 if failures else 0


def main():
    """Parse arguments and run the selected mode."""
    parser = argparse.ArgumentParser(
        description="Run the item shop scraper manually",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py live
  python scripts/run_scraper.py offline --html page.html --state state.json
  python scripts/run_scraper.py proxies
        """,
    )
    subparsers = parser.add_subparsers(dest="mode", required=True)

    live = subparsers.add_parser("live", help="Scrape the storefront with the browser")
    live.add_argument("--output", default=settings.SNAPSHOT_PATH, help="Snapshot file to write")

    offline = subparsers.add_parser("offline", help="Build the catalog from saved files")
    offline.add_argument("--html", required=True, help="Saved page HTML")
    offline.add_argument("--state", help="Saved window.__remixContext JSON")
    offline.add_argument("--output", help="Snapshot file to write (optional)")

    for sub in (live, offline):
        sub.add_argument("--limit", type=int, default=0, help="Products to list per category (default: 0)")
        sub.add_argument("--integrity", action="store_true", help="Print the integrity report")

    subparsers.add_parser("proxies", help="Check the egress IP of every configured proxy")

    args = parser.parse_args()

    if args.mode == "live":
        code = asyncio.run(run_live(args.output, args.limit, args.integrity))
    elif args.mode == "offline":
        code = run_offline(args.html, args.state, args.output, args.limit, args.integrity)
    else:
        code = asyncio.run(run_proxy_check())
    sys.exit(code)


if __name__ == "__main__":
    main()
