"""Manual pipeline runner for operating and debugging the catalog sync.

Runs one pipeline step against the configured database, outside the API
process and without the job queue.

Usage:
    python scripts/run_pipeline.py discover
    python scripts/run_pipeline.py crawl 3
    python scripts/run_pipeline.py scrape 42
    python scripts/run_pipeline.py outline 42 --language 中文
    python scripts/run_pipeline.py normalize 42
    python scripts/run_pipeline.py publish 42
    python scripts/run_pipeline.py publish-category 3
"""

import argparse
import asyncio
import os
import sys

# Add backend to path so we can import catalog_sync modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from catalog_sync.core.exceptions import CatalogSyncException
from catalog_sync.core.logging import configure_logging
from catalog_sync.db.session import async_session_factory, engine
from catalog_sync.models import Base
from catalog_sync.scrapers.source_site import SourceSiteAdapter
from catalog_sync.services.crawler_service import CrawlerService
from catalog_sync.services.detail_service import DetailService
from catalog_sync.services.normalizer_service import NormalizerService
from catalog_sync.services.publisher_service import PublisherService


async def run_discover(db, args) -> None:
    async with SourceSiteAdapter() as adapter:
        result = await CrawlerService(db, adapter=adapter).discover_categories(args.url)
    print(f"✅ Categories: {result.created} created, {result.updated} updated")
    for category in result.categories:
        print(f"   [{category.id}] {category.title}  {category.url}")


async def run_crawl(db, args) -> None:
    async with SourceSiteAdapter() as adapter:
        result = await CrawlerService(db, adapter=adapter).crawl_category(args.category_id)
    print(f"✅ {result.message}")
    for resource in result.resources[: args.limit]:
        print(f"   [{resource.id}] {resource.chinese_title}")


async def run_scrape(db, args) -> None:
    async with SourceSiteAdapter() as adapter:
        outcome = await DetailService(db, adapter=adapter).scrape_resource(args.resource_id)
    icon = "✅" if outcome.success else "❌"
    print(f"{icon} {outcome.message}")
    if outcome.tags:
        print(f"   🏷️  Tags: {', '.join(outcome.tags)}")


async def run_outline(db, args) -> None:
    outline = await NormalizerService(db).extract_outline(args.resource_id, target_language=args.language)
    print(f"✅ {len(outline.sections)} sections, {outline.lecture_count} lectures")
    for section in outline.sections:
        print(f"   📁 {section.title} ({section.duration or '-'})")


async def run_normalize(db, args) -> None:
    text = await NormalizerService(db).convert_html_to_text(args.resource_id)
    print(f"✅ Converted description ({len(text)} characters)")
    print(text[:500])


async def run_publish(db, args) -> None:
    outcome = await PublisherService(db).publish_resource(args.resource_id)
    print(f"✅ {outcome.message} (action: {outcome.action}, entry: {outcome.entry.id if outcome.entry else None})")


async def run_publish_category(db, args) -> None:
    result = await PublisherService(db).publish_category(args.category_id)
    print(
        f"✅ Published {result.published}, skipped {result.skipped}, "
        f"failed {result.failed} of {result.total}"
    )


COMMANDS = {
    "discover": run_discover,
    "crawl": run_crawl,
    "scrape": run_scrape,
    "outline": run_outline,
    "normalize": run_normalize,
    "publish": run_publish,
    "publish-category": run_publish_category,
}


async def run_command(args) -> int:
    """Run one command in its own session and commit on success.

    Returns:
        Process exit code
    """
    configure_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        try:
            await COMMANDS[args.command](db, args)
            await db.commit()
        except CatalogSyncException as e:
            await db.rollback()
            print(f"\n❌ {type(e).__name__}: {e.message}\n")
            return 1
        finally:
            await engine.dispose()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run one step of the catalog sync pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_pipeline.py discover
  python scripts/run_pipeline.py crawl 3
  python scripts/run_pipeline.py publish-category 3
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Import the site menu as external categories")
    discover.add_argument("--url", help="Page to read the menu from (default: site home)")

    crawl = subparsers.add_parser("crawl", help="Crawl every listing page of a category")
    crawl.add_argument("category_id", type=int)
    crawl.add_argument("--limit", type=int, default=20, help="Resources to display (default: 20)")

    scrape = subparsers.add_parser("scrape", help="Scrape one resource's detail page")
    scrape.add_argument("resource_id", type=int)

    outline = subparsers.add_parser("outline", help="Extract a resource's course outline")
    outline.add_argument("resource_id", type=int)
    outline.add_argument("--language", help="Language of the translated titles")

    normalize = subparsers.add_parser("normalize", help="Convert a resource's description HTML to text")
    normalize.add_argument("resource_id", type=int)

    publish = subparsers.add_parser("publish", help="Publish one resource to the catalog")
    publish.add_argument("resource_id", type=int)

    publish_category = subparsers.add_parser("publish-category", help="Publish every unlinked resource of a category")
    publish_category.add_argument("category_id", type=int)

    return parser


def main():
    """Parse arguments and run the command."""
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run_command(args)))


if __name__ == "__main__":
    main()
