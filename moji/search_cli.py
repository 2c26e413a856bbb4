#!/usr/bin/env python3
"""
Search every Jackett indexer from the command line.

Usage:
    python -m moji.search_cli "some query"
    python -m moji.search_cli "some query" --tracker sukebeinyaasi --category 6000
    python -m moji.search_cli "some query" --limit 10
"""
import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from moji.config import JackettConfig
from moji.jackett_client import JackettError, SearchResult
from moji.tracker import JackettTracker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def format_result(result: SearchResult) -> str:
    size_mb = result.size / (1024 * 1024)
    return (
        f"[{result.tracker or '?'}] {result.title} "
        f"({size_mb:,.1f} MB, {result.seeders} seeders) {result.download_url}"
    )


async def run_search(config: JackettConfig, args: argparse.Namespace) -> int:
    async with JackettTracker(config.url, config.api_key, password=config.password) as tracker:
        results = await tracker.search(
            args.query,
            categories=args.categories,
            trackers=args.trackers,
            limit=args.limit,
        )

    for result in results:
        print(format_result(result))
    return len(results)


def main():
    parser = argparse.ArgumentParser(
        description="Search torrent indexers through Jackett",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "query"                              # Search every indexer
  %(prog)s "query" --tracker sukebeinyaasi      # One indexer only
  %(prog)s "query" --category 6000 --limit 20   # Filter and cap results
        """,
    )

    parser.add_argument("query", help="Search query")
    parser.add_argument(
        "--tracker",
        type=str,
        action="append",
        default=[],
        dest="trackers",
        help="Restrict to an indexer ID (can be used multiple times)",
    )
    parser.add_argument(
        "--category",
        type=int,
        action="append",
        default=[],
        dest="categories",
        help="Restrict to a Torznab category ID (can be used multiple times)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Maximum number of results (default: no limit)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv()
    config = JackettConfig.from_env()
    if not config.api_key:
        logger.error("JACKETT_API_KEY is not set")
        sys.exit(1)

    try:
        count = asyncio.run(run_search(config, args))
    except JackettError as e:
        logger.error(f"Search failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)

    logger.info(f"{count} result(s)")


if __name__ == "__main__":
    main()
