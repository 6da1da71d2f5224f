"""
GitHub mining script for the accessibility tool usage study.

with-tools mode: web applications that use at least one catalog tool.
without-tools mode: popular repositories that use none of them.
"""

import argparse
import logging
import sys

from a11y_miner.api_client import GitHubAPIClient
from a11y_miner.log_config import setup_logging
from a11y_miner.pipeline import CrawlerConfig, CrawlerPipeline, CrawlMode
from a11y_miner.rate_limiter import ConfigurationError, CredentialPool

logger = logging.getLogger(__name__)

# Keep a safety margin under a six hour CI job limit
DEFAULT_MAX_HOURS = 5 + 50 / 60


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mine GitHub for accessibility testing tool usage")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in CrawlMode],
        default=CrawlMode.WITH_TOOLS.value,
        help="with-tools: web apps using tools; without-tools: popular repos without tools",
    )
    parser.add_argument("--query", action="append", dest="queries", help="Search query (repeatable)")
    parser.add_argument("--output", help="CSV output file")
    parser.add_argument("--processed-file", help="Processed repositories JSON file")
    parser.add_argument("--batch-size", type=int, default=10)
    parser.add_argument("--max-pages", type=int, default=10, help="Page cap per query")
    parser.add_argument("--max-hours", type=float, default=DEFAULT_MAX_HOURS, help="0 disables the limit")
    parser.add_argument("--no-readme", action="store_true", help="Classify without fetching READMEs")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main mining function."""
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    print("=" * 70)
    print("GitHub Accessibility Tool Miner")
    print("=" * 70)

    try:
        pool = CredentialPool.from_env()
    except ConfigurationError as e:
        logger.critical("Fatal configuration error: %s", e)
        return 1

    config = CrawlerConfig(
        queries=args.queries,
        mode=CrawlMode(args.mode),
        max_pages_per_query=args.max_pages,
        batch_size=args.batch_size,
        max_run_seconds=args.max_hours * 3600 if args.max_hours else None,
        output_csv=args.output,
        processed_file=args.processed_file,
        fetch_readme=not args.no_readme,
    )

    pipeline = CrawlerPipeline(config, client=GitHubAPIClient(pool))

    try:
        stats = pipeline.run()
    except KeyboardInterrupt:
        print("\n\nCrawl interrupted; progress up to the last flush is saved.")
        return 130

    print()
    print("=" * 70)
    print("Mining complete!")
    print("=" * 70)
    print(f"  Analyzed: {stats.analyzed}")
    print(f"  Saved: {stats.saved}")
    print(f"  Skipped: {stats.skipped}")
    print(f"  Errors: {stats.errors}")
    print(f"  Results: {config.output_csv}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
