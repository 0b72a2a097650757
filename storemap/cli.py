"""Command-line interface for the sitemap generator."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

__all__ = ["main", "parse_args", "build_config"]

from storemap.config import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_TTL,
    DEFAULT_RATE_LIMIT,
    OUTPUT_PATH,
    Config,
    load_config,
)
from storemap.logging_config import LOG_DIR, setup_logging
from storemap.session import BootstrapError
from storemap.sitemap import SitemapError
from storemap.workflows import ConfigError, generate_sitemap

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build a product sitemap from a storefront's products.json listing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use a JSON config file
  storemap --config storemap.json

  # Everything on the command line, first two pages only
  storemap --store-url https://example.myshopify.com/ \\
      --template "https://shop.example.com/products/<id>" --max-pages 2

  # Password-protected store (or set STOREMAP_PASSWORD in .env)
  storemap --config storemap.json --password hunter2
        """,
    )

    parser.add_argument("--config", metavar="PATH", help="JSON config file (store/cache/api/xml sections)")

    # Store
    parser.add_argument("--store-url", help="Store base URL, ending in '/'")
    parser.add_argument("--template", help="Product URL template containing <id>")
    parser.add_argument("--password", help="Storefront password, if the store is protected")

    # Cache
    parser.add_argument(
        "--cache-dir",
        type=Path,
        help=f"Directory for cached pages (default: {DEFAULT_CACHE_DIR})",
    )
    parser.add_argument(
        "--cache-ttl",
        type=int,
        help=f"Seconds before a cached page expires (default: {DEFAULT_CACHE_TTL})",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete every cached page before fetching",
    )

    # Pagination
    parser.add_argument("--limit", type=int, help="Products per page")
    parser.add_argument("--start-page", type=int, help="First page to fetch")
    parser.add_argument("--max-pages", type=int, help="Maximum number of pages to fetch")
    parser.add_argument(
        "--rate-limit",
        type=float,
        help=f"Seconds to wait between pages (default: {DEFAULT_RATE_LIMIT})",
    )

    # Output
    parser.add_argument("--output", type=Path, help=f"Sitemap path (default: {OUTPUT_PATH})")

    # Logging
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("--no-log-file", action="store_true", help="Don't write JSONL logs")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Merge the config file, environment and command-line flags."""
    return load_config(
        args.config,
        store_url=args.store_url,
        product_url_template=args.template,
        password=args.password,
        cache_dir=args.cache_dir,
        cache_ttl=args.cache_ttl,
        limit=args.limit,
        start_page=args.start_page,
        max_pages=args.max_pages,
        rate_limit=args.rate_limit,
        output_path=args.output,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI. Returns the process exit code."""
    load_dotenv()
    args = parse_args(argv)
    logger = setup_logging(
        verbose=args.verbose,
        log_dir=None if args.no_log_file else LOG_DIR,
    )

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        return EXIT_FAILURE

    try:
        result = generate_sitemap(config, logger=logger, clear_cache=args.clear_cache)
    except (ConfigError, BootstrapError, SitemapError) as e:
        logger.error(str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted before harvesting started")
        return EXIT_INTERRUPTED

    logger.debug(f"Stop reason: {result.stop_reason}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
