"""High-level sitemap workflow.

Wires the cache, session, fetcher and builder together for a single run.
"""

import logging
from typing import Optional

import requests  # type: ignore[import-untyped]

from storemap.cache import PageCache
from storemap.config import Config
from storemap.fetcher import ProductFetcher
from storemap.logging_config import get_logger, log_harvest_event
from storemap.models import HarvestResult, PageStatus, Product
from storemap.session import bootstrap_session
from storemap.sitemap import SitemapBuilder
from storemap.url_validation import URLValidationError, validate_store_url, validate_url_template

__all__ = [
    "ConfigError",
    "prepare_environment",
    "harvest_products",
    "generate_sitemap",
]


class ConfigError(Exception):
    """Raised for configuration problems found before any network activity."""
    pass


def prepare_environment(
    config: Config,
    logger: Optional[logging.Logger] = None,
    clear_cache: bool = False,
) -> PageCache:
    """Validate config, create the cache directory and sweep expired entries.

    Returns:
        The PageCache for this run

    Raises:
        ConfigError: If a URL is invalid or the cache directory can't be created
    """
    logger = logger or get_logger("workflows")

    try:
        validate_store_url(config.store_url)
    except URLValidationError as e:
        raise ConfigError(f"Invalid store URL: {config.store_url!r} ({e})") from e
    try:
        validate_url_template(config.product_url_template)
    except URLValidationError as e:
        raise ConfigError(f"Invalid product URL template: {e}") from e
    if config.limit < 1 or config.start_page < 1:
        raise ConfigError("limit and start_page must be at least 1")
    if config.max_pages is not None and config.max_pages < 1:
        raise ConfigError("max_pages must be at least 1 when set")

    cache = PageCache(config.cache_dir, config.cache_ttl, logger=get_logger("cache"))
    try:
        if cache.ensure_dir():
            logger.info(f"Created cache directory: {config.cache_dir}")
    except OSError as e:
        raise ConfigError(f"Failed to create cache directory {config.cache_dir}: {e}") from e

    if clear_cache:
        logger.info(f"Cleared {cache.clear()} cached pages")
    else:
        removed = cache.sweep_expired()
        if removed:
            logger.debug(f"Removed {removed} expired cache files")

    return cache


def harvest_products(
    fetcher: ProductFetcher,
    builder: SitemapBuilder,
    logger: Optional[logging.Logger] = None,
) -> HarvestResult:
    """Run the page loop, feeding every product into the builder.

    Partial results are kept when the loop ends early.
    """
    logger = logger or get_logger("workflows")
    result = HarvestResult()
    last_status: Optional[PageStatus] = None

    try:
        for page in fetcher.iter_pages():
            last_status = page.status
            if page.status is not PageStatus.OK:
                continue

            result.pages_fetched += 1
            logger.debug(f"Adding {len(page.products)} products from page {page.page}")
            for raw in page.products:
                try:
                    product = Product.from_json(raw)
                except ValueError as e:
                    logger.warning(f"Skipping product on page {page.page}: {e}")
                    result.products_skipped += 1
                    continue
                if builder.add_product(product):
                    result.products_added += 1
                else:
                    result.products_skipped += 1
    except KeyboardInterrupt:
        logger.info("Harvest interrupted by user, keeping products fetched so far")
        result.stop_reason = "interrupted"
        return result

    if last_status is PageStatus.OK:
        result.stop_reason = "max_pages"
    elif last_status is not None:
        result.stop_reason = last_status.value
        if last_status is PageStatus.MALFORMED:
            logger.warning("Stopped early on a malformed page; the sitemap may be incomplete")
        elif last_status is PageStatus.TRANSPORT_ERROR:
            logger.error("Stopped early on a failed request; writing a partial sitemap")

    return result


def generate_sitemap(
    config: Config,
    session: Optional[requests.Session] = None,
    logger: Optional[logging.Logger] = None,
    clear_cache: bool = False,
) -> HarvestResult:
    """Harvest the store's products and write the sitemap.

    Args:
        config: Run configuration
        session: Pre-built session (default: a new one)
        logger: Logger to use
        clear_cache: Drop every cached page instead of only expired ones

    Returns:
        Summary of the run

    Raises:
        ConfigError: Before any network activity, for bad configuration
        BootstrapError: If the store can't be reached or the probe fails
        SitemapError: If the sitemap can't be written
    """
    logger = logger or get_logger("workflows")

    cache = prepare_environment(config, logger, clear_cache=clear_cache)
    session = bootstrap_session(config, session=session, logger=get_logger("session"))

    log_harvest_event("harvest_start", {
        "store_url": config.store_url,
        "limit": config.limit,
        "start_page": config.start_page,
        "max_pages": config.max_pages,
    }, logger=logger)

    fetcher = ProductFetcher(session, config, cache, logger=get_logger("fetcher"))
    builder = SitemapBuilder(config, logger=get_logger("sitemap"))
    result = harvest_products(fetcher, builder, logger)

    path = builder.write(config.output_path)
    result.output_path = str(path)

    logger.info(f"Sitemap generated successfully! Total products: {result.products_added}")
    log_harvest_event("harvest_complete", {
        "pages_fetched": result.pages_fetched,
        "products_added": result.products_added,
        "products_skipped": result.products_skipped,
        "stop_reason": result.stop_reason,
        "output_path": result.output_path,
    }, logger=logger)

    return result
