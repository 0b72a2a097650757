"""Page-by-page retrieval of the products.json listing."""

import json
import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests  # type: ignore[import-untyped]

from storemap.cache import PageCache
from storemap.config import Config
from storemap.logging_config import get_logger, log_harvest_event
from storemap.models import PageResult, PageStatus
from storemap.session import request

__all__ = ["ProductFetcher", "parse_listing"]


def parse_listing(payload: bytes) -> Optional[List[Dict[str, Any]]]:
    """Return the products list from a raw listing body, or None if malformed."""
    try:
        data = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    products = data.get("products")
    if not isinstance(products, list):
        return None
    return products


class ProductFetcher:
    """Fetches listing pages in order, consulting the cache first.

    Usage:
        fetcher = ProductFetcher(session, config, cache)
        for result in fetcher.iter_pages():
            ...

    The last result yielded is the one that ended the run: an empty page,
    a malformed page, a transport error, or the max_pages page.
    """

    def __init__(
        self,
        session: requests.Session,
        config: Config,
        cache: PageCache,
        logger: Optional[logging.Logger] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.session = session
        self.config = config
        self.cache = cache
        self.logger = logger or get_logger("fetcher")
        self.sleep = sleep or time.sleep

    def page_url(self, page: int) -> str:
        return f"{self.config.products_url}?limit={self.config.limit}&page={page}"

    def is_last_page(self, page: int) -> bool:
        """True if page is the final page allowed by max_pages."""
        max_pages = self.config.max_pages
        return max_pages is not None and page >= self.config.start_page + max_pages - 1

    def _listing_result(self, page: int, url: str, products: List[Dict[str, Any]], from_cache: bool) -> PageResult:
        status = PageStatus.OK if products else PageStatus.EMPTY
        return PageResult(page=page, url=url, status=status, products=products, from_cache=from_cache)

    def fetch_page(self, page: int) -> PageResult:
        """Fetch a single listing page.

        Never raises for network or payload problems; the outcome is in
        the returned PageResult's status.
        """
        url = self.page_url(page)

        cached = self.cache.get(url)
        if cached is not None:
            products = parse_listing(cached)
            if products is not None:
                self.logger.debug(f"Using cached data for: {url}")
                return self._listing_result(page, url, products, from_cache=True)
            self.logger.warning(f"Ignoring unreadable cache file for: {url}")

        self.logger.info(f"Fetching: {url}")
        try:
            response = request(self.session, "GET", url)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Error fetching products: {e}")
            return PageResult(page=page, url=url, status=PageStatus.TRANSPORT_ERROR, error=str(e))

        self.logger.debug(f"Response status: {response.status_code}")
        if response.status_code != 200:
            self.logger.error(f"Unexpected status {response.status_code} for: {url}")
            return PageResult(
                page=page,
                url=url,
                status=PageStatus.TRANSPORT_ERROR,
                error=f"HTTP {response.status_code}",
            )

        body = response.content
        products = parse_listing(body)
        if products is None:
            self.logger.warning(f"Invalid product data structure received on page {page}")
            return PageResult(
                page=page,
                url=url,
                status=PageStatus.MALFORMED,
                error="response is not a JSON object with a products list",
            )

        self.cache.put(url, body)
        self.logger.info(f"Found {len(products)} products")
        return self._listing_result(page, url, products, from_cache=False)

    def iter_pages(self) -> Iterator[PageResult]:
        """Yield page results from start_page until a terminal condition.

        Sleeps rate_limit seconds between pages, never after the final one.
        """
        page = self.config.start_page

        while True:
            result = self.fetch_page(page)
            log_harvest_event("page_fetched", {
                "message": f"Page {page}: {result.status.value} ({len(result.products)} products)",
                "page": page,
                "status": result.status.value,
                "products": len(result.products),
                "from_cache": result.from_cache,
            }, level=logging.DEBUG, logger=self.logger)

            yield result

            if result.status.is_terminal:
                if result.status is PageStatus.EMPTY:
                    self.logger.info(f"No more products found on page {page}")
                return

            if self.is_last_page(page):
                self.logger.info(f"Reached max pages limit of {self.config.max_pages}")
                return

            page += 1
            self.sleep(self.config.rate_limit)
