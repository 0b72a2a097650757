"""Fake storefront responses for tests."""

import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

STORE_URL = "https://example.myshopify.com/"
TEMPLATE = "https://shop.example.com/products/<id>"


def make_response(
    status: int = 200,
    body: Any = None,
    content_type: str = "application/json; charset=utf-8",
) -> MagicMock:
    """Build a fake requests.Response.

    Dicts and lists are JSON-encoded; str/bytes bodies are used as-is.
    """
    if isinstance(body, (dict, list)):
        raw = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        raw = body.encode("utf-8")
    else:
        raw = body or b""

    response = MagicMock()
    response.status_code = status
    response.content = raw
    response.text = raw.decode("utf-8", errors="replace")
    response.headers = {"Content-Type": content_type} if content_type else {}
    return response


def make_product(n: int, **overrides: Any) -> Dict[str, Any]:
    product = {
        "id": n,
        "handle": f"product-{n}",
        "title": f"Product {n}",
        "updated_at": "2024-01-15T10:00:00-05:00",
        "images": [{"src": f"https://cdn.example.com/p{n}.jpg"}],
    }
    product.update(overrides)
    return product


def make_page(start: int, count: int) -> List[Dict[str, Any]]:
    return [make_product(n) for n in range(start, start + count)]


class FakeStore:
    """Routes session.request calls to canned storefront responses.

    pages maps page number -> list of products, a prepared response, or an
    exception to raise. Pages not in the map return an empty listing.
    """

    def __init__(self, pages: Optional[Dict[int, Any]] = None, probe: Optional[MagicMock] = None):
        self.pages = pages or {}
        self.probe = probe
        self.calls: List[tuple] = []
        self.session = MagicMock()
        self.session.request.side_effect = self._handle

    def _handle(self, method: str, url: str, **kwargs: Any) -> MagicMock:
        self.calls.append((method, url, kwargs))
        parsed = urlparse(url)
        query = parse_qs(parsed.query)

        if parsed.path.endswith("products.json") and "page" not in query:
            if self.probe is not None:
                return self.probe
            return make_response(body={"products": [make_product(1)]})

        if parsed.path.endswith("products.json"):
            page = self.pages.get(int(query["page"][0]), [])
            if isinstance(page, BaseException):
                raise page
            if isinstance(page, list):
                return make_response(body={"products": page})
            return page

        return make_response(body="<html></html>", content_type="text/html")

    def page_requests(self) -> List[str]:
        return [url for _, url, _ in self.calls if "page=" in url]
