"""URL validation for store configuration.

Checks the store URL and product URL template before any network activity.
"""

import re
from urllib.parse import urlparse

from storemap.config import URL_PLACEHOLDER

__all__ = [
    "validate_store_url",
    "validate_url_template",
    "sanitize_url",
    "URLValidationError",
]


class URLValidationError(Exception):
    """Raised when URL validation fails."""
    pass


# Dangerous URL schemes to reject
DANGEROUS_SCHEMES = {"javascript", "data", "vbscript", "file"}


def sanitize_url(url: str) -> str:
    """Strip whitespace and control characters from a URL."""
    if not url:
        return ""
    url = url.strip()
    return re.sub(r"[\x00-\x1f\x7f-\x9f]", "", url)


def _check_http_url(url: str, label: str) -> str:
    if not url:
        raise URLValidationError(f"{label} is empty")

    url = sanitize_url(url)
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Failed to parse {label}: {e}") from e

    scheme = parsed.scheme.lower()
    if scheme in DANGEROUS_SCHEMES:
        raise URLValidationError(f"Dangerous URL scheme: {scheme}")
    if scheme not in ("http", "https"):
        raise URLValidationError(f"Invalid {label} scheme: {scheme or '(none)'}")
    if not parsed.netloc:
        raise URLValidationError(f"{label} has no domain: {url}")

    return url


def validate_store_url(url: str) -> str:
    """Validate the storefront base URL.

    Args:
        url: Absolute store URL, e.g. https://shop.myshopify.com/

    Returns:
        Validated URL

    Raises:
        URLValidationError: If the URL is not an absolute http(s) URL
            ending in '/'
    """
    url = _check_http_url(url, "store URL")

    parsed = urlparse(url)
    if parsed.query or parsed.fragment:
        raise URLValidationError(f"Store URL must not have a query or fragment: {url}")
    if not url.endswith("/"):
        raise URLValidationError(f"Store URL must end with '/': {url}")

    return url


def validate_url_template(template: str) -> str:
    """Validate a product URL template.

    Raises:
        URLValidationError: If the template isn't an http(s) URL or lacks
            exactly one placeholder
    """
    template = _check_http_url(template, "product URL template")

    count = template.count(URL_PLACEHOLDER)
    if count != 1:
        raise URLValidationError(
            f"Product URL template must contain {URL_PLACEHOLDER} exactly once, found {count}: {template}"
        )

    return template
