"""Configuration and constants for the sitemap generator."""

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "HEADERS",
    "REQUEST_TIMEOUT",
    "MAX_REDIRECTS",
    "URL_PLACEHOLDER",
    "SITEMAP_NAMESPACE",
    "IMAGE_NAMESPACE",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_CACHE_TTL",
    "DEFAULT_LIMIT",
    "DEFAULT_START_PAGE",
    "DEFAULT_RATE_LIMIT",
    "OUTPUT_PATH",
    "Config",
    "load_config",
]

# Browser-like headers so the storefront doesn't bounce us as a bot
HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

# Request settings
REQUEST_TIMEOUT = 30
MAX_REDIRECTS = 10

# Placeholder substituted with the product handle in the URL template
URL_PLACEHOLDER = "<id>"

# Sitemap XML namespaces
SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NAMESPACE = "http://www.google.com/schemas/sitemap-image/1.1"

# Cache settings
DEFAULT_CACHE_DIR = "cache"
DEFAULT_CACHE_TTL = 3600  # 1 hour

# Pagination settings
DEFAULT_LIMIT = 250
DEFAULT_START_PAGE = 1
DEFAULT_RATE_LIMIT = 1.0  # seconds between page requests

# Output path
OUTPUT_PATH = "sitemap.xml"

# Environment variable -> (config field, converter)
_ENV_OVERRIDES = {
    "STOREMAP_STORE_URL": ("store_url", str),
    "STOREMAP_URL_TEMPLATE": ("product_url_template", str),
    "STOREMAP_PASSWORD": ("password", str),
    "STOREMAP_CACHE_DIR": ("cache_dir", Path),
    "STOREMAP_CACHE_TTL": ("cache_ttl", int),
    "STOREMAP_LIMIT": ("limit", int),
    "STOREMAP_START_PAGE": ("start_page", int),
    "STOREMAP_MAX_PAGES": ("max_pages", int),
    "STOREMAP_RATE_LIMIT": ("rate_limit", float),
    "STOREMAP_OUTPUT": ("output_path", Path),
}


@dataclass(frozen=True)
class Config:
    """Settings for a single sitemap run.

    Built once at startup and handed to every component. Use
    ``with_overrides`` to derive a modified copy.
    """

    store_url: str
    product_url_template: str
    password: Optional[str] = None
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    cache_ttl: int = DEFAULT_CACHE_TTL
    limit: int = DEFAULT_LIMIT
    start_page: int = DEFAULT_START_PAGE
    max_pages: Optional[int] = None
    rate_limit: float = DEFAULT_RATE_LIMIT
    sitemap_namespace: str = SITEMAP_NAMESPACE
    image_namespace: str = IMAGE_NAMESPACE
    output_path: Path = Path(OUTPUT_PATH)

    @property
    def products_url(self) -> str:
        """Base URL of the JSON product listing."""
        return f"{self.store_url}products.json"

    @property
    def password_url(self) -> str:
        return f"{self.store_url}password"

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "Config":
        """Build a Config from the nested store/cache/api/xml structure.

        Example:
            {
                "store": {"shopify_domain": "https://x.myshopify.com/",
                          "product_url_template": "https://x.com/products/<id>"},
                "cache": {"dir": "cache", "ttl": 3600},
                "api": {"limit": 5, "start_page": 1, "rate_limit": 1, "max_pages": 2},
                "xml": {"namespaces": {"sitemap": "...", "image": "..."}}
            }

        Raises:
            ValueError: If the structure isn't nested objects or a value has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Config must be a JSON object, got {type(data).__name__}")

        try:
            store = data.get("store", {})
            cache = data.get("cache", {})
            api = data.get("api", {})
            namespaces = data.get("xml", {}).get("namespaces", {})

            return cls(
                store_url=store.get("shopify_domain", store.get("url", "")),
                product_url_template=store.get("product_url_template", ""),
                password=store.get("password") or None,
                cache_dir=Path(cache.get("dir", DEFAULT_CACHE_DIR)),
                cache_ttl=int(cache.get("ttl", DEFAULT_CACHE_TTL)),
                limit=int(api.get("limit", DEFAULT_LIMIT)),
                start_page=int(api.get("start_page", DEFAULT_START_PAGE)),
                max_pages=int(api["max_pages"]) if api.get("max_pages") is not None else None,
                rate_limit=float(api.get("rate_limit", DEFAULT_RATE_LIMIT)),
                sitemap_namespace=namespaces.get("sitemap", SITEMAP_NAMESPACE),
                image_namespace=namespaces.get("image", IMAGE_NAMESPACE),
                output_path=Path(data.get("output", OUTPUT_PATH)),
            )
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Invalid config value: {e}") from e


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, (field_name, convert) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw:
            overrides[field_name] = convert(raw)
    return overrides


def load_config(path: Optional[str] = None, **overrides: Any) -> Config:
    """Load configuration from an optional JSON file, the environment and overrides.

    Precedence (lowest to highest): JSON file, STOREMAP_* environment
    variables, keyword overrides (typically CLI flags).

    Args:
        path: Optional path to a JSON config file
        **overrides: Explicit field values; None values are ignored

    Returns:
        Config instance

    Raises:
        OSError: If the config file can't be read
        ValueError: If the config file isn't valid JSON or a value has the wrong type
    """
    data: Dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

    config = Config.from_mapping(data)
    config = config.with_overrides(**_env_overrides())
    return config.with_overrides(**overrides)
