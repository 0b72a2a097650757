"""Storefront product sitemap generator package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from storemap.cache import PageCache
from storemap.config import Config, load_config
from storemap.fetcher import ProductFetcher
from storemap.models import HarvestResult, PageResult, PageStatus, Product, ProductImage
from storemap.session import BootstrapError, ProbeError, bootstrap_session, create_session
from storemap.sitemap import SitemapBuilder, SitemapError
from storemap.workflows import ConfigError, generate_sitemap

__all__ = [
    # Version
    "__version__",
    # Config
    "Config",
    "load_config",
    # Models
    "Product",
    "ProductImage",
    "PageStatus",
    "PageResult",
    "HarvestResult",
    # Components
    "PageCache",
    "ProductFetcher",
    "SitemapBuilder",
    "create_session",
    "bootstrap_session",
    "generate_sitemap",
    # Errors
    "ConfigError",
    "BootstrapError",
    "ProbeError",
    "SitemapError",
]
