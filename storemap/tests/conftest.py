"""Shared test fixtures for the storemap test suite."""

from pathlib import Path

import pytest

from storemap.cache import PageCache
from storemap.config import Config
from storemap.tests.helpers import STORE_URL, TEMPLATE


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, cache_dir) -> Config:
    return Config(
        store_url=STORE_URL,
        product_url_template=TEMPLATE,
        cache_dir=cache_dir,
        cache_ttl=3600,
        limit=5,
        start_page=1,
        max_pages=None,
        rate_limit=0,
        output_path=tmp_path / "sitemap.xml",
    )


@pytest.fixture
def cache(config) -> PageCache:
    return PageCache(config.cache_dir, config.cache_ttl)
