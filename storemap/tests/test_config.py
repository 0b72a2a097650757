"""Tests for configuration loading and URL validation."""

import json
import os
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from storemap.config import IMAGE_NAMESPACE, SITEMAP_NAMESPACE, Config, load_config
from storemap.url_validation import URLValidationError, validate_store_url, validate_url_template

NESTED = {
    "store": {
        "shopify_domain": "https://field-stream.myshopify.com/",
        "product_url_template": "https://shop.fieldandstream.com/products/<id>",
    },
    "cache": {"dir": "tmp-cache", "ttl": 60},
    "api": {"limit": 5, "start_page": 1, "rate_limit": 1, "max_pages": 2},
    "xml": {"namespaces": {"sitemap": SITEMAP_NAMESPACE, "image": IMAGE_NAMESPACE}},
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("STOREMAP_"):
            monkeypatch.delenv(name)


class TestConfig:
    def test_from_mapping(self):
        config = Config.from_mapping(NESTED)
        assert config.store_url == "https://field-stream.myshopify.com/"
        assert config.product_url_template.endswith("/products/<id>")
        assert config.password is None
        assert config.cache_dir == Path("tmp-cache")
        assert config.cache_ttl == 60
        assert config.limit == 5
        assert config.max_pages == 2
        assert config.rate_limit == 1.0
        assert config.products_url == "https://field-stream.myshopify.com/products.json"
        assert config.password_url == "https://field-stream.myshopify.com/password"

    def test_max_pages_optional(self):
        data = json.loads(json.dumps(NESTED))
        del data["api"]["max_pages"]
        assert Config.from_mapping(data).max_pages is None

    def test_is_immutable(self):
        config = Config.from_mapping(NESTED)
        with pytest.raises(FrozenInstanceError):
            config.limit = 10

    def test_with_overrides_ignores_none(self):
        config = Config.from_mapping(NESTED)
        updated = config.with_overrides(limit=50, password=None)
        assert updated.limit == 50
        assert updated.password is None
        assert config.limit == 5


class TestLoadConfig:
    def test_file_env_and_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "storemap.json"
        path.write_text(json.dumps(NESTED))
        monkeypatch.setenv("STOREMAP_PASSWORD", "from-env")
        monkeypatch.setenv("STOREMAP_MAX_PAGES", "7")

        config = load_config(str(path), max_pages=3)

        assert config.password == "from-env"
        assert config.max_pages == 3
        assert config.limit == 5

    def test_env_only(self, monkeypatch):
        monkeypatch.setenv("STOREMAP_STORE_URL", "https://env.example.com/")
        monkeypatch.setenv("STOREMAP_RATE_LIMIT", "0.5")
        config = load_config()
        assert config.store_url == "https://env.example.com/"
        assert config.rate_limit == 0.5

    def test_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(ValueError):
            load_config(str(path))

    @pytest.mark.parametrize("content", [
        "[]",
        '"storemap"',
        '{"cache": {"ttl": null}}',
        '{"api": {"limit": [5]}}',
        '{"store": "https://x.myshopify.com/"}',
        '{"xml": {"namespaces": []}}',
    ])
    def test_wrong_types_raise_value_error(self, tmp_path, content):
        path = tmp_path / "storemap.json"
        path.write_text(content)
        with pytest.raises(ValueError):
            load_config(str(path))


class TestUrlValidation:
    def test_store_url_ok(self):
        assert validate_store_url("  https://x.myshopify.com/ ") == "https://x.myshopify.com/"

    @pytest.mark.parametrize("url", [
        "https://x.myshopify.com",
        "javascript:alert(1)",
        "https://x.myshopify.com/?a=b",
        "//x.myshopify.com/",
    ])
    def test_store_url_rejected(self, url):
        with pytest.raises(URLValidationError):
            validate_store_url(url)

    def test_template_ok(self):
        assert validate_url_template("https://x/products/<id>") == "https://x/products/<id>"

    @pytest.mark.parametrize("template", [
        "https://x/products/",
        "https://x/<id>/<id>",
        "/products/<id>",
    ])
    def test_template_rejected(self, template):
        with pytest.raises(URLValidationError):
            validate_url_template(template)
