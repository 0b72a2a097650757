"""Tests for the password gate handshake and endpoint probe."""

from dataclasses import replace

import pytest
import requests  # type: ignore[import-untyped]

from storemap.config import HEADERS, MAX_REDIRECTS, REQUEST_TIMEOUT
from storemap.session import (
    BootstrapError,
    ProbeError,
    bootstrap_session,
    create_session,
    extract_authenticity_token,
    probe_products_endpoint,
)

from storemap.tests.helpers import STORE_URL, FakeStore, make_response

PASSWORD_PAGE = """
<html><body>
<form action="/password" method="post">
  <input type="hidden" name="form_type" value="storefront_password">
  <input type="hidden" name="authenticity_token" value="tok-123==">
  <input type="password" name="password">
</form>
</body></html>
"""


class TestCreateSession:
    def test_browser_headers(self):
        session = create_session()
        for name, value in HEADERS.items():
            assert session.headers[name] == value

    def test_redirect_limit(self):
        assert create_session().max_redirects == MAX_REDIRECTS

    def test_cookie_jar_and_no_token(self):
        session = create_session()
        assert isinstance(session.cookies, requests.cookies.RequestsCookieJar)
        assert session.authenticity_token is None


class TestExtractAuthenticityToken:
    def test_finds_token(self):
        assert extract_authenticity_token(PASSWORD_PAGE) == "tok-123=="

    def test_attribute_order_does_not_matter(self):
        html = '<input value="abc" type="hidden" name="authenticity_token">'
        assert extract_authenticity_token(html) == "abc"

    def test_missing_token(self):
        assert extract_authenticity_token("<html><form></form></html>") is None

    def test_empty_input(self):
        assert extract_authenticity_token("") is None


class TestProbe:
    def test_success_returns_product_count(self, config):
        store = FakeStore()
        assert probe_products_endpoint(store.session, config) == 1
        method, url, kwargs = store.calls[0]
        assert method == "GET"
        assert url == f"{STORE_URL}products.json?limit=1"
        assert kwargs["timeout"] == REQUEST_TIMEOUT
        assert kwargs["allow_redirects"] is True

    def test_html_content_type_fails(self, config):
        store = FakeStore(probe=make_response(body="<html>Enter password</html>", content_type="text/html"))
        with pytest.raises(ProbeError, match="content type"):
            probe_products_endpoint(store.session, config)

    def test_invalid_json_fails(self, config):
        store = FakeStore(probe=make_response(body="{not json"))
        with pytest.raises(ProbeError, match="invalid JSON"):
            probe_products_endpoint(store.session, config)

    def test_missing_products_field_fails(self, config):
        store = FakeStore(probe=make_response(body={"items": []}))
        with pytest.raises(ProbeError, match="structure"):
            probe_products_endpoint(store.session, config)

    def test_products_not_a_list_fails(self, config):
        store = FakeStore(probe=make_response(body={"products": {"a": 1}}))
        with pytest.raises(ProbeError):
            probe_products_endpoint(store.session, config)

    def test_error_status_with_json_is_not_raised(self, config):
        # Status codes are inspected by callers, never raised by the client
        store = FakeStore(probe=make_response(status=404, body={"products": []}))
        assert probe_products_endpoint(store.session, config) == 0


class TestBootstrap:
    def test_no_password_skips_handshake(self, config):
        store = FakeStore()
        session = bootstrap_session(config, session=store.session)
        assert session is store.session
        assert [m for m, _, _ in store.calls] == ["GET"]

    def test_password_handshake(self, config):
        config = replace(config, password="hunter2")
        store = FakeStore()
        store.session.request.side_effect = [
            make_response(body=PASSWORD_PAGE, content_type="text/html"),
            make_response(status=302, body="", content_type="text/html"),
            make_response(body={"products": []}),
        ]

        session = bootstrap_session(config, session=store.session)

        calls = store.session.request.call_args_list
        assert [c.args[:2] for c in calls] == [
            ("GET", STORE_URL),
            ("POST", f"{STORE_URL}password"),
            ("GET", f"{STORE_URL}products.json?limit=1"),
        ]
        post = calls[1].kwargs
        assert post["data"] == {
            "form_type": "storefront_password",
            "utf8": "✓",
            "password": "hunter2",
            "authenticity_token": "tok-123==",
        }
        assert post["headers"] == {
            "Content-Type": "application/x-www-form-urlencoded",
            "Origin": STORE_URL,
            "Referer": STORE_URL,
        }
        assert session.authenticity_token == "tok-123=="

    def test_missing_token_submits_empty_value(self, config):
        config = replace(config, password="hunter2")
        store = FakeStore()
        store.session.request.side_effect = [
            make_response(body="<html>no form</html>", content_type="text/html"),
            make_response(body="", content_type="text/html"),
            make_response(body={"products": []}),
        ]

        bootstrap_session(config, session=store.session)

        post = store.session.request.call_args_list[1].kwargs
        assert post["data"]["authenticity_token"] == ""

    def test_rejected_password_fails_probe(self, config):
        config = replace(config, password="wrong")
        store = FakeStore(probe=make_response(body="<html>password</html>", content_type="text/html"))
        with pytest.raises(ProbeError):
            bootstrap_session(config, session=store.session)

    def test_transport_failure_becomes_bootstrap_error(self, config):
        store = FakeStore()
        store.session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(BootstrapError, match="Failed to access store"):
            bootstrap_session(config, session=store.session)
