"""Storefront session setup: password gate handshake and endpoint probe."""

import json
import logging
import re
from typing import Any, Optional

import requests  # type: ignore[import-untyped]
from bs4 import BeautifulSoup

from storemap.config import HEADERS, MAX_REDIRECTS, REQUEST_TIMEOUT, Config
from storemap.logging_config import get_logger

__all__ = [
    "BootstrapError",
    "ProbeError",
    "create_session",
    "request",
    "extract_authenticity_token",
    "submit_password",
    "probe_products_endpoint",
    "bootstrap_session",
]

# Fallback for markup BeautifulSoup can't make sense of
TOKEN_RE = re.compile(r'<input[^>]*name="authenticity_token"[^>]*value="([^"]*)"')


class BootstrapError(Exception):
    """Raised when the store can't be reached or authenticated."""
    pass


class ProbeError(BootstrapError):
    """Raised when products.json doesn't return a usable product listing."""
    pass


def create_session() -> requests.Session:
    """Create a requests Session with a cookie jar and browser-like headers.

    The session keeps cookies for the whole run, so the password gate only
    has to be passed once.
    """
    session = requests.Session()
    session.headers.update(HEADERS)
    session.max_redirects = MAX_REDIRECTS
    session.authenticity_token = None
    return session


def request(session: requests.Session, method: str, url: str, **kwargs: Any) -> requests.Response:
    """Issue a request with the standard timeout and redirect handling.

    HTTP error statuses are returned, not raised; callers inspect them.

    Raises:
        requests.RequestException: On transport failure
    """
    kwargs.setdefault("timeout", REQUEST_TIMEOUT)
    kwargs.setdefault("allow_redirects", True)
    return session.request(method, url, **kwargs)


def extract_authenticity_token(html: str) -> Optional[str]:
    """Find the authenticity_token form value in a page, if there is one."""
    if not html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    field = soup.find("input", attrs={"name": "authenticity_token"})
    if field is not None:
        value = field.get("value")
        if isinstance(value, str):
            return value

    match = TOKEN_RE.search(html)
    return match.group(1) if match else None


def submit_password(
    session: requests.Session,
    config: Config,
    logger: Optional[logging.Logger] = None,
) -> requests.Response:
    """Pass the storefront password gate.

    Success isn't checked here; the endpoint probe is what tells us whether
    the cookies we got are any good.

    Raises:
        requests.RequestException: On transport failure
    """
    logger = logger or get_logger("session")
    logger.info("Store is password protected, attempting authentication...")

    response = request(session, "GET", config.store_url)
    token = extract_authenticity_token(response.text)
    if token is not None:
        logger.info("Found authenticity token")
    else:
        logger.info("No authenticity token found, submitting without one")
    session.authenticity_token = token

    logger.info("Submitting password...")
    response = request(
        session,
        "POST",
        config.password_url,
        data={
            "form_type": "storefront_password",
            "utf8": "✓",
            "password": config.password,
            "authenticity_token": token or "",
        },
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Origin": config.store_url,
            "Referer": config.store_url,
        },
    )
    logger.info(f"Password submitted, status: {response.status_code}")
    return response


def probe_products_endpoint(
    session: requests.Session,
    config: Config,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Check that products.json returns a JSON product listing.

    A password-protected store that rejected our credentials answers with
    the HTML gate page, which fails the content type check.

    Returns:
        Number of products in the probe response

    Raises:
        ProbeError: If the response isn't a JSON object with a products list
        requests.RequestException: On transport failure
    """
    logger = logger or get_logger("session")
    logger.info("Testing products endpoint...")

    response = request(session, "GET", f"{config.products_url}?limit=1")

    content_type = response.headers.get("Content-Type", "")
    if "application/json" not in content_type:
        logger.error(f"Invalid content type: {content_type}. Expected application/json")
        raise ProbeError(
            f"Store endpoint returned invalid content type ({content_type or 'none'}). "
            f"Store might be password protected."
        )

    try:
        data = json.loads(response.content)
    except ValueError as e:
        logger.error("Invalid JSON response from store")
        raise ProbeError(f"Store endpoint returned invalid JSON response: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("products"), list):
        logger.error("Invalid product data structure received")
        raise ProbeError("Store endpoint returned invalid product data structure")

    logger.info("Products endpoint test successful")
    return len(data["products"])


def bootstrap_session(
    config: Config,
    session: Optional[requests.Session] = None,
    logger: Optional[logging.Logger] = None,
) -> requests.Session:
    """Create a session, pass the password gate if configured, and probe.

    Args:
        config: Run configuration
        session: Existing session to use (default: a new one)
        logger: Logger to use

    Returns:
        A session ready for fetching product pages

    Raises:
        BootstrapError: If the store can't be reached or the probe fails
    """
    logger = logger or get_logger("session")
    session = session if session is not None else create_session()

    try:
        if config.password:
            submit_password(session, config, logger)
        else:
            logger.info("Store is not password protected, proceeding with direct access")

        probe_products_endpoint(session, config, logger)
    except requests.exceptions.RequestException as e:
        logger.error(f"Error during store access: {e}")
        raise BootstrapError(f"Failed to access store: {e}") from e

    return session
