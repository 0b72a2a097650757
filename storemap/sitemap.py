"""Sitemap XML assembly with the Google image extension."""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union
from xml.sax.saxutils import escape

from storemap.config import URL_PLACEHOLDER, Config
from storemap.logging_config import get_logger
from storemap.models import Product

__all__ = [
    "SitemapBuilder",
    "SitemapEntry",
    "SitemapError",
    "InvalidTimestamp",
    "format_lastmod",
    "xml_escape",
]

# 2024-01-15T10:00:00Z, 2024-01-15T10:00:00.123-05:00, 2024-01-15 10:00:00+02:00
RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)

_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# The XML 1.0 Char production; anything outside it can't appear even escaped
_XML_CHAR_RANGES = [
    (0x09, 0x0A),
    (0x0D, 0x0D),
    (0x20, 0xD7FF),
    (0xE000, 0xFFFD),
    (0x10000, 0x10FFFF),
]
INVALID_XML_CHAR_RE = re.compile(
    "[^" + "".join(f"{chr(lo)}-{chr(hi)}" for lo, hi in _XML_CHAR_RANGES) + "]"
)


class SitemapError(Exception):
    """Raised when the sitemap can't be serialized or written."""
    pass


class InvalidTimestamp(ValueError):
    """Raised for updated_at values that aren't RFC 3339 timestamps."""
    pass


def xml_escape(text: str) -> str:
    """Escape &, <, >, double and single quotes."""
    return escape(text, _QUOTE_ENTITIES)


def format_lastmod(value: str) -> str:
    """Normalize an RFC 3339 timestamp to ISO 8601 at seconds precision.

    The source offset is kept; 'Z' becomes '+00:00'.

    Raises:
        InvalidTimestamp: If value isn't an RFC 3339 timestamp
    """
    value = (value or "").strip()
    match = RFC3339_RE.match(value)
    if not match:
        raise InvalidTimestamp(f"Not an RFC 3339 timestamp: {value!r}")

    normalized = value[:-1] + "+00:00" if value[-1] in "Zz" else value
    if match.group(1):
        # fromisoformat only takes 3 or 6 fractional digits before 3.11
        normalized = normalized.replace(match.group(1), "", 1)
    try:
        parsed = datetime.fromisoformat(normalized.replace("t", "T"))
    except ValueError as e:
        raise InvalidTimestamp(f"Not an RFC 3339 timestamp: {value!r}") from e
    return parsed.isoformat(timespec="seconds")


@dataclass
class SitemapEntry:
    loc: str
    lastmod: str
    image_loc: Optional[str] = None
    image_title: Optional[str] = None


class SitemapBuilder:
    """Accumulates product URLs and serializes them as a sitemap.

    Entries keep the order they were added in. ``finalize`` can only be
    called once.
    """

    def __init__(self, config: Config, logger: Optional[logging.Logger] = None) -> None:
        self.config = config
        self.logger = logger or get_logger("sitemap")
        self.entries: List[SitemapEntry] = []
        self._finalized = False

    def __len__(self) -> int:
        return len(self.entries)

    def product_url(self, handle: str) -> str:
        return self.config.product_url_template.replace(URL_PLACEHOLDER, handle)

    def add_product(self, product: Product) -> bool:
        """Append a url entry for product.

        Returns:
            False if the product was skipped because of a bad timestamp
            or text that XML can't carry
        """
        if self._finalized:
            raise SitemapError("Sitemap has already been finalized")

        try:
            lastmod = format_lastmod(product.updated_at)
        except InvalidTimestamp as e:
            self.logger.warning(f"Skipping product {product.handle}: {e}")
            return False

        entry = SitemapEntry(loc=self.product_url(product.handle), lastmod=lastmod)
        image = product.primary_image
        if image is not None:
            entry.image_loc = image.src
            entry.image_title = product.title

        fields = (("url", entry.loc), ("image", entry.image_loc), ("title", entry.image_title))
        for name, value in fields:
            if value and INVALID_XML_CHAR_RE.search(value):
                self.logger.warning(
                    f"Skipping product {product.handle}: {name} contains characters not allowed in XML"
                )
                return False

        self.entries.append(entry)
        return True

    def add_products(self, products: Iterable[Product]) -> int:
        """Add several products; returns how many were added."""
        return sum(1 for product in products if self.add_product(product))

    def _render_entry(self, entry: SitemapEntry) -> str:
        lines = [
            "  <url>",
            f"    <loc>{xml_escape(entry.loc)}</loc>",
            f"    <lastmod>{xml_escape(entry.lastmod)}</lastmod>",
        ]
        if entry.image_loc is not None:
            lines += [
                "    <image:image>",
                f"      <image:loc>{xml_escape(entry.image_loc)}</image:loc>",
                f"      <image:title>{xml_escape(entry.image_title or '')}</image:title>",
                "    </image:image>",
            ]
        lines.append("  </url>")
        return "\n".join(lines)

    def finalize(self) -> bytes:
        """Serialize the document as UTF-8 XML.

        Raises:
            SitemapError: If called twice, the namespaces hold characters
                XML doesn't allow, or the document can't be encoded
        """
        if self._finalized:
            raise SitemapError("Sitemap has already been finalized")
        self._finalized = True

        parts = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<urlset xmlns="{xml_escape(self.config.sitemap_namespace)}" '
            f'xmlns:image="{xml_escape(self.config.image_namespace)}">',
        ]
        parts.extend(self._render_entry(entry) for entry in self.entries)
        parts.append("</urlset>")
        document = "\n".join(parts) + "\n"

        bad = INVALID_XML_CHAR_RE.search(document)
        if bad:
            raise SitemapError(f"Sitemap contains a character not allowed in XML: {bad.group()!r}")

        try:
            return document.encode("utf-8")
        except UnicodeEncodeError as e:
            raise SitemapError(f"Failed to encode sitemap: {e}") from e

    def write(self, path: Union[str, Path]) -> Path:
        """Finalize and write the sitemap to path.

        The file is written to a temporary name and renamed, so a failed
        write leaves no partial sitemap behind.

        Raises:
            SitemapError: If serialization or writing fails
        """
        document = self.finalize()
        path = Path(path)
        directory = path.parent if str(path.parent) else Path(".")

        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".sitemap-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(document)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise SitemapError(f"Failed to save sitemap to {path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

        return path
