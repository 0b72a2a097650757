"""Data models for products and harvest results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = [
    "ProductImage",
    "Product",
    "PageStatus",
    "PageResult",
    "HarvestResult",
]


@dataclass
class ProductImage:
    src: str


@dataclass
class Product:
    """A single product record from the products.json listing.

    Only the fields needed for the sitemap are kept. The first image, if
    any, becomes the sitemap image entry.
    """

    handle: str
    title: str = ""
    updated_at: str = ""
    images: List[ProductImage] = field(default_factory=list)

    @property
    def primary_image(self) -> Optional[ProductImage]:
        return self.images[0] if self.images else None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Product":
        """Build a Product from a raw JSON product object.

        Raises:
            ValueError: If the record has no usable handle
        """
        if not isinstance(data, dict):
            raise ValueError(f"Product record is not an object: {data!r}")

        handle = data.get("handle")
        if not handle or not isinstance(handle, str):
            raise ValueError(f"Product record has no handle (id={data.get('id')})")

        images: List[ProductImage] = []
        raw_images = data.get("images")
        if not isinstance(raw_images, list):
            raw_images = []
        for image in raw_images:
            if isinstance(image, dict) and image.get("src"):
                images.append(ProductImage(src=str(image["src"])))

        return cls(
            handle=handle,
            title=str(data.get("title") or ""),
            updated_at=str(data.get("updated_at") or ""),
            images=images,
        )


class PageStatus(str, Enum):
    """Outcome of fetching one listing page."""

    OK = "ok"
    EMPTY = "empty"
    MALFORMED = "malformed"
    TRANSPORT_ERROR = "transport_error"

    @property
    def is_terminal(self) -> bool:
        return self is not PageStatus.OK


@dataclass
class PageResult:
    """Tagged result of fetching a single page."""

    page: int
    url: str
    status: PageStatus
    products: List[Dict[str, Any]] = field(default_factory=list)
    from_cache: bool = False
    error: Optional[str] = None


@dataclass
class HarvestResult:
    """Summary of a complete sitemap run."""

    pages_fetched: int = 0
    products_added: int = 0
    products_skipped: int = 0
    stop_reason: Optional[str] = None
    output_path: Optional[str] = None

    @property
    def completed_normally(self) -> bool:
        return self.stop_reason in (PageStatus.EMPTY.value, "max_pages")
