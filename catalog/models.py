# Data structures produced by a catalog crawl.
# Collections and products are plain dataclasses; the JSON field names used by
# the report live in the to_dict() methods so the Python side stays snake_case.

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from catalog.extraction.text import slugify


def new_product_id() -> str:
    """Return a fresh identifier for a product record."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class CollectionSummary:
    """A collection card found on the collections index page."""

    url: str
    name: str
    image_url: Optional[str]
    slug: str

    @classmethod
    def from_listing(cls, url: str, name: str, image_url: Optional[str]) -> "CollectionSummary":
        return cls(url=url, name=name, image_url=image_url, slug=slugify(name))


@dataclass(frozen=True)
class ProductRecord:
    """A single product, as extracted from a collection page and its detail page."""

    id: str
    title: str
    regular_price_cents: int
    sale_price_cents: int
    image_url: Optional[str]
    description: str
    product_url: str
    collection_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "regularPriceCents": self.regular_price_cents,
            "salePriceCents": self.sale_price_cents,
            "imageUrl": self.image_url,
            "description": self.description,
            "productUrl": self.product_url,
            "collectionName": self.collection_name,
        }


@dataclass
class CollectionResult:
    """A collection together with the products found on its page, in listing order."""

    url: str
    name: str
    image_url: Optional[str]
    slug: str
    products: List[ProductRecord] = field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: CollectionSummary) -> "CollectionResult":
        return cls(
            url=summary.url,
            name=summary.name,
            image_url=summary.image_url,
            slug=summary.slug,
        )

    def add_product(self, product: ProductRecord) -> None:
        if product.collection_name != self.name:
            raise ValueError(
                f"Product {product.title!r} belongs to {product.collection_name!r}, not {self.name!r}"
            )
        self.products.append(product)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "name": self.name,
            "imageUrl": self.image_url,
            "slug": self.slug,
            "products": [product.to_dict() for product in self.products],
        }


@dataclass
class CrawlReport:
    """All collections of a crawl, in the order they were discovered."""

    collections: List[CollectionResult] = field(default_factory=list)

    @property
    def product_count(self) -> int:
        return sum(len(collection.products) for collection in self.collections)

    def to_dict(self) -> List[Dict[str, Any]]:
        return [collection.to_dict() for collection in self.collections]


@dataclass
class ProgressCounter:
    """Work-unit counter for a crawl.

    ``total`` is precomputed as the number of collections plus the number of
    products counted on their pages. ``current`` only ever moves forward and
    never passes ``total``.
    """

    total: int
    current: int = 0

    def advance(self, step: int = 1) -> int:
        if step < 0:
            raise ValueError("Progress cannot move backwards")
        self.current = min(self.current + step, self.total)
        return self.current

    def expand(self, extra: int) -> None:
        """Grow the total when traversal finds more work than was counted."""
        if extra > 0:
            self.total += extra

    @property
    def remaining(self) -> int:
        return self.total - self.current
