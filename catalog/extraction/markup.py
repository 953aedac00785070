# Selector-based extraction of collections, product cards and descriptions
# from storefront pages. Everything here works on already-parsed documents
# and performs no network access.

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from catalog.extraction.text import NON_TEXT_TAGS
from catalog.models import CollectionSummary


@dataclass(frozen=True)
class StorefrontSelectors:
    """CSS selectors describing the storefront theme's markup.

    The defaults match Shopify's Dawn theme. Any change to the site's markup
    means these selectors have to change with it.
    """

    collection_card: str = ".collection-list__item.grid__item.scroll-trigger.animate--slide-in"
    collection_link: str = ".full-unstyled-link"
    collection_name: str = ".card__heading .full-unstyled-link"
    card_image: str = ".media.media--transparent.media--hover-effect img"
    product_card: str = ".grid__item.scroll-trigger.animate--slide-in"
    product_link: str = ".card__heading.h5 .full-unstyled-link"
    regular_price: str = ".price-item.price-item--regular"
    sale_price: str = ".price-item.price-item--sale.price-item--last"
    description: str = ".product__description.rte.quick-add-hidden"


DEFAULT_SELECTORS = StorefrontSelectors()


@dataclass(frozen=True)
class ProductListing:
    """Raw product fields read from a product card on a collection page."""

    title: str
    regular_price_text: str
    sale_price_text: str
    image_url: Optional[str]
    product_url: str


def _text(element: Optional[Tag]) -> str:
    return element.get_text().strip() if element is not None else ""


def _attr(element: Optional[Tag], name: str) -> Optional[str]:
    if element is None:
        return None
    value = element.get(name)
    # Multi-valued attributes come back as lists
    if isinstance(value, list):
        value = " ".join(value)
    return value


def _absolute(base_url: str, href: Optional[str]) -> str:
    if not href:
        return ""
    return urljoin(base_url, href)


def extract_collections(
    soup: BeautifulSoup, base_url: str, selectors: StorefrontSelectors = DEFAULT_SELECTORS
) -> List[CollectionSummary]:
    """Read every collection card of the collections index, in page order.

    Cards with a missing link, name or image are kept: missing text becomes an
    empty string and a missing image becomes None.
    """
    collections = []
    for card in soup.select(selectors.collection_card):
        href = _attr(card.select_one(selectors.collection_link), "href")
        name = _text(card.select_one(selectors.collection_name))
        image_url = _attr(card.select_one(selectors.card_image), "src")

        collections.append(
            CollectionSummary.from_listing(
                url=_absolute(base_url, href),
                name=name,
                image_url=image_url,
            )
        )
    return collections


def count_products(soup: BeautifulSoup, selectors: StorefrontSelectors = DEFAULT_SELECTORS) -> int:
    """Number of product cards on a collection page."""
    return len(soup.select(selectors.product_card))


def extract_products(
    soup: BeautifulSoup, base_url: str, selectors: StorefrontSelectors = DEFAULT_SELECTORS
) -> List[ProductListing]:
    """Read every product card of a collection page, in page order.

    The regular price is taken from the last matching element because the
    theme renders a hidden duplicate before the visible one. Products without
    a sale get an empty sale price.
    """
    listings = []
    for card in soup.select(selectors.product_card):
        link = card.select_one(selectors.product_link)
        regular_prices = card.select(selectors.regular_price)

        listings.append(
            ProductListing(
                title=_text(link),
                regular_price_text=_text(regular_prices[-1]) if regular_prices else "",
                sale_price_text=_text(card.select_one(selectors.sale_price)),
                image_url=_attr(card.select_one(selectors.card_image), "src"),
                product_url=_absolute(base_url, _attr(link, "href")),
            )
        )
    return listings


def extract_description_html(
    soup: BeautifulSoup, selectors: StorefrontSelectors = DEFAULT_SELECTORS
) -> Optional[str]:
    """Inner HTML of a product page's description block.

    Images, scripts, styles and noscript blocks are removed first. Returns None
    when the page has no description block.
    """
    block = soup.select_one(selectors.description)
    if block is None:
        return None

    for tag in block.find_all(NON_TEXT_TAGS):
        tag.decompose()

    return block.decode_contents()
