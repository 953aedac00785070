from catalog.scrapers.web_scraper_base import WebScraperBase
from catalog.exceptions import AssetDownloadError, FatalDiscoveryError, TransportError
from catalog.extraction.markup import (
    DEFAULT_SELECTORS,
    ProductListing,
    StorefrontSelectors,
    count_products,
    extract_collections,
    extract_description_html,
    extract_products,
)
from catalog.extraction.text import clean_description, price_to_cents, sanitize_asset_name
from catalog.models import (
    CollectionResult,
    CollectionSummary,
    CrawlReport,
    ProductRecord,
    ProgressCounter,
    new_product_id,
)
from bs4 import BeautifulSoup
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin
import os


class CrawlState(Enum):
    IDLE = "idle"
    DISCOVERING_COLLECTIONS = "discovering_collections"
    COUNTING_WORK = "counting_work"
    TRAVERSING = "traversing"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"


class StorefrontScraper(WebScraperBase):
    """Crawler for a storefront's public catalog.

    The crawl runs in two passes. The first discovers every collection on the
    collections index and counts the product cards on each collection page so
    progress can be reported against a known total. The second visits each
    collection in discovery order, reads its product cards and fetches every
    product's detail page for the description.

    Requests are strictly sequential. A failing collection or product is
    logged and skipped; only a failure to discover collections aborts the run.
    """

    def __init__(self,
                 store_url: str,
                 collections_path: str = "/collections",
                 download_images: bool = False,
                 image_dir: str = "images",
                 selectors: StorefrontSelectors = DEFAULT_SELECTORS,
                 report_writer: Optional[Any] = None,
                 progress_callback: Optional[Callable[[ProgressCounter], None]] = None,
                 user_agent: Optional[str] = None,
                 timeout: float = 30):
        """Initialize the storefront scraper.

        Args:
            store_url: Base URL of the store, e.g. "https://animepavilion.com"
            collections_path: Path of the collections index page
            download_images: Save collection and product images to image_dir
            image_dir: Directory the images are written to
            selectors: CSS selectors for the store theme
            report_writer: Object with a write(report) method, called once
                           after traversal
            progress_callback: Called with the progress counter whenever it
                               changes
            user_agent: Optional custom user agent string
            timeout: Seconds to wait for each request
        """
        super().__init__("storefront", store_url, user_agent=user_agent, timeout=timeout)
        self.collections_url = urljoin(store_url, collections_path)
        self.download_images = download_images
        self.image_dir = image_dir
        self.selectors = selectors
        self.report_writer = report_writer
        self.progress_callback = progress_callback
        self.state = CrawlState.IDLE

        # Collection pages fetched while counting, reused during traversal
        self._page_cache: Dict[str, BeautifulSoup] = {}

    def _transition(self, state: CrawlState):
        self.logger.debug("Crawl state %s -> %s", self.state.value, state.value)
        self.state = state

    def _report_progress(self, counter: ProgressCounter):
        if self.progress_callback:
            self.progress_callback(counter)

    def scrape(self) -> List[Dict[str, Any]]:
        """Crawl the store and return the serialized report."""
        return self.crawl().to_dict()

    def crawl(self) -> CrawlReport:
        """Run a complete crawl and hand the result to the report writer.

        Returns:
            The crawl report, collections in discovery order

        Raises:
            FatalDiscoveryError: If no collections could be discovered; nothing
                                 is written in that case
        """
        self._page_cache.clear()

        try:
            collections = self.discover_collections()
        except FatalDiscoveryError:
            self._transition(CrawlState.ABORTED)
            raise

        counter = self.count_work(collections)

        if self.download_images:
            os.makedirs(self.image_dir, exist_ok=True)

        results = self.traverse(collections, counter)

        self._transition(CrawlState.FINALIZING)
        report = CrawlReport(collections=results)
        if self.report_writer is not None:
            self.report_writer.write(report)
        self._page_cache.clear()

        self._transition(CrawlState.DONE)
        self.logger.info(
            "Crawled %d collections with %d products", len(report.collections), report.product_count
        )
        return report

    def discover_collections(self) -> List[CollectionSummary]:
        """Read the collections index.

        Raises:
            FatalDiscoveryError: If the index cannot be fetched or lists no
                                 collections
        """
        self._transition(CrawlState.DISCOVERING_COLLECTIONS)
        self.logger.info("Discovering collections at %s", self.collections_url)

        try:
            soup = self.get_page(self.collections_url)
        except TransportError as e:
            self.logger.error("Error fetching collections index: %s", e)
            raise FatalDiscoveryError(f"Collections index unreachable: {e}") from e

        collections = extract_collections(soup, self.url, self.selectors)
        if not collections:
            self.logger.error("No collections found at %s", self.collections_url)
            raise FatalDiscoveryError(f"No collections found at {self.collections_url}")

        self.logger.info("Found %d collections", len(collections))
        return collections

    def count_work(self, collections: List[CollectionSummary]) -> ProgressCounter:
        """Count the work units of the crawl.

        One unit per collection plus one per product card on its page. A
        collection page that cannot be fetched contributes no products.
        """
        self._transition(CrawlState.COUNTING_WORK)
        total = len(collections)

        for collection in collections:
            try:
                soup = self.get_page(collection.url)
            except TransportError as e:
                self.logger.warning("Could not count products of %s: %s", collection.name or collection.url, e)
                continue

            self._page_cache[collection.url] = soup
            total += count_products(soup, self.selectors)

        self.logger.info("Counted %d work units", total)
        counter = ProgressCounter(total=total)
        self._report_progress(counter)
        return counter

    def traverse(self, collections: List[CollectionSummary], counter: ProgressCounter) -> List[CollectionResult]:
        """Visit every collection in order and extract its products."""
        self._transition(CrawlState.TRAVERSING)
        results = []

        for collection in collections:
            results.append(self.crawl_collection(collection, counter))
            counter.advance()
            self._report_progress(counter)

        return results

    def crawl_collection(self, collection: CollectionSummary, counter: ProgressCounter) -> CollectionResult:
        """Extract all products of one collection.

        A collection whose page cannot be fetched is returned with no
        products.
        """
        result = CollectionResult.from_summary(collection)

        if self.download_images and collection.image_url:
            self.download_image(collection.image_url, collection.name)

        counted = collection.url in self._page_cache
        # Cards sharing a URL were each counted, so the cached page stays
        soup = self._page_cache.get(collection.url)
        if soup is None:
            try:
                soup = self.get_page(collection.url)
            except TransportError as e:
                self.logger.error("Error fetching collection %s: %s", collection.name or collection.url, e)
                return result

        listings = extract_products(soup, self.url, self.selectors)
        if not counted:
            counter.expand(len(listings))

        self.logger.info("Collection %s: %d products", collection.name, len(listings))

        for listing in listings:
            try:
                result.add_product(self.build_product(listing, collection.name))
            except (AttributeError, TypeError, ValueError, KeyError) as e:
                self.logger.error("Error extracting product %s: %s", listing.product_url, e)
            counter.advance()
            self._report_progress(counter)

        return result

    def build_product(self, listing: ProductListing, collection_name: str) -> ProductRecord:
        """Turn a product card into a product record.

        Fetches the product page for the description and, when enabled,
        downloads the product image.
        """
        description = self.fetch_description(listing.product_url)

        if self.download_images and listing.image_url:
            self.download_image(listing.image_url, listing.title)

        return ProductRecord(
            id=new_product_id(),
            title=listing.title,
            regular_price_cents=price_to_cents(listing.regular_price_text),
            sale_price_cents=price_to_cents(listing.sale_price_text),
            image_url=listing.image_url,
            description=description,
            product_url=listing.product_url,
            collection_name=collection_name,
        )

    def fetch_description(self, product_url: str) -> str:
        """Plain-text description from a product page, or "" if unavailable."""
        try:
            soup = self.get_page(product_url)
        except TransportError as e:
            self.logger.error("Error getting product description %s: %s", product_url, e)
            return ""

        return clean_description(extract_description_html(soup, self.selectors))

    def download_image(self, image_url: str, name: str) -> bool:
        """Save an image under a file name derived from name. Failures are logged."""
        destination = os.path.join(self.image_dir, sanitize_asset_name(name))
        try:
            return self.download_asset(image_url, destination)
        except AssetDownloadError as e:
            self.logger.warning("Image download failed: %s", e)
            return False
