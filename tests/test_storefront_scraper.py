"""
Unit tests for the storefront crawl orchestrator.

Pages are served from in-memory HTML by replacing fetch_html, so the tests
exercise discovery, counting, traversal and failure handling without making
HTTP requests.
"""

import os
import shutil
import tempfile
import unittest
from unittest.mock import Mock, patch

from catalog.exceptions import AssetDownloadError, FatalDiscoveryError
from catalog.scrapers.websites.storefront_scraper import CrawlState, StorefrontScraper
from storefront_pages import (
    COLLECTIONS_URL,
    STORE_URL,
    collection_card,
    collection_page,
    collections_index,
    fake_fetch,
    product_card,
    product_page,
)


def build_store(collection_count=2, products_per_collection=1):
    """Pages for a store with numbered collections and products."""
    cards = []
    pages = {}
    for c in range(1, collection_count + 1):
        cards.append(collection_card(f"/collections/c{c}", f"Collection {c}",
                                     image=f"//cdn.example.com/c{c}.jpg"))
        product_cards = []
        for p in range(1, products_per_collection + 1):
            product_cards.append(product_card(
                f"/products/c{c}-p{p}", f"Product {c}.{p}",
                regular=f"${c}{p}.99", image=f"//cdn.example.com/c{c}-p{p}.jpg",
            ))
            pages[f"{STORE_URL}/products/c{c}-p{p}"] = product_page(f"<p>Description {c}.{p}</p>")
        pages[f"{STORE_URL}/collections/c{c}"] = collection_page(*product_cards)
    pages[COLLECTIONS_URL] = collections_index(*cards)
    return pages


class TestStorefrontScraper(unittest.TestCase):
    """Test cases for the StorefrontScraper class."""

    def setUp(self):
        """Set up test fixtures."""
        self.writer = Mock()
        self.progress = []
        self.scraper = StorefrontScraper(
            store_url=STORE_URL,
            report_writer=self.writer,
            progress_callback=lambda counter: self.progress.append((counter.current, counter.total)),
        )

    def serve(self, pages):
        fetch = fake_fetch(pages)
        patcher = patch.object(self.scraper, "fetch_html", side_effect=fetch)
        patcher.start()
        self.addCleanup(patcher.stop)
        return fetch

    def test_scraper_initialization(self):
        """Test scraper initialization."""
        self.assertEqual(self.scraper.collections_url, COLLECTIONS_URL)
        self.assertEqual(self.scraper.state, CrawlState.IDLE)
        self.assertFalse(self.scraper.download_images)

    def test_end_to_end(self):
        """Test a store with two collections of one product each."""
        self.serve(build_store(2, 1))

        report = self.scraper.crawl()

        self.assertEqual(self.scraper.state, CrawlState.DONE)
        self.assertEqual(len(report.collections), 2)
        for index, collection in enumerate(report.collections, 1):
            self.assertEqual(collection.name, f"Collection {index}")
            self.assertEqual(collection.slug, f"collection-{index}")
            self.assertEqual(len(collection.products), 1)
            product = collection.products[0]
            self.assertTrue(product.id)
            self.assertEqual(product.collection_name, collection.name)
            self.assertIsInstance(product.regular_price_cents, int)
            self.assertIsInstance(product.sale_price_cents, int)
            self.assertEqual(product.regular_price_cents, int(f"{index}199"))
            self.assertEqual(product.sale_price_cents, 0)
            self.assertEqual(product.description, f"Description {index}.1")
            self.assertEqual(product.product_url, f"{STORE_URL}/products/c{index}-p1")

        self.writer.write.assert_called_once_with(report)

    def test_traversal_order(self):
        """Test that collections and products keep discovery and listing order."""
        self.serve(build_store(3, 3))

        report = self.scraper.crawl()

        self.assertEqual([c.name for c in report.collections],
                         ["Collection 1", "Collection 2", "Collection 3"])
        for c, collection in enumerate(report.collections, 1):
            self.assertEqual([p.title for p in collection.products],
                             [f"Product {c}.{p}" for p in range(1, 4)])

    def test_progress_reaches_total(self):
        """Test that progress is counted per collection and per product."""
        self.serve(build_store(2, 3))

        self.scraper.crawl()

        # Initial report plus one per product and one per collection
        self.assertEqual(len(self.progress), 1 + 6 + 2)
        self.assertEqual(self.progress[0], (0, 8))
        self.assertEqual(self.progress[-1], (8, 8))
        currents = [current for current, _ in self.progress]
        self.assertEqual(currents, sorted(currents))
        for current, total in self.progress:
            self.assertLessEqual(current, total)

    def test_collection_pages_are_reused(self):
        """Test that each collection page is fetched once when counting succeeds."""
        fetch = self.serve(build_store(2, 1))

        self.scraper.crawl()

        self.assertEqual(fetch.requested.count(f"{STORE_URL}/collections/c1"), 1)
        self.assertEqual(fetch.requested.count(f"{STORE_URL}/collections/c2"), 1)
        self.assertEqual(fetch.requested[0], COLLECTIONS_URL)

    def test_duplicate_collection_urls(self):
        """Test that two cards linking to the same page are counted once each."""
        pages = build_store(1, 1)
        pages[COLLECTIONS_URL] = collections_index(
            collection_card("/collections/c1", "Collection 1"),
            collection_card("/collections/c1", "Collection 1 Again"),
        )
        fetch = self.serve(pages)

        report = self.scraper.crawl()

        self.assertEqual(self.progress, [(0, 4), (1, 4), (2, 4), (3, 4), (4, 4)])
        self.assertEqual([len(c.products) for c in report.collections], [1, 1])
        self.assertEqual(report.collections[1].products[0].collection_name, "Collection 1 Again")
        self.assertEqual(fetch.requested.count(f"{STORE_URL}/collections/c1"), 2)

    def test_failing_collection_does_not_abort(self):
        """Test that an unreachable collection is kept with no products."""
        pages = build_store(3, 1)
        del pages[f"{STORE_URL}/collections/c2"]
        self.serve(pages)

        report = self.scraper.crawl()

        self.assertEqual(self.scraper.state, CrawlState.DONE)
        self.assertEqual([c.name for c in report.collections],
                         ["Collection 1", "Collection 2", "Collection 3"])
        self.assertEqual(len(report.collections[0].products), 1)
        self.assertEqual(report.collections[1].products, [])
        self.assertEqual(len(report.collections[2].products), 1)
        self.assertEqual(self.progress[-1], (5, 5))
        self.writer.write.assert_called_once()

    def test_collection_recovered_after_failed_count(self):
        """Test that a collection failing only while counting is still traversed."""
        pages = build_store(2, 2)
        fetch = fake_fetch(pages)
        failed = []

        def flaky(url):
            if url == f"{STORE_URL}/collections/c1" and not failed:
                failed.append(url)
                return fetch(url + "/unavailable")
            return fetch(url)

        patcher = patch.object(self.scraper, "fetch_html", side_effect=flaky)
        patcher.start()
        self.addCleanup(patcher.stop)

        report = self.scraper.crawl()

        self.assertEqual(len(report.collections[0].products), 2)
        # The total grows by the two products found late
        self.assertEqual(self.progress[0], (0, 4))
        self.assertEqual(self.progress[-1], (6, 6))

    def test_failing_product_page_keeps_product(self):
        """Test that a product whose page fails is kept with an empty description."""
        pages = build_store(1, 2)
        del pages[f"{STORE_URL}/products/c1-p1"]
        self.serve(pages)

        report = self.scraper.crawl()

        products = report.collections[0].products
        self.assertEqual(len(products), 2)
        self.assertEqual(products[0].description, "")
        self.assertEqual(products[0].regular_price_cents, 1199)
        self.assertEqual(products[1].description, "Description 1.2")

    def test_broken_product_is_skipped(self):
        """Test that a product whose record cannot be built is omitted."""
        self.serve(build_store(1, 2))
        original = self.scraper.build_product

        def build(listing, collection_name):
            if listing.title == "Product 1.1":
                raise ValueError("malformed card")
            return original(listing, collection_name)

        with patch.object(self.scraper, "build_product", side_effect=build):
            report = self.scraper.crawl()

        self.assertEqual([p.title for p in report.collections[0].products], ["Product 1.2"])
        self.assertEqual(self.progress[-1], (3, 3))

    def test_sale_prices(self):
        """Test that sale prices are converted to cents."""
        pages = build_store(1, 0)
        pages[f"{STORE_URL}/collections/c1"] = collection_page(
            product_card("/products/sale", "On Sale", regular="$30.00", sale="$24.50"),
            product_card("/products/free", "Bad Price", regular="Sold out"),
        )
        self.serve(pages)

        products = self.scraper.crawl().collections[0].products

        self.assertEqual(products[0].regular_price_cents, 3000)
        self.assertEqual(products[0].sale_price_cents, 2450)
        self.assertEqual(products[1].regular_price_cents, 0)
        self.assertEqual(products[1].sale_price_cents, 0)

    def test_discovery_failure_aborts(self):
        """Test that an unreachable collections index aborts the crawl."""
        self.serve({})

        with self.assertRaises(FatalDiscoveryError):
            self.scraper.crawl()

        self.assertEqual(self.scraper.state, CrawlState.ABORTED)
        self.writer.write.assert_not_called()

    def test_no_collections_aborts(self):
        """Test that an index without collections aborts the crawl."""
        self.serve({COLLECTIONS_URL: collections_index()})

        with self.assertRaises(FatalDiscoveryError):
            self.scraper.crawl()

        self.assertEqual(self.scraper.state, CrawlState.ABORTED)
        self.writer.write.assert_not_called()

    def test_scrape_returns_serialized_report(self):
        """Test the BaseScraper contract."""
        self.serve(build_store(1, 1))

        data = self.scraper.scrape()

        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["name"], "Collection 1")
        self.assertEqual(data[0]["products"][0]["collectionName"], "Collection 1")


class TestStorefrontScraperImages(unittest.TestCase):
    """Test cases for image downloads during a crawl."""

    def setUp(self):
        """Set up a scraper writing images to a temporary directory."""
        self.tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp_dir, ignore_errors=True)
        self.image_dir = os.path.join(self.tmp_dir, "images")
        self.scraper = StorefrontScraper(
            store_url=STORE_URL, download_images=True, image_dir=self.image_dir
        )
        patcher = patch.object(self.scraper, "fetch_html", side_effect=fake_fetch(build_store(1, 2)))
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_images_downloaded(self):
        """Test that collection and product images are saved under sanitized names."""
        with patch.object(self.scraper, "download_asset", return_value=True) as download:
            self.scraper.crawl()

        self.assertTrue(os.path.isdir(self.image_dir))
        download.assert_any_call("//cdn.example.com/c1.jpg",
                                 os.path.join(self.image_dir, "Collection-1.webp"))
        download.assert_any_call("//cdn.example.com/c1-p2.jpg",
                                 os.path.join(self.image_dir, "Product-1-2.webp"))
        self.assertEqual(download.call_count, 3)

    def test_download_failure_is_ignored(self):
        """Test that failing downloads do not stop the crawl."""
        error = AssetDownloadError("//cdn.example.com/x.jpg", "x.webp", OSError("disk full"))
        with patch.object(self.scraper, "download_asset", side_effect=error):
            report = self.scraper.crawl()

        self.assertEqual(self.scraper.state, CrawlState.DONE)
        self.assertEqual(len(report.collections[0].products), 2)

    def test_downloads_disabled(self):
        """Test that nothing is downloaded by default."""
        self.scraper.download_images = False
        with patch.object(self.scraper, "download_asset") as download:
            self.scraper.crawl()

        download.assert_not_called()
        self.assertFalse(os.path.exists(self.image_dir))


if __name__ == "__main__":
    unittest.main()
