import requests
from bs4 import BeautifulSoup
from typing import Optional
from urllib.parse import urljoin
import logging
import os
from catalog.exceptions import AssetDownloadError, TransportError
from catalog.scrapers.base import BaseScraper

DEFAULT_USER_AGENT = "CatalogCrawler/0.1.0 (Research Project)"


class WebScraperBase(BaseScraper):
    """Base class for scrapers that fetch pages and images over HTTP.

    This class extends the BaseScraper with the transport side of a crawl:
    a shared requests session, HTML parsing and binary downloads. Requests
    are made one at a time and are never retried.
    """

    def __init__(self, name: str, url: str, user_agent: Optional[str] = None, timeout: float = 30):
        """Initialize the web scraper.

        Args:
            name: Identifier for this store
            url: Base URL of the storefront
            user_agent: Optional custom user agent string
            timeout: Seconds to wait for each request before giving up
        """
        super().__init__(name, url)
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml",
            "Accept-Language": "en-US,en;q=0.9",
        })
        self.logger = logging.getLogger(f"scraper.{name}")

    def fetch_html(self, url: str) -> str:
        """Fetch a page and return its raw markup.

        Args:
            url: Absolute URL to fetch

        Returns:
            Response body as text

        Raises:
            TransportError: If the request fails or returns a 4XX/5XX status
        """
        self.logger.debug("Fetching %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(url, e) from e
        return response.text

    def get_page(self, url: Optional[str] = None) -> BeautifulSoup:
        """Fetch a page and parse it with BeautifulSoup.

        Args:
            url: URL to fetch, defaults to the scraper's base URL

        Returns:
            BeautifulSoup object for HTML parsing

        Raises:
            TransportError: If the request fails
        """
        target_url = self.url if url is None else url
        return BeautifulSoup(self.fetch_html(target_url), "lxml")

    def download_asset(self, url: str, destination: str) -> bool:
        """Download a binary asset (an image) to a local file.

        Protocol-relative and relative URLs, as used by store CDNs, are
        resolved against the scraper's base URL.

        Args:
            url: Location of the asset
            destination: Path of the file to write; overwritten if present

        Returns:
            True once the file has been written

        Raises:
            AssetDownloadError: If the asset cannot be fetched or written
        """
        source = urljoin(self.url, url)
        self.logger.debug("Downloading %s to %s", source, destination)
        try:
            with self.session.get(source, timeout=self.timeout, stream=True) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=8192):
                        f.write(chunk)
        except (requests.RequestException, OSError) as e:
            if os.path.exists(destination):
                os.remove(destination)
            raise AssetDownloadError(source, destination, e) from e
        return True
