# This file defines the abstract base class for all scrapers in the crawler
# It establishes the common interface that concrete storefront scrapers follow

import abc
from typing import Any, Dict, List


class BaseScraper(abc.ABC):
    """Base class for storefront scrapers.

    A scraper is identified by a name and the base URL of the store it reads.
    Concrete scrapers decide how the catalog is traversed; callers only rely on
    ``scrape()`` returning the serialized catalog.
    """

    def __init__(self, name: str, url: str):
        """Initialize the scraper with a name and URL.

        Args:
            name: Identifier for this store, used in logger names
            url: Base URL of the storefront; relative links found on its
                 pages are resolved against it
        """
        self.name = name
        self.url = url

    @abc.abstractmethod
    def scrape(self) -> List[Dict[str, Any]]:
        """Crawl the store and return its catalog.

        Returns:
            A list of collection dictionaries in discovery order, each with
            its products nested under ``products``. Field names are the ones
            written to the JSON report (``url``, ``name``, ``imageUrl``,
            ``slug``, ``products``).

        Raises:
            FatalDiscoveryError: If the catalog cannot be discovered at all
        """
        raise NotImplementedError("Concrete scraper classes must implement scrape() method")
