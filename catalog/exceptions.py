"""Exceptions raised while crawling a storefront catalog."""

from typing import Optional


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class TransportError(CrawlerError):
    """A page could not be fetched (network failure or HTTP error status)."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        message = f"Could not fetch {url}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class FatalDiscoveryError(CrawlerError):
    """The collections index is unreachable or lists no collections.

    This is the only error that aborts a whole crawl.
    """


class AssetDownloadError(CrawlerError):
    """An image could not be downloaded or written to disk."""

    def __init__(self, url: str, destination: str, cause: Optional[BaseException] = None):
        self.url = url
        self.destination = destination
        self.cause = cause
        super().__init__(f"Could not download {url} to {destination}: {cause}")
