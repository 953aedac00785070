import os
from functools import lru_cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Crawler settings loaded from environment variables with defaults.

    Every value can be overridden through the environment or a .env file;
    the CLI options take precedence over both.
    """

    # Project metadata
    PROJECT_NAME = "Catalog Crawler"
    PROJECT_VERSION = "0.1.0"

    # Store to crawl
    STORE_URL = os.getenv("STORE_URL", "https://animepavilion.com")
    COLLECTIONS_PATH = os.getenv("COLLECTIONS_PATH", "/collections")

    # Output
    DOWNLOAD_IMAGES = _env_flag("DOWNLOAD_IMAGES")
    IMAGE_DIR = os.getenv("IMAGE_DIR", "./images")
    REPORT_PATH = os.getenv("REPORT_PATH", "collections.json")

    # HTTP
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
    USER_AGENT = os.getenv("USER_AGENT", "CatalogCrawler/0.1.0 (Research Project)")


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


# For direct access in other modules
settings = get_settings()
