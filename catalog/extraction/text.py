import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, NavigableString

logger = logging.getLogger(__name__)

IMAGE_EXTENSION = ".webp"

# Elements that never contribute readable text to a product description
NON_TEXT_TAGS = ["img", "script", "style", "noscript"]

# Elements rendered on lines of their own
BLOCK_TAGS = [
    "p", "div", "section", "article", "blockquote",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "table", "tr",
]


def sanitize_asset_name(name: str) -> str:
    """Turn a display name into a safe image file name.

    Every character outside ``[A-Za-z0-9]`` becomes a hyphen, runs of hyphens
    collapse to one and the image extension is appended.

    Args:
        name: Collection or product name

    Returns:
        File name such as ``"Naruto-Figures.webp"``
    """
    sanitized = re.sub(r"[^a-zA-Z0-9]", "-", name or "")
    sanitized = re.sub(r"-+", "-", sanitized)
    return (sanitized or "-") + IMAGE_EXTENSION


def slugify(name: str) -> str:
    """Lowercase URL-safe identifier derived from a display name."""
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower())
    return slug.strip("-")


def price_to_cents(price_text: Optional[str]) -> int:
    """Convert a displayed price into an integer number of cents.

    Everything but digits, dots and minus signs is dropped. A remaining dot is
    treated as the decimal separator of a two-digit fraction ("19.99" -> 1999);
    without one the price is taken as whole units ("20" -> 2000).

    Text without any digits (an empty sale price, a bare currency symbol)
    yields 0 rather than an error, and negative amounts are clamped to 0.

    Args:
        price_text: Price as shown on the page, e.g. "$19.99"

    Returns:
        Non-negative price in cents
    """
    cleaned = re.sub(r"[^\d.-]", "", price_text or "")
    if not re.search(r"\d", cleaned):
        if price_text and price_text.strip():
            logger.warning("Could not parse price: %r", price_text)
        return 0

    if "." in cleaned:
        candidate = cleaned.replace(".", "", 1)
    else:
        candidate = cleaned + "00"

    # Only the leading integer is used, anything after it is ignored
    match = re.match(r"-?\d+", candidate)
    if not match:
        logger.warning("Could not parse price: %r", price_text)
        return 0

    cents = int(match.group())
    if cents < 0:
        logger.warning("Negative price %r clamped to 0", price_text)
        return 0
    return cents


def clean_description(fragment: Optional[str]) -> str:
    """Convert a product description HTML fragment to plain text.

    Images, scripts, styles and noscript blocks are dropped, links keep only
    their text, ``<br>`` becomes a newline and paragraphs and other block
    elements are separated by a single line break. Newlines in the markup
    itself are ordinary whitespace. Whitespace runs collapse to one space and
    blank lines are removed.

    Returns an empty string for a missing fragment or when the markup cannot
    be converted.
    """
    if not fragment or not fragment.strip():
        return ""

    try:
        soup = BeautifulSoup(fragment, "lxml")

        for tag in soup.find_all(NON_TEXT_TAGS):
            tag.decompose()

        # Source formatting must not survive as line breaks
        for string in soup.find_all(string=True):
            if type(string) is NavigableString:
                string.replace_with(re.sub(r"\s+", " ", string))

        for br in soup.find_all("br"):
            br.replace_with("\n")

        for block in soup.find_all(BLOCK_TAGS):
            block.insert_before("\n")
            block.insert_after("\n")

        text = soup.get_text()
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Error converting description to text: %s", e)
        return ""

    lines = []
    for line in text.split("\n"):
        line = re.sub(r"[^\S\n]+", " ", line).strip()
        if line:
            lines.append(line)

    return "\n".join(lines)
