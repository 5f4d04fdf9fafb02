"""Helpers for mining deal data out of RSS feeds.

Feeds from deal aggregators and classifieds sites are only loosely
structured: the interesting bits (price, store, coupon) live in free text.
Tags are extracted with regular expressions and the text is cleaned up
with BeautifulSoup.
"""

import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterator, Optional

from bs4 import BeautifulSoup


ITEM_PATTERN = re.compile(r"<item[^>]*>([\s\S]*?)</item>")
PRICE_PATTERN = re.compile(r"\$[\d,]+\.?\d*")
IMG_SRC_PATTERN = re.compile(r"src=[\"']([^\"']+)[\"']")


def iter_items(xml: str) -> Iterator[str]:
    """Yield the inner XML of every ``<item>`` element."""
    for match in ITEM_PATTERN.finditer(xml or ""):
        yield match.group(1)


def extract_tag(xml: str, tag: str) -> str:
    """Return the trimmed text of the first ``<tag>``, unwrapping CDATA.

    Args:
        xml: XML fragment (usually one feed item)
        tag: Tag name, may include a namespace prefix (e.g. "dc:date")

    Returns:
        Tag contents, or an empty string if the tag is missing
    """
    name = re.escape(tag)
    pattern = re.compile(
        rf"<{name}[^>]*>(?:<!\[CDATA\[)?([\s\S]*?)(?:\]\]>)?</{name}>",
        re.IGNORECASE,
    )
    match = pattern.search(xml)
    return match.group(1).strip() if match else ""


def clean_html(text: str) -> str:
    """Strip markup and decode HTML entities."""
    if not text:
        return ""
    return BeautifulSoup(text, "html.parser").get_text().replace("\xa0", " ").strip()


def parse_price(price_string: str) -> float:
    """Parse the numeric part of a price string.

    Handles formats like "$1,299.99", "was $999" or "1299". Anything that
    does not parse yields 0.0, which callers treat as "no price".
    """
    if not price_string:
        return 0.0

    cleaned = re.sub(r"[^0-9.,]", "", price_string).replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        # "1.2.3" and the like
        match = re.match(r"\d+(?:\.\d+)?", cleaned)
        return float(match.group(0)) if match else 0.0


def find_price(text: str) -> float:
    """Return the first ``$N`` amount found in text, or 0.0."""
    match = PRICE_PATTERN.search(text or "")
    return parse_price(match.group(0)) if match else 0.0


def find_image(text: str) -> Optional[str]:
    match = IMG_SRC_PATTERN.search(text or "")
    return match.group(1) if match else None


def parse_feed_date(value: str) -> Optional[datetime]:
    """Parse an RFC 822 (``pubDate``) or ISO 8601 (``dc:date``) timestamp.

    Returns a naive local-time datetime, or None if the value is unusable.
    """
    if not value:
        return None

    parsed: Optional[datetime] = None
    try:
        parsed = parsedate_to_datetime(value)
        # "-0000" comes back naive but still means UTC
        if parsed is not None and parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def generate_id(prefix: str, url: str, pattern: str = r"/(\d+)/") -> str:
    """Build a source-scoped id from the numeric part of a listing URL.

    Falls back to a millisecond timestamp when the URL carries no id.
    """
    match = re.search(pattern, url or "")
    if match:
        return f"{prefix}-{match.group(1)}"
    return f"{prefix}-{int(time.time() * 1000)}"
