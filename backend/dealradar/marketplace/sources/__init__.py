"""Marketplace source adapters.

Each module implements SourceAdapter for one external source and exposes
its default SourceConfig.
"""

from .base import SourceAdapter
from .slickdeals import SlickdealsAdapter, SLICKDEALS_CONFIG
from .dealnews import DealNewsAdapter, DEALNEWS_CONFIG
from .craigslist import CraigslistAdapter, CRAIGSLIST_CONFIG, CITIES
from .ebay import EbayAdapter, EBAY_CONFIG

__all__ = [
    "SourceAdapter",
    "SlickdealsAdapter",
    "DealNewsAdapter",
    "CraigslistAdapter",
    "EbayAdapter",
    "SLICKDEALS_CONFIG",
    "DEALNEWS_CONFIG",
    "CRAIGSLIST_CONFIG",
    "EBAY_CONFIG",
    "CITIES",
]
