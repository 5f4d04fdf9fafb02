"""DealRadar: live deal aggregation across marketplaces."""

__version__ = "0.1.0"
