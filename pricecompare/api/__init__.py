"""
HTTP surface for the price aggregation engine.
"""

from pricecompare.api.server import PriceServer, create_price_server

__all__ = ["PriceServer", "create_price_server"]
