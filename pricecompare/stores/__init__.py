"""
Upstream store backends.
"""

from pricecompare.stores.base import StoreBackend
from pricecompare.stores.http import HttpStoreBackend
from pricecompare.stores.simulated import MOCK_PRICES, SimulatedStoreBackend

__all__ = ["StoreBackend", "HttpStoreBackend", "SimulatedStoreBackend", "MOCK_PRICES"]
