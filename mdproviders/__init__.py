"""
mdproviders - Historical market data providers

Fetches end of day quotes from Yahoo! Finance, the European Central Bank
and the MEFF derivatives exchange, and parses the vendor file formats into
typed quote records.
"""

__version__ = "0.1.0"
__author__ = "mdproviders Team"

from typing import List

__all__: List[str] = []
