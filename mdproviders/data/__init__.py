"""
Historical market data retrieval for mdproviders.

This module fetches end of day data from Yahoo! Finance, the European
Central Bank and MEFF, parses the vendor formats and filters the records
by date range.
"""

from typing import List

# Data models
from .models import (
    DateRange, QuoteSeries, OptionQuote,
    YahooHistoricalQuote, EuropeanCentralBankQuote, MeffHistoricalQuote,
    YahooOption, YahooOptionChain, MeffFormat, OptionQuoteType, OptionQuoteStyle,
    ProviderError, TransportError, MalformedDataError, CacheIOError, DataUnavailableError
)

# Pipeline building blocks
from .http import Fetcher
from .cache import RawPayloadCache
from .lines import LineSplitter, iter_lines
from .parsers import (
    parse_yahoo_line, parse_ecb_observation, parse_meff_line, parse_yahoo_option_chain
)

# Data providers
from .base import HistoricalQuoteProvider
from .yahoo_finance import YahooFinanceProvider, get_yahoo_historical
from .ecb import EuropeanCentralBankProvider, get_ecb_historical
from .meff import MeffProvider, get_meff_historical

__all__: List[str] = [
    # Models
    "DateRange", "QuoteSeries", "OptionQuote",
    "YahooHistoricalQuote", "EuropeanCentralBankQuote", "MeffHistoricalQuote",
    "YahooOption", "YahooOptionChain", "MeffFormat", "OptionQuoteType", "OptionQuoteStyle",
    "ProviderError", "TransportError", "MalformedDataError", "CacheIOError",
    "DataUnavailableError",

    # Pipeline
    "Fetcher", "RawPayloadCache", "LineSplitter", "iter_lines",
    "parse_yahoo_line", "parse_ecb_observation", "parse_meff_line", "parse_yahoo_option_chain",

    # Providers
    "HistoricalQuoteProvider", "YahooFinanceProvider", "EuropeanCentralBankProvider",
    "MeffProvider", "get_yahoo_historical", "get_ecb_historical", "get_meff_historical",
]
