"""
European Central Bank euro foreign exchange reference rates provider.
"""

import logging
from contextlib import closing
from datetime import date
from typing import Iterable, Iterator, List, Optional
from xml.etree.ElementTree import Element, ParseError, XMLPullParser

from ..config import settings
from .base import HistoricalQuoteProvider
from .http import Fetcher
from .models import DataUnavailableError, EuropeanCentralBankQuote, MalformedDataError
from .parsers import parse_ecb_observation

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = (
    "USD", "JPY", "BGN", "CZK", "DKK", "GBP", "HUF", "LTL", "LVL", "PLN", "RON",
    "SEK", "CHF", "NOK", "HRK", "RUB", "TRY", "AUD", "BRL", "CAD", "CNY", "HKD",
    "IDR", "ILS", "INR", "KRW", "MXN", "MYR", "NZD", "PHP", "SGD", "THB", "ZAR",
)

TICKER_PREFIX = "EUCF"


def currency_from_ticker(ticker: str) -> str:
    """
    Extract the target currency from a ticker.

    Accepts ``EUCF<CCY>``, ``EUR<CCY>`` or a bare ``<CCY>`` code; only rates
    from EUR to another currency are published.
    """
    symbol = ticker.strip().upper()
    if symbol.startswith(TICKER_PREFIX):
        currency = symbol[len(TICKER_PREFIX):]
    elif symbol.startswith("EUR") and len(symbol) > 3:
        currency = symbol[3:]
    else:
        currency = symbol

    if len(currency) != 3 or not currency.isalpha():
        raise DataUnavailableError(
            "Only conversion rates from EUR to another currency are available "
            f"(use {TICKER_PREFIX}<CURRENCY>), {ticker} was requested"
        )
    return currency


def iter_observations(chunks: Iterable[bytes], currency: str = "") -> Iterator[EuropeanCentralBankQuote]:
    """
    Parse ``Obs`` elements from an XML document delivered in chunks.

    Args:
        chunks: Raw XML bytes in arbitrary pieces
        currency: Currency code attached to each quote

    Yields:
        One quote per observation, in document order
    """
    parser = XMLPullParser(events=("start", "end"))
    open_elements: List[Element] = []

    def drain() -> Iterator[EuropeanCentralBankQuote]:
        for event, element in parser.read_events():
            # Match on the local name, the series is namespaced
            is_obs = element.tag.rsplit("}", 1)[-1] == "Obs"
            if event == "end":
                open_elements.pop()
                if is_obs and open_elements:
                    # Finished observations are dropped from the tree
                    open_elements[-1].remove(element)
                continue

            open_elements.append(element)
            if not is_obs:
                continue

            time_period = element.get("TIME_PERIOD")
            obs_value = element.get("OBS_VALUE")
            if time_period is None or obs_value is None:
                raise MalformedDataError("The data format is not valid")
            yield parse_ecb_observation(time_period, obs_value, currency)

    try:
        for chunk in chunks:
            parser.feed(chunk)
            yield from drain()
        parser.close()
        yield from drain()
    except ParseError as e:
        raise MalformedDataError(f"Invalid XML document: {e}") from e


class EuropeanCentralBankProvider(HistoricalQuoteProvider[EuropeanCentralBankQuote]):
    """Euro reference exchange rates published by the European Central Bank."""

    value_field = "value"
    connectivity_probe = ("ZAR", date(2011, 1, 31))

    def __init__(self, fetcher: Optional[Fetcher] = None, base_url: Optional[str] = None):
        """
        Initialize ECB provider.

        Args:
            fetcher: HTTP fetcher
            base_url: Directory holding the per currency XML files
        """
        super().__init__("European Central Bank", fetcher)
        self.base_url = (base_url or settings.ecb_base_url).rstrip("/")

    def build_url(self, currency: str) -> str:
        return f"{self.base_url}/{currency.lower()}.xml"

    def get_historical_quotes(
        self, ticker: str, start_date: date, end_date: date
    ) -> List[EuropeanCentralBankQuote]:
        """
        Get EUR reference rates between two dates.

        Args:
            ticker: ``EUCF<CCY>``, ``EUR<CCY>`` or ``<CCY>``
            start_date: First day, inclusive
            end_date: Last day, inclusive

        Returns:
            Quotes in ascending date order
        """
        currency = currency_from_ticker(self.validate_symbol(ticker))
        date_range = self.validate_date_range(start_date, end_date)

        chunks = self.fetcher.iter_chunks(self.build_url(currency))
        with closing(chunks):
            quotes = self.filter_range(iter_observations(chunks, currency), date_range)

        # Newest-first feeds are flipped so callers always get ascending dates
        if len(quotes) > 1 and quotes[0].date > quotes[-1].date:
            quotes.reverse()
        return quotes


# Convenience function for quick access
def get_ecb_historical(ticker: str, start_date: date, end_date: date) -> List[EuropeanCentralBankQuote]:
    """Quick function to get reference rates from the European Central Bank."""
    provider = EuropeanCentralBankProvider()
    return provider.get_historical_quotes(ticker, start_date, end_date)
