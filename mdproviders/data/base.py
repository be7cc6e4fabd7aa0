"""
Abstract base class for historical quote providers.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar
import logging

from .http import Fetcher
from .models import DateRange, ProviderError, QuoteSeries

logger = logging.getLogger(__name__)

Q = TypeVar("Q")


class HistoricalQuoteProvider(ABC, Generic[Q]):
    """Base class for providers returning end of day quotes for a date range."""

    # Quote attribute exposed as the series value
    value_field: str = "close"

    # Known (ticker, day) pair with exactly one published record
    connectivity_probe: Optional[Tuple[str, date]] = None

    def __init__(self, name: str, fetcher: Optional[Fetcher] = None):
        """
        Initialize provider.

        Args:
            name: Provider name
            fetcher: HTTP fetcher, one is created for ``name`` if omitted
        """
        self.name = name
        self.fetcher = fetcher or Fetcher(name)

    @abstractmethod
    def get_historical_quotes(self, ticker: str, start_date: date, end_date: date) -> List[Q]:
        """
        Get quotes for ``ticker`` between two dates, both inclusive.

        Returns an empty list when nothing matches.
        """
        pass

    def get_series(self, ticker: str, start_date: date, end_date: date) -> QuoteSeries:
        """Get historical quotes wrapped in a QuoteSeries."""
        quotes = self.get_historical_quotes(ticker, start_date, end_date)
        return QuoteSeries(
            symbol=ticker, quotes=quotes, source=self.name, value_field=self.value_field
        )

    def validate_symbol(self, symbol: str) -> str:
        """Validate and normalize symbol."""
        if not symbol or not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("Symbol must be a non-empty string")

        return symbol.strip()

    def validate_date_range(self, start_date: date, end_date: date) -> DateRange:
        """Validate date range."""
        if not isinstance(start_date, date) or not isinstance(end_date, date):
            raise ValueError("Start and end must be dates")

        return DateRange(_as_date(start_date), _as_date(end_date))

    @staticmethod
    def filter_range(quotes: Iterable[Q], date_range: DateRange, key: Optional[str] = None) -> List[Q]:
        """Keep quotes dated within ``date_range`` (and matching ``key`` if given), in order."""
        return [
            q for q in quotes
            if q.quote_date in date_range and (key is None or q.key == key)
        ]

    def test_connectivity(self) -> bool:
        """Check if the provider answers with the expected single record."""
        if self.connectivity_probe is None:
            return True

        ticker, day = self.connectivity_probe
        try:
            quotes = self.get_historical_quotes(ticker, day, day)
        except ProviderError as e:
            logger.error(f"Health check failed for {self.name}: {e}")
            return False

        if len(quotes) != 1:
            logger.error(
                f"Data from {self.name} not available or unreliable "
                f"({len(quotes)} records for {ticker} on {day})"
            )
            return False
        return True


def _as_date(value: date) -> date:
    # datetime is a date subclass; drop the time part
    return value.date() if hasattr(value, "hour") else value
