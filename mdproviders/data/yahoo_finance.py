"""
Yahoo! Finance historical prices and option chains provider.
"""

from contextlib import closing
from datetime import date
from typing import List, Optional
from urllib.parse import urlencode
import logging

from ..config import settings
from .base import HistoricalQuoteProvider
from .http import Fetcher, retry_call
from .lines import iter_chunk_lines
from .models import YahooHistoricalQuote, YahooOption
from .parsers import parse_yahoo_line, parse_yahoo_option_chain

logger = logging.getLogger(__name__)


class YahooFinanceProvider(HistoricalQuoteProvider[YahooHistoricalQuote]):
    """Yahoo Finance data provider."""

    value_field = "close"
    connectivity_probe = ("GOOG", date(2011, 1, 31))

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        base_url: Optional[str] = None,
        options_url: Optional[str] = None,
    ):
        """
        Initialize Yahoo Finance provider.

        Args:
            fetcher: HTTP fetcher
            base_url: Historical prices endpoint
            options_url: Query endpoint serving the option chains
        """
        super().__init__("Yahoo! Finance", fetcher)
        self.base_url = base_url or settings.yahoo_base_url
        self.options_url = options_url or settings.yahoo_options_url

    def build_url(self, ticker: str, start_date: date, end_date: date) -> str:
        """Build the request URL; months are zero based in the query string."""
        query = urlencode(
            [
                ("s", ticker),
                ("a", start_date.month - 1),
                ("b", start_date.day),
                ("c", start_date.year),
                ("d", end_date.month - 1),
                ("e", end_date.day),
                ("f", end_date.year),
                ("ignore", ".csv"),
            ]
        )
        return f"{self.base_url}?{query}"

    def get_historical_quotes(
        self, ticker: str, start_date: date, end_date: date
    ) -> List[YahooHistoricalQuote]:
        """
        Get historical data from Yahoo Finance.

        Rows keep the vendor order (newest first).

        Args:
            ticker: Yahoo symbol
            start_date: First day, inclusive
            end_date: Last day, inclusive

        Returns:
            Parsed quotes within the range
        """
        ticker = self.validate_symbol(ticker)
        date_range = self.validate_date_range(start_date, end_date)

        url = self.build_url(ticker, date_range.start, date_range.end)
        chunks = self.fetcher.iter_chunks(url)

        with closing(chunks):
            lines = iter_chunk_lines(chunks, encoding="utf-8", errors="replace")

            # First line is the column header
            if next(lines, None) is None:
                logger.warning(f"Empty response from {self.name} for {ticker}")
                return []

            quotes = (parse_yahoo_line(line, ticker) for line in lines)
            return self.filter_range(quotes, date_range)

    def build_options_url(self, ticker: str, year: int, month: int) -> str:
        """Build the query selecting the chain of one expiration month."""
        query = (
            "select * from yahoo.finance.options "
            f'where symbol="{ticker}" and expiration="{year:04d}-{month:02d}"'
        )
        params = urlencode([("q", query), ("env", settings.yahoo_options_env)])
        return f"{self.options_url}?{params}"

    def get_options(
        self, ticker: str, start: Optional[date] = None, months: Optional[int] = None
    ) -> List[YahooOption]:
        """
        Get the listed options of an underlying.

        One request is sent per expiration month, starting with the month of
        ``start`` (today by default). Each month gets its own retry budget.
        Months without a chain are skipped.

        Args:
            ticker: Yahoo symbol of the underlying
            start: Day whose month is requested first
            months: Number of expiration months to request

        Returns:
            Options ordered by expiration month, in vendor order within a month
        """
        ticker = self.validate_symbol(ticker)
        start = start or date.today()
        months = settings.yahoo_options_months if months is None else months

        options: List[YahooOption] = []
        year, month = start.year, start.month
        for _ in range(months):
            url = self.build_options_url(ticker, year, month)
            chain = parse_yahoo_option_chain(
                retry_call(lambda: self.fetcher.fetch(url), description=url)
            )
            if chain is None:
                logger.debug(f"No {ticker} options expiring in {year}-{month:02d}")
            else:
                options.extend(chain.options)

            month += 1
            if month > 12:
                year, month = year + 1, 1

        logger.info(f"Retrieved {len(options)} options for {ticker} from {self.name}")
        return options


# Convenience function for quick access
def get_yahoo_historical(ticker: str, start_date: date, end_date: date) -> List[YahooHistoricalQuote]:
    """Quick function to get historical data from Yahoo Finance."""
    provider = YahooFinanceProvider()
    return provider.get_historical_quotes(ticker, start_date, end_date)
