"""
MEFF (Spanish derivatives exchange) historical data provider.

MEFF publishes its end of day files as ZIP archives whose naming and
layout changed over time:

* 1993-1997 and 1999-2000: one archive per year (``HP<yy>000<a|i>.zip``)
* 1998 and 2001-2006: one archive per semester (``HP<yy><1s|00>0<a|i>.zip``)
* 2007 onwards: one archive per month (``HP<yy><mm><ACO|FIE>.zip``)

Two datasets exist for every period: stock derivatives ("actions") and
index derivatives ("index").
"""

import logging
import zipfile
import zlib
from dataclasses import dataclass
from datetime import date
from itertools import groupby
from operator import attrgetter
from typing import Iterator, List, Optional

from ..config import settings
from .archive import iter_entries
from .base import HistoricalQuoteProvider
from .cache import RawPayloadCache
from .http import Fetcher
from .lines import iter_lines
from .models import (
    DataUnavailableError,
    DateRange,
    MalformedDataError,
    MeffFormat,
    MeffHistoricalQuote,
    TransportError,
)
from .parsers import parse_meff_line

logger = logging.getLogger(__name__)

FIRST_AVAILABLE_YEAR = 1993

ACTIONS = "actions"
INDEX = "index"

# Dataset code used in monthly and in older file names
DATASET_CODES = {
    ACTIONS: ("ACO", "a"),
    INDEX: ("FIE", "i"),
}

OPTION_CFI_CODES = ("OCASPS", "OPASPS")

INDEX_SUFFIX = " Index"


@dataclass(frozen=True)
class Period:
    """One archive worth of data: a year, a semester or a month."""

    year: int
    month: int
    fmt: MeffFormat

    @property
    def label(self) -> str:
        if self.fmt is MeffFormat.OLDEST:
            return f"{self.year}"
        if self.fmt is MeffFormat.LEGACY:
            return f"{self.year}-S{1 if self.month <= 6 else 2}"
        return f"{self.year}-{self.month:02d}"


def format_for_year(year: int) -> MeffFormat:
    """File era used by MEFF for a given year."""
    if year < FIRST_AVAILABLE_YEAR:
        raise DataUnavailableError(
            f"Data is only available from year {FIRST_AVAILABLE_YEAR} "
            "when using this Market Data Provider"
        )
    if year <= 1997 or 1999 <= year <= 2000:
        return MeffFormat.OLDEST
    if year == 1998 or 2001 <= year <= 2006:
        return MeffFormat.LEGACY
    return MeffFormat.CURRENT


def periods_for_year(year: int, date_range: DateRange) -> List[Period]:
    """
    Archives needed to cover the part of ``date_range`` falling in ``year``.

    Args:
        year: Calendar year inside the range
        date_range: Requested interval

    Returns:
        Periods in chronological order, each archive listed once
    """
    fmt = format_for_year(year)
    first_month = date_range.start.month if year == date_range.start.year else 1
    last_month = date_range.end.month if year == date_range.end.year else 12

    if fmt is MeffFormat.OLDEST:
        return [Period(year, 1, fmt)]

    if fmt is MeffFormat.LEGACY:
        periods = []
        if first_month <= 6:
            periods.append(Period(year, 1, fmt))
        if last_month >= 7:
            periods.append(Period(year, 7, fmt))
        return periods

    return [Period(year, month, fmt) for month in range(first_month, last_month + 1)]


def iter_periods(date_range: DateRange) -> Iterator[Period]:
    """All archive periods covering ``date_range``, in chronological order."""
    for year in range(date_range.start.year, date_range.end.year + 1):
        yield from periods_for_year(year, date_range)


def build_url(period: Period, dataset: str = ACTIONS, base_url: Optional[str] = None) -> str:
    """
    Build the archive URL for a period and dataset.

    Args:
        period: Archive period
        dataset: ``actions`` or ``index``
        base_url: Download directory, defaults to settings

    Returns:
        Absolute archive URL
    """
    if dataset not in DATASET_CODES:
        raise ValueError(f"Unknown MEFF dataset: {dataset}")
    base_url = (base_url or settings.meff_base_url).rstrip("/")
    monthly_code, short_code = DATASET_CODES[dataset]
    yy = f"{period.year % 100:02d}"

    if period.fmt is MeffFormat.CURRENT:
        name = f"HP{yy}{period.month:02d}{monthly_code}.zip"
    elif period.fmt is MeffFormat.OLDEST:
        name = f"HP{yy}000{short_code}.zip"
    else:
        semester = "1s" if period.month <= 6 else "00"
        name = f"HP{yy}{semester}0{short_code}.zip"

    return f"{base_url}/{name}"


def preparse_symbol(symbol: str) -> str:
    """Drop the ``" Index"`` suffix used to list index contracts."""
    if symbol.endswith(INDEX_SUFFIX):
        return symbol[: -len(INDEX_SUFFIX)]
    return symbol


class MeffProvider(HistoricalQuoteProvider[MeffHistoricalQuote]):
    """MEFF end of day settlement data provider."""

    value_field = "settl_price"
    connectivity_probe = ("GRF", date(2011, 1, 31))

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        cache: Optional[RawPayloadCache] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize MEFF provider.

        Args:
            fetcher: HTTP fetcher
            cache: Archive cache, defaults to one under the settings root
            base_url: Archive download directory
        """
        super().__init__("MEFF", fetcher)
        self.cache = cache if cache is not None else RawPayloadCache(settings.meff_cache_dir)
        self.base_url = base_url or settings.meff_base_url

    def build_url(self, period: Period, dataset: str = ACTIONS) -> str:
        return build_url(period, dataset, self.base_url)

    def load_archive(self, url: str) -> bytes:
        """Archive bytes for ``url``, through the cache."""
        return self.cache.resolve(url, self.fetcher)

    def iter_archive_quotes(self, payload: bytes, fmt: MeffFormat) -> Iterator[MeffHistoricalQuote]:
        """
        Parse every row of every file in an archive.

        Yearly archives only have their first file read.

        Args:
            payload: ZIP archive bytes
            fmt: Era of the archive

        Yields:
            Parsed quotes in file order
        """
        first_only = fmt is MeffFormat.OLDEST
        try:
            for name, stream in iter_entries(payload, first_only=first_only):
                logger.debug(f"Scanning {name} ({fmt.value} format)")
                for line in iter_lines(
                    stream, encoding="ascii", errors="replace", chunk_size=settings.read_chunk_size
                ):
                    yield parse_meff_line(line, fmt)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise MalformedDataError(f"Corrupted MEFF archive: {e}") from e

    def iter_period_quotes(self, period: Period, dataset: str = ACTIONS) -> Iterator[MeffHistoricalQuote]:
        """Quotes stored in the archive of one period and dataset."""
        payload = self.load_archive(self.build_url(period, dataset))
        return self.iter_archive_quotes(payload, period.fmt)

    def get_historical_quotes(
        self, ticker: str, start_date: date, end_date: date
    ) -> List[MeffHistoricalQuote]:
        """
        Get settlement data for a contract between two dates.

        Archives are scanned period by period in chronological order. If the
        stock derivatives dataset yields nothing for the first year, the year
        is scanned again in the index derivatives dataset, which is then used
        for the rest of the range.

        Args:
            ticker: Contract code, optionally with an ``" Index"`` suffix
            start_date: First session, inclusive
            end_date: Last session, inclusive

        Returns:
            Matching quotes; empty when neither dataset has the contract
        """
        ticker = preparse_symbol(self.validate_symbol(ticker))
        date_range = self.validate_date_range(start_date, end_date)

        dataset = ACTIONS
        quotes: List[MeffHistoricalQuote] = []

        for year, year_periods in groupby(iter_periods(date_range), key=attrgetter("year")):
            year_periods = list(year_periods)
            quotes.extend(self._scan_periods(year_periods, dataset, date_range, ticker))

            if not quotes and dataset == ACTIONS:
                logger.warning(
                    f"No {ticker} data in the {ACTIONS} dataset for {year}, trying {INDEX}"
                )
                dataset = INDEX
                quotes.extend(self._scan_periods(year_periods, dataset, date_range, ticker))

            if not quotes:
                logger.info(f"No {ticker} data in the {INDEX} dataset for {year} either")
                break

        logger.debug(f"Archive cache: {self.cache.get_stats()}")
        return quotes

    def _scan_periods(
        self, periods: List[Period], dataset: str, date_range: DateRange, ticker: str
    ) -> List[MeffHistoricalQuote]:
        quotes: List[MeffHistoricalQuote] = []
        for period in periods:
            logger.debug(f"Scanning {dataset} data for {period.label}")
            quotes.extend(
                self.filter_range(self.iter_period_quotes(period, dataset), date_range, ticker)
            )
        return quotes

    def get_options(self, ticker: str, on_date: date) -> List[MeffHistoricalQuote]:
        """
        Get the option chain of an underlying for one session.

        The stock derivatives dataset is tried first, the index derivatives
        dataset only if the first has no matching option or its archive is
        not published. Downloads are not retried.

        Args:
            ticker: Underlying code (matched against option contract codes)
            on_date: Session date

        Returns:
            Call and put quotes for the session
        """
        ticker = preparse_symbol(self.validate_symbol(ticker))
        period = periods_for_year(on_date.year, DateRange.single(on_date))[0]

        quotes: List[MeffHistoricalQuote] = []
        for dataset in (ACTIONS, INDEX):
            url = self.build_url(period, dataset)
            try:
                payload = self.load_archive(url)
            except TransportError as e:
                if e.transient or dataset == INDEX:
                    raise
                logger.warning(f"No {ACTIONS} archive for {period.label} ({e}), trying {INDEX}")
                continue

            quotes = [
                q for q in self.iter_archive_quotes(payload, period.fmt)
                if q.session_date == on_date
                and q.cfi_code in OPTION_CFI_CODES
                and q.contract_code[1:].startswith(ticker)
            ]
            if quotes:
                break

        return quotes


# Convenience function for quick access
def get_meff_historical(ticker: str, start_date: date, end_date: date) -> List[MeffHistoricalQuote]:
    """Quick function to get settlement data from MEFF."""
    provider = MeffProvider()
    return provider.get_historical_quotes(ticker, start_date, end_date)
