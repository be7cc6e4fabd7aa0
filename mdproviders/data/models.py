"""
Data models for historical quotes, date ranges and provider errors.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, List, Optional

import pandas as pd


class MeffFormat(str, Enum):
    """Layout eras of the MEFF historical data files."""

    CURRENT = "current"  # 2007 onwards, monthly archives, ';' separated
    LEGACY = "legacy"  # 1998 and 2001-2006, semester archives, ',' separated
    OLDEST = "oldest"  # 1993-1997 and 1999-2000, yearly archives

    @property
    def is_legacy_layout(self) -> bool:
        """Whether lines follow the 16 column comma separated layout."""
        return self is not MeffFormat.CURRENT


class OptionQuoteType(str, Enum):
    """Option right."""

    CALL = "call"
    PUT = "put"


class OptionQuoteStyle(str, Enum):
    """Option exercise style."""

    EUROPEAN = "european"
    AMERICAN = "american"


@dataclass(frozen=True)
class DateRange:
    """Closed date interval, both endpoints inclusive."""

    start: date
    end: date

    def __post_init__(self):
        """Validate the interval."""
        if self.start > self.end:
            raise ValueError(
                f"Start date {self.start} must not be after end date {self.end}"
            )

    @classmethod
    def single(cls, day: date) -> "DateRange":
        """Range covering exactly one day."""
        return cls(day, day)

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, date):
            return False
        return self.start <= day <= self.end


class OptionQuote(ABC):
    """Common view over option quotes coming from any vendor."""

    @property
    @abstractmethod
    def price(self) -> float:
        """Reference price of the option."""

    @property
    @abstractmethod
    def strike(self) -> float:
        """Strike price."""

    @property
    @abstractmethod
    def maturity(self) -> date:
        """Expiry date."""

    @property
    @abstractmethod
    def option_type(self) -> OptionQuoteType:
        """Call or put."""

    @property
    @abstractmethod
    def style(self) -> OptionQuoteStyle:
        """Exercise style."""

    @property
    @abstractmethod
    def volatility(self) -> float:
        """Implied volatility as published by the vendor."""

    @property
    @abstractmethod
    def volume(self) -> float:
        """Traded volume."""


@dataclass(frozen=True)
class YahooHistoricalQuote:
    """One row of the Yahoo! Finance historical prices CSV."""

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int
    adj_close: float
    ticker: str = ""

    @property
    def quote_date(self) -> date:
        return self.date

    @property
    def key(self) -> str:
        return self.ticker


@dataclass(frozen=True)
class EuropeanCentralBankQuote:
    """Single euro foreign exchange reference rate observation."""

    date: date
    value: float
    currency: str = ""

    @property
    def quote_date(self) -> date:
        return self.date

    @property
    def key(self) -> str:
        return self.currency


@dataclass(frozen=True)
class MeffHistoricalQuote(OptionQuote):
    """End of day record for a MEFF derivatives contract.

    Fields that a given file era does not publish keep their defaults:
    legacy rows have no ``contract_subgroup_code`` (``None``), no
    ``settl_delta`` and no ``number_of_trades``.
    """

    session_date: date
    contract_code: str
    contract_group: str = ""
    contract_subgroup_code: Optional[str] = None
    cfi_code: str = ""
    strike_price: float = 0.0
    maturity_date: Optional[date] = None
    bid_price: float = 0.0
    ask_price: float = 0.0
    high_price: float = 0.0
    low_price: float = 0.0
    last_price: float = 0.0
    settl_price: float = 0.0
    settl_volatility: float = 0.0
    settl_delta: float = 0.0
    total_reg_volume: int = 0
    number_of_trades: int = 0
    open_interest: int = 0
    source_format: MeffFormat = field(default=MeffFormat.CURRENT, compare=False)

    @property
    def quote_date(self) -> date:
        return self.session_date

    @property
    def key(self) -> str:
        return self.contract_code

    # OptionQuote implementation

    @property
    def price(self) -> float:
        return self.settl_price

    @property
    def strike(self) -> float:
        return self.strike_price

    @property
    def maturity(self) -> date:
        return self.maturity_date

    @property
    def option_type(self) -> OptionQuoteType:
        if self.contract_code.startswith("C"):
            return OptionQuoteType.CALL
        if self.contract_code.startswith("P"):
            return OptionQuoteType.PUT
        raise MalformedDataError(
            f"MEFF contract {self.contract_code!r} is not an option"
        )

    @property
    def style(self) -> OptionQuoteStyle:
        return OptionQuoteStyle.EUROPEAN

    @property
    def volatility(self) -> float:
        return self.settl_volatility

    @property
    def volume(self) -> float:
        return float(self.total_reg_volume)


@dataclass(frozen=True)
class YahooOption(OptionQuote):
    """One contract of a Yahoo! Finance option chain."""

    symbol: str
    type_code: str
    expiration: date
    strike_price: float = 0.0
    last_price: float = 0.0
    change: float = 0.0
    change_dir: str = ""
    bid: float = 0.0
    ask: float = 0.0
    vol: float = 0.0
    open_int: int = 0

    @property
    def quote_date(self) -> date:
        return self.expiration

    @property
    def key(self) -> str:
        return self.symbol

    # OptionQuote implementation

    @property
    def price(self) -> float:
        return self.last_price

    @property
    def strike(self) -> float:
        return self.strike_price

    @property
    def maturity(self) -> date:
        return self.expiration

    @property
    def option_type(self) -> OptionQuoteType:
        if self.type_code == "C":
            return OptionQuoteType.CALL
        if self.type_code == "P":
            return OptionQuoteType.PUT
        raise MalformedDataError(f"Unknown option type {self.type_code!r} for {self.symbol}")

    @property
    def style(self) -> OptionQuoteStyle:
        return OptionQuoteStyle.AMERICAN

    @property
    def volatility(self) -> float:
        # Not published in the chain
        return float("nan")

    @property
    def volume(self) -> float:
        return self.vol


@dataclass
class YahooOptionChain:
    """Options of one underlying sharing an expiration month."""

    symbol: str
    expiration: date
    options: List[YahooOption] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.options)


@dataclass
class QuoteSeries:
    """Ordered quotes for one instrument, as handed to the host application."""

    symbol: str
    quotes: List[Any]
    source: str
    value_field: str = "close"

    def __len__(self) -> int:
        return len(self.quotes)

    def __iter__(self):
        return iter(self.quotes)

    @property
    def is_empty(self) -> bool:
        return not self.quotes

    def dates(self) -> List[date]:
        """Quote dates in series order."""
        return [q.quote_date for q in self.quotes]

    def values(self, field_name: Optional[str] = None) -> List[float]:
        """Values of one field in series order (defaults to ``value_field``)."""
        field_name = field_name or self.value_field
        if self.quotes and not hasattr(self.quotes[0], field_name):
            raise ValueError(f"Field '{field_name}' not found on {self.source} quotes")
        return [getattr(q, field_name) for q in self.quotes]

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a pandas DataFrame indexed by quote date."""
        records = []
        for quote in self.quotes:
            record = asdict(quote)
            record.pop("source_format", None)
            record["quote_date"] = pd.Timestamp(quote.quote_date)
            records.append(record)

        df = pd.DataFrame(records)
        if df.empty:
            return df
        df.set_index("quote_date", inplace=True)
        return df


class ProviderError(Exception):
    """Base class for all market data provider errors."""

    pass


class TransportError(ProviderError):
    """Exception raised when a vendor server cannot be contacted.

    ``status_code`` holds the HTTP status when the server answered with a
    failure, and is ``None`` for network level errors.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        """Whether repeating the request may succeed."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class MalformedDataError(ProviderError, ValueError):
    """Exception raised when vendor data does not match the expected layout."""

    pass


class CacheIOError(ProviderError, OSError):
    """Exception raised when the on-disk payload cache cannot be used."""

    pass


class DataUnavailableError(ProviderError):
    """Exception raised for requests outside what a vendor publishes."""

    pass
