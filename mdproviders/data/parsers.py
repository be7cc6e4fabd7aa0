"""
Record parsers for the vendor specific CSV and XML layouts.

Every conversion failure, whether a wrong column count, an unparseable
date or a bad number, is reported as :class:`MalformedDataError`.
"""

import re
from datetime import date, datetime
from typing import Callable, Dict, List, Optional
from xml.etree import ElementTree

from .models import (
    EuropeanCentralBankQuote,
    MalformedDataError,
    MeffFormat,
    MeffHistoricalQuote,
    YahooHistoricalQuote,
    YahooOption,
    YahooOptionChain,
)

YAHOO_FIELD_COUNT = 7
MEFF_FIELD_COUNT = 18
MEFF_LEGACY_FIELD_COUNT = 16

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def split_fields(line: str, delimiter: str, expected: int) -> List[str]:
    """
    Split a delimited line and check its column count.

    Args:
        line: Raw line without terminator
        delimiter: Column separator
        expected: Exact number of columns required

    Returns:
        The columns, untrimmed
    """
    fields = line.split(delimiter)
    if len(fields) != expected:
        raise MalformedDataError(
            f"The csv line has a wrong number of items {expected} expected, "
            f"{len(fields)} found"
        )
    return fields


def parse_number(
    text: str, decimal: str = ".", group: str = ",", allow_nan: bool = False
) -> float:
    """
    Parse a decimal number written with the given separators.

    Surrounding whitespace is ignored; group separators are dropped.
    With ``allow_nan`` the literal ``NaN`` (any case) is accepted.
    """
    if allow_nan and text.strip().lower() == "nan":
        return float("nan")
    normalized = text.strip().replace(group, "")
    if decimal != ".":
        normalized = normalized.replace(decimal, ".")
    if not _NUMBER_RE.match(normalized):
        raise MalformedDataError(f"Invalid number: {text!r}")
    return float(normalized)


def parse_integer(text: str) -> int:
    """Parse an integer column, surrounding whitespace allowed."""
    stripped = text.strip()
    if not _INTEGER_RE.match(stripped):
        raise MalformedDataError(f"Invalid integer: {text!r}")
    return int(stripped)


def parse_date(text: str, fmt: str) -> date:
    """Parse a calendar date with a ``strptime`` format."""
    try:
        return datetime.strptime(text.strip(), fmt).date()
    except ValueError as e:
        raise MalformedDataError(f"Invalid date {text!r} for format {fmt}: {e}") from e


def unquote(text: str) -> str:
    """Drop the wrapping character on each side of a quoted column."""
    if len(text) < 2:
        raise MalformedDataError(f"Expected a quoted value, got {text!r}")
    return text[1:-1]


def parse_yahoo_line(line: str, ticker: str = "") -> YahooHistoricalQuote:
    """
    Parse a Yahoo! Finance historical prices row.

    Layout: ``Date,Open,High,Low,Close,Volume,Adj Close`` with ISO dates.

    Args:
        line: CSV row
        ticker: Symbol the row belongs to

    Returns:
        The parsed quote
    """
    rows = split_fields(line, ",", YAHOO_FIELD_COUNT)

    return YahooHistoricalQuote(
        date=parse_date(rows[0], "%Y-%m-%d"),
        open=parse_number(rows[1]),
        high=parse_number(rows[2]),
        low=parse_number(rows[3]),
        close=parse_number(rows[4]),
        volume=parse_integer(rows[5]),
        adj_close=parse_number(rows[6]),
        ticker=ticker,
    )


def parse_ecb_observation(
    time_period: str, obs_value: str, currency: str = ""
) -> EuropeanCentralBankQuote:
    """Build an ECB quote from the ``TIME_PERIOD``/``OBS_VALUE`` attributes."""
    return EuropeanCentralBankQuote(
        date=parse_date(time_period, "%Y-%m-%d"),
        value=parse_number(obs_value, allow_nan=True),
        currency=currency,
    )


def _local_name(element: ElementTree.Element) -> str:
    return element.tag.rsplit("}", 1)[-1]


def parse_yahoo_option(element: ElementTree.Element, expiration: date) -> YahooOption:
    """Build a Yahoo! Finance option from an ``option`` element of a chain."""
    symbol = element.get("symbol")
    type_code = element.get("type")
    if symbol is None or type_code is None:
        raise MalformedDataError("Option element without symbol or type")

    values = {_local_name(child): (child.text or "").strip() for child in element}

    def number(name: str) -> float:
        text = values.get(name, "")
        return parse_number(text, allow_nan=True) if text else 0.0

    open_int = values.get("openInt", "")
    return YahooOption(
        symbol=symbol,
        type_code=type_code,
        expiration=expiration,
        strike_price=number("strikePrice"),
        last_price=number("lastPrice"),
        change=number("change"),
        change_dir=values.get("changeDir", ""),
        bid=number("bid"),
        ask=number("ask"),
        vol=number("vol"),
        open_int=parse_integer(open_int) if open_int else 0,
    )


def parse_yahoo_option_chain(payload: bytes) -> Optional[YahooOptionChain]:
    """
    Parse the ``optionsChain`` element of a Yahoo! Finance query response.

    Args:
        payload: Raw XML document

    Returns:
        The chain, or None when the response holds no chain
    """
    try:
        root = ElementTree.fromstring(payload)
    except ElementTree.ParseError as e:
        raise MalformedDataError(f"Invalid XML document: {e}") from e

    chain = next((e for e in root.iter() if _local_name(e) == "optionsChain"), None)
    if chain is None:
        return None

    symbol = chain.get("symbol")
    expiration = chain.get("expiration")
    if symbol is None or expiration is None:
        raise MalformedDataError("The data format is not valid")
    # Expirations may carry a time part, only the date is kept
    maturity = parse_date(expiration[:10], "%Y-%m-%d")

    options = [
        parse_yahoo_option(element, maturity)
        for element in chain
        if _local_name(element) == "option"
    ]
    return YahooOptionChain(symbol=symbol, expiration=maturity, options=options)


def _parse_meff_current(line: str) -> MeffHistoricalQuote:
    # Text columns are wrapped in quotes, numbers use ',' as decimal point.
    rows = split_fields(line, ";", MEFF_FIELD_COUNT)

    def number(text: str) -> float:
        return parse_number(text, decimal=",", group=".")

    def optional_number(text: str) -> float:
        return number(text) if text else 0.0

    return MeffHistoricalQuote(
        session_date=parse_date(unquote(rows[0]), "%Y%m%d"),
        contract_group=unquote(rows[1]),
        contract_code=unquote(rows[2]),
        contract_subgroup_code=unquote(rows[3]),
        cfi_code=unquote(rows[4]),
        strike_price=number(rows[5]),
        maturity_date=parse_date(unquote(rows[6]), "%Y%m%d"),
        bid_price=number(rows[7]),
        ask_price=number(rows[8]),
        high_price=number(rows[9]),
        low_price=number(rows[10]),
        last_price=number(rows[11]),
        settl_price=number(rows[12]),
        settl_volatility=optional_number(rows[13]),
        settl_delta=optional_number(rows[14]),
        total_reg_volume=parse_integer(rows[15]),
        number_of_trades=parse_integer(rows[16]),
        open_interest=parse_integer(rows[17]),
        source_format=MeffFormat.CURRENT,
    )


def _legacy_cfi_code(instrument_class: str) -> str:
    # 'F' marks futures; calls and puts only carry their option letter.
    code = instrument_class.strip()
    return code if code == "F" else "O" + code


def _make_legacy_parser(fmt: MeffFormat) -> Callable[[str], MeffHistoricalQuote]:
    def parse(line: str) -> MeffHistoricalQuote:
        # The 16th column is always empty (rows end with a trailing comma).
        rows = split_fields(line, ",", MEFF_LEGACY_FIELD_COUNT)

        return MeffHistoricalQuote(
            session_date=parse_date(rows[0], "%Y%m%d"),
            contract_group=rows[1].strip(),
            cfi_code=_legacy_cfi_code(rows[2]),
            maturity_date=parse_date(rows[3], "%y%m%d"),
            strike_price=parse_number(rows[4]),
            contract_code=rows[5].strip(),
            bid_price=parse_number(rows[6]),
            ask_price=parse_number(rows[7]),
            high_price=parse_number(rows[8]),
            low_price=parse_number(rows[9]),
            last_price=parse_number(rows[10]),
            total_reg_volume=parse_integer(rows[11]),
            settl_price=parse_number(rows[12]),
            open_interest=parse_integer(rows[13]),
            settl_volatility=parse_number(rows[14]),
            source_format=fmt,
        )

    return parse


MEFF_PARSERS: Dict[MeffFormat, Callable[[str], MeffHistoricalQuote]] = {
    MeffFormat.CURRENT: _parse_meff_current,
    MeffFormat.LEGACY: _make_legacy_parser(MeffFormat.LEGACY),
    MeffFormat.OLDEST: _make_legacy_parser(MeffFormat.OLDEST),
}


def parse_meff_line(line: str, fmt: MeffFormat = MeffFormat.CURRENT) -> MeffHistoricalQuote:
    """
    Parse one MEFF historical data row.

    Args:
        line: CSV row without terminator
        fmt: Era of the file the row comes from

    Returns:
        The parsed quote
    """
    try:
        parser = MEFF_PARSERS[MeffFormat(fmt)]
    except ValueError as e:
        raise ValueError(f"Unknown MEFF format: {fmt!r}") from e
    return parser(line)
