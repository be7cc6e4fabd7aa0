"""
Command line access to the historical market data providers.
"""

import argparse
import sys
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

import pandas as pd

from .config import configure_logging
from .data.base import HistoricalQuoteProvider
from .data.ecb import SUPPORTED_CURRENCIES, EuropeanCentralBankProvider
from .data.meff import MeffProvider
from .data.models import DataUnavailableError, ProviderError, QuoteSeries
from .data.yahoo_finance import YahooFinanceProvider

PROVIDERS: Dict[str, Callable[[], HistoricalQuoteProvider]] = {
    "yahoo": YahooFinanceProvider,
    "ecb": EuropeanCentralBankProvider,
    "meff": MeffProvider,
}


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def render(frame: pd.DataFrame, output_format: str) -> str:
    """Render quotes in the requested output format."""
    if output_format == "csv":
        return frame.to_csv()
    if output_format == "json":
        return frame.reset_index().to_json(orient="records", date_format="iso")
    return frame.to_string()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdproviders", description="Historical market data from Yahoo! Finance, ECB and MEFF"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    history = subparsers.add_parser("history", help="Download historical quotes")
    history.add_argument("provider", choices=sorted(PROVIDERS))
    history.add_argument("ticker")
    history.add_argument("start", type=_parse_date)
    history.add_argument("end", type=_parse_date)
    history.add_argument("--format", dest="output_format", choices=["table", "csv", "json"],
                         default="table", help="Output format")

    options = subparsers.add_parser("options", help="Download an option chain")
    options.add_argument("ticker")
    options.add_argument("date", type=_parse_date,
                         help="Session date (meff) or first expiration month (yahoo)")
    options.add_argument("--provider", dest="options_provider", choices=["meff", "yahoo"],
                         default="meff", help="Option chain source")
    options.add_argument("--format", dest="output_format", choices=["table", "csv", "json"],
                         default="table", help="Output format")

    ping = subparsers.add_parser("ping", help="Test connectivity to a provider")
    ping.add_argument("provider", choices=sorted(PROVIDERS))

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``mdproviders`` command."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "ping":
            provider = PROVIDERS[args.provider]()
            ok = provider.test_connectivity()
            print(f"{provider.name}: {'OK' if ok else 'FAILED'}")
            return 0 if ok else 1

        if args.command == "options" and args.options_provider == "yahoo":
            provider = YahooFinanceProvider()
            quotes = provider.get_options(args.ticker, start=args.date)
            series = QuoteSeries(args.ticker, quotes, provider.name, "last_price")
        elif args.command == "options":
            provider = MeffProvider()
            quotes = provider.get_options(args.ticker, args.date)
            series = QuoteSeries(args.ticker, quotes, provider.name, provider.value_field)
        else:
            provider = PROVIDERS[args.provider]()
            series = provider.get_series(args.ticker, args.start, args.end)
    except (ProviderError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        if isinstance(e, DataUnavailableError) and getattr(args, "provider", None) == "ecb":
            print(f"Supported currencies: {', '.join(SUPPORTED_CURRENCIES)}", file=sys.stderr)
        return 1

    if series.is_empty:
        print("error: Market data not available: empty data set for the request.", file=sys.stderr)
        return 1

    print(render(series.to_dataframe(), args.output_format))
    return 0


if __name__ == "__main__":
    sys.exit(main())
