"""Tests for the command line interface."""

import json
import pytest
from datetime import date
from unittest.mock import Mock, patch

from mdproviders import cli
from mdproviders.data.models import (
    DataUnavailableError,
    EuropeanCentralBankQuote,
    MeffHistoricalQuote,
    QuoteSeries,
    TransportError,
    YahooOption,
)

ZAR_QUOTES = [
    EuropeanCentralBankQuote(date(2011, 1, 31), 9.8458, "ZAR"),
    EuropeanCentralBankQuote(date(2011, 2, 1), 9.8480, "ZAR"),
]


def make_provider_class(series=None, error=None, connected=True, name="European Central Bank"):
    """Provider class double returning a fixed series."""
    provider = Mock()
    provider.name = name
    provider.value_field = "value"
    provider.test_connectivity.return_value = connected
    if error is not None:
        provider.get_series.side_effect = error
        provider.get_options.side_effect = error
    else:
        provider.get_series.return_value = series
    return Mock(return_value=provider)


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep the CLI from reconfiguring logging during tests."""
    with patch("mdproviders.cli.configure_logging") as mock_configure:
        yield mock_configure


class TestParser:
    """Test argument parsing."""

    def test_history_arguments(self):
        """Test the history subcommand."""
        args = cli.build_parser().parse_args(
            ["history", "ecb", "EUCFZAR", "2011-01-31", "2011-02-01", "--format", "csv"]
        )

        assert args.command == "history"
        assert args.provider == "ecb"
        assert args.ticker == "EUCFZAR"
        assert args.start == date(2011, 1, 31)
        assert args.end == date(2011, 2, 1)
        assert args.output_format == "csv"

    def test_invalid_date(self, capsys):
        """Test that malformed dates are rejected by the parser."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["history", "ecb", "ZAR", "31/01/2011", "2011-02-01"])
        assert "Invalid date" in capsys.readouterr().err

    def test_unknown_provider(self):
        """Test that only known providers are accepted."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["ping", "bloomberg"])


class TestMain:
    """Test the CLI entry point."""

    def test_history_table(self, capsys):
        """Test printing quotes as a table."""
        series = QuoteSeries("EUCFZAR", ZAR_QUOTES, "European Central Bank", "value")
        provider_class = make_provider_class(series)

        with patch.dict(cli.PROVIDERS, {"ecb": provider_class}):
            code = cli.main(["history", "ecb", "EUCFZAR", "2011-01-31", "2011-02-01"])

        assert code == 0
        out = capsys.readouterr().out
        assert "9.8458" in out
        assert "2011-02-01" in out
        provider_class.return_value.get_series.assert_called_once_with(
            "EUCFZAR", date(2011, 1, 31), date(2011, 2, 1)
        )

    def test_history_csv(self, capsys):
        """Test CSV output."""
        series = QuoteSeries("EUCFZAR", ZAR_QUOTES, "European Central Bank", "value")

        with patch.dict(cli.PROVIDERS, {"ecb": make_provider_class(series)}):
            code = cli.main(
                ["history", "ecb", "EUCFZAR", "2011-01-31", "2011-02-01", "--format", "csv"]
            )

        assert code == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0] == "quote_date,date,value,currency"
        assert len(lines) == 3

    def test_history_json(self, capsys):
        """Test JSON output."""
        series = QuoteSeries("EUCFZAR", ZAR_QUOTES, "European Central Bank", "value")

        with patch.dict(cli.PROVIDERS, {"ecb": make_provider_class(series)}):
            cli.main(["history", "ecb", "EUCFZAR", "2011-01-31", "2011-02-01", "--format", "json"])

        records = json.loads(capsys.readouterr().out)
        assert [r["value"] for r in records] == [9.8458, 9.8480]
        assert records[0]["quote_date"].startswith("2011-01-31")

    def test_empty_result(self, capsys):
        """Test the message for a request without data."""
        series = QuoteSeries("EUCFZAR", [], "European Central Bank", "value")

        with patch.dict(cli.PROVIDERS, {"ecb": make_provider_class(series)}):
            code = cli.main(["history", "ecb", "EUCFZAR", "2012-01-01", "2012-01-31"])

        assert code == 1
        assert "Market data not available" in capsys.readouterr().err

    def test_provider_error(self, capsys):
        """Test that provider errors become an exit status."""
        provider_class = make_provider_class(error=TransportError("servers unreachable"))

        with patch.dict(cli.PROVIDERS, {"yahoo": provider_class}):
            code = cli.main(["history", "yahoo", "GOOG", "2011-01-31", "2011-01-31"])

        assert code == 1
        assert "error: servers unreachable" in capsys.readouterr().err

    def test_unsupported_currency_hint(self, capsys):
        """Test that ECB ticker errors list the published currencies."""
        provider_class = make_provider_class(error=DataUnavailableError("Only EUR rates"))

        with patch.dict(cli.PROVIDERS, {"ecb": provider_class}):
            code = cli.main(["history", "ecb", "USDJPY", "2011-01-31", "2011-01-31"])

        assert code == 1
        err = capsys.readouterr().err
        assert "error: Only EUR rates" in err
        assert "Supported currencies: USD, JPY" in err

    def test_validation_error(self, capsys):
        """Test that argument errors from providers are reported."""
        provider_class = make_provider_class(error=ValueError("Start date must not be after end date"))

        with patch.dict(cli.PROVIDERS, {"yahoo": provider_class}):
            code = cli.main(["history", "yahoo", "GOOG", "2011-02-01", "2011-01-31"])

        assert code == 1
        assert "Start date" in capsys.readouterr().err

    def test_options(self, capsys):
        """Test printing an option chain."""
        quote = MeffHistoricalQuote(
            session_date=date(2013, 7, 1),
            contract_code="CGRF20130719",
            cfi_code="OCASPS",
            settl_price=1.25,
        )
        provider = Mock()
        provider.name = "MEFF"
        provider.value_field = "settl_price"
        provider.get_options.return_value = [quote]

        with patch("mdproviders.cli.MeffProvider", return_value=provider):
            code = cli.main(["options", "GRF", "2013-07-01", "--format", "csv"])

        assert code == 0
        out = capsys.readouterr().out
        assert "CGRF20130719" in out
        assert "source_format" not in out
        provider.get_options.assert_called_once_with("GRF", date(2013, 7, 1))

    def test_yahoo_options(self, capsys):
        """Test printing a Yahoo! Finance option chain."""
        option = YahooOption("GOOG130719C00500000", "C", date(2013, 7, 19), 500.0, 412.5)
        provider = Mock()
        provider.name = "Yahoo! Finance"
        provider.get_options.return_value = [option]

        with patch("mdproviders.cli.YahooFinanceProvider", return_value=provider):
            code = cli.main(
                ["options", "GOOG", "2013-07-01", "--provider", "yahoo", "--format", "csv"]
            )

        assert code == 0
        out = capsys.readouterr().out
        assert "GOOG130719C00500000" in out
        assert "412.5" in out
        provider.get_options.assert_called_once_with("GOOG", start=date(2013, 7, 1))

    @pytest.mark.parametrize("connected,code,status", [(True, 0, "OK"), (False, 1, "FAILED")])
    def test_ping(self, capsys, connected, code, status):
        """Test the connectivity check."""
        provider_class = make_provider_class(connected=connected)

        with patch.dict(cli.PROVIDERS, {"ecb": provider_class}):
            assert cli.main(["ping", "ecb"]) == code

        assert capsys.readouterr().out.strip() == f"European Central Bank: {status}"

    def test_log_level_forwarded(self, no_logging_setup):
        """Test that --log-level reaches the logging setup."""
        with patch.dict(cli.PROVIDERS, {"ecb": make_provider_class()}):
            cli.main(["--log-level", "DEBUG", "ping", "ecb"])

        no_logging_setup.assert_called_once_with("DEBUG")
